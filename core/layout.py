"""Caption layout: sanitizing, word wrapping and vertical placement.

Everything here is a pure function of its inputs so placement can be checked
without running a media engine. Positions are expressed relative to the frame
(``h`` = frame height, ``w`` = frame width) and rendered into drawtext
expressions by :meth:`CaptionLine.x_expression` / :meth:`CaptionLine.y_expression`.
"""
import re
from dataclasses import dataclass
from enum import Enum
from typing import List

TOP_FRACTION = 0.1
BOTTOM_FRACTION = 0.85
MIDDLE_FRACTION = 0.5

_UNSUPPORTED_CHARS = re.compile(r"[^\w\s\-.,!?]")
_WHITESPACE = re.compile(r"\s+")


class Alignment(str, Enum):
    TOP = "top"
    MIDDLE = "middle"
    BOTTOM = "bottom"


@dataclass(frozen=True)
class CaptionSpec:
    text: str
    alignment: Alignment = Alignment.MIDDLE


@dataclass(frozen=True)
class VerticalAnchor:
    """y = h * fraction + offset, optionally pulled up by half the glyph height."""
    fraction: float
    offset: float = 0.0
    center_glyph: bool = False

    def shifted(self, delta: float) -> "VerticalAnchor":
        return VerticalAnchor(self.fraction, self.offset + delta, self.center_glyph)

    def expression(self) -> str:
        expr = f"h*{self.fraction:g}"
        if self.center_glyph:
            expr += "-text_h/2"
        if self.offset:
            expr += f"{self.offset:+g}"
        return expr


@dataclass(frozen=True)
class CaptionLine:
    text: str
    anchor: VerticalAnchor

    def x_expression(self) -> str:
        return "(w-text_w)/2"

    def y_expression(self) -> str:
        return self.anchor.expression()


def clean_caption(text: str, max_length: int = 100) -> str:
    # drawtext can't render emoji and chokes on quoting characters
    cleaned = _UNSUPPORTED_CHARS.sub("", text)
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()
    return cleaned[:max_length].rstrip()


def wrap(text: str, max_chars_per_line: int = 25, max_lines: int = 3) -> List[str]:
    """Greedy word wrap, clipped to ``max_lines``.

    Words are never split; a word longer than the limit gets a line of its
    own. Lines beyond ``max_lines`` are dropped silently.
    """
    lines: List[str] = []
    current = ""
    for word in text.split():
        if not current:
            current = word
        elif len(current) + 1 + len(word) <= max_chars_per_line:
            current = f"{current} {word}"
        else:
            lines.append(current)
            current = word
            if len(lines) == max_lines:
                break
    if current and len(lines) < max_lines:
        lines.append(current)
    return lines


def vertical_anchor(alignment: Alignment, line_count: int, line_spacing: float) -> VerticalAnchor:
    """Anchor of the first caption line.

    Bottom captions grow upward so the last line sits at the bottom offset.
    """
    alignment = Alignment(alignment)
    if alignment == Alignment.TOP:
        return VerticalAnchor(TOP_FRACTION)
    if alignment == Alignment.BOTTOM:
        return VerticalAnchor(BOTTOM_FRACTION, -(max(line_count, 1) - 1) * line_spacing)
    block_offset = -(max(line_count, 1) - 1) / 2 * line_spacing
    return VerticalAnchor(MIDDLE_FRACTION, block_offset, center_glyph=True)


def layout_caption(spec: CaptionSpec, max_chars_per_line: int = 25,
                   max_lines: int = 3, line_spacing: float = 40,
                   max_length: int = 100) -> List[CaptionLine]:
    lines = wrap(clean_caption(spec.text, max_length), max_chars_per_line, max_lines)
    first = vertical_anchor(spec.alignment, len(lines), line_spacing)
    return [
        CaptionLine(text=line, anchor=first.shifted(index * line_spacing))
        for index, line in enumerate(lines)
    ]
