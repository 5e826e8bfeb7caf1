from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from typing import Optional
from core.layout import Alignment, CaptionSpec
from core.pipeline import JobRequest


class ProcessVideoRequest(BaseModel):
    # The original client field names are still accepted
    source_clip_url: str = Field(
        min_length=1, validation_alias=AliasChoices("sourceClipUrl", "ugcVideoUrl")
    )
    overlay_clip_url: str = Field(
        min_length=1, validation_alias=AliasChoices("overlayClipUrl", "productDemoUrl")
    )
    caption_text: str = Field(
        min_length=1, validation_alias=AliasChoices("captionText", "hook")
    )
    alignment: Alignment = Field(
        validation_alias=AliasChoices("alignment", "textAlignment")
    )

    def to_job_request(self) -> JobRequest:
        return JobRequest(
            source_clip_url=self.source_clip_url,
            overlay_clip_url=self.overlay_clip_url,
            caption=CaptionSpec(text=self.caption_text, alignment=self.alignment),
        )


class ProcessVideoResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(serialization_alias="jobId")


class JobStatusResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str
    progress: int
    video_url: Optional[str] = Field(default=None, serialization_alias="videoUrl")
    error: Optional[str] = None
