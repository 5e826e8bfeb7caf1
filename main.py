import argparse
import logging
import sys

from config import settings
from core.jobs import InMemoryJobRegistry
from core.layout import Alignment, CaptionSpec
from core.pipeline import JobRequest
from workers.dispatcher import create_dispatcher


def configure_logging(level: str = None):
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s",
    )


def run_job(source_url: str, overlay_url: str, caption: str, alignment: str = "middle") -> int:
    registry = InMemoryJobRegistry()
    dispatcher = create_dispatcher(settings, registry=registry)
    request = JobRequest(
        source_clip_url=source_url,
        overlay_clip_url=overlay_url,
        caption=CaptionSpec(text=caption, alignment=Alignment(alignment)),
    )

    job_id = registry.create()
    dispatcher.orchestrator.run(job_id, request)
    job = registry.get(job_id)

    if job.video_url:
        print(job.video_url)
        return 0
    print(f"Error: {job.error}", file=sys.stderr)
    return 1


def serve(host: str, port: int):
    import uvicorn
    uvicorn.run("api.main:app", host=host, port=port)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Caption and concatenate two video clips")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Process one job in the foreground")
    run_parser.add_argument("source", help="URL of the clip that receives the caption")
    run_parser.add_argument("overlay", help="URL of the clip appended after it")
    run_parser.add_argument("caption", help="Caption text")
    run_parser.add_argument("-a", "--alignment", default="middle",
                            choices=[a.value for a in Alignment], help="Caption placement")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="0.0.0.0")
    serve_parser.add_argument("--port", type=int, default=settings.api_port)

    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    if args.command == "serve":
        serve(args.host, args.port)
        return 0
    return run_job(args.source, args.overlay, args.caption, args.alignment)


if __name__ == "__main__":
    sys.exit(main())
