from fastapi import APIRouter, Depends, HTTPException, Request
from api.schemas import ProcessVideoRequest, ProcessVideoResponse, JobStatusResponse
from workers.dispatcher import JobDispatcher

router = APIRouter()


def get_dispatcher(request: Request) -> JobDispatcher:
    return request.app.state.dispatcher


@router.post("/process-video", response_model=ProcessVideoResponse)
async def process_video(
    payload: ProcessVideoRequest,
    dispatcher: JobDispatcher = Depends(get_dispatcher)
):
    job_id = dispatcher.submit(payload.to_job_request())
    return ProcessVideoResponse(job_id=job_id)


@router.get(
    "/job-status/{job_id}",
    response_model=JobStatusResponse,
    response_model_exclude_none=True
)
async def get_job_status(job_id: str, dispatcher: JobDispatcher = Depends(get_dispatcher)):
    job = dispatcher.registry.get(job_id)

    if job is None:
        raise HTTPException(404, "Job not found")

    return JobStatusResponse(
        status=job.status.value,
        progress=job.progress,
        video_url=job.video_url,
        error=job.error
    )
