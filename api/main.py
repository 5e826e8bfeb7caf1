import logging
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from api.routes import jobs, health
from config import settings
from workers.dispatcher import JobDispatcher, create_dispatcher

logger = logging.getLogger(__name__)

MISSING_ERROR_TYPES = {"missing", "string_too_short"}


async def validation_error_handler(request: Request, exc: RequestValidationError):
    # Absent or empty submission fields answer 400 with a flat error body
    if request.url.path == "/process-video" and any(
        error.get("type") in MISSING_ERROR_TYPES for error in exc.errors()
    ):
        return JSONResponse(status_code=400, content={"error": "Missing required parameters"})
    return await request_validation_exception_handler(request, exc)


def create_app(dispatcher: Optional[JobDispatcher] = None) -> FastAPI:
    app = FastAPI(title="Video Caption API", version="1.0.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(health.router, tags=["health"])
    app.include_router(jobs.router, tags=["jobs"])

    app.state.dispatcher = dispatcher if dispatcher is not None else create_dispatcher(settings)
    return app


app = create_app()
