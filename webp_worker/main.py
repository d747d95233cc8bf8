"""WebP Conversion Worker - FastAPI application."""

from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI

from webp_worker.api.v1.router import v1_router, worker_router
from webp_worker.config import Settings, current_worker_secret, settings as default_settings
from webp_worker.errors import WorkerError, worker_error_handler
from webp_worker.jobs.admission import AdmissionGate
from webp_worker.jobs.models import JobIdCounter
from webp_worker.jobs.runner import JobRunner, SecretSource
from webp_worker.observability.logger import configure_logging, get_logger
from webp_worker.storage.scratch import ScratchSpace
from webp_worker.transcode.base import Transcoder
from webp_worker.transcode.ffmpeg import FfmpegTranscoder

logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    transcoder: Optional[Transcoder] = None,
    secret_source: Optional[SecretSource] = None,
) -> FastAPI:
    """Build the worker app.

    The gate and runner are created in the lifespan so the semaphore belongs
    to the serving event loop. Tests pass a fake transcoder and a fixed
    secret source.
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Covers "uvicorn webp_worker.main:app", which bypasses run()
        configure_logging(settings.log_level, force=False)
        gate = AdmissionGate(capacity=settings.max_concurrent_jobs)
        app.state.job_ids = JobIdCounter()
        app.state.runner = JobRunner(
            gate=gate,
            transcoder=transcoder or FfmpegTranscoder(binary=settings.ffmpeg_binary),
            scratch=ScratchSpace(settings.scratch_dir),
            secret_source=secret_source or current_worker_secret,
        )
        logger.info(
            "Worker ready (max concurrent jobs: %d, scratch dir: %s)",
            gate.capacity, settings.scratch_dir,
        )
        if not app.state.runner.transcoder.is_available():
            logger.warning("%s not found on PATH; conversions will fail", settings.ffmpeg_binary)

        yield

        app.state.runner = None
        logger.info("Worker shutting down")

    app = FastAPI(
        title="WebP Conversion Worker",
        description="Converts uploaded media to animated WebP with ffmpeg",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_exception_handler(WorkerError, worker_error_handler)

    app.include_router(worker_router)  # /ping, /convert-webp
    app.include_router(v1_router)  # /api/v1/health
    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the worker with uvicorn."""
    configure_logging(default_settings.log_level)
    logger.info(
        "Worker online on %s:%d", default_settings.host, default_settings.port
    )
    uvicorn.run(
        app,
        host=default_settings.host,
        port=default_settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    run()
