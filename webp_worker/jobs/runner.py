"""Runs one conversion job from request arrival to streamed response.

Sequence: authorize -> acquire slot -> persist upload -> ffmpeg -> stream
result. Scratch files and the gate slot are registered on an AsyncExitStack
as they are created and released on every exit path. On success the stack
is handed to the response, so the slot stays held and the output file
stays on disk until the body has been sent.
"""

import os
import time
from contextlib import AsyncExitStack
from typing import Callable, Optional

from fastapi import Request
from fastapi.responses import FileResponse
from starlette.datastructures import UploadFile
from starlette.types import Receive, Scope, Send

from webp_worker.auth.bearer_auth import verify_bearer
from webp_worker.errors import (
    BadInput,
    ConversionError,
    InternalError,
    MethodNotAllowed,
    Unauthorized,
    WorkerError,
)
from webp_worker.jobs.admission import AdmissionGate
from webp_worker.jobs.models import ConversionJob, JobStatus
from webp_worker.observability.logger import get_logger
from webp_worker.storage.scratch import ScratchSpace
from webp_worker.transcode.base import Transcoder

logger = get_logger(__name__)

WEBP_MEDIA_TYPE = "image/webp"
UPLOAD_FIELD = "file"

SecretSource = Callable[[], Optional[str]]


def _mb(num_bytes: int) -> float:
    return num_bytes / 1024 / 1024


class ScratchFileResponse(FileResponse):
    """FileResponse that finishes its job once the body is sent or the send fails."""

    def __init__(self, path: str, job: ConversionJob, cleanup: AsyncExitStack, **kwargs):
        super().__init__(path, **kwargs)
        self.job = job
        self._cleanup = cleanup

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        except BaseException as exc:
            self.job.fail(f"Streaming aborted: {exc!r}")
            logger.warning("%s Sending result failed: %r", self.job.tag, exc)
            raise
        finally:
            await self._cleanup.aclose()

        self.job.status = JobStatus.DONE
        self.job.total_seconds = self.job.elapsed()
        logger.info(
            "%s Request Complete. Total Time: %.3fs", self.job.tag, self.job.total_seconds
        )


class JobRunner:
    """Executes conversion jobs under an admission gate."""

    def __init__(
        self,
        gate: AdmissionGate,
        transcoder: Transcoder,
        scratch: ScratchSpace,
        secret_source: SecretSource,
    ):
        self.gate = gate
        self.transcoder = transcoder
        self.scratch = scratch
        self._secret_source = secret_source

    async def run(self, job: ConversionJob, request: Request) -> FileResponse:
        """Process one request. Raises a WorkerError subclass on failure."""
        logger.info("%s New Request received from %s", job.tag, job.client)

        try:
            self._authorize(job, request)
        except WorkerError as exc:
            self._record_failure(job, exc)
            raise

        cleanup = AsyncExitStack()
        try:
            await cleanup.enter_async_context(self.gate.slot(job))
            await self._read_upload(job, request, cleanup)
            await self._convert(job, cleanup)
            return self._respond(job, cleanup)
        except BaseException as exc:
            self._record_failure(job, exc)
            await cleanup.aclose()
            raise

    def _authorize(self, job: ConversionJob, request: Request) -> None:
        # Rejected requests never touch the gate
        job.status = JobStatus.AUTHORIZING
        verify_bearer(request.headers.get("authorization"), self._secret_source())
        if request.method != "POST":
            raise MethodNotAllowed(f"{request.method} is not supported")

    async def _read_upload(
        self, job: ConversionJob, request: Request, cleanup: AsyncExitStack
    ) -> None:
        job.status = JobStatus.READING
        try:
            form = await request.form()
        except Exception as exc:
            raise BadInput(f"Could not parse multipart form: {exc}") from exc
        cleanup.push_async_callback(form.close)

        upload = form.get(UPLOAD_FIELD)
        if not isinstance(upload, UploadFile):
            raise BadInput(f"Form field '{UPLOAD_FIELD}' is missing or not a file")

        job.original_filename = upload.filename
        job.input_path = self.scratch.input_path(job.id, upload.filename)
        cleanup.callback(self.scratch.remove, job.input_path)
        try:
            job.input_size_bytes = await self.scratch.save_upload(upload, job.input_path)
        except OSError as exc:
            raise BadInput(f"Could not read upload: {exc}") from exc

        logger.info(
            "%s File: %s (Size: %.2f MB)",
            job.tag, job.original_filename, _mb(job.input_size_bytes),
        )

    async def _convert(self, job: ConversionJob, cleanup: AsyncExitStack) -> None:
        job.status = JobStatus.CONVERTING
        job.output_path = self.scratch.output_path(job.input_path)
        cleanup.callback(self.scratch.remove, job.output_path)

        logger.info("%s Starting FFmpeg conversion...", job.tag)
        started = time.perf_counter()
        await self.transcoder.convert(job.input_path, job.output_path)
        job.convert_seconds = time.perf_counter() - started
        logger.info(
            "%s FFmpeg finished in %.3fs. Sending result back...",
            job.tag, job.convert_seconds,
        )

    def _respond(self, job: ConversionJob, cleanup: AsyncExitStack) -> FileResponse:
        job.status = JobStatus.RESPONDING
        if not os.path.isfile(job.output_path):
            raise InternalError(f"Converter produced no output at {job.output_path}")

        size = os.path.getsize(job.output_path)
        logger.info("%s Uploading result (%.2f MB)...", job.tag, _mb(size))
        return ScratchFileResponse(
            job.output_path,
            job=job,
            cleanup=cleanup.pop_all(),
            media_type=WEBP_MEDIA_TYPE,
        )

    def _record_failure(self, job: ConversionJob, exc: BaseException) -> None:
        job.fail(str(exc) or type(exc).__name__)
        if isinstance(exc, ConversionError):
            logger.error("%s FFmpeg Failed: %s\n%s", job.tag, exc, exc.output)
        elif isinstance(exc, Unauthorized):
            logger.warning("%s Unauthorized attempt", job.tag)
        elif isinstance(exc, WorkerError):
            logger.error("%s %s: %s", job.tag, type(exc).__name__, exc)
        elif isinstance(exc, Exception):
            logger.exception("%s Unexpected failure", job.tag)
        else:
            logger.warning("%s Aborted: %r", job.tag, exc)
