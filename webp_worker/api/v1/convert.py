"""Worker endpoints: liveness ping and WebP conversion.

  GET  /ping          - returns "pong", no auth
  POST /convert-webp  - multipart field "file" in, image/webp out

/convert-webp is registered for every method so that the bearer check runs
before the method check, matching the order callers already rely on.
"""

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import PlainTextResponse, Response

from webp_worker.jobs.models import ConversionJob
from webp_worker.jobs.runner import JobRunner
from webp_worker.observability.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()

_ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def _get_runner(request: Request) -> JobRunner:
    runner = getattr(request.app.state, "runner", None)
    if runner is None:
        raise HTTPException(status_code=503, detail="Job runner not ready")
    return runner


def _client_address(request: Request) -> str:
    if request.client is None:
        return "unknown"
    return f"{request.client.host}:{request.client.port}"


@router.get("/ping", response_class=PlainTextResponse)
async def ping():
    logger.info("Ping received")
    return "pong"


@router.api_route("/convert-webp", methods=_ALL_METHODS)
async def convert_webp(request: Request) -> Response:
    """Convert the uploaded media to animated WebP and stream it back."""
    runner = _get_runner(request)
    job = ConversionJob(
        id=request.app.state.job_ids.next(),
        client=_client_address(request),
    )
    return await runner.run(job, request)
