"""Error taxonomy for conversion jobs.

Every error is terminal for its request. ``detail`` is the short message
returned to the caller; diagnostics (tool output, exception text) stay in
the server log.
"""

from typing import Optional

from fastapi import Request
from fastapi.responses import PlainTextResponse


class WorkerError(Exception):
    status_code: int = 500
    detail: str = "Internal Server Error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.detail)


class ConfigurationError(WorkerError):
    """WORKER_SECRET is not configured on the server."""
    status_code = 500
    detail = "Server Configuration Error"


class Unauthorized(WorkerError):
    status_code = 401
    detail = "Unauthorized"


class MethodNotAllowed(WorkerError):
    status_code = 405
    detail = "Method not allowed"


class BadInput(WorkerError):
    """Upload missing from the form or could not be read."""
    status_code = 400
    detail = "Failed to read file"


class ConversionError(WorkerError):
    """ffmpeg exited non-zero or could not be started."""
    status_code = 500
    detail = "Conversion failed"

    def __init__(
        self,
        message: Optional[str] = None,
        output: str = "",
        returncode: Optional[int] = None,
    ):
        super().__init__(message)
        self.output = output
        self.returncode = returncode


class InternalError(WorkerError):
    """The tool reported success but the output file is missing."""
    status_code = 500
    detail = "Internal Server Error"


async def worker_error_handler(request: Request, exc: WorkerError) -> PlainTextResponse:
    return PlainTextResponse(exc.detail, status_code=exc.status_code)
