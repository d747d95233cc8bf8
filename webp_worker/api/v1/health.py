"""Health check endpoint."""

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Service health, admission gate occupancy, and ffmpeg availability."""
    runner = getattr(request.app.state, "runner", None)
    if runner is None:
        return {"status": "starting", "gate": None, "ffmpeg_available": None}

    gate = runner.gate
    return {
        "status": "healthy",
        "gate": {
            "capacity": gate.capacity,
            "in_use": gate.in_use,
            "available": gate.available,
        },
        "ffmpeg_available": runner.transcoder.is_available(),
    }
