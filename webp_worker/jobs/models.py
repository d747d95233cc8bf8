"""Conversion job record and identifier counter."""

import itertools
import threading
import time
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class JobStatus(str, Enum):
    RECEIVED = "received"
    AUTHORIZING = "authorizing"
    QUEUED = "queued"
    READING = "reading"
    CONVERTING = "converting"
    RESPONDING = "responding"
    DONE = "done"
    FAILED = "failed"


class JobIdCounter:
    """Thread-safe monotonically increasing job identifiers, starting at 1."""

    def __init__(self, start: int = 1):
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            return next(self._counter)


class ConversionJob(BaseModel):
    """Tracks one request's conversion from arrival to terminal response."""
    id: int
    status: JobStatus = JobStatus.RECEIVED
    client: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    # Monotonic clock reading at arrival; durations are measured from here
    arrival: float = Field(default_factory=time.perf_counter)

    original_filename: Optional[str] = None
    input_size_bytes: int = 0
    input_path: Optional[str] = None
    output_path: Optional[str] = None

    queue_wait_seconds: Optional[float] = None
    convert_seconds: Optional[float] = None
    total_seconds: Optional[float] = None
    error: Optional[str] = None

    @property
    def tag(self) -> str:
        return f"[#{self.id}]"

    def elapsed(self) -> float:
        """Seconds since the request arrived."""
        return time.perf_counter() - self.arrival

    def fail(self, error: str) -> None:
        self.status = JobStatus.FAILED
        self.error = error
        self.total_seconds = self.elapsed()
