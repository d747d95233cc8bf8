"""
Shared fixtures for the worker test suite.

Provides: a fake transcoder that records concurrency, an isolated scratch
directory, and an app factory wired with a fixed bearer secret.
"""

import asyncio
import os
from typing import Callable, List, Optional, Tuple

import pytest

from webp_worker.config import Settings
from webp_worker.errors import ConversionError
from webp_worker.main import create_app
from webp_worker.transcode.base import Transcoder

SECRET = "test-secret"
AUTH_HEADERS = {"Authorization": f"Bearer {SECRET}"}
FAIL_MARKER = b"FAIL"


class FakeTranscoder(Transcoder):
    """Stands in for ffmpeg.

    Fails when the input contains FAIL_MARKER (or always, with fail=True).
    Tracks how many conversions overlap.
    """

    def __init__(self, delay: float = 0.0, fail: bool = False, write_output: bool = True):
        self.delay = delay
        self.fail = fail
        self.write_output = write_output
        self.calls: List[Tuple[str, str]] = []
        self.active = 0
        self.max_active = 0

    async def convert(self, input_path: str, output_path: str) -> None:
        self.calls.append((input_path, output_path))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delay)
            with open(input_path, "rb") as f:
                data = f.read()
            if self.fail or FAIL_MARKER in data:
                raise ConversionError("fake ffmpeg failed", output="Invalid data found", returncode=1)
            if self.write_output:
                with open(output_path, "wb") as f:
                    f.write(b"RIFF\x00\x00\x00\x00WEBPVP8X" + data)
        finally:
            self.active -= 1


@pytest.fixture
def scratch_dir(tmp_path):
    path = tmp_path / "scratch"
    path.mkdir()
    return path


@pytest.fixture
def fake_transcoder():
    return FakeTranscoder()


@pytest.fixture
def make_app(scratch_dir):
    """Factory: build an app with the given transcoder, capacity, and secret."""

    def _make(
        transcoder: Transcoder,
        capacity: int = 1,
        secret: Optional[str] = SECRET,
        secret_source: Optional[Callable[[], Optional[str]]] = None,
    ):
        settings = Settings(
            worker_secret="",
            max_concurrent_jobs=capacity,
            scratch_dir=str(scratch_dir),
        )
        return create_app(
            settings=settings,
            transcoder=transcoder,
            secret_source=secret_source or (lambda: secret),
        )

    return _make


def scratch_files(scratch_dir) -> List[str]:
    return sorted(os.listdir(scratch_dir))
