"""Tests for the ffmpeg transcoder, using stand-in binaries instead of ffmpeg."""

import asyncio
import os
import shutil

import pytest

from webp_worker.errors import ConversionError
from webp_worker.transcode.ffmpeg import FfmpegTranscoder, build_command


def test_build_command_uses_fixed_arguments():
    assert build_command("ffmpeg", "/tmp/in.mp4", "/tmp/in.mp4.webp") == [
        "ffmpeg", "-y",
        "-i", "/tmp/in.mp4",
        "-t", "30",
        "-c:v", "libwebp",
        "-q:v", "50",
        "-loop", "0",
        "-preset", "default",
        "/tmp/in.mp4.webp",
    ]


@pytest.mark.asyncio
@pytest.mark.skipif(shutil.which("false") is None, reason="needs the 'false' utility")
async def test_nonzero_exit_raises_conversion_error(tmp_path):
    transcoder = FfmpegTranscoder(binary="false")

    with pytest.raises(ConversionError) as excinfo:
        await transcoder.convert(str(tmp_path / "in.mp4"), str(tmp_path / "in.mp4.webp"))

    assert excinfo.value.returncode == 1
    assert excinfo.value.detail == "Conversion failed"


@pytest.mark.asyncio
async def test_missing_binary_raises_conversion_error(tmp_path):
    transcoder = FfmpegTranscoder(binary=str(tmp_path / "no-such-ffmpeg"))

    with pytest.raises(ConversionError) as excinfo:
        await transcoder.convert(str(tmp_path / "in.mp4"), str(tmp_path / "out.webp"))

    assert excinfo.value.returncode is None
    assert not transcoder.is_available()


@pytest.mark.asyncio
async def test_output_of_failed_tool_is_captured(tmp_path):
    script = tmp_path / "fake-ffmpeg"
    script.write_text("#!/bin/sh\necho 'stdout line'\necho 'Invalid data found' >&2\nexit 3\n")
    script.chmod(0o755)
    transcoder = FfmpegTranscoder(binary=str(script))

    with pytest.raises(ConversionError) as excinfo:
        await transcoder.convert(str(tmp_path / "in.mp4"), str(tmp_path / "out.webp"))

    assert excinfo.value.returncode == 3
    assert "stdout line" in excinfo.value.output
    assert "Invalid data found" in excinfo.value.output


@pytest.mark.asyncio
async def test_zero_exit_succeeds(tmp_path):
    script = tmp_path / "fake-ffmpeg"
    # Last argument is the output path
    script.write_text('#!/bin/sh\nfor last; do :; done\nprintf webp > "$last"\n')
    script.chmod(0o755)
    transcoder = FfmpegTranscoder(binary=str(script))
    out = tmp_path / "in.mp4.webp"

    await transcoder.convert(str(tmp_path / "in.mp4"), str(out))

    assert out.read_bytes() == b"webp"
    assert transcoder.is_available()


@pytest.mark.asyncio
async def test_cancel_kills_running_child(tmp_path):
    pid_file = tmp_path / "child.pid"
    script = tmp_path / "slow-ffmpeg"
    script.write_text(f'#!/bin/sh\necho $$ > "{pid_file}"\nexec sleep 30\n')
    script.chmod(0o755)
    transcoder = FfmpegTranscoder(binary=str(script))

    task = asyncio.create_task(
        transcoder.convert(str(tmp_path / "in.mp4"), str(tmp_path / "out.webp"))
    )
    for _ in range(500):
        if pid_file.exists() and pid_file.read_text().strip():
            break
        await asyncio.sleep(0.01)
    pid = int(pid_file.read_text().strip())

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    # The child was killed and reaped, so its pid no longer exists
    with pytest.raises(ProcessLookupError):
        os.kill(pid, 0)
