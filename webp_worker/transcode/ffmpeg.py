"""ffmpeg-backed transcoder producing animated WebP."""

import asyncio
import shutil
from typing import List

from webp_worker.errors import ConversionError
from webp_worker.transcode.base import Transcoder

# Fixed encoding parameters; only the input and output paths vary.
MAX_DURATION_SECONDS = 30
WEBP_QUALITY = 50


def build_command(binary: str, input_path: str, output_path: str) -> List[str]:
    """Return the full ffmpeg argv for one conversion."""
    return [
        binary, "-y",
        "-i", input_path,
        "-t", str(MAX_DURATION_SECONDS),
        "-c:v", "libwebp",
        "-q:v", str(WEBP_QUALITY),
        "-loop", "0",
        "-preset", "default",
        output_path,
    ]


class FfmpegTranscoder(Transcoder):
    """Runs ffmpeg as a child process, capturing stdout and stderr together."""

    def __init__(self, binary: str = "ffmpeg"):
        self.binary = binary

    def is_available(self) -> bool:
        return shutil.which(self.binary) is not None

    async def convert(self, input_path: str, output_path: str) -> None:
        cmd = build_command(self.binary, input_path, output_path)
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as exc:
            raise ConversionError(
                f"Could not start {self.binary}: {exc}", output=str(exc)
            ) from exc

        try:
            raw_output, _ = await proc.communicate()
        except asyncio.CancelledError:
            # Don't leave an orphaned ffmpeg writing into scratch space
            proc.kill()
            await proc.wait()
            raise

        output = raw_output.decode("utf-8", errors="replace") if raw_output else ""
        if proc.returncode != 0:
            raise ConversionError(
                f"{self.binary} exited with status {proc.returncode}",
                output=output,
                returncode=proc.returncode,
            )
