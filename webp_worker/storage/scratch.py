"""Per-job scratch files for uploads and conversion output."""

import os
import re
from typing import Optional

from fastapi import UploadFile

from webp_worker.config import settings
from webp_worker.observability.logger import get_logger

logger = get_logger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
_CHUNK_BYTES = 1024 * 1024
OUTPUT_SUFFIX = ".webp"


class ScratchSpace:
    """Names, writes, and removes scratch files under a single directory.

    Paths embed the job id, so concurrent jobs never collide even when the
    same file is uploaded twice.
    """

    def __init__(self, base_dir: Optional[str] = None):
        self._base_dir = base_dir or settings.scratch_dir
        os.makedirs(self._base_dir, exist_ok=True)

    @property
    def base_dir(self) -> str:
        return self._base_dir

    def input_path(self, job_id: int, filename: Optional[str]) -> str:
        # Client-supplied names are reduced to a safe basename
        name = os.path.basename((filename or "").replace("\\", "/"))
        name = _UNSAFE_CHARS.sub("_", name).lstrip(".") or "upload"
        return os.path.join(self._base_dir, f"input_{job_id}_{name}")

    @staticmethod
    def output_path(input_path: str) -> str:
        return input_path + OUTPUT_SUFFIX

    async def save_upload(self, upload: UploadFile, path: str) -> int:
        """Copy an upload to path in 1 MB chunks. Returns bytes written.

        A partially written file is removed before the error propagates.
        """
        total = 0
        try:
            with open(path, "wb") as dst:
                while True:
                    chunk = await upload.read(_CHUNK_BYTES)
                    if not chunk:
                        break
                    total += len(chunk)
                    dst.write(chunk)
        except BaseException:
            self.remove(path)
            raise
        return total

    def remove(self, path: Optional[str]) -> None:
        """Delete a scratch file. A file that is already gone is not an error."""
        if not path:
            return
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Could not remove scratch file %s: %s", path, exc)
