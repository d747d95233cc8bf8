"""Transcoder interface: convert one input file into one output file."""

from abc import ABC, abstractmethod


class Transcoder(ABC):
    """Abstract interface for the external conversion tool (ffmpeg or a fake)."""

    @abstractmethod
    async def convert(self, input_path: str, output_path: str) -> None:
        """Write the converted file to output_path.

        Raises ConversionError when the conversion fails or cannot start.
        """
        ...

    def is_available(self) -> bool:
        """Whether the underlying tool can be found. Used by the health check."""
        return True
