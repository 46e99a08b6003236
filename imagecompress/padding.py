"""File size increase by zero padding."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from .utils import format_size

logger = logging.getLogger(__name__)


@dataclass
class PaddingResult:
    """Result of padding a file to a minimum size."""
    input_path: str
    output_path: str
    original_size: int
    new_size: int
    target_size: int
    padded: bool

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "input_path": self.input_path,
            "output_path": self.output_path,
            "original_size": self.original_size,
            "original_size_formatted": format_size(self.original_size),
            "new_size": self.new_size,
            "new_size_formatted": format_size(self.new_size),
            "target_size": self.target_size,
            "padded": self.padded,
        }


def pad_to_size(data: bytes, target_size: int) -> bytes:
    """
    Append zero bytes until ``data`` is ``target_size`` bytes long.

    Image decoders stop at the end marker of the encoded stream, so the
    trailing zeros grow the file without changing the picture.

    Args:
        data: Encoded file contents
        target_size: Desired size in bytes

    Returns:
        Padded bytes, or ``data`` unchanged if it is already large enough
    """
    if len(data) >= target_size:
        return data
    return data + bytes(target_size - len(data))


def pad_file(
    input_path: Union[str, Path],
    output_path: Union[str, Path],
    target_size: int,
) -> PaddingResult:
    """
    Pad a file on disk to at least ``target_size`` bytes.

    Args:
        input_path: Source file
        output_path: Destination file
        target_size: Desired size in bytes

    Returns:
        PaddingResult
    """
    input_path = Path(input_path)
    output_path = Path(output_path)

    if not input_path.exists():
        raise FileNotFoundError(f"File not found: {input_path}")

    data = input_path.read_bytes()
    padded = pad_to_size(data, target_size)
    output_path.write_bytes(padded)

    if len(padded) == len(data):
        logger.info("%s is already %s, not padded", input_path.name, format_size(len(data)))

    return PaddingResult(
        input_path=str(input_path),
        output_path=str(output_path),
        original_size=len(data),
        new_size=len(padded),
        target_size=target_size,
        padded=len(padded) > len(data),
    )
