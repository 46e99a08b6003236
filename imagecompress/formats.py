"""Output container formats supported by Smart Image Compressor."""

from enum import Enum
from pathlib import Path
from typing import Union


class ImageFormat(str, Enum):
    """Container formats the encoder can produce."""
    JPEG = "jpeg"
    WEBP = "webp"
    PNG = "png"
    BMP = "bmp"
    GIF = "gif"
    SVG = "svg"

    @property
    def is_lossy(self) -> bool:
        """Whether the encoder quality factor changes the output size."""
        return self in (ImageFormat.JPEG, ImageFormat.WEBP)

    @property
    def mime_type(self) -> str:
        if self is ImageFormat.SVG:
            return "image/svg+xml"
        return f"image/{self.value}"

    @property
    def extension(self) -> str:
        if self is ImageFormat.JPEG:
            return ".jpg"
        return f".{self.value}"

    @classmethod
    def parse(cls, value: Union[str, "ImageFormat"]) -> "ImageFormat":
        """
        Parse a format name, file extension or MIME type.

        Args:
            value: e.g. "jpg", ".png", "image/webp", "SVG"

        Returns:
            Matching ImageFormat

        Raises:
            ValueError: If the value names no supported format
        """
        if isinstance(value, ImageFormat):
            return value

        key = value.strip().lower()
        if key.startswith("image/"):
            key = key[len("image/"):]
        key = key.lstrip(".")

        aliases = {
            "jpg": cls.JPEG,
            "jpe": cls.JPEG,
            "svg+xml": cls.SVG,
            "dib": cls.BMP,
        }
        if key in aliases:
            return aliases[key]

        for fmt in cls:
            if fmt.value == key:
                return fmt

        supported = ", ".join(fmt.value for fmt in cls)
        raise ValueError(f"Unsupported image format: {value}. Use one of: {supported}")

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "ImageFormat":
        """Guess the format from a file suffix."""
        suffix = Path(path).suffix
        if not suffix:
            raise ValueError(f"Cannot determine image format of {path}: no file extension")
        return cls.parse(suffix)


ALLOWED_EXTENSIONS = {"jpg", "jpeg", "png", "webp", "bmp", "gif"}
