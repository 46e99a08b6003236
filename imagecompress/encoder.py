"""Raster encoding backends for Smart Image Compressor."""

import base64
import io
import logging
from pathlib import Path
from typing import Optional, Protocol, Union

from PIL import Image, ImageOps

from .formats import ImageFormat

logger = logging.getLogger(__name__)

SVG_TEMPLATE = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="{width}" height="{height}">\n'
    '  <image href="{href}" width="{width}" height="{height}" />\n'
    "</svg>\n"
)


class Encoder(Protocol):
    """Anything that can rasterize an image at a size and measure the result."""

    def encode(
        self,
        source,
        fmt: ImageFormat,
        width: int,
        height: int,
        quality: float,
    ) -> bytes:
        ...

    def size_of(self, data: bytes) -> int:
        ...


def load_image(source: Union[str, Path, bytes]) -> Image.Image:
    """
    Open and fully decode an image.

    EXIF orientation is applied so the pixels match what viewers show.
    Corrupt data raises here rather than on the first encode.

    Args:
        source: File path or raw encoded bytes

    Returns:
        Decoded Pillow image
    """
    if isinstance(source, (bytes, bytearray)):
        image = Image.open(io.BytesIO(source))
    else:
        image = Image.open(source)

    image.load()
    original_format = image.format
    transposed = ImageOps.exif_transpose(image)
    if transposed is not image:
        transposed.format = original_format
        image.close()
    return transposed


def has_alpha(image: Image.Image) -> bool:
    """Check whether an image carries transparency."""
    if image.mode in ("RGBA", "LA", "PA"):
        return True
    return image.mode == "P" and "transparency" in image.info


def flatten(image: Image.Image, background=(255, 255, 255)) -> Image.Image:
    """Composite transparent images onto a solid background and return RGB."""
    if has_alpha(image):
        rgba = image.convert("RGBA")
        canvas = Image.new("RGB", rgba.size, background)
        canvas.paste(rgba, mask=rgba.split()[-1])
        return canvas
    if image.mode != "RGB":
        return image.convert("RGB")
    return image


def pillow_quality(quality: float) -> int:
    """Map a 0.0-1.0 quality factor onto Pillow's 1-100 scale."""
    return max(1, min(100, int(round(quality * 100))))


class PillowEncoder:
    """
    Encode oracle backed by Pillow.

    Rasterizes a source image at the requested dimensions and encodes it
    into the target container. Quality only matters for JPEG, WEBP and
    the JPEG embedded in SVG output.
    """

    resample = Image.Resampling.LANCZOS

    def encode(
        self,
        source: Image.Image,
        fmt: ImageFormat,
        width: int,
        height: int,
        quality: float,
    ) -> bytes:
        """
        Encode ``source`` at ``width`` x ``height``.

        Args:
            source: Decoded Pillow image
            fmt: Output container format
            width: Output width in pixels
            height: Output height in pixels
            quality: Quality factor 0.0-1.0 (ignored by lossless formats)

        Returns:
            Encoded bytes
        """
        fmt = ImageFormat.parse(fmt)
        image = self._resize(source, width, height)

        if fmt is ImageFormat.SVG:
            data = self._encode_svg(source, image, quality)
        else:
            buffer = io.BytesIO()
            self._save(image, fmt, quality, buffer)
            data = buffer.getvalue()

        logger.debug(
            "Encoded %s %dx%d q=%.3f -> %d bytes",
            fmt.value, width, height, quality, len(data),
        )
        return data

    def size_of(self, data: bytes) -> int:
        return len(data)

    def _resize(self, image: Image.Image, width: int, height: int) -> Image.Image:
        if width < 1 or height < 1:
            raise ValueError(f"Invalid output dimensions: {width}x{height}")
        if image.size == (width, height):
            return image
        if image.mode == "P":
            image = image.convert("RGBA" if has_alpha(image) else "RGB")
        return image.resize((width, height), self.resample)

    def _save(self, image: Image.Image, fmt: ImageFormat, quality: float, buffer: io.BytesIO):
        if fmt is ImageFormat.JPEG:
            flatten(image).save(buffer, format="JPEG", quality=pillow_quality(quality))
        elif fmt is ImageFormat.WEBP:
            image = image.convert("RGBA" if has_alpha(image) else "RGB")
            image.save(buffer, format="WEBP", quality=pillow_quality(quality))
        elif fmt is ImageFormat.BMP:
            flatten(image).save(buffer, format="BMP")
        elif fmt is ImageFormat.GIF:
            self._quantize(image).save(buffer, format="GIF")
        else:
            if image.mode not in ("1", "L", "LA", "P", "RGB", "RGBA", "I", "I;16"):
                image = image.convert("RGBA" if has_alpha(image) else "RGB")
            image.save(buffer, format="PNG")

    def _quantize(self, image: Image.Image) -> Image.Image:
        if image.mode == "P":
            return image
        if has_alpha(image):
            # the GIF writer picks the palette and a transparent index itself
            return image.convert("RGBA")
        return image.convert("RGB").quantize(colors=256)

    def _encode_svg(self, source: Image.Image, image: Image.Image, quality: float) -> bytes:
        # PNG keeps transparency; everything else is embedded as JPEG
        if has_alpha(source) or source.format in ("PNG", "WEBP"):
            inner = ImageFormat.PNG
        else:
            inner = ImageFormat.JPEG

        buffer = io.BytesIO()
        self._save(image, inner, quality, buffer)
        payload = base64.b64encode(buffer.getvalue()).decode("ascii")
        href = f"data:{inner.mime_type};base64,{payload}"

        svg = SVG_TEMPLATE.format(width=image.width, height=image.height, href=href)
        return svg.encode("utf-8")


def convert_image(
    source: Image.Image,
    fmt: Union[str, ImageFormat],
    width: Optional[int] = None,
    height: Optional[int] = None,
    quality: float = 0.92,
    encoder: Optional[Encoder] = None,
) -> bytes:
    """
    Convert an image to another format, optionally resizing it.

    Args:
        source: Decoded image
        fmt: Output format
        width: Output width (defaults to the source width)
        height: Output height (defaults to the source height)
        quality: Quality factor for lossy formats
        encoder: Encode backend (defaults to PillowEncoder)

    Returns:
        Encoded bytes
    """
    encoder = encoder or PillowEncoder()
    return encoder.encode(
        source,
        ImageFormat.parse(fmt),
        width or source.width,
        height or source.height,
        quality,
    )
