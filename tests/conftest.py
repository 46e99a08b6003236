"""Shared fixtures for Smart Image Compressor tests."""

import io
import random
from dataclasses import dataclass

import pytest
from PIL import Image

from imagecompress import ImageFormat


@dataclass
class FakeSource:
    """Stand-in for a decoded image; the search only needs its dimensions."""
    width: int
    height: int


class ModelEncoder:
    """
    Deterministic size model of a real codec.

    Lossy output shrinks with quality and pixel count; lossless output only
    with pixel count. Every call is recorded for call-count assertions.
    """

    def __init__(self, header: int = 600, fail_on_call: int = None):
        self.header = header
        self.fail_on_call = fail_on_call
        self.calls = []

    def bytes_per_pixel(self, fmt: ImageFormat, quality: float) -> float:
        if fmt.is_lossy:
            return 0.0005 + 0.5 * quality ** 2
        return 1.5

    def encode(self, source, fmt, width, height, quality):
        self.calls.append((fmt, width, height, quality))
        if self.fail_on_call is not None and len(self.calls) == self.fail_on_call:
            raise OSError("image file is truncated")

        size = self.header + int(width * height * self.bytes_per_pixel(fmt, quality))
        tag = f"{fmt.value}:{width}x{height}:{quality:.6f}".encode()
        return tag.ljust(size, b"\0")

    def size_of(self, data):
        return len(data)


def noise_image(width: int, height: int, mode: str = "RGB", seed: int = 0) -> Image.Image:
    """Random pixels, the hardest case for every codec."""
    rng = random.Random(seed)
    bands = len(mode)
    return Image.frombytes(mode, (width, height), rng.randbytes(width * height * bands))


def gradient_image(width: int, height: int) -> Image.Image:
    """Smooth RGB gradient with a little noise, closer to a photo."""
    image = Image.linear_gradient("L").resize((width, height))
    noise = Image.effect_noise((width, height), 24)
    return Image.merge("RGB", (image, noise, image.transpose(Image.Transpose.FLIP_LEFT_RIGHT)))


def encode_bytes(image: Image.Image, format: str) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format=format)
    return buffer.getvalue()


@pytest.fixture
def model_encoder():
    return ModelEncoder()


@pytest.fixture
def photo_source():
    return FakeSource(4000, 3000)


@pytest.fixture
def png_file(tmp_path):
    path = tmp_path / "noise.png"
    noise_image(160, 120).save(path)
    return path


@pytest.fixture
def jpeg_file(tmp_path):
    path = tmp_path / "photo.jpg"
    gradient_image(320, 240).save(path, quality=95)
    return path


@pytest.fixture
def rgba_png_file(tmp_path):
    path = tmp_path / "logo.png"
    image = Image.new("RGBA", (64, 48), (255, 0, 0, 0))
    image.paste((0, 0, 255, 255), (16, 12, 48, 36))
    image.save(path)
    return path


@pytest.fixture
def corrupt_file(tmp_path):
    path = tmp_path / "broken.png"
    path.write_bytes(b"\x89PNG\r\n\x1a\nthis is not really a png")
    return path


@pytest.fixture
def oversized_png_file(tmp_path, monkeypatch):
    """A small PNG whose pixel count is over Pillow's decompression limit."""
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 60_000)
    path = tmp_path / "huge.png"
    Image.new("1", (400, 400)).save(path)
    return path
