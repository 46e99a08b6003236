"""Tests for formats and utility helpers."""

from pathlib import Path

import pytest

from imagecompress import ImageFormat
from imagecompress.utils import (
    calculate_compression_ratio,
    estimate_quality_score,
    format_size,
    get_output_path,
    parse_size,
)


@pytest.mark.parametrize("text, expected", [
    ("100KB", 100 * 1024),
    ("100 kb", 100 * 1024),
    ("1.5MB", int(1.5 * 1024 * 1024)),
    ("2G", 2 * 1024 ** 3),
    ("20480", 20480),
    ("512B", 512),
])
def test_parse_size(text, expected):
    assert parse_size(text) == expected


@pytest.mark.parametrize("text", ["", "abc", "10XB", "-5KB", "0", "0KB", "1.2.3MB"])
def test_parse_size_rejects_invalid_values(text):
    with pytest.raises(ValueError):
        parse_size(text)


def test_format_size():
    assert format_size(512) == "512 B"
    assert format_size(2048) == "2.0 KB"
    assert format_size(5 * 1024 * 1024) == "5.00 MB"
    assert format_size(3 * 1024 ** 3) == "3.00 GB"


def test_calculate_compression_ratio():
    assert calculate_compression_ratio(1000, 250) == 0.75
    assert calculate_compression_ratio(0, 10) == 0.0


def test_get_output_path():
    assert get_output_path("in/photo.png", None, ImageFormat.JPEG) == Path("in/photo_compressed.jpg")
    assert get_output_path("photo.png", "out.webp", ImageFormat.JPEG) == Path("out.webp")
    assert get_output_path("a.gif", None, ImageFormat.SVG, suffix="_x") == Path("a_x.svg")


def test_estimate_quality_score():
    assert estimate_quality_score(0.9, 1.0, lossy=True) == "Excellent"
    assert estimate_quality_score(0.6, 1.0, lossy=True) == "Good"
    assert estimate_quality_score(0.1, 1.0, lossy=False) == "Excellent"
    assert estimate_quality_score(0.8, 0.5, lossy=True) == "Fair"
    assert estimate_quality_score(0.8, 0.05, lossy=True) == "Reduced"


@pytest.mark.parametrize("value, expected", [
    ("jpg", ImageFormat.JPEG),
    ("JPEG", ImageFormat.JPEG),
    (".png", ImageFormat.PNG),
    ("image/webp", ImageFormat.WEBP),
    ("image/svg+xml", ImageFormat.SVG),
    ("gif", ImageFormat.GIF),
    (ImageFormat.BMP, ImageFormat.BMP),
])
def test_format_parse(value, expected):
    assert ImageFormat.parse(value) is expected


def test_format_parse_rejects_unknown():
    with pytest.raises(ValueError, match="Unsupported image format"):
        ImageFormat.parse("tiff")


def test_format_from_path():
    assert ImageFormat.from_path("holiday.JPG") is ImageFormat.JPEG
    with pytest.raises(ValueError):
        ImageFormat.from_path("README")


def test_format_properties():
    assert [fmt for fmt in ImageFormat if fmt.is_lossy] == [ImageFormat.JPEG, ImageFormat.WEBP]
    assert ImageFormat.JPEG.extension == ".jpg"
    assert ImageFormat.SVG.mime_type == "image/svg+xml"
    assert ImageFormat.PNG.mime_type == "image/png"
