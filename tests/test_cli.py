"""Tests for the command line interface."""

import json

from click.testing import CliRunner
from PIL import Image

from cli import cli


def run(*args):
    return CliRunner().invoke(cli, [str(arg) for arg in args])


def test_compress_json_output(jpeg_file, tmp_path):
    output = tmp_path / "small.jpg"
    result = run("compress", jpeg_file, "--target", "6KB", "--output", output, "--json-output")

    assert result.exit_code == 0, result.output
    report = json.loads(result.stdout)
    assert report["target_achieved"] is True
    assert report["size"] <= 6 * 1024
    assert report["format"] == "jpeg"
    assert output.stat().st_size == report["size"]


def test_compress_table_output(png_file, tmp_path):
    output = tmp_path / "tiny.webp"
    result = run("compress", png_file, "-t", "3KB", "-f", "webp", "-o", output, "-p", "fast")

    assert result.exit_code == 0, result.output
    assert "Compression Results" in result.output
    assert "Saved to" in result.output
    with Image.open(output) as image:
        assert image.format == "WEBP"


def test_compress_default_output_path(png_file):
    result = run("compress", png_file, "--target", "2KB")

    assert result.exit_code == 0, result.output
    assert (png_file.parent / "noise_compressed.png").exists()


def test_compress_unreachable_target_warns(png_file, tmp_path):
    result = run("compress", png_file, "--target", "10", "-o", tmp_path / "x.png")

    assert result.exit_code == 0, result.output
    assert "Warning" in result.output


def test_compress_rejects_bad_target(png_file):
    result = run("compress", png_file, "--target", "lots")

    assert result.exit_code == 2
    assert "Invalid size format" in result.output


def test_compress_corrupt_image(corrupt_file, tmp_path):
    result = run("compress", corrupt_file, "--target", "1KB", "-o", tmp_path / "out.png", "--json-output")

    assert result.exit_code == 1
    assert "error" in json.loads(result.stdout)


def test_batch_continues_after_failures(png_file, jpeg_file, corrupt_file, tmp_path):
    out_dir = tmp_path / "out"
    result = run("batch", png_file, jpeg_file, corrupt_file, "-t", "4KB", "-d", out_dir, "--json-output")

    assert result.exit_code == 1
    report = json.loads(result.stdout)
    assert report["total"] == 3
    assert report["success"] == 2
    assert report["failed"] == 1
    assert (out_dir / "noise_compressed.png").exists()
    assert (out_dir / "photo_compressed.jpg").exists()


def test_compress_image_over_pixel_limit(oversized_png_file, tmp_path):
    result = run("compress", oversized_png_file, "-t", "1KB", "-o", tmp_path / "out.png", "--json-output")

    assert result.exit_code == 1
    assert "exceeds limit" in json.loads(result.stdout)["error"]
    assert not (tmp_path / "out.png").exists()


def test_batch_skips_image_over_pixel_limit(png_file, oversized_png_file, rgba_png_file, tmp_path):
    """Files after an undecodable giant are still compressed."""
    out_dir = tmp_path / "out"
    result = run(
        "batch", png_file, oversized_png_file, rgba_png_file,
        "-t", "4KB", "-d", out_dir, "--json-output",
    )

    assert result.exit_code == 1
    report = json.loads(result.stdout)
    assert report["success"] == 2
    assert report["failed"] == 1
    assert report["results"][1]["input_path"] == str(oversized_png_file)
    assert "exceeds limit" in report["results"][1]["error"]
    assert (out_dir / "logo_compressed.png").exists()


def test_analyze_json(rgba_png_file):
    result = run("analyze", rgba_png_file, "--format", "jpeg", "--json-output")

    assert result.exit_code == 0, result.output
    report = json.loads(result.stdout)
    assert report["width"] == 64
    assert report["has_alpha"] is True
    assert report["probe_format"] == "jpeg"


def test_analyze_table(png_file):
    result = run("analyze", png_file)

    assert result.exit_code == 0, result.output
    assert "Image Analysis" in result.output


def test_convert_resizes(png_file, tmp_path):
    output = tmp_path / "converted.bmp"
    result = run("convert", png_file, "--format", "bmp", "--width", "80", "--height", "60", "-o", output)

    assert result.exit_code == 0, result.output
    with Image.open(output) as image:
        assert image.format == "BMP"
        assert image.size == (80, 60)


def test_pad_increases_size(png_file, tmp_path):
    output = tmp_path / "padded.png"
    result = run("pad", png_file, "--target", "200KB", "-o", output)

    assert result.exit_code == 0, result.output
    assert output.stat().st_size == 200 * 1024


def test_verbose_flag_is_accepted(png_file, tmp_path):
    result = run("--verbose", "compress", png_file, "-t", "2KB", "-o", tmp_path / "v.png", "-j")

    assert result.exit_code == 0
