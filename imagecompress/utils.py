"""Utility functions for image compression."""

import re
from pathlib import Path
from typing import Union

from .formats import ImageFormat


def parse_size(size_str: str) -> int:
    """
    Parse a human-readable size string to bytes.

    Args:
        size_str: Size string like "100KB", "1.5MB", "20480"

    Returns:
        Size in bytes

    Raises:
        ValueError: If the size string is invalid or not positive
    """
    size_str = str(size_str).strip().upper()

    # Pattern: number (with optional decimal) followed by unit
    match = re.match(r'^(\d+(?:\.\d+)?|\.\d+)\s*(B|KB|MB|GB|K|M|G)?$', size_str)
    if not match:
        raise ValueError(f"Invalid size format: {size_str}. Use formats like '100KB', '1.5MB', '20480'")

    value = float(match.group(1))
    unit = match.group(2) or 'B'

    multipliers = {
        'B': 1,
        'K': 1024,
        'KB': 1024,
        'M': 1024 * 1024,
        'MB': 1024 * 1024,
        'G': 1024 * 1024 * 1024,
        'GB': 1024 * 1024 * 1024,
    }

    size = int(value * multipliers[unit])
    if size <= 0:
        raise ValueError(f"Target size must be positive: {size_str}")
    return size


def format_size(size_bytes: int) -> str:
    """
    Format bytes to human-readable string.

    Args:
        size_bytes: Size in bytes

    Returns:
        Human-readable size string
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.2f} MB"
    else:
        return f"{size_bytes / (1024 * 1024 * 1024):.2f} GB"


def calculate_compression_ratio(original_size: int, compressed_size: int) -> float:
    """
    Calculate compression ratio.

    Args:
        original_size: Original file size in bytes
        compressed_size: Compressed file size in bytes

    Returns:
        Compression ratio (e.g., 0.65 means 65% reduction)
    """
    if original_size == 0:
        return 0.0
    return 1 - (compressed_size / original_size)


def get_output_path(
    input_path: Union[str, Path],
    output_path: Union[str, Path, None],
    fmt: ImageFormat,
    suffix: str = "_compressed"
) -> Path:
    """
    Determine output file path.

    Args:
        input_path: Input file path
        output_path: Explicit output path or None
        fmt: Output format, used for the file extension
        suffix: Suffix to add if no output path specified

    Returns:
        Output file path
    """
    input_path = Path(input_path)

    if output_path:
        return Path(output_path)

    return input_path.parent / f"{input_path.stem}{suffix}{fmt.extension}"


def estimate_quality_score(quality: float, scale: float, lossy: bool) -> str:
    """
    Rate the visual fidelity of an encoding from its parameters.

    Args:
        quality: Encoder quality factor used (0.0-1.0)
        scale: Dimension scale factor used (0.0-1.0)
        lossy: Whether the output format is lossy

    Returns:
        Quality rating string
    """
    # Lossless output only loses detail through downscaling
    effective = scale * (quality if lossy else 1.0)

    if scale >= 1.0 and effective >= 0.75:
        return "Excellent"
    elif scale >= 1.0 and effective >= 0.5:
        return "Good"
    elif effective >= 0.3:
        return "Fair"
    else:
        return "Reduced"
