"""
Smart Image Compressor

A local-first image optimization tool that compresses images to a
user-defined target size while preserving maximum visual clarity.
"""

__version__ = "1.0.0"
__author__ = "Smart Image Compressor Team"

from .analyzer import AnalysisResult, ImageAnalyzer
from .compressor import (
    SEARCH_PRESETS,
    CompressionResult,
    SearchConfig,
    TargetSizeCompressor,
    compress_file,
    compress_image,
    get_search_config,
)
from .encoder import Encoder, PillowEncoder, convert_image, load_image
from .formats import ImageFormat
from .padding import PaddingResult, pad_file, pad_to_size

__all__ = [
    "ImageAnalyzer",
    "AnalysisResult",
    "TargetSizeCompressor",
    "CompressionResult",
    "SearchConfig",
    "SEARCH_PRESETS",
    "get_search_config",
    "compress_image",
    "compress_file",
    "Encoder",
    "PillowEncoder",
    "convert_image",
    "load_image",
    "ImageFormat",
    "PaddingResult",
    "pad_file",
    "pad_to_size",
]
