"""Image analysis module for Smart Image Compressor."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

from PIL import Image

from .compressor import SearchConfig
from .encoder import Encoder, PillowEncoder, has_alpha, load_image
from .formats import ImageFormat

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    """Result of image analysis."""
    file_path: str
    file_size: int
    width: int
    height: int
    format: Optional[str]
    mode: Optional[str]
    has_alpha: bool
    probe_format: Optional[str] = None
    estimated_min_size: int = 0
    estimated_max_size: int = 0
    error: Optional[str] = None

    @property
    def megapixels(self) -> float:
        return self.width * self.height / 1_000_000

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "file_path": self.file_path,
            "file_size": self.file_size,
            "width": self.width,
            "height": self.height,
            "megapixels": round(self.megapixels, 2),
            "format": self.format,
            "mode": self.mode,
            "has_alpha": self.has_alpha,
            "probe_format": self.probe_format,
            "estimated_min_size": self.estimated_min_size,
            "estimated_max_size": self.estimated_max_size,
            "error": self.error,
        }


class ImageAnalyzer:
    """Inspects image files and estimates the range of reachable output sizes."""

    def __init__(
        self,
        image_path: Union[str, Path],
        encoder: Optional[Encoder] = None,
        config: Optional[SearchConfig] = None,
    ):
        """
        Initialize analyzer with image path.

        Args:
            image_path: Path to the image file
            encoder: Encode oracle used for size probing
            config: Search configuration whose floors bound the probe
        """
        self.image_path = Path(image_path)
        self.encoder = encoder or PillowEncoder()
        self.config = config or SearchConfig()

        if not self.image_path.exists():
            raise FileNotFoundError(f"Image file not found: {image_path}")

    def analyze(self, probe_format: Union[str, ImageFormat, None] = None) -> AnalysisResult:
        """
        Analyze the image.

        Args:
            probe_format: If set, encode at the search extremes for this
                format to estimate reachable output sizes

        Returns:
            AnalysisResult with all analysis data
        """
        file_size = self.image_path.stat().st_size

        try:
            image = load_image(self.image_path)
        except Exception as e:
            return AnalysisResult(
                file_path=str(self.image_path),
                file_size=file_size,
                width=0,
                height=0,
                format=None,
                mode=None,
                has_alpha=False,
                error=f"Failed to open image: {str(e)}",
            )

        with image:
            result = AnalysisResult(
                file_path=str(self.image_path),
                file_size=file_size,
                width=image.width,
                height=image.height,
                format=image.format,
                mode=image.mode,
                has_alpha=has_alpha(image),
            )

            if probe_format is not None:
                fmt = ImageFormat.parse(probe_format)
                try:
                    result.estimated_min_size, result.estimated_max_size = self._estimate_sizes(image, fmt)
                    result.probe_format = fmt.value
                except (OSError, ValueError) as e:
                    logger.warning("Size probe for %s failed: %s", self.image_path, e)
                    result.error = f"Size probe failed: {str(e)}"

        return result

    def _estimate_sizes(self, image: Image.Image, fmt: ImageFormat) -> Tuple[int, int]:
        """
        Encode at the baseline and at the search floor.

        The floor is the smallest scale at the resize quality, which is
        where the dimension search ends when nothing fits.

        Returns:
            Tuple of (estimated minimum size, estimated maximum size)
        """
        config = self.config
        baseline = self.encoder.encode(image, fmt, image.width, image.height, config.baseline_quality)
        max_size = self.encoder.size_of(baseline)

        width = max(1, int(image.width * config.min_scale))
        height = max(1, int(image.height * config.min_scale))
        quality = config.resize_quality if fmt.is_lossy else 1.0
        floor = self.encoder.encode(image, fmt, width, height, quality)
        min_size = min(self.encoder.size_of(floor), max_size)

        return min_size, max_size
