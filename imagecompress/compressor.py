"""Target-size compression engine for Smart Image Compressor."""

import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, Dict, Optional, Union

from .encoder import Encoder, PillowEncoder, load_image
from .formats import ImageFormat
from .utils import calculate_compression_ratio, estimate_quality_score, format_size

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int], None]


@dataclass
class SearchConfig:
    """Tuning knobs for the quality and dimension searches."""
    quality_iterations: int = 7
    scale_iterations: int = 8
    baseline_quality: float = 0.92
    resize_quality: float = 0.8
    min_quality: float = 0.01
    min_scale: float = 0.01

    def __post_init__(self):
        if self.quality_iterations < 0 or self.scale_iterations < 0:
            raise ValueError("Iteration counts must not be negative")
        for name in ("baseline_quality", "resize_quality", "min_quality", "min_scale"):
            value = getattr(self, name)
            if not 0.0 < value <= 1.0:
                raise ValueError(f"{name} must be in (0, 1], got {value}")

    @property
    def max_encode_calls(self) -> int:
        """Upper bound on oracle calls for one compression."""
        return 1 + self.quality_iterations + self.scale_iterations


# Precision presets: more iterations trade latency for a tighter fit
SEARCH_PRESETS: Dict[str, SearchConfig] = {
    "fast": SearchConfig(quality_iterations=5, scale_iterations=6),
    "balanced": SearchConfig(),
    "precise": SearchConfig(quality_iterations=10, scale_iterations=12),
}


def get_search_config(precision: str = "balanced") -> SearchConfig:
    """Look up a search preset by name."""
    try:
        return replace(SEARCH_PRESETS[precision])
    except KeyError:
        presets = ", ".join(SEARCH_PRESETS)
        raise ValueError(f"Unknown precision '{precision}'. Use one of: {presets}") from None


@dataclass
class EncodedCandidate:
    """One measured oracle output."""
    data: bytes
    size: int
    width: int
    height: int
    quality: float
    scale: float
    phase: str


@dataclass
class CompressionResult:
    """Result of compressing an image to a target size."""
    data: bytes
    format: ImageFormat
    size: int
    width: int
    height: int
    source_width: int
    source_height: int
    quality: float
    scale: float
    phase: str
    target_size: int
    target_achieved: bool
    encode_calls: int
    input_path: Optional[str] = None
    output_path: Optional[str] = None
    original_size: Optional[int] = None

    @property
    def achieved_ratio(self) -> float:
        """Output size relative to the target (<= 1.0 when the target was met)."""
        return self.size / self.target_size

    @property
    def compression_ratio(self) -> float:
        if self.original_size is None:
            return 0.0
        return calculate_compression_ratio(self.original_size, self.size)

    @property
    def quality_estimate(self) -> str:
        return estimate_quality_score(self.quality, self.scale, self.format.is_lossy)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        result = {
            "format": self.format.value,
            "size": self.size,
            "size_formatted": format_size(self.size),
            "width": self.width,
            "height": self.height,
            "source_width": self.source_width,
            "source_height": self.source_height,
            "quality": round(self.quality, 4),
            "scale": round(self.scale, 4),
            "phase": self.phase,
            "target_size": self.target_size,
            "target_size_formatted": format_size(self.target_size),
            "target_achieved": self.target_achieved,
            "achieved_ratio": round(self.achieved_ratio, 4),
            "quality_estimate": self.quality_estimate,
            "encode_calls": self.encode_calls,
        }
        if self.input_path is not None:
            result["input_path"] = self.input_path
        if self.output_path is not None:
            result["output_path"] = self.output_path
        if self.original_size is not None:
            result["original_size"] = self.original_size
            result["original_size_formatted"] = format_size(self.original_size)
            result["compression_ratio"] = round(self.compression_ratio * 100, 1)
        return result


class SearchPhase:
    """Which step of the search produced a candidate."""
    BASELINE = "baseline"
    QUALITY = "quality"
    SCALE = "scale"


class CompressionStage:
    """Enumeration of compression stages for progress reporting."""
    BASELINE = "Checking baseline"
    QUALITY_SEARCH = "Searching quality"
    SCALE_SEARCH = "Searching dimensions"
    FINALIZING = "Finalizing image"


STAGE_FOR_PHASE = {
    SearchPhase.BASELINE: CompressionStage.BASELINE,
    SearchPhase.QUALITY: CompressionStage.QUALITY_SEARCH,
    SearchPhase.SCALE: CompressionStage.SCALE_SEARCH,
}


class _SearchRun:
    """Per-call bookkeeping; never shared between compress() calls."""

    def __init__(self, compressor: "TargetSizeCompressor", source, fmt: ImageFormat, target_size: int):
        self.compressor = compressor
        self.source = source
        self.fmt = fmt
        self.target_size = target_size
        self.calls = 0
        self.smallest: Optional[EncodedCandidate] = None

    def encode(self, scale: float, quality: float, phase: str) -> EncodedCandidate:
        encoder = self.compressor.encoder
        width = max(1, int(self.source.width * scale))
        height = max(1, int(self.source.height * scale))

        data = encoder.encode(self.source, self.fmt, width, height, quality)
        candidate = EncodedCandidate(
            data=data,
            size=encoder.size_of(data),
            width=width,
            height=height,
            quality=quality,
            scale=scale,
            phase=phase,
        )
        self.calls += 1

        if self.smallest is None or candidate.size < self.smallest.size:
            self.smallest = candidate

        logger.debug(
            "%s: %dx%d q=%.3f -> %s (target %s)",
            phase, width, height, quality,
            format_size(candidate.size), format_size(self.target_size),
        )
        self.compressor._report_progress(STAGE_FOR_PHASE[phase], self.calls)
        return candidate

    def fits(self, candidate: EncodedCandidate) -> bool:
        return candidate.size <= self.target_size


class TargetSizeCompressor:
    """
    Compresses images to a byte budget while keeping maximum fidelity.

    The encoder is treated as an opaque oracle. The search runs in two
    bounded phases:
    - Quality search at full resolution (JPEG and WEBP only)
    - Uniform downscaling at a fixed quality when quality alone is not enough

    Every accepted candidate is measured, so a locally non-monotonic
    encoder can cost fidelity but never breaks the size bound.
    """

    def __init__(
        self,
        encoder: Optional[Encoder] = None,
        config: Optional[SearchConfig] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        """
        Initialize compressor.

        Args:
            encoder: Encode oracle (defaults to PillowEncoder)
            config: Search configuration (defaults to the "balanced" preset)
            progress_callback: Optional callback for progress updates (stage, percentage)
        """
        self.encoder = encoder or PillowEncoder()
        self.config = config or SearchConfig()
        self.progress_callback = progress_callback

    def _report_progress(self, stage: str, calls: int):
        """Report progress if callback is set."""
        if self.progress_callback:
            percentage = min(99, int(calls / self.config.max_encode_calls * 100))
            self.progress_callback(stage, percentage)

    def compress(self, source, fmt: Union[str, ImageFormat], target_size: int) -> CompressionResult:
        """
        Encode ``source`` so that the output is at most ``target_size`` bytes.

        Args:
            source: Decoded image exposing ``width`` and ``height``
            fmt: Output container format
            target_size: Byte budget (must be positive, validated by callers)

        Returns:
            CompressionResult; ``target_achieved`` is False when even the
            smallest attempted encoding is over budget
        """
        fmt = ImageFormat.parse(fmt)
        config = self.config
        run = _SearchRun(self, source, fmt, target_size)

        baseline = run.encode(1.0, config.baseline_quality, SearchPhase.BASELINE)
        if run.fits(baseline):
            logger.info("Baseline %s already within %s", format_size(baseline.size), format_size(target_size))
            return self._finish(run, baseline)

        if fmt.is_lossy:
            best = self._search(
                run,
                SearchPhase.QUALITY,
                config.min_quality,
                config.quality_iterations,
                lambda quality: run.encode(1.0, quality, SearchPhase.QUALITY),
            )
            if best is not None:
                logger.info("Quality %.3f fits at full resolution", best.quality)
                return self._finish(run, best)

        resize_quality = config.resize_quality if fmt.is_lossy else 1.0
        best = self._search(
            run,
            SearchPhase.SCALE,
            config.min_scale,
            config.scale_iterations,
            lambda scale: run.encode(scale, resize_quality, SearchPhase.SCALE),
        )
        if best is not None:
            logger.info("Scale %.3f fits (%dx%d)", best.scale, best.width, best.height)
            return self._finish(run, best)

        logger.warning(
            "Target %s not reachable; smallest encoding is %s",
            format_size(target_size), format_size(run.smallest.size),
        )
        return self._finish(run, run.smallest)

    def _search(
        self,
        run: _SearchRun,
        phase: str,
        low: float,
        iterations: int,
        encode_at: Callable[[float], EncodedCandidate],
    ) -> Optional[EncodedCandidate]:
        """
        Bisect one parameter in [low, 1.0] towards the largest fitting value.

        Returns:
            Last accepted candidate, or None if nothing fit
        """
        high = 1.0
        best = None

        for _ in range(iterations):
            mid = (low + high) / 2
            candidate = encode_at(mid)

            if run.fits(candidate):
                best = candidate
                low = mid
            else:
                high = mid

        logger.debug("%s converged to [%.4f, %.4f]", phase, low, high)
        return best

    def _finish(self, run: _SearchRun, candidate: EncodedCandidate) -> CompressionResult:
        if self.progress_callback:
            self.progress_callback(CompressionStage.FINALIZING, 100)

        return CompressionResult(
            data=candidate.data,
            format=run.fmt,
            size=candidate.size,
            width=candidate.width,
            height=candidate.height,
            source_width=run.source.width,
            source_height=run.source.height,
            quality=candidate.quality,
            scale=candidate.scale,
            phase=candidate.phase,
            target_size=run.target_size,
            target_achieved=run.fits(candidate),
            encode_calls=run.calls,
        )


def compress_image(
    source,
    fmt: Union[str, ImageFormat],
    target_size: int,
    config: Optional[SearchConfig] = None,
    encoder: Optional[Encoder] = None,
    progress_callback: Optional[ProgressCallback] = None,
) -> CompressionResult:
    """
    Convenience function to compress a decoded image.

    Args:
        source: Decoded image
        fmt: Output format
        target_size: Target size in bytes
        config: Search configuration
        encoder: Encode oracle
        progress_callback: Optional progress callback

    Returns:
        CompressionResult
    """
    compressor = TargetSizeCompressor(encoder, config, progress_callback)
    return compressor.compress(source, fmt, target_size)


def compress_file(
    input_path: Union[str, Path],
    output_path: Union[str, Path],
    target_size: int,
    fmt: Union[str, ImageFormat, None] = None,
    config: Optional[SearchConfig] = None,
    progress_callback: Optional[ProgressCallback] = None,
) -> CompressionResult:
    """
    Compress an image file and write the result.

    Args:
        input_path: Path to the input image
        output_path: Path for the output image
        target_size: Target size in bytes
        fmt: Output format (defaults to the format implied by output_path)
        config: Search configuration
        progress_callback: Optional progress callback

    Returns:
        CompressionResult with paths and original size filled in
    """
    input_path = Path(input_path)
    output_path = Path(output_path)

    if not input_path.exists():
        raise FileNotFoundError(f"Image file not found: {input_path}")

    fmt = ImageFormat.parse(fmt) if fmt else ImageFormat.from_path(output_path)

    with load_image(input_path) as source:
        result = compress_image(source, fmt, target_size, config, progress_callback=progress_callback)

    output_path.write_bytes(result.data)

    result.input_path = str(input_path)
    result.output_path = str(output_path)
    result.original_size = input_path.stat().st_size
    return result
