"""
Configuration loader with Pydantic validation for the photo extraction pipeline.

Loads the bundled config.yaml (or a user-supplied file) into immutable,
validated configuration objects. Invalid values are rejected before any
image is touched.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

# Default configuration path (relative to this file)
DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.yaml"


def _require_odd(value: int, name: str) -> int:
    if value % 2 == 0:
        raise ValueError(f"{name} must be odd, got {value}")
    return value


class PreprocessingConfig(BaseModel):
    """Edge-mask preparation settings.

    Attributes:
        pad: Uniform border (px) added before detection so photos touching
            the scan edge still get a closed outline.
        blur_kernel_size: Gaussian blur kernel size (odd).
        adaptive_block_size: Neighborhood size for adaptive thresholding (odd).
        adaptive_offset: Constant subtracted from the local weighted mean.
        canny_low: Lower Canny hysteresis threshold.
        canny_high: Upper Canny hysteresis threshold. Values <= canny_low
            are replaced by 3 * canny_low at detection time.
        dilate_kernel_size: Square structuring element size (odd).
        dilate_iterations: Number of dilation passes.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    pad: int = Field(default=12, ge=0)
    blur_kernel_size: int = Field(default=5, ge=1)
    adaptive_block_size: int = Field(default=25, ge=3)
    adaptive_offset: float = 10.0
    canny_low: float = Field(default=50.0, ge=0.0)
    canny_high: float = Field(default=150.0, ge=0.0)
    dilate_kernel_size: int = Field(default=5, ge=1)
    dilate_iterations: int = Field(default=2, ge=0)

    @field_validator("blur_kernel_size", "adaptive_block_size", "dilate_kernel_size")
    @classmethod
    def _odd_kernel(cls, v: int, info) -> int:
        return _require_odd(v, info.field_name)


class DetectionConfig(BaseModel):
    """Candidate selection settings.

    Attributes:
        min_area: Minimum enclosed contour area (px^2) to treat as a photo.
        compensate_dilation: Shrink fitted rectangles by the amount the
            dilation step pushed the outline outwards.
        refine_edges: Move each side of a fitted rectangle onto the photo
            edge measured in the grayscale scan.
        edge_search_depth: Distance (px) searched on either side of an edge.
        edge_min_contrast: Smallest photo/background gray-level difference
            at which a side is moved.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    min_area: float = Field(default=20000.0, ge=0.0)
    compensate_dilation: bool = True
    refine_edges: bool = True
    edge_search_depth: float = Field(default=4.0, gt=0.0)
    edge_min_contrast: float = Field(default=20.0, ge=0.0)


class OutputConfig(BaseModel):
    """Output encoding settings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    extension: str = "jpg"
    jpeg_quality: int = Field(default=95, ge=1, le=100)

    @field_validator("extension")
    @classmethod
    def _normalize_extension(cls, v: str) -> str:
        v = v.lower().lstrip(".")
        if v not in ("jpg", "jpeg", "png"):
            raise ValueError(f"Unsupported output extension: {v}")
        return v


class BatchConfig(BaseModel):
    """Directory run settings.

    Attributes:
        workers: Worker processes. None uses all CPU cores, 1 runs inline.
        recursive: Descend into subdirectories of the input directory.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    workers: Optional[int] = Field(default=None, ge=1)
    recursive: bool = True


class ExtractionConfig(BaseModel):
    """Complete pipeline configuration."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    preprocessing: PreprocessingConfig = Field(default_factory=PreprocessingConfig)
    detection: DetectionConfig = Field(default_factory=DetectionConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)


def load_config(config_path: Path = DEFAULT_CONFIG_PATH) -> ExtractionConfig:
    """
    Load pipeline configuration from YAML file.

    Args:
        config_path: Path to the configuration YAML file.

    Returns:
        Validated ExtractionConfig object.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValueError: If config is invalid or contains unknown fields.

    Example:
        >>> config = load_config()
        >>> print(config.detection.min_area)
        20000.0
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    logger.debug(f"Loading extraction config from {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        raw_config = yaml.safe_load(f) or {}

    try:
        config = ExtractionConfig.model_validate(raw_config)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration file {config_path}: {e}") from e

    logger.info(f"Loaded extraction configuration from {config_path.name}")
    return config


def get_default_config() -> ExtractionConfig:
    """Get default configuration from the bundled config.yaml file."""
    return load_config(DEFAULT_CONFIG_PATH)


def apply_overrides(
    config: ExtractionConfig, **overrides: Any
) -> ExtractionConfig:
    """
    Return a new config with command-line style overrides applied.

    Recognized keys are ``min_area``, ``pad``, ``canny_low``, ``canny_high``,
    ``workers`` and ``recursive``. Keys whose value is None are ignored. The
    merged result is re-validated, so out-of-range values raise ValueError.

    Example:
        >>> config = apply_overrides(get_default_config(), pad=0, min_area=500)
        >>> config.preprocessing.pad
        0
    """
    sections = {
        "min_area": "detection",
        "pad": "preprocessing",
        "canny_low": "preprocessing",
        "canny_high": "preprocessing",
        "workers": "batch",
        "recursive": "batch",
    }

    merged: Dict[str, Dict[str, Any]] = config.model_dump()
    for key, value in overrides.items():
        if key not in sections:
            raise ValueError(f"Unknown configuration override: {key}")
        if value is None:
            continue
        merged[sections[key]][key] = value

    try:
        return ExtractionConfig.model_validate(merged)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration override: {e}") from e
