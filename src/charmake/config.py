"""
Configuration system for charmake.

Pydantic models hold the run-level and per-encode settings; application-wide
defaults live in a pydantic-settings `AppConfig` that can be overridden from
the environment with the CHARMAKE_ prefix.
"""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path
from typing import Annotated

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from .core.errors import ConfigError

# =============================================================================
# SEQUENCE SETTINGS
# =============================================================================

class SequenceSettings(BaseModel):
    """Frame sequence discovery and reversal settings."""

    staging_suffix: Annotated[str, Field(
        min_length=2,
        description="Suffix appended to a target filename while a reversal is staged"
    )] = ".bak"

    design_names: Annotated[tuple[str, ...], Field(
        min_length=1,
        description="Design overlay filenames, checked in order"
    )] = ("design.under.png", "design.over.png")

    rollback_on_failure: Annotated[bool, Field(
        description="Undo completed renames when a reversal fails part way"
    )] = False

    @field_validator('staging_suffix')
    @classmethod
    def validate_staging_suffix(cls, v):
        """The suffix must never produce a name that still matches the sequence pattern."""
        if not v.startswith('.') or not v[1:].isalnum():
            raise ValueError(f"staging_suffix must look like '.bak', got: {v!r}")
        return v


# =============================================================================
# GIF SETTINGS
# =============================================================================

class GifSettings(BaseModel):
    """Settings handed to ffmpeg when assembling a GIF."""

    frame_rate: Annotated[int, Field(
        ge=1,
        le=100,
        description="Input frame rate for the image sequence (fps)"
    )] = 30

    palette_max_colors: Annotated[int, Field(
        ge=2,
        le=256,
        description="Maximum colors generated by palettegen"
    )] = 256

    dither: Annotated[str, Field(
        description="paletteuse dithering mode"
    )] = "sierra2_4a"

    scale_flags: Annotated[str, Field(
        description="swscale flags for the scale stages"
    )] = "lanczos"


# =============================================================================
# WORKER SETTINGS
# =============================================================================

class WorkerSettings(BaseModel):
    """Worker thread and timeout configurations."""

    max_worker_cap: Annotated[int, Field(
        ge=1,
        le=32,
        description="Maximum number of parallel GIF encodes"
    )] = 8

    default_timeout_sec: Annotated[int, Field(
        gt=0,
        description="Timeout in seconds for one ffmpeg invocation"
    )] = 300


# =============================================================================
# DESIGN MODE
# =============================================================================

class DesignMode(str, Enum):
    """Where the design image sits relative to the animation frames."""

    UNDER = "under"
    OVER = "over"

    @classmethod
    def from_filename(cls, name: str) -> DesignMode:
        """design.under.png -> UNDER, design.over.png -> OVER."""
        lowered = name.lower()
        if ".under." in lowered:
            return cls.UNDER
        if ".over." in lowered:
            return cls.OVER
        raise ValueError(f"Cannot infer design mode from {name}")


# =============================================================================
# SIZE AND CROP PARSING
# =============================================================================

_SIZE_RE = re.compile(r"^\s*(\d+)\s*[xX]\s*(\d+)\s*$")
_CROP_RE = re.compile(r"^\s*(\d+)[xX](\d+)\+(\d+)\+(\d+)\s*$")


def parse_size(value: str) -> tuple[int, int]:
    """Parse "<width>x<height>" (e.g. "512x512").

    Raises:
        ConfigError: When the string isn't a valid, non-zero size.
    """
    match = _SIZE_RE.match(value)
    if not match:
        raise ConfigError(f"Invalid size {value!r}, expected <width>x<height>")
    w, h = int(match.group(1)), int(match.group(2))
    if w <= 0 or h <= 0:
        raise ConfigError(f"Size must be positive, got {w}x{h}")
    return w, h


def parse_crop(value: str) -> tuple[int, int, int, int]:
    """Parse "<w>x<h>+<x>+<y>" into an (x, y, w, h) crop rectangle."""
    match = _CROP_RE.match(value)
    if not match:
        raise ConfigError(f"Invalid crop {value!r}, expected <w>x<h>+<x>+<y>")
    w, h, x, y = (int(g) for g in match.groups())
    if w <= 0 or h <= 0:
        raise ConfigError(f"Crop dimensions must be positive, got {w}x{h}")
    return x, y, w, h


def resolve_output_size(
    size: str | None,
    width: int | None,
    height: int | None,
    design_size: tuple[int, int] | None = None,
) -> tuple[int, int]:
    """Pick the GIF dimensions.

    Precedence: explicit "WxH" size, then width/height (height defaults to
    width for a square output), then the design image's own size.
    """
    if size:
        return parse_size(size)
    if width:
        return width, height or width
    if height:
        raise ConfigError("--height requires --width or --size")
    if design_size is None:
        raise ConfigError("No output size given and design size unknown")
    return design_size


# =============================================================================
# PROCESSING CONFIGURATIONS
# =============================================================================

class RunConfig(BaseModel):
    """One CLI run, validated."""

    input_dir: Path
    output_dir: Path
    size: str | None = None
    width: Annotated[int | None, Field(gt=0)] = None
    height: Annotated[int | None, Field(gt=0)] = None
    crop_rect: tuple[int, int, int, int] | None = None
    workers: Annotated[int, Field(ge=1, le=32)] = 1
    verbose: bool = False
    reverse: bool = True
    encode: bool = True
    rollback: bool = False
    staging_suffix: str = ".bak"

    class Config:
        frozen = True

    @field_validator('input_dir', 'output_dir')
    @classmethod
    def validate_paths(cls, v):
        """Convert relative paths to absolute."""
        if not v.is_absolute():
            v = v.resolve()
        return v

    @field_validator('size')
    @classmethod
    def validate_size(cls, v):
        """Reject malformed "WxH" strings early."""
        if v is not None:
            try:
                parse_size(v)
            except ConfigError as ex:
                raise ValueError(str(ex)) from ex
        return v


class GifEncodeConfig(BaseModel):
    """Everything one ffmpeg GIF encode needs; picklable and self-contained."""

    frames_dir: str
    frame_pattern: str
    start_number: Annotated[int, Field(ge=0)]
    design_path: str
    design_mode: DesignMode
    out_path: str
    width: Annotated[int, Field(gt=0)]
    height: Annotated[int, Field(gt=0)]
    crop_rect: tuple[int, int, int, int] | None = None
    timeout_sec: Annotated[int, Field(gt=0)] = 300
    gif: GifSettings = GifSettings()

    class Config:
        frozen = True

    @field_validator('frame_pattern')
    @classmethod
    def validate_frame_pattern(cls, v):
        """Pattern must carry exactly one numeric printf placeholder."""
        if len(re.findall(r"%0\d+d", v)) != 1:
            raise ValueError(f"frame_pattern needs one %0Nd placeholder, got: {v}")
        return v

    @field_validator('crop_rect')
    @classmethod
    def validate_crop_rect(cls, v):
        """Validate crop rectangle dimensions."""
        if v is not None:
            x, y, w, h = v
            if w <= 0 or h <= 0:
                raise ValueError(f"Crop dimensions must be positive: width={w}, height={h}")
            if x < 0 or y < 0:
                raise ValueError(f"Crop coordinates must be non-negative: x={x}, y={y}")
        return v


# =============================================================================
# MAIN APPLICATION CONFIGURATION
# =============================================================================

class AppConfig(BaseSettings):
    """
    Application defaults with environment variable support.

    All settings can be overridden via environment variables with CHARMAKE_ prefix.
    Example: CHARMAKE_GIF__FRAME_RATE=24
    """

    sequence: SequenceSettings = SequenceSettings()
    gif: GifSettings = GifSettings()
    worker: WorkerSettings = WorkerSettings()

    class Config:
        env_prefix = "CHARMAKE_"
        env_nested_delimiter = "__"
        case_sensitive = False


# Default instance for easy importing
app_config = AppConfig()

STAGING_SUFFIX = app_config.sequence.staging_suffix
DESIGN_NAMES = app_config.sequence.design_names
MAX_WORKER_CAP = app_config.worker.max_worker_cap
DEFAULT_TIMEOUT_SEC = app_config.worker.default_timeout_sec


def create_config_from_env() -> AppConfig:
    """Create a new configuration instance from environment variables."""
    return AppConfig()
