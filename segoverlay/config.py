"""
Configuration management for the segmentation overlay system.

Provides a layered configuration system with the following precedence
(highest to lowest):

    CLI arguments > Environment variables > YAML config file > Defaults

Design constraints:
    - The system MUST run with zero configuration (safe defaults only).
    - Missing or invalid values fail early and loudly.
    - No decoding logic, I/O, or model loading belongs here.

Non-goals:
    - No dynamic reloading.
    - No database-backed or remote configuration.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Project root resolution
# ---------------------------------------------------------------------------
# Resolved relative to this file's location: segoverlay/config.py → repo root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent


def get_project_root() -> Path:
    """Return the resolved project root directory."""
    return _PROJECT_ROOT


# ---------------------------------------------------------------------------
# Configuration dataclasses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ModelConfig:
    """Model-related configuration.

    Attributes:
        model_path: Path to the ONNX segmentation model (relative to project root).
        backend: Compute backend — 'cpu' or 'cuda'.
        input_size: Spatial dimensions (width, height) of the model input.
        mean_values: Per-channel mean subtraction values.
        scale_factor: Pixel value scale factor applied during blob creation.
        swap_rb: Whether to swap the R and B channels (model expects RGB).
        warmup: Run one forward pass on a blank blob after loading.
    """

    model_path: str = "models/model.onnx"
    backend: str = "cpu"
    input_size: Tuple[int, int] = (640, 640)
    mean_values: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    scale_factor: float = 1.0 / 255.0
    swap_rb: bool = True
    warmup: bool = True


@dataclass(frozen=True)
class DetectionConfig:
    """Anchor decoding and suppression parameters.

    Attributes:
        score_threshold: A candidate is kept only if its best class score
                         strictly exceeds this value.
        iou_threshold: IoU above which a lower-scoring box is suppressed.
        max_detections: Cap on survivors after suppression. None disables it.
        num_classes: Number of class-score channels in the detection tensor.
        mask_channels: Number of mask coefficients per anchor (and prototype
                       channels in the prototype tensor).
    """

    score_threshold: float = 0.25
    iou_threshold: float = 0.45
    max_detections: Optional[int] = 100
    num_classes: int = 3
    mask_channels: int = 32


@dataclass(frozen=True)
class MaskConfig:
    """Mask reconstruction parameters.

    Attributes:
        enabled: Reconstruct masks and polygons when prototypes are available.
        padding: Prototype-grid cells added around each box before cropping.
        binarize_threshold: Soft mask values above this become foreground.
    """

    enabled: bool = True
    padding: int = 1
    binarize_threshold: float = 0.5


@dataclass(frozen=True)
class InputConfig:
    """Input source configuration.

    Attributes:
        source: Input source — file path, directory path, video path,
                http(s) image URL, or integer device index (as string or int).
        resize_width: Optional width to downscale input frames before segmentation.
                      None means no resizing.
    """

    source: str = "0"
    resize_width: Optional[int] = None


@dataclass(frozen=True)
class OutputConfig:
    """Output behavior configuration.

    Attributes:
        mode: Output mode(s). Supports multiple comma-separated values:
              'display', 'save_image', 'save_video', 'save_json', 'save_csv'.
              Example: "display,save_image,save_json"
        save_path: Directory where output artifacts are written.
    """

    mode: str = "display"
    save_path: str = "output/"


@dataclass(frozen=True)
class VisualizationConfig:
    """Overlay rendering parameters.

    Attributes:
        labels_path: YAML or JSON file with the class names. None falls back
                     to generic 'class_<id>' names.
        fill_alpha: Opacity of the polygon fill.
        thickness: Outline thickness in pixels.
        font_scale: OpenCV font scale for the label text.
        show_labels: Whether to render the class name and score.
    """

    labels_path: Optional[str] = None
    fill_alpha: float = 0.4
    thickness: int = 2
    font_scale: float = 0.6
    show_labels: bool = True


@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration.

    Aggregates all sub-configurations into a single, frozen object.
    """

    model: ModelConfig = field(default_factory=ModelConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    mask: MaskConfig = field(default_factory=MaskConfig)
    input: InputConfig = field(default_factory=InputConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    visualization: VisualizationConfig = field(default_factory=VisualizationConfig)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

_VALID_BACKENDS = {"cpu", "cuda"}
_VALID_OUTPUT_MODES = {"display", "save_image", "save_video", "save_json", "save_csv"}


def validate_config(config: AppConfig) -> None:
    """Validate configuration values. Raises ValueError on invalid state."""

    if config.model.backend not in _VALID_BACKENDS:
        raise ValueError(
            f"Invalid model.backend: '{config.model.backend}'. "
            f"Must be one of {_VALID_BACKENDS}."
        )

    # Validate each mode in comma-separated list
    modes = set(m.strip() for m in config.output.mode.split(','))
    invalid_modes = modes - _VALID_OUTPUT_MODES
    if invalid_modes:
        raise ValueError(
            f"Invalid output.mode(s): {invalid_modes}. "
            f"Valid modes: {_VALID_OUTPUT_MODES}. "
            f"Use comma-separated values for multiple outputs."
        )

    detection = config.detection

    if not (0.0 <= detection.score_threshold <= 1.0):
        raise ValueError(
            f"detection.score_threshold must be in [0.0, 1.0], "
            f"got {detection.score_threshold}."
        )

    if not (0.0 <= detection.iou_threshold <= 1.0):
        raise ValueError(
            f"detection.iou_threshold must be in [0.0, 1.0], "
            f"got {detection.iou_threshold}."
        )

    if detection.max_detections is not None and detection.max_detections <= 0:
        raise ValueError(
            f"detection.max_detections must be positive or None, "
            f"got {detection.max_detections}."
        )

    if detection.num_classes <= 0:
        raise ValueError(
            f"detection.num_classes must be positive, got {detection.num_classes}."
        )

    if detection.mask_channels <= 0:
        raise ValueError(
            f"detection.mask_channels must be positive, got {detection.mask_channels}."
        )

    if config.mask.padding < 0:
        raise ValueError(
            f"mask.padding must be non-negative, got {config.mask.padding}."
        )

    if not (0.0 <= config.mask.binarize_threshold <= 1.0):
        raise ValueError(
            f"mask.binarize_threshold must be in [0.0, 1.0], "
            f"got {config.mask.binarize_threshold}."
        )

    if len(config.model.input_size) != 2:
        raise ValueError(
            f"model.input_size must be a (width, height) tuple, "
            f"got {config.model.input_size}."
        )

    if any(d <= 0 for d in config.model.input_size):
        raise ValueError(
            f"model.input_size dimensions must be positive, "
            f"got {config.model.input_size}."
        )

    if config.model.scale_factor <= 0:
        raise ValueError(
            f"model.scale_factor must be positive, "
            f"got {config.model.scale_factor}."
        )

    if not (0.0 <= config.visualization.fill_alpha <= 1.0):
        raise ValueError(
            f"visualization.fill_alpha must be in [0.0, 1.0], "
            f"got {config.visualization.fill_alpha}."
        )

    if config.input.resize_width is not None and config.input.resize_width <= 0:
        raise ValueError(
            f"input.resize_width must be positive or None, "
            f"got {config.input.resize_width}."
        )


# ---------------------------------------------------------------------------
# YAML loading
# ---------------------------------------------------------------------------

def _parse_tuple(value, expected_len: int, cast_type=float):
    """Convert a list from YAML into a tuple of the expected type and length."""
    if isinstance(value, (list, tuple)):
        if len(value) != expected_len:
            raise ValueError(
                f"Expected {expected_len} values, got {len(value)}: {value}"
            )
        return tuple(cast_type(v) for v in value)
    return value


def _parse_bool(value) -> bool:
    """Interpret YAML booleans and their environment-variable spellings."""
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _parse_optional_int(value) -> Optional[int]:
    if value is None or (isinstance(value, str) and value.strip().lower() in {"", "none"}):
        return None
    return int(value)


def _build_model_config(raw: dict) -> ModelConfig:
    """Build ModelConfig from a raw YAML dict."""
    kwargs = {}
    if "model_path" in raw:
        kwargs["model_path"] = str(raw["model_path"])
    if "backend" in raw:
        kwargs["backend"] = str(raw["backend"]).lower()
    if "input_size" in raw:
        kwargs["input_size"] = _parse_tuple(raw["input_size"], 2, int)
    if "mean_values" in raw:
        kwargs["mean_values"] = _parse_tuple(raw["mean_values"], 3, float)
    if "scale_factor" in raw:
        kwargs["scale_factor"] = float(raw["scale_factor"])
    if "swap_rb" in raw:
        kwargs["swap_rb"] = _parse_bool(raw["swap_rb"])
    if "warmup" in raw:
        kwargs["warmup"] = _parse_bool(raw["warmup"])
    return ModelConfig(**kwargs)


def _build_detection_config(raw: dict) -> DetectionConfig:
    """Build DetectionConfig from a raw YAML dict."""
    kwargs = {}
    if "score_threshold" in raw:
        kwargs["score_threshold"] = float(raw["score_threshold"])
    if "iou_threshold" in raw:
        kwargs["iou_threshold"] = float(raw["iou_threshold"])
    if "max_detections" in raw:
        kwargs["max_detections"] = _parse_optional_int(raw["max_detections"])
    if "num_classes" in raw:
        kwargs["num_classes"] = int(raw["num_classes"])
    if "mask_channels" in raw:
        kwargs["mask_channels"] = int(raw["mask_channels"])
    return DetectionConfig(**kwargs)


def _build_mask_config(raw: dict) -> MaskConfig:
    """Build MaskConfig from a raw YAML dict."""
    kwargs = {}
    if "enabled" in raw:
        kwargs["enabled"] = _parse_bool(raw["enabled"])
    if "padding" in raw:
        kwargs["padding"] = int(raw["padding"])
    if "binarize_threshold" in raw:
        kwargs["binarize_threshold"] = float(raw["binarize_threshold"])
    return MaskConfig(**kwargs)


def _build_input_config(raw: dict) -> InputConfig:
    """Build InputConfig from a raw YAML dict."""
    kwargs = {}
    if "source" in raw:
        kwargs["source"] = str(raw["source"])
    if "resize_width" in raw:
        kwargs["resize_width"] = _parse_optional_int(raw["resize_width"])
    return InputConfig(**kwargs)


def _build_output_config(raw: dict) -> OutputConfig:
    """Build OutputConfig from a raw YAML dict."""
    kwargs = {}
    if "mode" in raw:
        kwargs["mode"] = str(raw["mode"]).lower()
    if "save_path" in raw:
        kwargs["save_path"] = str(raw["save_path"])
    return OutputConfig(**kwargs)


def _build_visualization_config(raw: dict) -> VisualizationConfig:
    """Build VisualizationConfig from a raw YAML dict."""
    kwargs = {}
    if "labels_path" in raw:
        val = raw["labels_path"]
        kwargs["labels_path"] = str(val) if val is not None else None
    if "fill_alpha" in raw:
        kwargs["fill_alpha"] = float(raw["fill_alpha"])
    if "thickness" in raw:
        kwargs["thickness"] = int(raw["thickness"])
    if "font_scale" in raw:
        kwargs["font_scale"] = float(raw["font_scale"])
    if "show_labels" in raw:
        kwargs["show_labels"] = _parse_bool(raw["show_labels"])
    return VisualizationConfig(**kwargs)


# ---------------------------------------------------------------------------
# Environment variable overrides
# ---------------------------------------------------------------------------

_ENV_PREFIX = "SEG_OVERLAY_"


def _apply_env_overrides(raw: dict) -> dict:
    """Apply environment variable overrides to the raw config dict.

    Environment variables follow the pattern:
        SEG_OVERLAY_MODEL_BACKEND=cuda
        SEG_OVERLAY_DETECTION_SCORE_THRESHOLD=0.4

    Each variable maps to a (section, key) pair in the nested config.
    """
    env_map = {
        f"{_ENV_PREFIX}MODEL_PATH": ("model", "model_path"),
        f"{_ENV_PREFIX}MODEL_BACKEND": ("model", "backend"),
        f"{_ENV_PREFIX}DETECTION_SCORE_THRESHOLD": ("detection", "score_threshold"),
        f"{_ENV_PREFIX}DETECTION_IOU_THRESHOLD": ("detection", "iou_threshold"),
        f"{_ENV_PREFIX}DETECTION_MAX_DETECTIONS": ("detection", "max_detections"),
        f"{_ENV_PREFIX}DETECTION_NUM_CLASSES": ("detection", "num_classes"),
        f"{_ENV_PREFIX}MASK_ENABLED": ("mask", "enabled"),
        f"{_ENV_PREFIX}INPUT_SOURCE": ("input", "source"),
        f"{_ENV_PREFIX}INPUT_RESIZE_WIDTH": ("input", "resize_width"),
        f"{_ENV_PREFIX}OUTPUT_MODE": ("output", "mode"),
        f"{_ENV_PREFIX}OUTPUT_SAVE_PATH": ("output", "save_path"),
        f"{_ENV_PREFIX}LABELS_PATH": ("visualization", "labels_path"),
    }

    for env_var, (section, key) in env_map.items():
        value = os.environ.get(env_var)
        if value is not None:
            raw.setdefault(section, {})[key] = value
            logger.debug("Config override from env: %s=%s", env_var, value)

    return raw


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------

def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Load and validate application configuration.

    Precedence (highest → lowest):
        Environment variables > YAML file > Hard-coded defaults

    Args:
        config_path: Path to a YAML configuration file. If None,
                     the system runs entirely on defaults (safe for
                     programmatic usage).

    Returns:
        A validated, frozen AppConfig instance.

    Raises:
        FileNotFoundError: If config_path is provided but does not exist.
        ValueError: If any configuration value is invalid.
        yaml.YAMLError: If the YAML file is malformed.
    """
    raw: dict = {}

    # --- Layer 1: YAML file ---
    if config_path is not None:
        resolved = Path(config_path)
        if not resolved.is_absolute():
            resolved = _PROJECT_ROOT / resolved

        if not resolved.is_file():
            raise FileNotFoundError(
                f"Configuration file not found: {resolved}. "
                f"Provide a valid path or omit to use defaults."
            )

        logger.info("Loading config from: %s", resolved)
        with open(resolved, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

    # --- Layer 2: Environment variable overrides ---
    raw = _apply_env_overrides(raw)

    # --- Build typed configs ---
    config = AppConfig(
        model=_build_model_config(raw.get("model", {})),
        detection=_build_detection_config(raw.get("detection", {})),
        mask=_build_mask_config(raw.get("mask", {})),
        input=_build_input_config(raw.get("input", {})),
        output=_build_output_config(raw.get("output", {})),
        visualization=_build_visualization_config(raw.get("visualization", {})),
    )

    # --- Validate ---
    validate_config(config)

    logger.debug("Configuration loaded: %s", config)
    return config
