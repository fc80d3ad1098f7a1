"""
Configuration utilities for the detection, tracking and distance pipeline.

This module centralizes configurable parameters such as:
- Detection tensor layout and decoder thresholds.
- Tracker association thresholds and track lifetime.
- Model input size used for letterboxing.

Defaults mirror the deployed model (8 classes, 5376 anchors, 512x512 input).
A YAML file can override any subset of them; see ``config.yaml`` at the
repository root for the layout.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Type, TypeVar, cast

import yaml

from .exceptions import ConfigError
from .log_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class DecoderConfig:
    """
    Layout of the raw detection tensor and decoder thresholds.

    Attributes:
        num_channels: Leading tensor dimension, ``4 + num_classes``.
        num_boxes: Trailing tensor dimension (candidate boxes per frame).
        conf_threshold: Minimum best-class score to keep a candidate.
        nms_iou_threshold: IoU above which lower-scored boxes are suppressed.
    """

    num_channels: int = 12
    num_boxes: int = 5376
    conf_threshold: float = 0.5
    nms_iou_threshold: float = 0.4

    @property
    def num_classes(self) -> int:
        return self.num_channels - 4


@dataclass
class TrackerConfig:
    """
    ByteTrack association parameters.

    Attributes:
        tracker_type: ``"bytetrack"`` or ``"none"`` to disable tracking.
        high_threshold: Minimum score for first-stage association and track birth.
        low_threshold: Minimum score for second-stage association.
        iou_threshold: Minimum IoU to accept a detection/track match.
        max_lost_frames: Frames a track survives without association.
    """

    tracker_type: str = "bytetrack"
    high_threshold: float = 0.5
    low_threshold: float = 0.1
    iou_threshold: float = 0.3
    max_lost_frames: int = 30


@dataclass
class Config:
    """
    High-level configuration for a single pipeline instance.

    Attributes:
        model_input_size: Side of the square model input in pixels.
        decoder: Detection decoder parameters.
        tracker: Tracker parameters.
    """

    model_input_size: int = 512
    decoder: DecoderConfig = field(default_factory=DecoderConfig)
    tracker: TrackerConfig = field(default_factory=TrackerConfig)

    def validate(self) -> "Config":
        """
        Check value ranges, raising :class:`ConfigError` on the first problem.
        """
        if self.model_input_size <= 0:
            raise ConfigError("model_input_size must be positive.")
        if self.decoder.num_channels < 5:
            raise ConfigError("decoder.num_channels must be at least 5 (4 box channels + 1 class).")
        if self.decoder.num_boxes <= 0:
            raise ConfigError("decoder.num_boxes must be positive.")
        for name, value in (
            ("decoder.conf_threshold", self.decoder.conf_threshold),
            ("decoder.nms_iou_threshold", self.decoder.nms_iou_threshold),
            ("tracker.high_threshold", self.tracker.high_threshold),
            ("tracker.low_threshold", self.tracker.low_threshold),
            ("tracker.iou_threshold", self.tracker.iou_threshold),
        ):
            if not 0.0 <= value <= 1.0:
                raise ConfigError(f"{name} must be within [0, 1], got {value}.")
        if self.tracker.low_threshold > self.tracker.high_threshold:
            raise ConfigError("tracker.low_threshold must not exceed tracker.high_threshold.")
        if self.tracker.max_lost_frames < 0:
            raise ConfigError("tracker.max_lost_frames must be non-negative.")
        return self


def _build_section(cls: Type[T], data: Mapping[str, Any], section: str) -> T:
    known = {f.name for f in fields(cls)}  # type: ignore[arg-type]
    unknown = set(data) - known
    if unknown:
        raise ConfigError(f"Unknown keys in '{section}': {sorted(unknown)}")
    return cls(**data)


def config_from_dict(data: Mapping[str, Any]) -> Config:
    """
    Construct a validated :class:`Config` from a mapping (e.g., parsed YAML).

    Missing keys keep their defaults.
    """
    unknown = set(data) - {"model_input_size", "decoder", "tracker"}
    if unknown:
        raise ConfigError(f"Unknown configuration sections: {sorted(unknown)}")

    decoder_data = cast(Dict[str, Any], data.get("decoder") or {})
    tracker_data = cast(Dict[str, Any], data.get("tracker") or {})
    if not isinstance(decoder_data, dict) or not isinstance(tracker_data, dict):
        raise ConfigError("'decoder' and 'tracker' sections must be mappings.")

    config = Config(
        model_input_size=int(data.get("model_input_size", Config.model_input_size)),
        decoder=_build_section(DecoderConfig, decoder_data, "decoder"),
        tracker=_build_section(TrackerConfig, tracker_data, "tracker"),
    )
    return config.validate()


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Load configuration from a YAML file layered over the code defaults.

    The file is optional; when it is missing the defaults are returned.
    """
    if config_path is None or not config_path.exists():
        if config_path is not None:
            logger.info(f"Config file {config_path} not found, using defaults")
        return Config().validate()

    with config_path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError("config.yaml must contain a top-level mapping.")

    config = config_from_dict(cast(Dict[str, Any], data))
    logger.info(f"Loaded configuration from {config_path}")
    return config


DEFAULT_CONFIG = Config()
