"""
Top-level package for the monocular object distance project.

This package provides a small perception core for:
- Decoding raw YOLO-style detection tensors into filtered boxes.
- Tracking boxes across frames with stable identities (ByteTrack-style).
- Converting a tracked box into a metric distance by ground-plane
  back-projection through a calibrated camera.

Frame capture, model execution, UI overlays and calibration capture are
expected to live outside this package and feed it typed inputs. See the
individual submodules for more detailed documentation.
"""

from .data_structures import (
    CalibrationParams,
    CameraPose,
    Detection,
    DistancedObject,
    FullPose,
    LetterboxParams,
    PitchOnly,
    TrackedDetection,
)
from .detection import DetectionDecoder, create_decoder, non_max_suppression
from .distance import DistanceEstimator
from .exceptions import ConfigError, InvalidTensorError, MonoDistanceError
from .pipeline import FramePipeline
from .tracking import ByteTracker, PassthroughTracker, create_tracker, iou

__version__ = "0.1.0"

__all__ = [
    "ByteTracker",
    "CalibrationParams",
    "CameraPose",
    "ConfigError",
    "Detection",
    "DetectionDecoder",
    "DistanceEstimator",
    "DistancedObject",
    "FramePipeline",
    "FullPose",
    "InvalidTensorError",
    "LetterboxParams",
    "MonoDistanceError",
    "PassthroughTracker",
    "PitchOnly",
    "TrackedDetection",
    "create_decoder",
    "create_tracker",
    "iou",
    "non_max_suppression",
]
