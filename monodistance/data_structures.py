"""
Core data structures for detection, tracking and distance estimation.

Boxes live in *model space*: the square, letterboxed image fed to the
detector (e.g. 512x512). Calibration intrinsics live in *source space*: the
original sensor image. :class:`LetterboxParams` maps between the two.

All records are frozen dataclasses. Detections are produced once per frame
and never mutated; calibration, pose and letterbox values are snapshots that
are replaced wholesale when a newer one arrives.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Tuple, Union

import numpy as np

# Pixel bounding box (x1, y1, x2, y2) in model-space coordinates.
BBoxXYXY = Tuple[float, float, float, float]
Point2D = Tuple[float, float]


@dataclass(frozen=True)
class Detection:
    """
    Single detector output box in model-input pixel space.

    Attributes:
        x: Left edge in pixels.
        y: Top edge in pixels.
        width: Box width in pixels.
        height: Box height in pixels.
        score: Confidence of the best class, in ``[0, 1]``.
        class_id: Index of the best class (``>= 0``).
    """

    x: float
    y: float
    width: float
    height: float
    score: float
    class_id: int

    @property
    def x2(self) -> float:
        return self.x + self.width

    @property
    def y2(self) -> float:
        return self.y + self.height

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def bottom_center(self) -> Point2D:
        """
        Ground contact point of the box: middle of the bottom edge.
        """
        return self.x + self.width / 2.0, self.y + self.height

    def to_xyxy(self) -> BBoxXYXY:
        return self.x, self.y, self.x2, self.y2


@dataclass(frozen=True)
class TrackedDetection(Detection):
    """
    Detection carrying a stable identity assigned by a tracker.

    Attributes:
        track_id: Identifier unique for the lifetime of one tracker instance.
    """

    track_id: int = 0


@dataclass(frozen=True)
class LetterboxParams:
    """
    Uniform scale plus padding used to fit a source frame into the model input.

    Attributes:
        scale: Resize ratio from source pixels to model pixels.
        pad_x: Horizontal padding added on the left, in model pixels.
        pad_y: Vertical padding added on the top, in model pixels.
        source_width: Width of the original frame in pixels.
        source_height: Height of the original frame in pixels.
    """

    scale: float
    pad_x: float
    pad_y: float
    source_width: int
    source_height: int

    def to_source(self, u_m: float, v_m: float) -> Point2D:
        """
        Map a model-space point back to original sensor pixels.
        """
        return (u_m - self.pad_x) / self.scale, (v_m - self.pad_y) / self.scale

    def to_model(self, u: float, v: float) -> Point2D:
        """
        Map an original sensor pixel into model space.
        """
        return u * self.scale + self.pad_x, v * self.scale + self.pad_y


@dataclass(frozen=True)
class PitchOnly:
    """
    Legacy camera pose: Y-up world, camera rotated about its X axis only.

    Attributes:
        height: Camera height above the ground plane in meters.
        pitch_deg: Downward tilt in degrees (positive = towards the ground).
    """

    height: float
    pitch_deg: float = 0.0


@dataclass(frozen=True)
class FullPose:
    """
    Full 6-DOF camera pose in a Z-up world (marker plane is ``z = 0``).

    Angles follow the ZYX convention: ``R = Rz(yaw) @ Ry(pitch) @ Rx(roll)``.

    Attributes:
        x: Camera X position in meters.
        y: Camera Y position in meters.
        z: Camera height above the ground in meters.
        yaw_deg: Heading around world Z.
        pitch_deg: Rotation around Y.
        roll_deg: Rotation around X.
    """

    x: float
    y: float
    z: float
    yaw_deg: float = 0.0
    pitch_deg: float = 0.0
    roll_deg: float = 0.0


# Exactly one variant is active when estimating a distance.
CameraPose = Union[PitchOnly, FullPose]


@dataclass(frozen=True)
class CalibrationParams:
    """
    Pinhole intrinsics and lens distortion of the source camera.

    The legacy pitch-only pose (``camera_height`` / ``camera_pitch_deg``)
    travels with the intrinsics and is used when no dedicated
    :data:`CameraPose` has been published.

    Attributes:
        fx: Focal length in x (pixels), must be positive.
        fy: Focal length in y (pixels), must be positive.
        cx: Principal point x (pixels).
        cy: Principal point y (pixels).
        k1, k2, k3: Radial distortion coefficients.
        p1, p2: Tangential distortion coefficients.
        camera_height: Legacy camera height above ground in meters.
        camera_pitch_deg: Legacy downward tilt in degrees.
        rms_error: Reprojection error reported by the calibration run.
    """

    fx: float
    fy: float
    cx: float
    cy: float
    k1: float = 0.0
    k2: float = 0.0
    p1: float = 0.0
    p2: float = 0.0
    k3: float = 0.0
    camera_height: float = 1.5
    camera_pitch_deg: float = 0.0
    rms_error: float = 0.0

    @property
    def is_valid(self) -> bool:
        return self.fx > 0.0 and self.fy > 0.0

    def camera_matrix(self) -> np.ndarray[Any, np.dtype[np.float64]]:
        return np.array(
            [
                [self.fx, 0.0, self.cx],
                [0.0, self.fy, self.cy],
                [0.0, 0.0, 1.0],
            ],
            dtype=np.float64,
        )

    def dist_coeffs(self) -> np.ndarray[Any, np.dtype[np.float64]]:
        """
        Distortion vector in OpenCV order ``[k1, k2, p1, p2, k3]``.
        """
        return np.array([self.k1, self.k2, self.p1, self.p2, self.k3], dtype=np.float64)

    def legacy_pose(self) -> PitchOnly:
        return PitchOnly(height=self.camera_height, pitch_deg=self.camera_pitch_deg)


@dataclass(frozen=True)
class DistancedObject:
    """
    Pipeline output: one (possibly tracked) detection and its ground distance.

    Attributes:
        detection: The decoded or tracked box.
        distance_m: Distance in meters, ``nan`` when it could not be estimated.
    """

    detection: Detection
    distance_m: float

    @property
    def track_id(self) -> int | None:
        if isinstance(self.detection, TrackedDetection):
            return self.detection.track_id
        return None

    @property
    def has_distance(self) -> bool:
        return not math.isnan(self.distance_m)
