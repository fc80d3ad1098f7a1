"""
Camera geometry: from a tracked box to a metric distance.

The key idea is ground-plane back-projection. The bottom-center of a box is
taken as the object's contact point with the ground. That pixel is mapped
back from model space to sensor pixels (undoing the letterbox), undistorted
into a normalized camera ray, rotated into the world frame and intersected
with the ground plane. The Euclidean length of the ray segment between the
camera and the intersection is the distance in meters.

Two pose models are supported:

- :class:`~monodistance.data_structures.FullPose`: Z-up world, ground at
  ``z = 0``, rotation ``Rz(yaw) @ Ry(pitch) @ Rx(roll)``.
- :class:`~monodistance.data_structures.PitchOnly`: legacy Y-up world,
  camera rotated about its X axis by the pitch only.

The estimate is only meaningful for objects whose footprint touches the
ground (people, vehicles). Every failure is reported as ``nan``; nothing in
:meth:`DistanceEstimator.estimate` raises.
"""

from __future__ import annotations

import math
import threading
from dataclasses import dataclass, replace
from typing import Optional, Tuple

import cv2
import numpy as np

from .data_structures import (
    CalibrationParams,
    CameraPose,
    Detection,
    FullPose,
    LetterboxParams,
    PitchOnly,
    Point2D,
)
from .log_config import get_logger
from .utils.geometry import rotation_zyx, vector_norm

logger = get_logger(__name__)

NAN = float("nan")


def undistort_normalized(u: float, v: float, calibration: CalibrationParams) -> Point2D:
    """
    Undistort a source pixel into normalized camera coordinates ``(xn, yn)``.

    The ray direction in the camera frame is ``(xn, yn, 1)``.
    """
    src = np.array([[[u, v]]], dtype=np.float64)
    dst = cv2.undistortPoints(src, calibration.camera_matrix(), calibration.dist_coeffs())
    xn, yn = dst.reshape(2)
    return float(xn), float(yn)


def ground_distance_full_pose(xn: float, yn: float, pose: FullPose) -> float:
    """
    Distance to the ``z = 0`` plane along the ray ``R @ (xn, yn, 1)``.
    """
    h = pose.z
    if h <= 0.0:
        return NAN
    R = rotation_zyx(pose.yaw_deg, pose.pitch_deg, pose.roll_deg)
    dx, dy, dz = (float(c) for c in R @ np.array([xn, yn, 1.0]))
    # The ray has to head down towards the ground.
    if dz >= 0.0:
        return NAN
    t = -h / dz
    return t * vector_norm(dx, dy, dz)


def ground_distance_pitch_only(xn: float, yn: float, pose: PitchOnly) -> float:
    """
    Distance to the ``y = 0`` plane for a camera pitched about its X axis.
    """
    h = pose.height
    if h <= 0.0:
        return NAN
    pitch = math.radians(pose.pitch_deg)
    cos_p = math.cos(pitch)
    sin_p = math.sin(pitch)

    dy = -cos_p * yn - sin_p
    if dy >= 0.0:
        return NAN
    t = -h / dy
    dx = xn
    dz = -sin_p * yn + cos_p
    return t * vector_norm(dx, dy, dz)


def ground_distance(xn: float, yn: float, pose: CameraPose) -> float:
    if isinstance(pose, FullPose):
        return ground_distance_full_pose(xn, yn, pose)
    return ground_distance_pitch_only(xn, yn, pose)


@dataclass(frozen=True)
class EstimatorSnapshot:
    """
    Immutable configuration seen by one :meth:`DistanceEstimator.estimate` call.

    Attributes:
        calibration: Camera intrinsics, or None until calibrated.
        letterbox: Latest letterbox transform, or None until the first frame.
        pose: Dedicated camera pose; when None the legacy pose carried by
            ``calibration`` is used.
        version: Incremented on every published change.
    """

    calibration: Optional[CalibrationParams] = None
    letterbox: Optional[LetterboxParams] = None
    pose: Optional[CameraPose] = None
    version: int = 0

    def active_pose(self) -> Optional[CameraPose]:
        if self.pose is not None:
            return self.pose
        if self.calibration is not None:
            return self.calibration.legacy_pose()
        return None


class DistanceEstimator:
    """
    Estimates the distance from the camera to the foot of a detected object.

    Configuration (calibration, letterbox, pose) is published by other threads
    through the setters. Each setter swaps in a new immutable
    :class:`EstimatorSnapshot`; :meth:`estimate` reads the reference once, so
    a call never observes a half-updated configuration.
    """

    def __init__(
        self,
        calibration: Optional[CalibrationParams] = None,
        letterbox: Optional[LetterboxParams] = None,
        pose: Optional[CameraPose] = None,
    ) -> None:
        self._write_lock = threading.Lock()
        self._snapshot = EstimatorSnapshot(calibration=calibration, letterbox=letterbox, pose=pose)

    @property
    def snapshot(self) -> EstimatorSnapshot:
        return self._snapshot

    def _publish(self, **changes: object) -> None:
        with self._write_lock:
            current = self._snapshot
            self._snapshot = replace(current, version=current.version + 1, **changes)  # type: ignore[arg-type]

    def set_calibration(self, calibration: Optional[CalibrationParams]) -> None:
        """
        Replace the camera intrinsics. Safe to call from any thread.
        """
        self._publish(calibration=calibration)
        if calibration is not None:
            logger.info(
                f"Calibration updated: fx={calibration.fx:.1f} fy={calibration.fy:.1f} "
                f"cx={calibration.cx:.1f} cy={calibration.cy:.1f}"
            )

    def set_pose(self, pose: Optional[CameraPose]) -> None:
        """
        Replace the camera pose. ``None`` falls back to the legacy pose of the
        calibration. Safe to call from any thread.
        """
        self._publish(pose=pose)
        logger.info(f"Camera pose updated: {pose!r}")

    def set_letterbox(self, letterbox: Optional[LetterboxParams]) -> None:
        """
        Replace the letterbox transform of the current frame.
        """
        self._publish(letterbox=letterbox)

    def on_letterbox_computed(self, params: LetterboxParams) -> None:
        """
        Observer hook called by the preprocessing step for every frame.
        """
        self.set_letterbox(params)

    def estimate(self, detection: Detection) -> float:
        """
        Estimate the ground distance to ``detection`` in meters.

        Args:
            detection: Box in model space.

        Returns:
            Distance in meters, or ``nan`` when calibration or letterbox are
            missing, a scale, focal length or height is not positive, or the
            ray through the box's bottom-center does not hit the ground.
        """
        snap = self._snapshot
        return estimate_with(snap, detection)


def bottom_center_to_source(detection: Detection, letterbox: LetterboxParams) -> Tuple[float, float]:
    u_m, v_m = detection.bottom_center
    return letterbox.to_source(u_m, v_m)


def estimate_with(snapshot: EstimatorSnapshot, detection: Detection) -> float:
    """
    Stateless distance estimate against an explicit configuration snapshot.
    """
    cal = snapshot.calibration
    lb = snapshot.letterbox
    if cal is None or lb is None or lb.scale <= 0.0:
        return NAN
    if not cal.is_valid:
        return NAN
    pose = snapshot.active_pose()
    if pose is None:
        return NAN

    u, v = bottom_center_to_source(detection, lb)
    if not (math.isfinite(u) and math.isfinite(v)):
        return NAN

    try:
        xn, yn = undistort_normalized(u, v, cal)
    except cv2.error as exc:
        logger.warning(f"undistortPoints failed for ({u:.1f}, {v:.1f}): {exc}")
        return NAN

    distance = ground_distance(xn, yn, pose)
    if not math.isfinite(distance):
        return NAN
    return distance
