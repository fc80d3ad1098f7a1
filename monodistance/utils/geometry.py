"""
Geometry helper functions for boxes and rotations.

This module contains reusable geometric operations shared between the
decoder (NMS), the tracker (association) and the distance estimator.
"""

from __future__ import annotations

import math
from typing import Any, Tuple

import numpy as np

# Axis-aligned box as (x, y, width, height), top-left origin.
BoxXYWH = Tuple[float, float, float, float]


def iou_xywh(box_a: BoxXYWH, box_b: BoxXYWH) -> float:
    """
    Compute Intersection over Union (IoU) between two ``(x, y, w, h)`` boxes.

    Returns 0.0 for disjoint boxes and for degenerate (zero-area) unions.
    """
    ax, ay, aw, ah = box_a
    bx, by, bw, bh = box_b

    inter_x1 = max(ax, bx)
    inter_y1 = max(ay, by)
    inter_x2 = min(ax + aw, bx + bw)
    inter_y2 = min(ay + ah, by + bh)

    if inter_x2 <= inter_x1 or inter_y2 <= inter_y1:
        return 0.0

    inter_area = (inter_x2 - inter_x1) * (inter_y2 - inter_y1)
    union = aw * ah + bw * bh - inter_area
    if union <= 0.0:
        return 0.0
    return inter_area / float(union)


def rotation_zyx(yaw_deg: float, pitch_deg: float, roll_deg: float) -> np.ndarray[Any, np.dtype[np.float64]]:
    """
    Camera-to-world rotation ``Rz(yaw) @ Ry(pitch) @ Rx(roll)`` from degrees.
    """
    yaw = math.radians(yaw_deg)
    pitch = math.radians(pitch_deg)
    roll = math.radians(roll_deg)
    cy, sy = math.cos(yaw), math.sin(yaw)
    cp, sp = math.cos(pitch), math.sin(pitch)
    cr, sr = math.cos(roll), math.sin(roll)

    return np.array(
        [
            [cy * cp, cy * sp * sr - sy * cr, cy * sp * cr + sy * sr],
            [sy * cp, sy * sp * sr + cy * cr, sy * sp * cr - cy * sr],
            [-sp, cp * sr, cp * cr],
        ],
        dtype=np.float64,
    )


def vector_norm(x: float, y: float, z: float) -> float:
    return float(math.sqrt(x * x + y * y + z * z))
