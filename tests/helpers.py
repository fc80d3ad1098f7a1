"""Builders shared by the test modules."""

from __future__ import annotations

from typing import List, Sequence, Tuple

import numpy as np

from monodistance.data_structures import Detection

# (cx, cy, w, h, class scores...) in normalized units
Candidate = Tuple[float, ...]


def make_tensor(candidates: Sequence[Candidate], num_channels: int, num_boxes: int) -> np.ndarray:
    """Channel-major flat tensor with ``candidates`` in the first box slots."""
    out = np.zeros((num_channels, num_boxes), dtype=np.float64)
    for i, cand in enumerate(candidates):
        out[: len(cand), i] = cand
    return out.reshape(-1)


def det(x: float, y: float, w: float, h: float, score: float = 0.9, class_id: int = 0) -> Detection:
    return Detection(x=x, y=y, width=w, height=h, score=score, class_id=class_id)


def moving_boxes(start_x: float, step: float, frames: int) -> List[Detection]:
    return [det(start_x + step * i, 100.0, 50.0, 80.0) for i in range(frames)]
