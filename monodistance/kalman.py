"""
Constant-velocity Kalman filter over bounding boxes.

State is ``[x, y, w, h, vx, vy, vw, vh]`` and the measurement is the box
``[x, y, w, h]``. Matrices are fixed at construction and every array is
updated in place, so a filter allocates nothing per frame beyond numpy
temporaries.

Semantics follow OpenCV's ``cv2.KalmanFilter``: :meth:`predict` writes the
prior into both ``state_pre`` and ``state_post`` so that a track coasting
without measurements keeps extrapolating.
"""

from __future__ import annotations

from typing import Any, Tuple

import numpy as np

STATE_DIM = 8
MEASURE_DIM = 4

PROCESS_NOISE = 1e-2
MEASUREMENT_NOISE = 1e-1
INITIAL_ERROR = 1.0

Vector = np.ndarray[Any, np.dtype[np.float64]]
BoxXYWH = Tuple[float, float, float, float]


def _transition_matrix() -> Vector:
    F = np.eye(STATE_DIM, dtype=np.float64)
    F[:MEASURE_DIM, MEASURE_DIM:] = np.eye(MEASURE_DIM)
    return F


def _measurement_matrix() -> Vector:
    H = np.zeros((MEASURE_DIM, STATE_DIM), dtype=np.float64)
    H[:, :MEASURE_DIM] = np.eye(MEASURE_DIM)
    return H


_F = _transition_matrix()
_H = _measurement_matrix()
_Q = np.eye(STATE_DIM, dtype=np.float64) * PROCESS_NOISE
_R = np.eye(MEASURE_DIM, dtype=np.float64) * MEASUREMENT_NOISE


class ConstantVelocityKalman:
    """
    Kalman filter for one tracked box.

    Attributes:
        state_pre: Prior state after the last :meth:`predict`.
        state_post: Posterior state after the last :meth:`correct` (or predict).
        error_cov_pre: Prior covariance.
        error_cov_post: Posterior covariance.
    """

    __slots__ = ("state_pre", "state_post", "error_cov_pre", "error_cov_post")

    def __init__(self, box: BoxXYWH) -> None:
        self.state_post = np.zeros(STATE_DIM, dtype=np.float64)
        self.state_post[:MEASURE_DIM] = box
        self.state_pre = self.state_post.copy()
        self.error_cov_post = np.eye(STATE_DIM, dtype=np.float64) * INITIAL_ERROR
        self.error_cov_pre = self.error_cov_post.copy()

    @property
    def box(self) -> BoxXYWH:
        x, y, w, h = (float(v) for v in self.state_post[:MEASURE_DIM])
        return x, y, w, h

    @property
    def velocity(self) -> BoxXYWH:
        vx, vy, vw, vh = (float(v) for v in self.state_post[MEASURE_DIM:])
        return vx, vy, vw, vh

    def predict(self) -> BoxXYWH:
        """
        Advance one time step and return the predicted ``(x, y, w, h)``.
        """
        np.dot(_F, self.state_post, out=self.state_pre)
        self.error_cov_pre[:] = _F @ self.error_cov_post @ _F.T + _Q
        self.state_post[:] = self.state_pre
        self.error_cov_post[:] = self.error_cov_pre
        x, y, w, h = (float(v) for v in self.state_pre[:MEASURE_DIM])
        return x, y, w, h

    def correct(self, measurement: BoxXYWH) -> BoxXYWH:
        """
        Fold a measured box into the state and return the corrected box.
        """
        z = np.asarray(measurement, dtype=np.float64)
        innovation_cov = _H @ self.error_cov_pre @ _H.T + _R
        gain = self.error_cov_pre @ _H.T @ np.linalg.inv(innovation_cov)
        self.state_post[:] = self.state_pre + gain @ (z - _H @ self.state_pre)
        self.error_cov_post[:] = self.error_cov_pre - gain @ _H @ self.error_cov_pre
        return self.box
