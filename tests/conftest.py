"""Shared fixtures for monodistance tests."""

from __future__ import annotations

import pytest

from monodistance.data_structures import CalibrationParams, LetterboxParams


@pytest.fixture
def calibration() -> CalibrationParams:
    return CalibrationParams(fx=600.0, fy=600.0, cx=256.0, cy=256.0)


@pytest.fixture
def letterbox() -> LetterboxParams:
    return LetterboxParams(scale=0.8, pad_x=0.0, pad_y=46.0, source_width=640, source_height=512)


@pytest.fixture
def identity_letterbox() -> LetterboxParams:
    return LetterboxParams(scale=1.0, pad_x=0.0, pad_y=0.0, source_width=512, source_height=512)
