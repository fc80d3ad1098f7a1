"""Tests for the per-frame decoder -> tracker -> estimator pipeline."""

from __future__ import annotations

import math

import numpy as np
import pytest

from monodistance.config import Config, DecoderConfig, TrackerConfig
from monodistance.data_structures import PitchOnly
from monodistance.exceptions import InvalidTensorError
from monodistance.pipeline import FramePipeline
from monodistance.tracking import ByteTracker
from tests.helpers import make_tensor

NUM_CHANNELS = 6
NUM_BOXES = 4


def small_config(tracker_type: str = "bytetrack") -> Config:
    return Config(
        model_input_size=512,
        decoder=DecoderConfig(num_channels=NUM_CHANNELS, num_boxes=NUM_BOXES, conf_threshold=0.5, nms_iou_threshold=0.4),
        tracker=TrackerConfig(tracker_type=tracker_type),
    )


def frame(cx: float = 0.5) -> np.ndarray:
    return make_tensor([(cx, 0.7, 0.1, 0.2, 0.9, 0.0)], NUM_CHANNELS, NUM_BOXES)


def test_tracked_objects_get_distances(calibration, identity_letterbox):
    pipeline = FramePipeline.from_config(small_config(), calibration=calibration, pose=PitchOnly(height=1.5, pitch_deg=10.0))
    assert isinstance(pipeline.tracker, ByteTracker)

    for i in range(5):
        (obj,) = pipeline.process(frame(0.5 + 0.002 * i), identity_letterbox)
        assert obj.track_id == 1
        assert obj.has_distance
        assert obj.distance_m > 0.0

    assert pipeline.frame_index == 5


def test_untracked_pipeline_reports_plain_detections(calibration, identity_letterbox):
    pipeline = FramePipeline.from_config(small_config("none"), calibration=calibration)
    assert pipeline.tracker is None

    (obj,) = pipeline.process(frame(), identity_letterbox)

    assert obj.track_id is None
    assert math.isfinite(obj.distance_m)


def test_distance_is_nan_before_letterbox_arrives(calibration):
    pipeline = FramePipeline.from_config(small_config(), calibration=calibration)

    (obj,) = pipeline.process(frame())

    assert not obj.has_distance


def test_invalid_tensor_propagates(calibration, identity_letterbox):
    pipeline = FramePipeline.from_config(small_config(), calibration=calibration)

    with pytest.raises(InvalidTensorError):
        pipeline.process(np.zeros(5), identity_letterbox)
    assert pipeline.frame_index == 0


def test_letterbox_is_published_to_estimator(calibration, letterbox):
    pipeline = FramePipeline.from_config(small_config(), calibration=calibration)

    pipeline.process(frame(), letterbox)

    assert pipeline.estimator.snapshot.letterbox is letterbox
