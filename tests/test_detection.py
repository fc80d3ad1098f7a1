"""Tests for detection tensor decoding and NMS."""

from __future__ import annotations

import numpy as np
import pytest

from monodistance.config import Config
from monodistance.detection import DetectionDecoder, create_decoder, non_max_suppression
from monodistance.exceptions import ConfigError, InvalidTensorError
from monodistance.tracking import iou
from tests.helpers import det, make_tensor

NUM_CHANNELS = 6  # 4 box channels + 2 classes
NUM_BOXES = 5
SIZE = 100


@pytest.fixture
def decoder() -> DetectionDecoder:
    return DetectionDecoder(num_channels=NUM_CHANNELS, num_boxes=NUM_BOXES, conf_threshold=0.5, nms_iou_threshold=0.4)


def test_rejects_wrong_length(decoder):
    with pytest.raises(InvalidTensorError) as exc_info:
        decoder.decode(np.zeros(NUM_CHANNELS * NUM_BOXES - 1), SIZE)
    assert exc_info.value.expected == NUM_CHANNELS * NUM_BOXES
    assert exc_info.value.actual == NUM_CHANNELS * NUM_BOXES - 1


def test_invalid_tensor_is_value_error(decoder):
    with pytest.raises(ValueError):
        decoder.decode([0.0] * 7, SIZE)
    with pytest.raises(InvalidTensorError):
        decoder.decode(None, SIZE)


def test_decodes_box_geometry(decoder):
    tensor = make_tensor([(0.5, 0.5, 0.2, 0.4, 0.9, 0.1)], NUM_CHANNELS, NUM_BOXES)

    detections = decoder.decode(tensor, SIZE)

    assert len(detections) == 1
    d = detections[0]
    assert d.x == pytest.approx(40.0)
    assert d.y == pytest.approx(30.0)
    assert d.width == pytest.approx(20.0)
    assert d.height == pytest.approx(40.0)
    assert d.score == pytest.approx(0.9)
    assert d.class_id == 0


def test_picks_best_class(decoder):
    tensor = make_tensor([(0.5, 0.5, 0.2, 0.2, 0.2, 0.8)], NUM_CHANNELS, NUM_BOXES)

    (d,) = decoder.decode(tensor, SIZE)

    assert d.class_id == 1
    assert d.score == pytest.approx(0.8)


def test_drops_candidates_below_confidence(decoder):
    tensor = make_tensor(
        [
            (0.2, 0.2, 0.1, 0.1, 0.3, 0.1),
            (0.8, 0.8, 0.1, 0.1, 0.49, 0.0),
            (0.5, 0.5, 0.1, 0.1, 0.5, 0.0),
        ],
        NUM_CHANNELS,
        NUM_BOXES,
    )

    detections = decoder.decode(tensor, SIZE)

    # Only the candidate exactly at the threshold survives; empty slots score 0.
    assert len(detections) == 1
    assert detections[0].score == pytest.approx(0.5)
    assert all(d.score >= decoder.conf_threshold for d in detections)


def test_nms_is_class_agnostic(decoder):
    tensor = make_tensor(
        [
            (0.50, 0.5, 0.2, 0.2, 0.9, 0.0),
            (0.51, 0.5, 0.2, 0.2, 0.0, 0.8),
        ],
        NUM_CHANNELS,
        NUM_BOXES,
    )

    detections = decoder.decode(tensor, SIZE)

    assert len(detections) == 1
    assert detections[0].class_id == 0


def test_keeps_disjoint_boxes_sorted_by_score(decoder):
    tensor = make_tensor(
        [
            (0.2, 0.2, 0.1, 0.1, 0.6, 0.0),
            (0.8, 0.8, 0.1, 0.1, 0.0, 0.95),
        ],
        NUM_CHANNELS,
        NUM_BOXES,
    )

    detections = decoder.decode(tensor, SIZE)

    assert [d.class_id for d in detections] == [1, 0]
    assert detections[0].score > detections[1].score


def test_accepts_two_dimensional_tensor(decoder):
    tensor = make_tensor([(0.5, 0.5, 0.2, 0.2, 0.9, 0.0)], NUM_CHANNELS, NUM_BOXES)

    detections = decoder.decode(tensor.reshape(NUM_CHANNELS, NUM_BOXES), SIZE)

    assert len(detections) == 1


def test_empty_frame_decodes_to_nothing(decoder):
    assert decoder.decode(np.zeros(NUM_CHANNELS * NUM_BOXES), SIZE) == []


def test_nms_suppresses_only_above_threshold():
    a = det(0, 0, 10, 10, score=0.9)
    b = det(5, 0, 10, 10, score=0.8)  # IoU with a = 50 / 150 = 1/3

    assert non_max_suppression([a, b], 0.5) == [a, b]
    assert non_max_suppression([a, b], 0.3) == [a]
    assert iou(a, b) == pytest.approx(1.0 / 3.0)


def test_nms_is_idempotent():
    boxes = [
        det(0, 0, 10, 10, score=0.5),
        det(2, 2, 10, 10, score=0.9),
        det(30, 30, 10, 10, score=0.7),
        det(31, 29, 10, 10, score=0.6),
        det(60, 0, 5, 5, score=0.55, class_id=3),
    ]

    once = non_max_suppression(boxes, 0.4)
    twice = non_max_suppression(once, 0.4)

    assert twice == once
    assert [d.score for d in once] == sorted((d.score for d in once), reverse=True)


def test_nms_is_deterministic_for_ties():
    a = det(0, 0, 10, 10, score=0.8)
    b = det(1, 0, 10, 10, score=0.8)

    assert non_max_suppression([a, b], 0.4) == [a]
    assert non_max_suppression([b, a], 0.4) == [b]


def test_requires_at_least_one_class():
    with pytest.raises(ConfigError):
        DetectionDecoder(num_channels=4, num_boxes=10)


def test_create_decoder_from_config():
    config = Config()
    decoder = create_decoder(config)

    assert decoder.num_classes == 8
    assert decoder.expected_length == 12 * 5376
    assert decoder.conf_threshold == config.decoder.conf_threshold


def test_nms_uses_sub_pixel_boxes():
    a = det(0, 0, 10, 10, score=0.9)
    b = det(4.6, 0, 10, 10, score=0.8)  # IoU 54 / 146 ~ 0.37; rounding b to x=5 would give 1/3

    assert iou(a, b) == pytest.approx(54.0 / 146.0)
    assert non_max_suppression([a, b], 0.35) == [a]
    assert non_max_suppression([b, a], 0.38) == [a, b]


def test_nms_keeps_zero_score_candidates():
    zero = det(0, 0, 10, 10, score=0.0)
    far = det(50, 50, 10, 10, score=0.0)

    assert non_max_suppression([zero, far], 0.4) == [zero, far]
    assert non_max_suppression([], 0.4) == []
