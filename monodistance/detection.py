"""
Decoding of raw YOLO-style detection tensors.

The detector is run elsewhere; this module only turns its output buffer into
:class:`~monodistance.data_structures.Detection` boxes. The buffer is
channel-major with shape ``(4 + num_classes, num_boxes)``:

- channels 0-3 hold normalized center-x, center-y, width and height;
- channels 4.. hold one score per class.

The main entrypoint is :class:`DetectionDecoder` (or :func:`create_decoder`
from a :class:`~monodistance.config.Config`).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Union

import cv2
import numpy as np

from .config import Config
from .data_structures import Detection
from .exceptions import ConfigError, InvalidTensorError
from .log_config import get_logger

logger = get_logger(__name__)

TensorLike = Union[Sequence[float], np.ndarray[Any, np.dtype[np.float64]]]


def non_max_suppression(detections: Sequence[Detection], iou_threshold: float) -> List[Detection]:
    """
    Class-agnostic non-max suppression through ``cv2.dnn.NMSBoxes``.

    Candidates are visited by descending score (ties keep input order). A
    candidate is dropped when its IoU with an already kept box is strictly
    greater than ``iou_threshold``, whatever the class ids are. Boxes are
    passed as float ``[x, y, w, h]`` so no rounding happens.

    Args:
        detections: Candidate boxes.
        iou_threshold: Suppression threshold.

    Returns:
        Kept boxes in descending score order. Running the function again on
        its own output returns the same list.
    """
    if not detections:
        return []
    boxes = [[d.x, d.y, d.width, d.height] for d in detections]
    scores = [d.score for d in detections]
    # NMSBoxes keeps scores strictly above its threshold; confidence filtering
    # already happened, so the threshold sits below every score.
    indices = cv2.dnn.NMSBoxes(boxes, scores, min(scores) - 1.0, iou_threshold)
    return [detections[int(i)] for i in np.asarray(indices, dtype=np.int64).reshape(-1)]


@dataclass
class DetectionDecoder:
    """
    Converts one detection tensor into filtered, de-duplicated boxes.

    Attributes:
        num_channels: First tensor dimension, ``4 + num_classes``.
        num_boxes: Second tensor dimension (candidate boxes).
        conf_threshold: Candidates whose best class score is below this are dropped.
        nms_iou_threshold: IoU threshold for non-max suppression.

    The decoder holds no per-frame state, so one instance may be shared
    between threads.
    """

    num_channels: int = 12
    num_boxes: int = 5376
    conf_threshold: float = 0.5
    nms_iou_threshold: float = 0.4

    def __post_init__(self) -> None:
        if self.num_channels < 5:
            raise ConfigError(
                f"num_channels must be at least 5 (4 box channels + classes), got {self.num_channels}."
            )
        if self.num_boxes <= 0:
            raise ConfigError(f"num_boxes must be positive, got {self.num_boxes}.")

    @property
    def num_classes(self) -> int:
        return self.num_channels - 4

    @property
    def expected_length(self) -> int:
        return self.num_channels * self.num_boxes

    def decode(self, tensor: Optional[TensorLike], model_input_size: int) -> List[Detection]:
        """
        Decode a flat channel-major tensor into detections.

        Args:
            tensor: Flat buffer of ``num_channels * num_boxes`` floats. A 2-D
                array of shape ``(num_channels, num_boxes)`` is accepted too.
            model_input_size: Side of the square model input in pixels.

        Returns:
            Boxes in model-space pixels that survived the confidence filter
            and NMS, in descending score order.

        Raises:
            InvalidTensorError: If the buffer is missing or its length does
                not match the configured layout.
        """
        if tensor is None:
            raise InvalidTensorError(
                f"Invalid output: expected float[{self.expected_length}], got None",
                expected=self.expected_length,
            )
        flat = np.asarray(tensor, dtype=np.float64).reshape(-1)
        if flat.size != self.expected_length:
            raise InvalidTensorError(
                f"Invalid output: expected float[{self.expected_length}], got float[{flat.size}]",
                expected=self.expected_length,
                actual=int(flat.size),
            )

        out = flat.reshape(self.num_channels, self.num_boxes)
        class_scores = out[4:]
        # argmax returns the first maximum, so ties resolve to the lowest class id.
        class_ids = np.argmax(class_scores, axis=0)
        best_scores = class_scores[class_ids, np.arange(self.num_boxes)]
        keep = np.nonzero(best_scores >= self.conf_threshold)[0]

        size = float(model_input_size)
        candidates: List[Detection] = []
        for i in keep:
            cx, cy, bw, bh = (float(v) for v in out[:4, i])
            candidates.append(
                Detection(
                    x=(cx - bw / 2.0) * size,
                    y=(cy - bh / 2.0) * size,
                    width=bw * size,
                    height=bh * size,
                    score=float(best_scores[i]),
                    class_id=int(class_ids[i]),
                )
            )

        detections = non_max_suppression(candidates, self.nms_iou_threshold)
        logger.debug(f"Decoded {len(candidates)} candidates, {len(detections)} after NMS")
        return detections


def create_decoder(config: Config) -> DetectionDecoder:
    """
    Factory for creating a decoder from a :class:`~monodistance.config.Config`.
    """
    return DetectionDecoder(
        num_channels=config.decoder.num_channels,
        num_boxes=config.decoder.num_boxes,
        conf_threshold=config.decoder.conf_threshold,
        nms_iou_threshold=config.decoder.nms_iou_threshold,
    )
