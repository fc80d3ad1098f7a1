"""
Per-frame wiring of decoder, tracker and distance estimator.

    tensor -> DetectionDecoder -> (tracker) -> DistanceEstimator -> results

The pipeline does not own threads. Callers must serialize :meth:`process`
calls (the tracker is stateful) and decide how to drop frames that arrive
while one is being processed.
"""

from __future__ import annotations

from typing import List, Optional

from .config import Config
from .data_structures import CalibrationParams, CameraPose, DistancedObject, LetterboxParams
from .detection import DetectionDecoder, TensorLike, create_decoder
from .distance import DistanceEstimator
from .log_config import get_logger
from .tracking import ObjectTracker, PassthroughTracker, create_tracker_from_config

logger = get_logger(__name__)


class FramePipeline:
    """
    Turns one raw detection tensor into distanced objects.

    Attributes:
        decoder: Tensor decoder.
        estimator: Distance estimator; its configuration may be updated
            from other threads at any time.
        tracker: Optional tracker; None reports untracked detections.
        model_input_size: Side of the square model input in pixels.
    """

    def __init__(
        self,
        decoder: DetectionDecoder,
        estimator: DistanceEstimator,
        tracker: Optional[ObjectTracker] = None,
        model_input_size: int = 512,
    ) -> None:
        self.decoder = decoder
        self.estimator = estimator
        self.tracker = tracker
        self.model_input_size = model_input_size
        self._frame_index = 0

    @classmethod
    def from_config(
        cls,
        config: Config,
        calibration: Optional[CalibrationParams] = None,
        pose: Optional[CameraPose] = None,
    ) -> "FramePipeline":
        """
        Build decoder, tracker and estimator from a :class:`~monodistance.config.Config`.
        """
        tracker: Optional[ObjectTracker] = create_tracker_from_config(config)
        if isinstance(tracker, PassthroughTracker):
            tracker = None
        return cls(
            decoder=create_decoder(config),
            estimator=DistanceEstimator(calibration=calibration, pose=pose),
            tracker=tracker,
            model_input_size=config.model_input_size,
        )

    @property
    def frame_index(self) -> int:
        """
        Number of frames processed so far.
        """
        return self._frame_index

    def process(self, tensor: TensorLike, letterbox: Optional[LetterboxParams] = None) -> List[DistancedObject]:
        """
        Process one frame.

        Args:
            tensor: Raw detector output for the frame.
            letterbox: Letterbox transform of the frame, published to the
                estimator before estimating. When omitted the last published
                one is used.

        Returns:
            One :class:`DistancedObject` per reported detection, in the order
            produced by the tracker (or decoder when tracking is disabled).

        Raises:
            InvalidTensorError: If the tensor does not match the decoder layout.
        """
        if letterbox is not None:
            self.estimator.set_letterbox(letterbox)

        detections = self.decoder.decode(tensor, self.model_input_size)
        reported = self.tracker.update(detections) if self.tracker is not None else detections
        results = [DistancedObject(detection=d, distance_m=self.estimator.estimate(d)) for d in reported]

        logger.debug(
            f"Frame {self._frame_index}: {len(detections)} detections, "
            f"{len(results)} reported, {sum(r.has_distance for r in results)} with distance"
        )
        self._frame_index += 1
        return results
