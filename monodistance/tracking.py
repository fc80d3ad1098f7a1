"""
Object tracking utilities for associating detections across frames.

This module defines a minimal tracking interface and provides a ByteTrack
style tracker: high-confidence detections are matched first against the
Kalman-predicted boxes of live tracks, the remaining tracks then get a second
chance against low-confidence detections. Association is a greedy per-detection
IoU search, not a globally optimal assignment.

Track lifecycle: a track is born from an unmatched high-confidence detection,
coasts on prediction while unmatched, and is removed for good once it has been
unmatched for more than ``max_lost_frames`` consecutive frames. Ids come from a
per-tracker counter and are never reused.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Protocol, Sequence, Tuple

from .config import Config
from .data_structures import Detection, TrackedDetection
from .exceptions import ConfigError
from .kalman import ConstantVelocityKalman
from .log_config import get_logger
from .utils.geometry import iou_xywh

logger = get_logger(__name__)

TrackID = int

DEFAULT_MAX_LOST_FRAMES = 30
MIN_BOX_SIZE = 1.0


class ObjectTracker(Protocol):
    """
    Protocol for tracker implementations.

    Concrete implementations must provide an :meth:`update` method.
    """

    def update(self, detections: Sequence[Detection]) -> List[Detection]:
        """
        Update tracker state with detections from the current frame.

        Args:
            detections: Decoded detections for one frame (may be empty).

        Returns:
            Detections to report for this frame; trackers return
            :class:`TrackedDetection` instances.
        """
        ...


def iou(box_a: Detection, box_b: Detection) -> float:
    """
    Compute Intersection over Union (IoU) between two detections.
    """
    return iou_xywh(
        (box_a.x, box_a.y, box_a.width, box_a.height),
        (box_b.x, box_b.y, box_b.width, box_b.height),
    )


class Track:
    """
    Internal state of one tracked object.

    Attributes:
        track_id: Stable identifier.
        lost_frames: Consecutive frames without an association.
        current: Box reported for this frame, predicted or last associated.
    """

    __slots__ = ("track_id", "lost_frames", "current", "_kf")

    def __init__(self, track_id: TrackID, detection: Detection) -> None:
        self.track_id = track_id
        self.lost_frames = 0
        self.current = detection
        self._kf = ConstantVelocityKalman((detection.x, detection.y, detection.width, detection.height))

    def predict(self) -> None:
        """
        Advance the filter one frame; the prediction becomes the current box.
        """
        x, y, w, h = self._kf.predict()
        self.current = Detection(
            x=x,
            y=y,
            width=max(MIN_BOX_SIZE, w),
            height=max(MIN_BOX_SIZE, h),
            score=self.current.score,
            class_id=self.current.class_id,
        )

    def correct(self, detection: Detection) -> None:
        """
        Correct the filter with a matched detection and reset the lost counter.
        """
        self._kf.correct((detection.x, detection.y, detection.width, detection.height))
        self.current = detection
        self.lost_frames = 0

    def to_tracked(self) -> TrackedDetection:
        d = self.current
        return TrackedDetection(
            x=d.x,
            y=d.y,
            width=d.width,
            height=d.height,
            score=d.score,
            class_id=d.class_id,
            track_id=self.track_id,
        )


def greedy_assign(
    tracks: Sequence[Track],
    detections: Sequence[Detection],
    iou_threshold: float,
) -> Tuple[List[Tuple[int, int]], List[int], List[int]]:
    """
    Greedily match each detection to the unmatched track with the highest IoU.

    Detections are visited in order; a match needs an IoU strictly above
    ``iou_threshold``. On equal IoU the earlier track wins. Each track and
    each detection is used at most once.

    Returns:
        ``(matches, unmatched_tracks, unmatched_detections)`` where matches
        are ``(track_index, detection_index)`` pairs.
    """
    track_used = [False] * len(tracks)
    det_used = [False] * len(detections)
    matches: List[Tuple[int, int]] = []

    if tracks and detections:
        for di, det in enumerate(detections):
            best_iou = iou_threshold
            best_ti = -1
            for ti, track in enumerate(tracks):
                if track_used[ti]:
                    continue
                current_iou = iou(det, track.current)
                if current_iou > best_iou:
                    best_iou = current_iou
                    best_ti = ti
            if best_ti >= 0:
                track_used[best_ti] = True
                det_used[di] = True
                matches.append((best_ti, di))

    unmatched_tracks = [i for i, used in enumerate(track_used) if not used]
    unmatched_dets = [i for i, used in enumerate(det_used) if not used]
    return matches, unmatched_tracks, unmatched_dets


@dataclass
class ByteTracker:
    """
    Two-stage ByteTrack-style multi-object tracker.

    Attributes:
        high_threshold: Minimum score for first-stage association and track birth.
        low_threshold: Minimum score for second-stage association; lower scores are dropped.
        iou_threshold: Minimum IoU to accept a detection/track match.
        max_lost_frames: Frames a track is kept without an association.

    Not thread-safe: :meth:`update` must be called once per frame from a
    single pipeline thread.
    """

    high_threshold: float = 0.5
    low_threshold: float = 0.1
    iou_threshold: float = 0.3
    max_lost_frames: int = DEFAULT_MAX_LOST_FRAMES

    _next_id: TrackID = field(default=1, init=False)
    _tracks: List[Track] = field(default_factory=list, init=False)  # type: ignore[misc]

    @property
    def active_track_count(self) -> int:
        """
        Number of live tracks, including ones coasting on prediction.
        """
        return len(self._tracks)

    def reset(self) -> None:
        """
        Drop every track. The id counter keeps running so ids stay unique.
        """
        self._tracks.clear()

    def update(self, detections: Sequence[Detection]) -> List[Detection]:
        """
        Run one frame of association and return the tracks matched this frame.
        """
        # 1. Partition by confidence.
        high = [d for d in detections if d.score >= self.high_threshold]
        low = [d for d in detections if self.low_threshold <= d.score < self.high_threshold]

        # 2. Predict every live track forward.
        for track in self._tracks:
            track.predict()

        # 3-4. Stage 1: live tracks against high-confidence detections.
        matches, unmatched_ti, unmatched_high = greedy_assign(self._tracks, high, self.iou_threshold)
        for ti, di in matches:
            self._tracks[ti].correct(high[di])

        # 5-6. Stage 2: leftover tracks against low-confidence detections.
        leftover = [self._tracks[i] for i in unmatched_ti]
        matches_low, still_unmatched, _ = greedy_assign(leftover, low, self.iou_threshold)
        for ti, di in matches_low:
            leftover[ti].correct(low[di])

        # 7. Unmatched in both stages.
        for i in still_unmatched:
            leftover[i].lost_frames += 1

        # 8. Remove tracks lost for too long.
        removed = [t.track_id for t in self._tracks if t.lost_frames > self.max_lost_frames]
        if removed:
            self._tracks = [t for t in self._tracks if t.lost_frames <= self.max_lost_frames]
            logger.debug(f"Removed lost tracks {removed}")

        # 9. New tracks from unmatched high-confidence detections.
        for di in unmatched_high:
            track = Track(self._next_id, high[di])
            self._next_id += 1
            self._tracks.append(track)
            logger.debug(f"Started track {track.track_id}")

        # 10. Report only tracks associated this frame.
        return [t.to_tracked() for t in self._tracks if t.lost_frames == 0]


class PassthroughTracker:
    """
    Tracker used when tracking is disabled: returns detections unchanged.
    """

    def update(self, detections: Sequence[Detection]) -> List[Detection]:
        return list(detections)


def create_tracker(
    tracker_type: str = "bytetrack",
    high_threshold: float = 0.5,
    low_threshold: float = 0.1,
    iou_threshold: float = 0.3,
    max_lost_frames: int = DEFAULT_MAX_LOST_FRAMES,
) -> ObjectTracker:
    """
    Factory for creating a tracker instance.

    Args:
        tracker_type: Which backend to use: "bytetrack" or "none".
        high_threshold: First-stage score threshold.
        low_threshold: Second-stage score threshold.
        iou_threshold: Association IoU threshold.
        max_lost_frames: Maximum number of frames to keep tracks without detections.

    Raises:
        ConfigError: If ``tracker_type`` is unknown.
    """
    tracker_type = tracker_type.lower()
    if tracker_type == "bytetrack":
        return ByteTracker(
            high_threshold=high_threshold,
            low_threshold=low_threshold,
            iou_threshold=iou_threshold,
            max_lost_frames=max_lost_frames,
        )
    if tracker_type == "none":
        return PassthroughTracker()
    raise ConfigError(f"Unknown tracker type '{tracker_type}', expected 'bytetrack' or 'none'.")


def create_tracker_from_config(config: Config) -> ObjectTracker:
    t = config.tracker
    return create_tracker(
        tracker_type=t.tracker_type,
        high_threshold=t.high_threshold,
        low_threshold=t.low_threshold,
        iou_threshold=t.iou_threshold,
        max_lost_frames=t.max_lost_frames,
    )
