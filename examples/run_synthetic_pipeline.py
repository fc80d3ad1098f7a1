"""
Demonstration of the data flow: tensor -> detections -> tracks -> distances.

Assumptions:
- A 640x480 camera letterboxed into a 512x512 model input.
- Intrinsics from an offline calibration, camera 1.5 m above the ground and
  tilted 10 degrees down.
- No detector is run: a synthetic tensor with one pedestrian walking to the
  right stands in for the model output.
"""

from __future__ import annotations

from pathlib import Path

import numpy as np

from monodistance.config import load_config
from monodistance.data_structures import CalibrationParams, PitchOnly
from monodistance.log_config import configure_logging
from monodistance.pipeline import FramePipeline
from monodistance.preprocessing import compute_letterbox


def synthetic_tensor(num_channels: int, num_boxes: int, cx: float, cy: float, w: float, h: float) -> np.ndarray:
    """
    Tensor with a single confident box of class 0, all other slots empty.
    """
    out = np.zeros((num_channels, num_boxes), dtype=np.float32)
    out[:4, 0] = (cx, cy, w, h)
    out[4, 0] = 0.9
    return out.reshape(-1)


def main() -> None:
    configure_logging("DEBUG")
    config = load_config(Path("config.yaml"))

    calibration = CalibrationParams(fx=500.0, fy=500.0, cx=320.0, cy=240.0)
    pipeline = FramePipeline.from_config(config, calibration=calibration, pose=PitchOnly(height=1.5, pitch_deg=10.0))
    letterbox = compute_letterbox(640, 480, config.model_input_size)

    for frame_idx in range(20):
        tensor = synthetic_tensor(
            config.decoder.num_channels,
            config.decoder.num_boxes,
            cx=0.3 + 0.005 * frame_idx,
            cy=0.6,
            w=0.08,
            h=0.2,
        )
        for obj in pipeline.process(tensor, letterbox):
            print(f"frame {frame_idx:2d} track {obj.track_id} distance {obj.distance_m:.2f} m")


if __name__ == "__main__":
    main()
