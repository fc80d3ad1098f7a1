"""
Letterbox preprocessing for square detector inputs.

The source frame is resized with a uniform ratio so that it fits the model
input, then centered on a gray canvas. The resulting
:class:`~monodistance.data_structures.LetterboxParams` are what the distance
estimator needs to map model-space boxes back to sensor pixels.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Optional, Protocol, Tuple

import cv2
import numpy as np

from .data_structures import LetterboxParams

Frame = np.ndarray[Any, np.dtype[np.uint8]]

PAD_VALUE = 114


class LetterboxObserver(Protocol):
    """
    Receives the letterbox parameters of every preprocessed frame.
    """

    def on_letterbox_computed(self, params: LetterboxParams) -> None:
        ...


def compute_letterbox(
    source_width: int,
    source_height: int,
    input_width: int,
    input_height: Optional[int] = None,
) -> LetterboxParams:
    """
    Compute the scale and padding fitting a source frame into the model input.

    Args:
        source_width: Width of the original frame in pixels.
        source_height: Height of the original frame in pixels.
        input_width: Model input width.
        input_height: Model input height, defaults to ``input_width``.

    Raises:
        ValueError: If any size is not positive.
    """
    if input_height is None:
        input_height = input_width
    if min(source_width, source_height, input_width, input_height) <= 0:
        raise ValueError("Letterbox sizes must be positive.")

    r = min(input_height / source_height, input_width / source_width)
    new_w = int(round(source_width * r))
    new_h = int(round(source_height * r))
    return LetterboxParams(
        scale=r,
        pad_x=(input_width - new_w) / 2.0,
        pad_y=(input_height - new_h) / 2.0,
        source_width=source_width,
        source_height=source_height,
    )


def letterbox_image(
    image: Frame,
    input_size: int,
    pad_value: int = PAD_VALUE,
    observer: Optional[LetterboxObserver] = None,
) -> Tuple[Frame, LetterboxParams]:
    """
    Letterbox ``image`` into an ``input_size`` square.

    Args:
        image: Source frame (H x W or H x W x C).
        input_size: Side of the square model input.
        pad_value: Gray level used for the padding.
        observer: Optional receiver notified with the computed parameters.

    Returns:
        The letterboxed image and its parameters. The reported padding is the
        integer offset the resized image was pasted at, so ``to_source`` maps
        the first image row and column to 0.
    """
    h0, w0 = image.shape[:2]
    params = compute_letterbox(w0, h0, input_size)
    new_w = int(round(w0 * params.scale))
    new_h = int(round(h0 * params.scale))

    resized = cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_LINEAR)
    # Odd leftovers go to the bottom/right.
    left = int(params.pad_x)
    top = int(params.pad_y)
    right = input_size - new_w - left
    bottom = input_size - new_h - top
    channels = 1 if image.ndim == 2 else image.shape[2]
    out = cv2.copyMakeBorder(
        resized,
        top,
        bottom,
        left,
        right,
        cv2.BORDER_CONSTANT,
        value=(pad_value,) * channels,
    )

    params = replace(params, pad_x=float(left), pad_y=float(top))
    if observer is not None:
        observer.on_letterbox_computed(params)
    return out, params
