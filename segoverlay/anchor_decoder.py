"""
Anchor decoding for the segmentation pipeline.

Responsibility:
    Parse the raw detection tensor of a YOLO-style segmentation head into
    score-filtered Detection candidates with source-image box geometry and
    mask coefficients.

Non-goals:
    - No suppression (see suppressor).
    - No mask reconstruction.

Hard-coded:
    - Tensor layout is channel-major: [4 + num_classes + mask_channels, N]
      (optionally with a leading batch dimension of 1). Rows 0-3 hold
      center-x, center-y, width, height in model-input pixels.
"""

import logging
from typing import List

import numpy as np

from segoverlay.detection import Box, Detection
from segoverlay.geometry import CoordinateSpaces

logger = logging.getLogger(__name__)

_BOX_CHANNELS = 4


def squeeze_detections(output: np.ndarray, num_classes: int, mask_channels: int) -> np.ndarray:
    """Return the [C, N] view of a detection tensor after checking its layout.

    Raises:
        ValueError: If the rank or channel count does not match the layout.
    """
    output = np.asarray(output)
    if output.ndim == 3 and output.shape[0] == 1:
        output = output[0]

    if output.ndim != 2:
        raise ValueError(
            f"Expected a detection tensor of shape (C, N) or (1, C, N), "
            f"got shape {output.shape}."
        )

    expected = _BOX_CHANNELS + num_classes + mask_channels
    if output.shape[0] != expected:
        raise ValueError(
            f"Detection tensor has {output.shape[0]} channels, expected "
            f"{expected} (4 box + {num_classes} classes + {mask_channels} mask)."
        )
    return output


def decode_anchors(
    output: np.ndarray,
    num_classes: int,
    mask_channels: int,
    spaces: CoordinateSpaces,
    score_threshold: float,
) -> List[Detection]:
    """Decode anchors whose best class score exceeds the threshold.

    Args:
        output: Raw detection tensor, shape (C, N) or (1, C, N).
        num_classes: Number of class-score channels.
        mask_channels: Number of mask-coefficient channels.
        spaces: Frame coordinate spaces (model → image scaling).
        score_threshold: Strict lower bound on the best class score.

    Returns:
        Detections in anchor scan order. Empty if nothing passes.

    Raises:
        ValueError: If the tensor layout does not match the channel counts.
    """
    raw = squeeze_detections(output, num_classes, mask_channels)
    if raw.shape[1] == 0:
        return []

    class_scores = raw[_BOX_CHANNELS:_BOX_CHANNELS + num_classes]

    # argmax returns the first maximum, so ties go to the lowest class index
    class_ids = np.argmax(class_scores, axis=0)
    best_scores = class_scores[class_ids, np.arange(raw.shape[1])]
    keep = np.flatnonzero(best_scores > score_threshold)

    sx, sy = spaces.image_scale
    coeffs = raw[_BOX_CHANNELS + num_classes:]

    detections: List[Detection] = []
    for i in keep:
        cx, cy, w, h = (float(v) for v in raw[:_BOX_CHANNELS, i])
        box = Box(x=cx - w / 2, y=cy - h / 2, width=w, height=h).scaled(sx, sy)
        detections.append(Detection(
            box=box,
            score=float(best_scores[i]),
            class_id=int(class_ids[i]),
            mask_coeffs=coeffs[:, i].astype(np.float32, copy=True),
        ))

    logger.debug(
        "Decoded %d of %d anchors above score %.2f",
        len(detections), raw.shape[1], score_threshold,
    )
    return detections
