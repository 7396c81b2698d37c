"""Outer-boundary polygon extraction for binarised mask fragments."""

from typing import List

import cv2
import numpy as np

from segoverlay.detection import MaskFragment


def extract_polygons(fragment: MaskFragment) -> List[np.ndarray]:
    """Trace the external boundary of every foreground region.

    Holes are not reported. Straight runs are collapsed to their end
    points, so rings are simplified rather than pixel-exact.

    Args:
        fragment: Binary mask crop and its display-space origin.

    Returns:
        One (N, 2) int32 ring per connected region, in display
        coordinates. Empty if the fragment has no foreground.
    """
    if fragment.mask.size == 0 or not fragment.mask.any():
        return []

    contours, _ = cv2.findContours(
        np.ascontiguousarray(fragment.mask, dtype=np.uint8),
        cv2.RETR_EXTERNAL,
        cv2.CHAIN_APPROX_SIMPLE,
    )

    offset = np.array(fragment.origin, dtype=np.int32)
    return [contour.reshape(-1, 2).astype(np.int32) + offset for contour in contours]
