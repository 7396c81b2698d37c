"""
Region mapping from the prototype grid onto the display surface.

Responsibility:
    Crop a detection's soft mask to the (padded) box footprint on the
    prototype grid, resize the crop to the matching display-space
    footprint, and binarise it into a MaskFragment.

Non-goals:
    - No contour tracing (see contour_extractor).
    - No drawing.

Degenerate geometry (zero-area boxes, boxes outside the grid, or a
footprint that rounds to nothing) yields None rather than an error; the
caller still reports the box.
"""

import logging
import math
from typing import Optional

import cv2
import numpy as np

from segoverlay.detection import Box, MaskFragment
from segoverlay.geometry import CoordinateSpaces

logger = logging.getLogger(__name__)


def map_region(
    soft_mask: np.ndarray,
    box: Box,
    spaces: CoordinateSpaces,
    padding_cells: int = 1,
    threshold: float = 0.5,
) -> Optional[MaskFragment]:
    """Crop, rescale, and binarise one soft mask.

    Args:
        soft_mask: (protoH, protoW) float array from decode_mask().
        box: Detection box in display coordinates.
        spaces: Frame coordinate spaces (display → prototype scaling).
        padding_cells: Margin added on every side of the box, measured in
            prototype-grid cells. One cell spans several display pixels
            (display_size / proto_size per axis).
        threshold: Resized values strictly above this become foreground.

    Returns:
        The binarised fragment with its display-space origin, or None
        when the crop or its display footprint is empty.

    Raises:
        ValueError: If soft_mask does not match the prototype grid size.
    """
    grid_w, grid_h = spaces.proto_size
    if soft_mask.shape != (grid_h, grid_w):
        raise ValueError(
            f"Soft mask shape {soft_mask.shape} does not match the prototype "
            f"grid ({grid_h}, {grid_w})."
        )

    if box.width <= 0 or box.height <= 0:
        logger.debug("Skipping mask for zero-area box %s", box)
        return None

    sx, sy = spaces.proto_scale

    # Crop rectangle on the prototype grid
    x0 = min(max(0, math.floor(box.x * sx) - padding_cells), grid_w)
    y0 = min(max(0, math.floor(box.y * sy) - padding_cells), grid_h)
    x1 = min(max(0, math.ceil(box.x2 * sx) + padding_cells), grid_w)
    y1 = min(max(0, math.ceil(box.y2 * sy) + padding_cells), grid_h)

    if x1 - x0 <= 0 or y1 - y0 <= 0:
        logger.debug("Skipping mask: empty crop for box %s", box)
        return None

    # Same rectangle on the display surface
    display_w, display_h = spaces.display_size
    left = max(0, round(x0 / sx))
    top = max(0, round(y0 / sy))
    right = min(display_w, round(x1 / sx))
    bottom = min(display_h, round(y1 / sy))
    target_w = right - left
    target_h = bottom - top

    if target_w <= 0 or target_h <= 0:
        logger.debug("Skipping mask: empty display footprint for box %s", box)
        return None

    crop = np.ascontiguousarray(soft_mask[y0:y1, x0:x1], dtype=np.float32)
    resized = cv2.resize(crop, (target_w, target_h), interpolation=cv2.INTER_LINEAR)
    binary = np.where(resized > threshold, 255, 0).astype(np.uint8)

    return MaskFragment(mask=binary, origin=(left, top))
