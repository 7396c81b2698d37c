"""
Data transfer objects for the segmentation pipeline.

This module defines the frame-scoped value types passed between the
post-processing stages:

    Box           — axis-aligned rectangle (top-left origin, width/height).
    Detection     — a decoded, score-filtered candidate with mask coefficients.
    MaskFragment  — a binarised mask crop plus its display-space origin.
    Segmentation  — the final output record consumed by the compositor.

They are intentionally minimal: frozen containers with no behavior beyond
data access and geometric convenience properties.

Non-goals:
    - No rendering logic.
    - No file I/O.
    - No decoding or suppression logic (see anchor_decoder / suppressor).
"""

from dataclasses import dataclass
from typing import Tuple

import numpy as np


@dataclass(frozen=True, slots=True)
class Box:
    """Axis-aligned rectangle in floating point pixel units.

    Attributes:
        x: Top-left x coordinate.
        y: Top-left y coordinate.
        width: Box width (non-negative).
        height: Box height (non-negative).
    """

    x: float
    y: float
    width: float
    height: float

    @property
    def x2(self) -> float:
        """Right edge."""
        return self.x + self.width

    @property
    def y2(self) -> float:
        """Bottom edge."""
        return self.y + self.height

    @property
    def area(self) -> float:
        """Box area in square pixels."""
        return self.width * self.height

    def scaled(self, sx: float, sy: float) -> "Box":
        """Return a copy scaled independently along each axis."""
        return Box(
            x=self.x * sx,
            y=self.y * sy,
            width=self.width * sx,
            height=self.height * sy,
        )

    def to_xyxy(self) -> Tuple[float, float, float, float]:
        return (self.x, self.y, self.x2, self.y2)


@dataclass(frozen=True, eq=False)
class Detection:
    """A candidate that survived score thresholding.

    Attributes:
        box: Box geometry in source-image pixels.
        score: Best class score, strictly above the score threshold.
        class_id: Index into the label table.
        mask_coeffs: 1-D float32 array, one coefficient per prototype channel.
    """

    box: Box
    score: float
    class_id: int
    mask_coeffs: np.ndarray


@dataclass(frozen=True, eq=False)
class MaskFragment:
    """Binary mask crop positioned on the display surface.

    Attributes:
        mask: 2-D uint8 array, 255 for foreground and 0 for background.
        origin: (x, y) display-space position of mask[0, 0].
    """

    mask: np.ndarray
    origin: Tuple[int, int]

    @property
    def width(self) -> int:
        return int(self.mask.shape[1])

    @property
    def height(self) -> int:
        return int(self.mask.shape[0])


@dataclass(frozen=True, eq=False)
class Segmentation:
    """Final per-instance result, ready for drawing.

    Attributes:
        box: Box geometry in display-surface pixels.
        score: Confidence score in [0.0, 1.0].
        class_id: Index into the label table.
        polygons: Closed rings as (N, 2) int32 arrays in display
                  coordinates. Empty when no mask could be produced.
    """

    box: Box
    score: float
    class_id: int
    polygons: Tuple[np.ndarray, ...] = ()

    def to_dict(self) -> dict:
        """Return a plain dict suitable for JSON serialization."""
        return {
            "x": round(self.box.x, 2),
            "y": round(self.box.y, 2),
            "width": round(self.box.width, 2),
            "height": round(self.box.height, 2),
            "score": round(self.score, 4),
            "class_id": self.class_id,
            "polygons": [polygon.tolist() for polygon in self.polygons],
        }
