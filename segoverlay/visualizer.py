"""
Visualization for the segmentation pipeline.

Responsibility:
    Composite segmentation results onto a frame: translucent polygon
    fills for every instance first, then box outlines and labels on top.
    This is a pure rendering module — it produces an annotated copy
    of the frame and performs no I/O.

Non-goals:
    - No file writing, window management beyond show_frame, or display logic.
    - No decoding or model logic.
"""

from typing import List, Sequence, Tuple

import cv2
import numpy as np

from segoverlay.config import VisualizationConfig
from segoverlay.detection import Segmentation
from segoverlay.labels import LabelTable

Color = Tuple[int, int, int]  # BGR

# Hard-coded rendering constants (cosmetic internals, not user-facing)
_FONT = cv2.FONT_HERSHEY_SIMPLEX
_FONT_THICKNESS = 1
_LABEL_PADDING = 4
_TEXT_COLOR: Color = (255, 255, 255)
_PALETTE_HEX = ("FF3838", "FF9D97", "FF701F", "FFB21D", "CFD231", "48F90A")


def _hex_to_bgr(value: str) -> Color:
    r, g, b = (int(value[i:i + 2], 16) for i in (0, 2, 4))
    return (b, g, r)


_PALETTE: Tuple[Color, ...] = tuple(_hex_to_bgr(h) for h in _PALETTE_HEX)


def palette_color(class_id: int) -> Color:
    """Return the BGR palette color for a class id (cycles every 6 classes)."""
    return _PALETTE[int(class_id) % len(_PALETTE)]


def format_label(name: str, score: float) -> str:
    """Label text: class name and score as a percentage, e.g. 'boat 87.5%'."""
    return f"{name} {score * 100:.1f}%"


def draw_segmentations(
    frame: np.ndarray,
    segmentations: Sequence[Segmentation],
    labels: LabelTable,
    config: VisualizationConfig,
) -> np.ndarray:
    """Draw polygons, boxes, and labels onto a frame.

    Args:
        frame: Input BGR image (not modified — a copy is returned).
        segmentations: Results in display coordinates of this frame.
        labels: Class name lookup.
        config: Visualization parameters (alpha, thickness, labels).

    Returns:
        A new BGR numpy array with the overlay drawn. The original
        frame is not modified.
    """
    annotated = frame.copy()

    # Layer 1: polygons of every instance
    with_polygons = [s for s in segmentations if s.polygons]
    if with_polygons:
        overlay = annotated.copy()
        for seg in with_polygons:
            cv2.fillPoly(overlay, list(seg.polygons), palette_color(seg.class_id))
        annotated = cv2.addWeighted(
            overlay, config.fill_alpha, annotated, 1.0 - config.fill_alpha, 0.0
        )
        for seg in with_polygons:
            cv2.polylines(
                annotated,
                list(seg.polygons),
                isClosed=True,
                color=palette_color(seg.class_id),
                thickness=config.thickness,
            )

    # Layer 2: boxes and labels
    for seg in segmentations:
        color = palette_color(seg.class_id)
        x1, y1 = int(round(seg.box.x)), int(round(seg.box.y))
        x2, y2 = int(round(seg.box.x2)), int(round(seg.box.y2))

        cv2.rectangle(annotated, (x1, y1), (x2, y2), color=color, thickness=config.thickness)

        if config.show_labels:
            _draw_label(
                annotated,
                format_label(labels.name(seg.class_id), seg.score),
                (x1, y1, y2),
                color,
                config.font_scale,
            )

    return annotated


def _draw_label(
    image: np.ndarray,
    text: str,
    anchor: Tuple[int, int, int],
    color: Color,
    font_scale: float,
) -> None:
    """Draw a filled label background sized to the text, then the text."""
    x1, y1, y2 = anchor
    (text_w, text_h), _ = cv2.getTextSize(text, _FONT, font_scale, _FONT_THICKNESS)

    # Above the box, or below if too close to the top
    label_y = y1 - _LABEL_PADDING
    if label_y - text_h - _LABEL_PADDING < 0:
        label_y = y2 + text_h + _LABEL_PADDING

    cv2.rectangle(
        image,
        (x1, label_y - text_h - _LABEL_PADDING),
        (x1 + text_w + _LABEL_PADDING, label_y + _LABEL_PADDING),
        color=color,
        thickness=cv2.FILLED,
    )
    cv2.putText(
        image,
        text,
        (x1 + _LABEL_PADDING // 2, label_y),
        _FONT,
        font_scale,
        _TEXT_COLOR,
        _FONT_THICKNESS,
        cv2.LINE_AA,
    )


def show_frame(
    frame: np.ndarray,
    segmentations: List[Segmentation],
    labels: LabelTable,
    config: VisualizationConfig,
) -> int:
    """Show annotated frame in a window and return key press.

    Returns:
        The key code (int) pressed during waitKey, or -1 if no key.
    """
    annotated = draw_segmentations(frame, segmentations, labels, config)
    cv2.imshow("Segmentation Overlay", annotated)
    return cv2.waitKey(1) & 0xFF
