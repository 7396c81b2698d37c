"""
Tests for the visualization module.
"""

import numpy as np

from segoverlay.config import VisualizationConfig
from segoverlay.detection import Box, Segmentation
from segoverlay.labels import LabelTable
from segoverlay.visualizer import draw_segmentations, format_label, palette_color


def _square(x0, y0, x1, y1):
    return np.array([[x0, y0], [x0, y1], [x1, y1], [x1, y0]], dtype=np.int32)


def test_palette_is_indexed_modulo_its_size():
    assert palette_color(0) == (56, 56, 255)     # #FF3838 in BGR
    assert palette_color(5) == (10, 249, 72)     # #48F90A in BGR
    assert palette_color(6) == palette_color(0)
    assert palette_color(13) == palette_color(1)


def test_label_text_has_one_decimal_percentage():
    assert format_label("boat", 0.875) == "boat 87.5%"
    assert format_label("buoy", 0.25) == "buoy 25.0%"


def test_frame_is_not_modified():
    frame = np.zeros((200, 200, 3), dtype=np.uint8)
    seg = Segmentation(box=Box(20, 20, 100, 100), score=0.9, class_id=0,
                       polygons=(_square(40, 40, 80, 80),))

    annotated = draw_segmentations(frame, [seg], LabelTable(["boat"]), VisualizationConfig())

    assert not frame.any()
    assert annotated.any()


def test_polygon_fill_is_translucent():
    frame = np.zeros((200, 200, 3), dtype=np.uint8)
    seg = Segmentation(box=Box(20, 20, 100, 100), score=0.9, class_id=0,
                       polygons=(_square(40, 40, 80, 80),))

    annotated = draw_segmentations(
        frame, [seg], LabelTable(), VisualizationConfig(fill_alpha=0.4)
    )

    # Red channel of #FF3838 at 40% over black
    assert annotated[60, 60, 2] == 102
    # Outside the polygon and the box outline nothing is drawn
    assert not annotated[150, 150].any()


def test_box_outline_drawn_without_polygons():
    frame = np.zeros((200, 200, 3), dtype=np.uint8)
    seg = Segmentation(box=Box(100, 100, 50, 50), score=0.8, class_id=1)

    annotated = draw_segmentations(
        frame, [seg], LabelTable(), VisualizationConfig(show_labels=False)
    )

    assert tuple(annotated[100, 125]) == palette_color(1)
    assert not annotated[125, 125].any()


def test_empty_result_returns_plain_copy():
    frame = np.full((50, 50, 3), 7, dtype=np.uint8)

    annotated = draw_segmentations(frame, [], LabelTable(), VisualizationConfig())

    assert np.array_equal(annotated, frame)
    assert annotated is not frame
