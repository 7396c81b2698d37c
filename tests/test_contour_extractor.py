"""
Tests for the contour extraction module.
"""

import numpy as np

from segoverlay.contour_extractor import extract_polygons
from segoverlay.detection import MaskFragment


def _fragment(mask, origin=(0, 0)):
    return MaskFragment(mask=mask.astype(np.uint8), origin=origin)


def test_rectangle_yields_one_simplified_ring_in_display_space():
    mask = np.zeros((20, 20), dtype=np.uint8)
    mask[5:15, 5:15] = 255

    polygons = extract_polygons(_fragment(mask, origin=(100, 200)))

    assert len(polygons) == 1
    ring = polygons[0]
    assert ring.dtype == np.int32
    assert ring.shape == (4, 2)  # corners only
    assert ring[:, 0].min() == 105 and ring[:, 0].max() == 114
    assert ring[:, 1].min() == 205 and ring[:, 1].max() == 214


def test_disjoint_regions_yield_one_ring_each():
    mask = np.zeros((30, 30), dtype=np.uint8)
    mask[2:8, 2:8] = 255
    mask[20:28, 15:25] = 255

    assert len(extract_polygons(_fragment(mask))) == 2


def test_holes_are_not_reported():
    mask = np.zeros((30, 30), dtype=np.uint8)
    mask[5:25, 5:25] = 255
    mask[10:20, 10:20] = 0

    assert len(extract_polygons(_fragment(mask))) == 1


def test_empty_fragment_yields_no_polygons():
    assert extract_polygons(_fragment(np.zeros((10, 10)))) == []
