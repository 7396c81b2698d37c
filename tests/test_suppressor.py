"""
Tests for the suppression module.
"""

import numpy as np
import pytest

from segoverlay.detection import Box, Detection
from segoverlay.suppressor import iou, suppress


def _det(x, y, w, h, score, class_id=0):
    return Detection(
        box=Box(x, y, w, h),
        score=score,
        class_id=class_id,
        mask_coeffs=np.zeros(32, dtype=np.float32),
    )


@pytest.mark.parametrize("a, b", [
    (Box(0, 0, 10, 10), Box(5, 5, 10, 10)),
    (Box(0, 0, 10, 10), Box(0, 0, 10, 5)),
    (Box(0, 0, 4, 4), Box(100, 100, 4, 4)),
    (Box(2.5, 3.5, 7.25, 1.5), Box(0, 0, 6, 6)),
])
def test_iou_is_symmetric(a, b):
    assert iou(a, b) == iou(b, a)


def test_iou_values():
    assert iou(Box(0, 0, 10, 10), Box(0, 0, 10, 10)) == pytest.approx(1.0)
    assert iou(Box(0, 0, 10, 10), Box(20, 20, 10, 10)) == 0.0
    # 25 / (100 + 100 - 25)
    assert iou(Box(0, 0, 10, 10), Box(5, 5, 10, 10)) == pytest.approx(25 / 175)


def test_iou_of_zero_area_boxes_is_zero():
    assert iou(Box(5, 5, 0, 0), Box(5, 5, 0, 0)) == 0.0


def test_identical_boxes_keep_highest_score():
    low = _det(0, 0, 50, 50, 0.8)
    high = _det(0, 0, 50, 50, 0.9)

    kept = suppress([low, high], iou_threshold=0.45)

    assert kept == [high]


def test_suppression_is_class_agnostic():
    a = _det(0, 0, 50, 50, 0.9, class_id=0)
    b = _det(2, 2, 50, 50, 0.7, class_id=2)

    assert suppress([a, b], iou_threshold=0.45) == [a]


def test_overlap_equal_to_threshold_is_kept():
    a = _det(0, 0, 10, 10, 0.9)
    b = _det(0, 0, 10, 5, 0.8)  # IoU exactly 0.5

    assert suppress([a, b], iou_threshold=0.5) == [a, b]


def test_result_sorted_by_score_with_stable_ties():
    first = _det(0, 0, 10, 10, 0.5)
    second = _det(100, 0, 10, 10, 0.5)
    best = _det(200, 0, 10, 10, 0.9)

    assert suppress([first, second, best], iou_threshold=0.45) == [best, first, second]


def test_max_detections_truncates_survivors():
    dets = [_det(i * 100, 0, 10, 10, 0.5 + i * 0.1) for i in range(4)]

    kept = suppress(dets, iou_threshold=0.45, max_detections=2)

    assert [d.score for d in kept] == pytest.approx([0.8, 0.7])


def test_cap_counts_survivors_not_candidates():
    a = _det(0, 0, 10, 10, 0.9)
    a_dup = _det(0, 0, 10, 10, 0.85)
    b = _det(100, 0, 10, 10, 0.5)

    assert suppress([a, a_dup, b], iou_threshold=0.45, max_detections=2) == [a, b]


def test_empty_input():
    assert suppress([], iou_threshold=0.45) == []
