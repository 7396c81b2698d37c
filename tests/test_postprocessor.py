"""
Tests for the postprocessing pipeline.
"""

import numpy as np
import pytest

from segoverlay.config import DetectionConfig, MaskConfig
from segoverlay.geometry import CoordinateSpaces
from segoverlay.postprocessor import postprocess


def _spaces(display_size=None):
    return CoordinateSpaces.for_frame(
        model_size=(640, 640),
        proto_size=(160, 160),
        image_size=(640, 640),
        display_size=display_size,
    )


def _square_prototypes():
    """Channel 0 is strongly positive on grid cells [25, 38) x [25, 38)."""
    protos = np.zeros((1, 32, 160, 160), dtype=np.float32)
    protos[0, 0] = -10.0
    protos[0, 0, 25:38, 25:38] = 10.0
    return protos


def _unit_coeffs():
    coeffs = np.zeros(32, dtype=np.float32)
    coeffs[0] = 1.0
    return coeffs


def test_prototype_free_frame_yields_boxes_without_polygons(make_output):
    """One candidate at (100, 100, 50, 50), class 1, score 0.8, no prototypes."""
    tensor = make_output([(125, 125, 50, 50, [0.0, 0.8, 0.0], None)])

    results = postprocess(tensor, None, _spaces(), DetectionConfig())

    assert len(results) == 1
    seg = results[0]
    assert seg.class_id == 1
    assert seg.score == pytest.approx(0.8)
    assert (seg.box.x, seg.box.y, seg.box.width, seg.box.height) == pytest.approx(
        (100, 100, 50, 50)
    )
    assert seg.polygons == ()


def test_no_candidates_gives_empty_result(make_output, monkeypatch):
    import segoverlay.postprocessor as pp

    def _fail(*args, **kwargs):
        raise AssertionError("mask work must not run for an empty frame")

    monkeypatch.setattr(pp, "decode_mask", _fail)
    tensor = make_output([(125, 125, 50, 50, [0.1, 0.0, 0.0], None)])

    assert postprocess(tensor, _square_prototypes(), _spaces(), DetectionConfig()) == []


def test_mask_becomes_polygon_around_object(make_output):
    tensor = make_output([(125, 125, 50, 50, [0.9, 0.0, 0.0], _unit_coeffs())])

    results = postprocess(tensor, _square_prototypes(), _spaces(), DetectionConfig())

    assert len(results) == 1
    (ring,) = results[0].polygons
    # Foreground cells [25, 38) map to display [100, 152); allow for bilinear edges
    assert ring[:, 0].min() >= 96 and ring[:, 0].max() <= 156
    assert ring[:, 1].min() >= 96 and ring[:, 1].max() <= 156
    assert ring[:, 0].max() - ring[:, 0].min() > 40


def test_duplicates_suppressed_before_masks(make_output):
    tensor = make_output([
        (125, 125, 50, 50, [0.8, 0.0, 0.0], _unit_coeffs()),
        (125, 125, 50, 50, [0.0, 0.0, 0.9], _unit_coeffs()),
    ])

    results = postprocess(tensor, _square_prototypes(), _spaces(), DetectionConfig())

    assert [r.class_id for r in results] == [2]


def test_masks_disabled_skips_polygons(make_output):
    tensor = make_output([(125, 125, 50, 50, [0.9, 0.0, 0.0], _unit_coeffs())])

    results = postprocess(
        tensor, _square_prototypes(), _spaces(), DetectionConfig(), MaskConfig(enabled=False)
    )

    assert results[0].polygons == ()


def test_zero_area_box_keeps_box_without_mask(make_output):
    tensor = make_output([(125, 125, 0, 50, [0.9, 0.0, 0.0], _unit_coeffs())])

    results = postprocess(tensor, _square_prototypes(), _spaces(), DetectionConfig())

    assert len(results) == 1
    assert results[0].polygons == ()


def test_boxes_mapped_onto_display_surface(make_output):
    tensor = make_output([(125, 125, 50, 50, [0.9, 0.0, 0.0], None)])

    seg = postprocess(tensor, None, _spaces(display_size=(1280, 320)), DetectionConfig())[0]

    assert (seg.box.x, seg.box.y, seg.box.width, seg.box.height) == pytest.approx(
        (200, 50, 100, 25)
    )


def test_max_detections_applied(make_output):
    tensor = make_output([
        (50 + 100 * i, 50, 20, 20, [0.3 + 0.1 * i, 0.0, 0.0], None) for i in range(5)
    ])

    results = postprocess(tensor, None, _spaces(), DetectionConfig(max_detections=2))

    assert [r.score for r in results] == pytest.approx([0.7, 0.6])


def test_non_finite_detection_tensor_rejected(make_output):
    tensor = make_output([(125, 125, 50, 50, [0.9, 0.0, 0.0], None)])
    tensor[0, 0, 0] = np.nan

    with pytest.raises(ValueError, match="NaN"):
        postprocess(tensor, None, _spaces(), DetectionConfig())


def test_non_finite_prototypes_rejected(make_output):
    tensor = make_output([(125, 125, 50, 50, [0.9, 0.0, 0.0], None)])
    protos = _square_prototypes()
    protos[0, 3, 0, 0] = np.inf

    with pytest.raises(ValueError, match="NaN or Inf"):
        postprocess(tensor, protos, _spaces(), DetectionConfig())


def test_prototype_channel_mismatch_rejected(make_output):
    tensor = make_output([(125, 125, 50, 50, [0.9, 0.0, 0.0], None)])

    with pytest.raises(ValueError, match="channels"):
        postprocess(tensor, np.zeros((1, 16, 160, 160), dtype=np.float32),
                    _spaces(), DetectionConfig())


def test_prototype_grid_must_match_spaces(make_output):
    tensor = make_output([(125, 125, 50, 50, [0.9, 0.0, 0.0], None)])

    with pytest.raises(ValueError, match="Prototype grid"):
        postprocess(tensor, np.zeros((1, 32, 80, 80), dtype=np.float32),
                    _spaces(), DetectionConfig())


def test_malformed_detection_tensor_rejected():
    with pytest.raises(ValueError):
        postprocess(np.zeros((1, 10, 4), dtype=np.float32), None, _spaces(), DetectionConfig())
