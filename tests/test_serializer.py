"""
Tests for the serialization module.
"""

import csv
import json

import numpy as np

from segoverlay.detection import Box, Segmentation
from segoverlay.labels import LabelTable
from segoverlay.serializer import save_csv, save_json


def _results():
    ring = np.array([[10, 10], [10, 20], [20, 20]], dtype=np.int32)
    return {
        0: [Segmentation(box=Box(10.0, 10.0, 12.5, 15.0), score=0.87654, class_id=1,
                         polygons=(ring,))],
        3: [Segmentation(box=Box(0.0, 0.0, 5.0, 5.0), score=0.5, class_id=7)],
    }


def test_save_json(tmp_path):
    path = tmp_path / "out" / "segmentations.json"

    save_json(_results(), str(path), LabelTable(["boat", "buoy"]))

    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["total_frames"] == 2
    assert payload["total_segmentations"] == 2
    first = payload["frames"][0]["segmentations"][0]
    assert first["label"] == "buoy"
    assert first["score"] == 0.8765
    assert first["polygons"] == [[[10, 10], [10, 20], [20, 20]]]
    assert payload["frames"][1]["segmentations"][0]["label"] == "class_7"


def test_save_csv(tmp_path):
    path = tmp_path / "segmentations.csv"

    save_csv(_results(), str(path), LabelTable(["boat", "buoy"]))

    with open(path, newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))

    assert len(rows) == 2
    assert rows[0]["frame_id"] == "0"
    assert rows[0]["label"] == "buoy"
    assert rows[0]["polygon_count"] == "1"
    assert rows[1]["polygon_count"] == "0"
