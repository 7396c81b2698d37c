"""
Serialization for the segmentation overlay pipeline.

Responsibility:
    Export segmentation results to structured file formats (JSON, CSV)
    for downstream consumption or offline analysis.

Non-goals:
    - No rendering, display, or segmentation logic.
    - No streaming output — writes complete files on finalize.
"""

import csv
import json
import logging
from pathlib import Path
from typing import Dict, List

from segoverlay.detection import Segmentation
from segoverlay.labels import LabelTable

logger = logging.getLogger(__name__)


def save_json(
    segmentations_by_frame: Dict[int, List[Segmentation]],
    output_path: str,
    labels: LabelTable,
) -> None:
    """Export all segmentations to a JSON file.

    Output schema:
        {
            "frames": [
                {
                    "frame_id": 0,
                    "segmentations": [
                        {"x": ..., "y": ..., "width": ..., "height": ...,
                         "score": ..., "class_id": ..., "label": ...,
                         "polygons": [[[x, y], ...], ...]}
                    ]
                }
            ],
            "total_frames": N,
            "total_segmentations": M
        }

    Args:
        segmentations_by_frame: Mapping of frame_id → list of Segmentation objects.
        output_path: Path to the output JSON file.
        labels: Class name lookup for the "label" field.

    Raises:
        OSError: If the output path is not writable.
    """
    _ensure_parent_dir(output_path)

    frames = []
    total = 0

    for frame_id in sorted(segmentations_by_frame.keys()):
        segs = segmentations_by_frame[frame_id]
        total += len(segs)
        frames.append({
            "frame_id": frame_id,
            "segmentations": [
                {**s.to_dict(), "label": labels.name(s.class_id)} for s in segs
            ],
        })

    payload = {
        "frames": frames,
        "total_frames": len(frames),
        "total_segmentations": total,
    }

    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)

    logger.info(
        "JSON output saved: %s (%d frames, %d segmentations)",
        output_path, len(frames), total,
    )


def save_csv(
    segmentations_by_frame: Dict[int, List[Segmentation]],
    output_path: str,
    labels: LabelTable,
) -> None:
    """Export all segmentations to a CSV file, one row per instance.

    Columns: frame_id, class_id, label, score, x, y, width, height,
    polygon_count. Polygon vertices are only written to JSON.

    Raises:
        OSError: If the output path is not writable.
    """
    _ensure_parent_dir(output_path)

    fieldnames = [
        "frame_id", "class_id", "label", "score",
        "x", "y", "width", "height", "polygon_count",
    ]

    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()

        total = 0
        for frame_id in sorted(segmentations_by_frame.keys()):
            for seg in segmentations_by_frame[frame_id]:
                row = seg.to_dict()
                writer.writerow({
                    "frame_id": frame_id,
                    "class_id": seg.class_id,
                    "label": labels.name(seg.class_id),
                    "score": row["score"],
                    "x": row["x"],
                    "y": row["y"],
                    "width": row["width"],
                    "height": row["height"],
                    "polygon_count": len(seg.polygons),
                })
                total += 1

    logger.info("CSV output saved: %s (%d rows)", output_path, total)


def _ensure_parent_dir(path: str) -> None:
    """Create parent directories if they don't exist."""
    parent = Path(path).parent
    parent.mkdir(parents=True, exist_ok=True)
