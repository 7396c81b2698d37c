"""
Greedy non-maximum suppression.

Suppression is class-agnostic: two overlapping boxes of different
classes still compete, and only the higher-scoring one survives.
"""

from typing import List, Optional, Sequence

from segoverlay.detection import Box, Detection


def iou(a: Box, b: Box) -> float:
    """Intersection-over-union of two axis-aligned boxes.

    Returns 0.0 when both boxes have zero area.
    """
    inter_w = max(0.0, min(a.x2, b.x2) - max(a.x, b.x))
    inter_h = max(0.0, min(a.y2, b.y2) - max(a.y, b.y))
    inter = inter_w * inter_h
    union = a.area + b.area - inter
    if union <= 0.0:
        return 0.0
    return inter / union


def suppress(
    candidates: Sequence[Detection],
    iou_threshold: float,
    max_detections: Optional[int] = None,
) -> List[Detection]:
    """Keep the best-scoring boxes, removing overlaps above the threshold.

    Args:
        candidates: Detections in anchor scan order.
        iou_threshold: A remaining box is dropped when its IoU with a kept
                       box strictly exceeds this value.
        max_detections: Stop once this many boxes are kept. None means no cap.

    Returns:
        Kept detections, highest score first. Equal scores keep their
        original order.
    """
    # sorted() is stable, so equal scores stay in anchor order
    remaining = sorted(candidates, key=lambda d: d.score, reverse=True)
    kept: List[Detection] = []

    while remaining:
        if max_detections is not None and len(kept) >= max_detections:
            break
        best = remaining.pop(0)
        kept.append(best)
        remaining = [d for d in remaining if iou(best.box, d.box) <= iou_threshold]

    return kept
