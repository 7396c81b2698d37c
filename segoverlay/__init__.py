"""
segoverlay — Instance segmentation overlays from YOLO-style ONNX models.

Public API:
    - Segmenter: The single entry point for segmentation.
    - Segmentation: Data transfer object for one segmented instance.
    - Box: Axis-aligned box used by Segmentation.
    - CoordinateSpaces: Per-frame model / prototype / image / display sizes.
    - postprocess: Raw network outputs → Segmentation list, for callers
      running inference themselves.

All other modules in this package are internal implementation details
and should not be imported directly by consumers.

Usage:
    from segoverlay import Segmenter

    segmenter = Segmenter()
    results = segmenter.segment(frame)
"""

from segoverlay.detection import Box, Segmentation
from segoverlay.geometry import CoordinateSpaces
from segoverlay.postprocessor import postprocess
from segoverlay.segmenter import Segmenter

__all__ = ["Segmenter", "Segmentation", "Box", "CoordinateSpaces", "postprocess"]
