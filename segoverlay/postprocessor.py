"""
Postprocessing for the segmentation pipeline.

Responsibility:
    Turn the two raw network outputs of one frame into a list of
    Segmentation records:

        anchor decoding → suppression → per detection:
            mask decoding → region mapping → contour extraction

    Validates the input tensors once at the boundary; the stages below
    assume finite, well-shaped data.

Non-goals:
    - No drawing, saving, or display logic.
    - No model loading or inference.
    - No state between frames: every call starts from scratch.

Degraded modes (not errors):
    - No prototype tensor, or masks disabled: boxes only, empty polygons.
    - Degenerate crop geometry: that detection gets empty polygons.
"""

import logging
from typing import List, Optional

import numpy as np

from segoverlay.anchor_decoder import decode_anchors, squeeze_detections
from segoverlay.config import DetectionConfig, MaskConfig
from segoverlay.contour_extractor import extract_polygons
from segoverlay.detection import Detection, Segmentation
from segoverlay.geometry import CoordinateSpaces
from segoverlay.mask_decoder import decode_mask, squeeze_prototypes
from segoverlay.region_mapper import map_region
from segoverlay.suppressor import suppress

logger = logging.getLogger(__name__)


def postprocess(
    detection_output: np.ndarray,
    prototypes: Optional[np.ndarray],
    spaces: CoordinateSpaces,
    detection_config: DetectionConfig,
    mask_config: Optional[MaskConfig] = None,
) -> List[Segmentation]:
    """Decode, suppress, and segment one frame's raw outputs.

    Args:
        detection_output: Raw detection tensor, (C, N) or (1, C, N).
        prototypes: Raw prototype tensor, (C, H, W) or (1, C, H, W), or
                    None when the model produced no prototype bank.
        spaces: Frame coordinate spaces. Its proto_size must match the
                prototype tensor when one is given.
        detection_config: Thresholds, result cap, and channel counts.
        mask_config: Mask parameters. Defaults to MaskConfig().

    Returns:
        Segmentations ordered by descending score. Empty if nothing
        survives thresholding and suppression.

    Raises:
        ValueError: If a tensor is malformed or holds NaN/Inf values.
    """
    if mask_config is None:
        mask_config = MaskConfig()

    _validate_outputs(detection_output, prototypes, spaces, detection_config)

    candidates = decode_anchors(
        detection_output,
        num_classes=detection_config.num_classes,
        mask_channels=detection_config.mask_channels,
        spaces=spaces,
        score_threshold=detection_config.score_threshold,
    )
    if not candidates:
        return []

    kept = suppress(
        candidates,
        iou_threshold=detection_config.iou_threshold,
        max_detections=detection_config.max_detections,
    )
    logger.debug("Suppression kept %d of %d candidates", len(kept), len(candidates))

    with_masks = prototypes is not None and mask_config.enabled
    if prototypes is None:
        logger.debug("No prototype tensor for this frame; skipping masks.")

    dx, dy = spaces.display_scale
    results: List[Segmentation] = []
    for det in kept:
        box = det.box.scaled(dx, dy)
        polygons = ()
        if with_masks:
            polygons = tuple(_segment(det, box, prototypes, spaces, mask_config))
        results.append(Segmentation(
            box=box,
            score=det.score,
            class_id=det.class_id,
            polygons=polygons,
        ))

    return results


def _segment(detection: Detection, box, prototypes, spaces, mask_config) -> List[np.ndarray]:
    """Run the mask stages for one detection (box in display space)."""
    soft_mask = decode_mask(detection.mask_coeffs, prototypes)
    fragment = map_region(
        soft_mask,
        box,
        spaces,
        padding_cells=mask_config.padding,
        threshold=mask_config.binarize_threshold,
    )
    if fragment is None:
        return []
    return extract_polygons(fragment)


def _validate_outputs(
    detection_output: np.ndarray,
    prototypes: Optional[np.ndarray],
    spaces: CoordinateSpaces,
    config: DetectionConfig,
) -> None:
    """Reject malformed or non-finite tensors before any decoding."""
    raw = squeeze_detections(detection_output, config.num_classes, config.mask_channels)
    if not np.all(np.isfinite(raw)):
        raise ValueError("Detection tensor contains NaN or Inf values.")

    if prototypes is None:
        return

    protos = squeeze_prototypes(prototypes)
    channels, height, width = protos.shape
    if channels != config.mask_channels:
        raise ValueError(
            f"Prototype tensor has {channels} channels, "
            f"expected {config.mask_channels}."
        )
    if (width, height) != spaces.proto_size:
        raise ValueError(
            f"Prototype grid is {width}x{height} but the frame spaces "
            f"declare {spaces.proto_size[0]}x{spaces.proto_size[1]}."
        )
    if not np.all(np.isfinite(protos)):
        raise ValueError("Prototype tensor contains NaN or Inf values.")
