"""
Segmenter — the single public API for instance segmentation overlays.

This module is the ONLY intended programmatic entry point for consumers
of the library. All other modules are internal.

Public contract:
    Segmenter.segment(frame: np.ndarray) -> list[Segmentation]

Constraints:
    - Input must be a BGR numpy array (as returned by OpenCV).
    - The method is stateless per call and deterministic.
    - Thread-safety is not guaranteed (single-threaded design): frames
      are processed one at a time, each to completion.

Non-goals:
    - No file reading, camera access, or I/O of any kind.
    - No visualization or output writing.
    - No tracking or temporal state.
"""

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np

from segoverlay.config import AppConfig, load_config
from segoverlay.detection import Segmentation
from segoverlay.geometry import CoordinateSpaces
from segoverlay.model_loader import load_model
from segoverlay.postprocessor import postprocess
from segoverlay.preprocessor import preprocess

logger = logging.getLogger(__name__)

# Prototype grids are a quarter of the model input on YOLO segmentation heads
_PROTO_STRIDE = 4


class Segmenter:
    """Instance segmenter for ONNX YOLO-style segmentation models via OpenCV DNN.

    This is the single public API for the system. All internal modules
    (preprocessor, postprocessor, model_loader) are wired together here
    and should not be used directly.

    Usage:
        segmenter = Segmenter()                      # Uses safe defaults
        segmenter = Segmenter(config=my_config)      # Custom config
        results = segmenter.segment(frame)           # BGR numpy array

    The constructor loads the model once. Subsequent segment() calls
    reuse the loaded network — there is no per-frame setup cost
    beyond preprocessing and inference.
    """

    def __init__(self, config: Optional[AppConfig] = None, net=None) -> None:
        """Initialize the segmenter and load the model.

        Args:
            config: Application configuration. If None, safe defaults
                    are used (no config file required).
            net: An already-loaded network exposing setInput(), forward()
                 and getUnconnectedOutLayersNames(). If None, the model is
                 loaded from config.model.

        Raises:
            FileNotFoundError: If the model file is missing.
            RuntimeError: If the requested backend is unavailable.
            ValueError: If configuration values are invalid.
        """
        if config is None:
            config = load_config()

        self._config = config
        self._net = net if net is not None else load_model(config.model)

        logger.info(
            "Segmenter initialized (backend=%s, score_threshold=%.2f, iou_threshold=%.2f)",
            config.model.backend,
            config.detection.score_threshold,
            config.detection.iou_threshold,
        )

    def segment(
        self,
        frame: np.ndarray,
        display_size: Optional[Sequence[int]] = None,
    ) -> List[Segmentation]:
        """Segment instances in a single BGR frame.

        Args:
            frame: A BGR image as a numpy array with shape (H, W, 3)
                   and dtype uint8.
            display_size: (width, height) of the surface the results will
                          be drawn on. Defaults to the frame size.

        Returns:
            Segmentations sorted by score (descending), with boxes and
            polygons in display coordinates. Empty if nothing is found.

        Raises:
            TypeError: If frame is not a numpy ndarray.
            ValueError: If frame has incorrect shape, is empty, or the
                        network outputs are malformed.
        """
        self._validate_frame(frame)

        # Preprocess: frame → blob
        blob = preprocess(frame, self._config.model)

        # Inference
        self._net.setInput(blob)
        outputs = self._net.forward(self._net.getUnconnectedOutLayersNames())
        detection_output, prototypes = self._split_outputs(outputs)

        # Postprocess: raw outputs → Segmentation list
        h, w = frame.shape[:2]
        spaces = CoordinateSpaces.for_frame(
            model_size=self._config.model.input_size,
            proto_size=self._proto_size(prototypes),
            image_size=(w, h),
            display_size=display_size,
        )

        return postprocess(
            detection_output,
            prototypes,
            spaces,
            self._config.detection,
            self._config.mask,
        )

    @property
    def config(self) -> AppConfig:
        """Return the active configuration (read-only)."""
        return self._config

    def _proto_size(self, prototypes: Optional[np.ndarray]) -> Tuple[int, int]:
        if prototypes is not None:
            return int(prototypes.shape[-1]), int(prototypes.shape[-2])
        width, height = self._config.model.input_size
        return max(1, width // _PROTO_STRIDE), max(1, height // _PROTO_STRIDE)

    @staticmethod
    def _split_outputs(outputs) -> Tuple[np.ndarray, Optional[np.ndarray]]:
        """Tell the detection tensor and the prototype tensor apart by rank.

        Raises:
            ValueError: If no detection tensor is present.
        """
        if isinstance(outputs, np.ndarray):
            outputs = [outputs]

        detection_output = None
        prototypes = None
        for out in outputs:
            if out.ndim == 4 and prototypes is None:
                prototypes = out
            elif out.ndim in (2, 3) and detection_output is None:
                detection_output = out

        if detection_output is None:
            raise ValueError(
                f"Network produced no detection tensor; output shapes: "
                f"{[tuple(o.shape) for o in outputs]}."
            )
        return detection_output, prototypes

    @staticmethod
    def _validate_frame(frame: np.ndarray) -> None:
        """Validate that the input frame meets the API contract.

        Raises:
            TypeError: If frame is not a numpy ndarray.
            ValueError: If frame is empty or has wrong dimensions.
        """
        if not isinstance(frame, np.ndarray):
            raise TypeError(
                f"Expected frame to be a numpy ndarray, "
                f"got {type(frame).__name__}. "
                f"Use cv2.imread() or VideoCapture.read() to obtain frames."
            )

        if frame.size == 0:
            raise ValueError(
                "Frame is empty (zero size). "
                "Ensure the input source is providing valid frames."
            )

        if frame.ndim != 3:
            raise ValueError(
                f"Expected a 3-dimensional frame (H, W, C), "
                f"got {frame.ndim} dimensions with shape {frame.shape}. "
                f"Grayscale images must be converted to BGR first."
            )

        if frame.shape[2] != 3:
            raise ValueError(
                f"Expected 3 channels (BGR), got {frame.shape[2]} channels. "
                f"Input must be a BGR image as returned by OpenCV."
            )
