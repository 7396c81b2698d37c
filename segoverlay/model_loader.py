"""
Model loading for the segmentation overlay system.

Responsibility:
    Load the ONNX segmentation model from disk, configure the compute
    backend, optionally warm it up, and return a ready-to-infer
    cv2.dnn.Net object.

Non-goals:
    - No preprocessing, post-processing, or frame-level logic.
    - No automatic model downloading.
    - No fallback to alternative models.

Failure behavior:
    - A missing model file raises FileNotFoundError with the exact
      missing path and expected location.
    - Incompatible backend raises RuntimeError.
"""

import logging
from pathlib import Path

import cv2
import numpy as np

from segoverlay.config import ModelConfig, get_project_root

logger = logging.getLogger(__name__)


def load_model(config: ModelConfig) -> cv2.dnn.Net:
    """Load and configure the ONNX segmentation model.

    Args:
        config: ModelConfig containing the model path and backend preference.

    Returns:
        A configured cv2.dnn.Net ready for inference.

    Raises:
        FileNotFoundError: If the model file does not exist.
        RuntimeError: If the requested backend is unavailable.
    """
    model_path = Path(config.model_path)

    # Resolve relative paths against project root
    if not model_path.is_absolute():
        model_path = get_project_root() / model_path

    # Validate file existence — fail fast with actionable messages
    if not model_path.is_file():
        raise FileNotFoundError(
            f"Segmentation model not found.\n"
            f"  Expected: {model_path}\n"
            f"  Export the model to ONNX and place it at the path above,\n"
            f"  or update 'model.model_path' in your config."
        )

    logger.info("Loading model: %s", model_path)
    net = cv2.dnn.readNetFromONNX(str(model_path))

    # Configure backend and target
    if config.backend == "cuda":
        logger.info("Setting CUDA backend and target.")
        try:
            net.setPreferableBackend(cv2.dnn.DNN_BACKEND_CUDA)
            net.setPreferableTarget(cv2.dnn.DNN_TARGET_CUDA)
        except cv2.error as e:
            raise RuntimeError(
                f"Failed to set CUDA backend. Ensure OpenCV was built with "
                f"CUDA support (opencv-contrib-python or custom build).\n"
                f"  OpenCV error: {e}"
            ) from e
    else:
        logger.info("Using CPU backend.")
        net.setPreferableBackend(cv2.dnn.DNN_BACKEND_OPENCV)
        net.setPreferableTarget(cv2.dnn.DNN_TARGET_CPU)

    if config.warmup:
        _warm_up(net, config)

    logger.info("Model loaded successfully.")
    return net


def _warm_up(net: cv2.dnn.Net, config: ModelConfig) -> None:
    """Run one forward pass on a zero blob so the first real frame is not slow."""
    width, height = config.input_size
    net.setInput(np.zeros((1, 3, height, width), dtype=np.float32))
    net.forward(net.getUnconnectedOutLayersNames())
    logger.info("Model warm-up complete (%dx%d).", width, height)
