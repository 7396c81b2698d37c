"""
Mask reconstruction from the prototype bank.

Responsibility:
    Turn one detection's mask coefficients into a soft mask on the
    prototype grid: a per-cell dot product across all prototype channels
    followed by the logistic function.

Non-goals:
    - No cropping, resizing, or thresholding (see region_mapper).

The prototype bank is read only. Every call allocates its own output
array, so calls for different detections never share buffers.
"""

import numpy as np


def squeeze_prototypes(prototypes: np.ndarray) -> np.ndarray:
    """Return the (C, H, W) view of a prototype tensor.

    Raises:
        ValueError: If the tensor is not (C, H, W) or (1, C, H, W).
    """
    prototypes = np.asarray(prototypes)
    if prototypes.ndim == 4 and prototypes.shape[0] == 1:
        prototypes = prototypes[0]
    if prototypes.ndim != 3:
        raise ValueError(
            f"Expected a prototype tensor of shape (C, H, W) or (1, C, H, W), "
            f"got shape {prototypes.shape}."
        )
    return prototypes


def sigmoid(x: np.ndarray) -> np.ndarray:
    # log(1 + e^-x) never overflows, so large negative logits saturate to 0
    return np.exp(-np.logaddexp(0.0, -x))


def decode_mask(mask_coeffs: np.ndarray, prototypes: np.ndarray) -> np.ndarray:
    """Reconstruct a soft mask for one detection.

    Args:
        mask_coeffs: 1-D array of C coefficients.
        prototypes: Prototype bank, shape (C, H, W) or (1, C, H, W).

    Returns:
        A new float32 array of shape (H, W) with values in (0, 1).

    Raises:
        ValueError: If the coefficient count differs from the channel count.
    """
    protos = squeeze_prototypes(prototypes)
    coeffs = np.asarray(mask_coeffs, dtype=np.float32).reshape(-1)
    channels, height, width = protos.shape

    if coeffs.shape[0] != channels:
        raise ValueError(
            f"Got {coeffs.shape[0]} mask coefficients for a prototype bank "
            f"with {channels} channels."
        )

    logits = coeffs @ protos.reshape(channels, -1).astype(np.float32, copy=False)
    return sigmoid(logits).reshape(height, width).astype(np.float32, copy=False)
