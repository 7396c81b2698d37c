"""
Shared fixtures: synthetic network outputs.
"""

import numpy as np
import pytest

NUM_CLASSES = 3
MASK_CHANNELS = 32


@pytest.fixture
def make_output():
    """Build a channel-major detection tensor of shape (1, 4 + 3 + 32, N).

    Each anchor is given as (cx, cy, w, h, class_scores, mask_coeffs),
    where mask_coeffs may be None (all zeros).
    """

    def _make(anchors):
        channels = 4 + NUM_CLASSES + MASK_CHANNELS
        tensor = np.zeros((1, channels, len(anchors)), dtype=np.float32)
        for i, (cx, cy, w, h, scores, coeffs) in enumerate(anchors):
            tensor[0, 0:4, i] = (cx, cy, w, h)
            tensor[0, 4:4 + NUM_CLASSES, i] = scores
            if coeffs is not None:
                tensor[0, 4 + NUM_CLASSES:, i] = coeffs
        return tensor

    return _make
