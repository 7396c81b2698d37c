"""
Coordinate spaces for one frame of the segmentation pipeline.

Three resolutions meet in post-processing:

    model input   — the stretched network input (e.g. 640x640).
    prototype     — the low-resolution mask basis grid (e.g. 160x160).
    display       — the surface the overlay is drawn on.

A fourth, the source image, is where the network input was resized
from. Boxes are decoded into source-image pixels and then moved onto the
display surface. All scale factors are derived once, here, and passed
unchanged through every stage.
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

Size = Tuple[int, int]  # (width, height)


def _check_size(name: str, size: Sequence[int]) -> Size:
    if len(size) != 2:
        raise ValueError(f"{name} must be a (width, height) pair, got {size}.")
    width, height = int(size[0]), int(size[1])
    if width <= 0 or height <= 0:
        raise ValueError(f"{name} dimensions must be positive, got {size}.")
    return width, height


@dataclass(frozen=True, slots=True)
class CoordinateSpaces:
    """Immutable per-frame description of every resolution involved.

    Attributes:
        model_size: (width, height) of the network input.
        proto_size: (width, height) of the prototype grid.
        image_size: (width, height) of the source image.
        display_size: (width, height) of the drawing surface.
    """

    model_size: Size
    proto_size: Size
    image_size: Size
    display_size: Size

    def __post_init__(self) -> None:
        for name in ("model_size", "proto_size", "image_size", "display_size"):
            object.__setattr__(self, name, _check_size(name, getattr(self, name)))

    @classmethod
    def for_frame(
        cls,
        model_size: Sequence[int],
        proto_size: Sequence[int],
        image_size: Sequence[int],
        display_size: Optional[Sequence[int]] = None,
    ) -> "CoordinateSpaces":
        """Build the spaces for a frame; the display defaults to the image size."""
        return cls(
            model_size=tuple(model_size),
            proto_size=tuple(proto_size),
            image_size=tuple(image_size),
            display_size=tuple(display_size if display_size is not None else image_size),
        )

    @property
    def image_scale(self) -> Tuple[float, float]:
        """Model-input → source-image scale, per axis."""
        return (
            self.image_size[0] / self.model_size[0],
            self.image_size[1] / self.model_size[1],
        )

    @property
    def display_scale(self) -> Tuple[float, float]:
        """Source-image → display scale, per axis."""
        return (
            self.display_size[0] / self.image_size[0],
            self.display_size[1] / self.image_size[1],
        )

    @property
    def proto_scale(self) -> Tuple[float, float]:
        """Display → prototype-grid scale, per axis."""
        return (
            self.proto_size[0] / self.display_size[0],
            self.proto_size[1] / self.display_size[1],
        )
