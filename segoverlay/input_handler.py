"""
Frame sources for the segmentation overlay pipeline.

A source string is classified once, up front, into one of five kinds
(webcam, url, image, video, directory). InputHandler then yields
(frame_id, BGR frame) pairs from it, one at a time: the next frame is
read only when the caller asks for it.

Unreadable frames are logged and dropped rather than raised, so a
single corrupt file or a failed download ends up as a gap in the
frame ids instead of a crash.
"""

import logging
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union

import cv2
import numpy as np
import requests

logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = frozenset({".jpg", ".jpeg", ".png", ".bmp", ".tif", ".tiff", ".webp"})
VIDEO_SUFFIXES = frozenset({".mp4", ".avi", ".mov", ".mkv", ".wmv", ".flv"})

_URL_PREFIXES = ("http://", "https://")
_FETCH_TIMEOUT = 30.0

# A webcam that keeps returning empty reads is treated as disconnected
_MAX_EMPTY_WEBCAM_READS = 30

Frame = Tuple[int, np.ndarray]


def fetch_image(url: str, timeout: float = _FETCH_TIMEOUT) -> np.ndarray:
    """Download an image over HTTP(S) and decode it to a BGR array.

    Raises:
        RuntimeError: If the request fails or the payload is not an image.
    """
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise RuntimeError(f"Failed to fetch image from '{url}': {e}") from e

    payload = np.frombuffer(response.content, dtype=np.uint8)
    image = cv2.imdecode(payload, cv2.IMREAD_COLOR)
    if image is None:
        raise RuntimeError(
            f"Content at '{url}' could not be decoded as an image "
            f"({len(response.content)} bytes)."
        )
    return image


def detect_source_kind(source: str) -> str:
    """Classify a source string.

    Returns one of "webcam", "url", "image", "video" or "directory".

    Raises:
        FileNotFoundError: If the source is a path that does not exist.
        ValueError: If a file has an extension that is neither image nor video.
    """
    if source.isdigit():
        return "webcam"
    if source.lower().startswith(_URL_PREFIXES):
        return "url"

    path = Path(source)
    if path.is_dir():
        return "directory"
    if not path.is_file():
        raise FileNotFoundError(
            f"Input source '{source}' is not a device index, URL, file or directory."
        )

    suffix = path.suffix.lower()
    if suffix in IMAGE_SUFFIXES:
        return "image"
    if suffix in VIDEO_SUFFIXES:
        return "video"
    raise ValueError(
        f"Cannot read '{source}': extension '{suffix}' is not a known image "
        f"({sorted(IMAGE_SUFFIXES)}) or video ({sorted(VIDEO_SUFFIXES)}) type."
    )


def _list_images(directory: str) -> List[str]:
    images = sorted(
        str(p) for p in Path(directory).iterdir() if p.suffix.lower() in IMAGE_SUFFIXES
    )
    if not images:
        raise ValueError(
            f"Directory '{directory}' holds no images with suffixes "
            f"{sorted(IMAGE_SUFFIXES)}."
        )
    logger.info("Found %d images in %s", len(images), directory)
    return images


class InputHandler:
    """Iterate frames from a webcam, URL, image, video or image directory.

    Usage:
        handler = InputHandler(source="harbour.mp4", resize_width=960)
        for frame_id, frame in handler:
            ...
        handler.release()
    """

    def __init__(
        self,
        source: Union[str, int],
        resize_width: Optional[int] = None,
    ) -> None:
        """
        Args:
            source: Device index (int or digit string), http(s) image URL,
                image or video file path, or directory of images.
            resize_width: Frames wider than this are downscaled to it,
                keeping the aspect ratio. None disables resizing.

        Raises:
            FileNotFoundError: If a path source does not exist.
            ValueError: If a file or directory holds nothing readable.
            RuntimeError: If a webcam or video cannot be opened.
        """
        self._source = str(source).strip()
        self._resize_width = resize_width
        self._capture: Optional[cv2.VideoCapture] = None
        self._images: List[str] = []

        self._mode = detect_source_kind(self._source)
        if self._mode == "webcam":
            self._capture = self._open_capture(int(self._source))
        elif self._mode == "video":
            self._capture = self._open_capture(self._source)
        elif self._mode == "image":
            self._images = [self._source]
        elif self._mode == "directory":
            self._images = _list_images(self._source)

        logger.info("InputHandler ready: mode=%s, source=%s", self._mode, self._source)

    @property
    def mode(self) -> str:
        return self._mode

    @staticmethod
    def _open_capture(target: Union[str, int]) -> cv2.VideoCapture:
        capture = cv2.VideoCapture(target)
        if not capture.isOpened():
            what = f"webcam {target}" if isinstance(target, int) else f"video '{target}'"
            raise RuntimeError(f"Could not open {what}.")
        return capture

    def __iter__(self) -> Iterator[Frame]:
        if self._mode == "url":
            frames = self._read_url()
        elif self._capture is not None:
            frames = self._read_capture()
        else:
            frames = self._read_images()

        for frame_id, frame in frames:
            yield frame_id, self._fit_width(frame)

    def _read_images(self) -> Iterator[Frame]:
        for frame_id, path in enumerate(self._images):
            image = cv2.imread(path)
            if image is None:
                logger.warning("Skipping unreadable image %s (frame_id=%d)", path, frame_id)
                continue
            yield frame_id, image

    def _read_url(self) -> Iterator[Frame]:
        try:
            image = fetch_image(self._source)
        except RuntimeError as e:
            logger.warning("Skipping remote image: %s", e)
            return
        yield 0, image

    def _read_capture(self) -> Iterator[Frame]:
        frame_id = 0
        empty_reads = 0
        while self._capture is not None:
            ok, frame = self._capture.read()
            if ok and frame is not None:
                empty_reads = 0
                yield frame_id, frame
            elif self._mode == "video":
                logger.info("Video ended after %d frames.", frame_id)
                return
            else:
                empty_reads += 1
                if empty_reads >= _MAX_EMPTY_WEBCAM_READS:
                    logger.error(
                        "Webcam returned %d empty reads in a row, giving up.",
                        empty_reads,
                    )
                    return
                logger.warning("Empty webcam read at frame %d.", frame_id)
            frame_id += 1

    def _fit_width(self, frame: np.ndarray) -> np.ndarray:
        if self._resize_width is None:
            return frame
        height, width = frame.shape[:2]
        if width <= self._resize_width:
            return frame
        new_height = int(height * self._resize_width / width)
        return cv2.resize(frame, (self._resize_width, new_height), interpolation=cv2.INTER_AREA)

    def release(self) -> None:
        """Close the webcam or video capture, if one is open."""
        if self._capture is not None:
            self._capture.release()
            self._capture = None
            logger.debug("VideoCapture released.")

    def __del__(self) -> None:
        # __init__ may have raised before _capture was set
        if getattr(self, "_capture", None) is not None:
            self.release()
