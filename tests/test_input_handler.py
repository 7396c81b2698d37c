"""
Tests for the input handling module.
"""

import cv2
import numpy as np
import pytest
import requests

import segoverlay.input_handler as input_handler
from segoverlay.input_handler import InputHandler


class _Response:
    def __init__(self, content, status_error=None):
        self.content = content
        self._status_error = status_error

    def raise_for_status(self):
        if self._status_error is not None:
            raise self._status_error


def _png_bytes(width=40, height=30):
    image = np.zeros((height, width, 3), dtype=np.uint8)
    image[:, :, 2] = 200
    ok, buffer = cv2.imencode(".png", image)
    assert ok
    return buffer.tobytes()


def test_url_source_yields_single_decoded_frame(monkeypatch):
    monkeypatch.setattr(
        input_handler.requests, "get", lambda url, timeout: _Response(_png_bytes())
    )

    handler = InputHandler("https://example.com/boat.png")
    frames = list(handler)

    assert handler.mode == "url"
    assert len(frames) == 1
    frame_id, frame = frames[0]
    assert frame_id == 0
    assert frame.shape == (30, 40, 3)
    assert frame[0, 0, 2] == 200


def test_url_fetch_failure_is_skipped(monkeypatch):
    def _fail(url, timeout):
        raise requests.ConnectionError("unreachable")

    monkeypatch.setattr(input_handler.requests, "get", _fail)

    assert list(InputHandler("http://example.com/missing.png")) == []


def test_url_with_non_image_payload_is_skipped(monkeypatch):
    monkeypatch.setattr(
        input_handler.requests, "get", lambda url, timeout: _Response(b"<html></html>")
    )

    assert list(InputHandler("http://example.com/page")) == []


def test_directory_source_sorted_and_resized(tmp_path):
    for name in ("b.png", "a.png"):
        cv2.imwrite(str(tmp_path / name), np.zeros((100, 200, 3), dtype=np.uint8))
    (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")

    handler = InputHandler(str(tmp_path), resize_width=100)
    frames = list(handler)

    assert handler.mode == "directory"
    assert [fid for fid, _ in frames] == [0, 1]
    assert frames[0][1].shape == (50, 100, 3)


def test_missing_source(tmp_path):
    with pytest.raises(FileNotFoundError):
        InputHandler(str(tmp_path / "nothing.jpg"))


def test_unknown_extension(tmp_path):
    path = tmp_path / "data.bin"
    path.write_bytes(b"\x00")

    with pytest.raises(ValueError, match="extension"):
        InputHandler(str(path))


@pytest.mark.parametrize("source, kind", [
    ("0", "webcam"),
    ("https://example.com/a.jpg", "url"),
    ("HTTP://EXAMPLE.COM/A.JPG", "url"),
])
def test_detect_source_kind_without_filesystem(source, kind):
    assert input_handler.detect_source_kind(source) == kind


def test_detect_source_kind_for_paths(tmp_path):
    image = tmp_path / "frame.PNG"
    image.write_bytes(b"\x00")
    video = tmp_path / "clip.mp4"
    video.write_bytes(b"\x00")

    assert input_handler.detect_source_kind(str(image)) == "image"
    assert input_handler.detect_source_kind(str(video)) == "video"
    assert input_handler.detect_source_kind(str(tmp_path)) == "directory"


def test_empty_directory_is_rejected(tmp_path):
    with pytest.raises(ValueError, match="no images"):
        InputHandler(str(tmp_path))


class _DeadCapture:
    def __init__(self, target):
        self.reads = 0

    def isOpened(self):
        return True

    def read(self):
        self.reads += 1
        return False, None

    def release(self):
        pass


def test_webcam_stops_after_repeated_empty_reads(monkeypatch):
    monkeypatch.setattr(input_handler.cv2, "VideoCapture", _DeadCapture)

    handler = InputHandler("0")
    capture = handler._capture

    assert handler.mode == "webcam"
    assert list(handler) == []
    assert capture.reads == input_handler._MAX_EMPTY_WEBCAM_READS
    handler.release()
