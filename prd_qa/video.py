"""
OpenCV-backed video probing and keyframe extraction.

Implements the VideoProbe and FrameExtractor callables the attachment loader
uses for video files.
"""

from __future__ import annotations
from pathlib import Path
from typing import List, Sequence
import logging

import cv2

from .attachments import to_data_url
from .exceptions import QAPipelineError

logger = logging.getLogger(__name__)

JPEG_QUALITY = 80


class VideoReadError(QAPipelineError):
    """Raised when a video cannot be opened or decoded."""
    pass


def _open(path: Path) -> cv2.VideoCapture:
    capture = cv2.VideoCapture(str(path))
    if not capture.isOpened():
        capture.release()
        raise VideoReadError("Error loading video file. It may be corrupt or in an unsupported format.")
    return capture


def probe_duration(path: Path) -> float:
    """Duration in seconds from the container's frame count and frame rate."""
    capture = _open(path)
    try:
        fps = capture.get(cv2.CAP_PROP_FPS)
        frame_count = capture.get(cv2.CAP_PROP_FRAME_COUNT)
    finally:
        capture.release()

    if not fps or fps <= 0:
        return 0.0
    return frame_count / fps


def extract_frames(path: Path, timestamps: Sequence[float]) -> List[str]:
    """
    Seek to each timestamp and encode the frame there as a JPEG data URL.

    Raises:
        VideoReadError: If the file cannot be opened or a frame cannot be decoded
    """
    capture = _open(path)
    frames = []
    try:
        for timestamp in timestamps:
            capture.set(cv2.CAP_PROP_POS_MSEC, timestamp * 1000.0)
            ok, image = capture.read()
            if not ok:
                raise VideoReadError(f"Could not decode a frame at {timestamp:.2f}s")

            ok, encoded = cv2.imencode(".jpg", image, [cv2.IMWRITE_JPEG_QUALITY, JPEG_QUALITY])
            if not ok:
                raise VideoReadError(f"Could not encode the frame at {timestamp:.2f}s")
            frames.append(to_data_url(encoded.tobytes(), "image/jpeg"))
    finally:
        capture.release()

    logger.debug(f"Extracted {len(frames)} frames from {path.name}")
    return frames
