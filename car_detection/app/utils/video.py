"""Frame sources and input preparation for the detector."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Generator, Iterable, Optional, Union

import cv2
import numpy as np

LOGGER = logging.getLogger(__name__)


@dataclass
class Frame:
    index: int
    data: np.ndarray
    timestamp_ms: float


def open_video_source(source: Union[int, str]) -> cv2.VideoCapture:
    """Open a video capture object from an integer index or file path."""

    capture = cv2.VideoCapture(source)
    if not capture.isOpened():
        raise RuntimeError(f"Unable to open video source: {source}")
    LOGGER.info("Video source %s opened successfully", source)
    return capture


@contextmanager
def managed_capture(source: Union[int, str]) -> Generator[cv2.VideoCapture, None, None]:
    """Context manager ensuring capture release."""

    capture = open_video_source(source)
    try:
        yield capture
    finally:
        LOGGER.info("Releasing video source")
        capture.release()


def iter_frames(capture: cv2.VideoCapture) -> Iterable[Frame]:
    frame_idx = 0
    fps = capture.get(cv2.CAP_PROP_FPS) or 0
    while True:
        success, frame = capture.read()
        if not success:
            LOGGER.info("End of stream reached after %d frames", frame_idx)
            break
        frame_idx += 1
        timestamp_ms = (frame_idx / fps * 1000) if fps else 0.0
        yield Frame(index=frame_idx, data=frame, timestamp_ms=timestamp_ms)


def load_image(path: Path) -> Optional[np.ndarray]:
    """Read a BGR image from disk, returning None when it is missing or unreadable."""

    if not path.exists():
        return None
    image = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if image is None:
        LOGGER.warning("OpenCV could not decode %s", path)
    return image


def prepare_input(frame: np.ndarray, input_size: int) -> np.ndarray:
    """Convert a BGR ``HxWx3`` frame into a normalized ``1x3xSxS`` float32 blob."""

    if frame.ndim != 3 or frame.shape[2] != 3:
        raise ValueError(f"Expected an HxWx3 frame, got shape {frame.shape}")
    if frame.shape[0] != input_size or frame.shape[1] != input_size:
        frame = cv2.resize(frame, (input_size, input_size), interpolation=cv2.INTER_LINEAR)
    rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
    blob = rgb.astype(np.float32) / 255.0
    return np.ascontiguousarray(np.transpose(blob, (2, 0, 1))[None, ...])
