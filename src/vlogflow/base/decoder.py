"""Video decoders used by the frame sampler.

A decoder owns one open video and is seeked by a single caller at a time.
Seeking changes the decoder position, so concurrent seeks on one instance
would break the frame/time correlation.
"""

from __future__ import annotations

import asyncio
import math
import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import cv2
import numpy as np

from vlogflow.base.exceptions import DecodeError

__all__ = ["VideoMetadata", "VideoDecoder", "OpenCVDecoder", "temporary_video_file"]


@dataclass(frozen=True)
class VideoMetadata:
    """Class to store video metadata."""

    height: int
    width: int
    fps: float
    frame_count: int
    total_seconds: float

    def __str__(self) -> str:
        return f"{self.width}x{self.height} @ {self.fps}fps, {self.total_seconds} seconds"

    def __repr__(self) -> str:
        return self.__str__()


class VideoDecoder(Protocol):
    """Asynchronous seek-and-grab access to a single video."""

    async def open(self) -> VideoMetadata:
        """Open the video and load its metadata."""
        ...

    async def seek(self, second: float) -> np.ndarray | None:
        """Seek to `second` and return the RGB frame shown there, or None if nothing could be read."""
        ...

    async def close(self) -> None:
        """Release the decoder. Calling it more than once is allowed."""
        ...


class OpenCVDecoder:
    """Decoder backed by `cv2.VideoCapture`.

    Blocking OpenCV calls run in a worker thread, so every seek is a
    suspension point for the event loop.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._capture: cv2.VideoCapture | None = None
        self._lock = asyncio.Lock()

    def _open(self) -> VideoMetadata:
        if not self.path.exists():
            raise DecodeError(f"Video file not found: {self.path}")

        capture = cv2.VideoCapture(str(self.path))
        if not capture.isOpened():
            capture.release()
            raise DecodeError(f"Could not open video file: {self.path}")
        self._capture = capture

        width = int(capture.get(cv2.CAP_PROP_FRAME_WIDTH))
        height = int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT))
        fps = float(capture.get(cv2.CAP_PROP_FPS))
        frame_count = int(capture.get(cv2.CAP_PROP_FRAME_COUNT))

        if fps > 0 and not math.isnan(fps) and frame_count > 0:
            total_seconds = frame_count / fps
        else:
            total_seconds = 0.0

        return VideoMetadata(
            height=height,
            width=width,
            fps=fps,
            frame_count=frame_count,
            total_seconds=total_seconds,
        )

    def _seek(self, second: float) -> np.ndarray | None:
        if self._capture is None:
            raise DecodeError("Decoder is not open")

        self._capture.set(cv2.CAP_PROP_POS_MSEC, second * 1000.0)
        ok, frame = self._capture.read()
        if not ok or frame is None:
            return None
        return cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)

    async def open(self) -> VideoMetadata:
        return await asyncio.to_thread(self._open)

    async def seek(self, second: float) -> np.ndarray | None:
        async with self._lock:
            return await asyncio.to_thread(self._seek, second)

    async def close(self) -> None:
        capture, self._capture = self._capture, None
        if capture is not None:
            capture.release()


@contextmanager
def temporary_video_file(data: bytes, suffix: str = ".mp4") -> Iterator[Path]:
    """Write uploaded video bytes to a temporary file readable by the decoder.

    The file is removed exactly once when the context exits, whether sampling
    succeeded or failed.
    """
    fd, name = tempfile.mkstemp(suffix=suffix, prefix="vlogflow_")
    path = Path(name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        yield path
    finally:
        path.unlink(missing_ok=True)
