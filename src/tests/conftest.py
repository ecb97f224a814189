from __future__ import annotations

import asyncio
from pathlib import Path

import numpy as np
import pytest

from tests.test_config import SOURCE_FPS, SOURCE_HEIGHT, SOURCE_WIDTH
from vlogflow.base.decoder import VideoMetadata
from vlogflow.base.frames import Frame, FrameImage, FrameSequence
from vlogflow.config import clear_config_cache


class FakeDecoder:
    """In-memory decoder returning a solid frame whose colour encodes the seek time."""

    def __init__(
        self,
        path: Path,
        duration: float = 12.0,
        width: int = SOURCE_WIDTH,
        height: int = SOURCE_HEIGHT,
        fps: float = SOURCE_FPS,
        unreadable: set[int] | None = None,
        open_error: Exception | None = None,
    ):
        self.path = path
        self.duration = duration
        self.width = width
        self.height = height
        self.fps = fps
        self.unreadable = unreadable or set()
        self.open_error = open_error
        self.seeks: list[float] = []
        self.close_calls = 0
        self.path_existed_on_open: bool | None = None
        self._in_flight = 0

    async def open(self) -> VideoMetadata:
        self.path_existed_on_open = Path(self.path).exists()
        if self.open_error is not None:
            raise self.open_error
        frame_count = int(self.duration * self.fps) if self.duration > 0 else 0
        return VideoMetadata(
            height=self.height,
            width=self.width,
            fps=self.fps,
            frame_count=frame_count,
            total_seconds=self.duration,
        )

    async def seek(self, second: float) -> np.ndarray | None:
        self._in_flight += 1
        assert self._in_flight == 1, "concurrent seeks on one decoder"
        try:
            await asyncio.sleep(0)
            self.seeks.append(second)
            if len(self.seeks) - 1 in self.unreadable:
                return None
            value = int(second * 10) % 256
            return np.full((self.height, self.width, 3), value, dtype=np.uint8)
        finally:
            self._in_flight -= 1

    async def close(self) -> None:
        self.close_calls += 1


class DecoderFactory:
    """Creates `FakeDecoder`s and remembers them for assertions."""

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.decoders: list[FakeDecoder] = []

    def __call__(self, path: Path) -> FakeDecoder:
        decoder = FakeDecoder(path, **self.kwargs)
        self.decoders.append(decoder)
        return decoder

    @property
    def last(self) -> FakeDecoder:
        return self.decoders[-1]


def make_frames(offsets: list[float]) -> FrameSequence:
    """Frame sequence with placeholder images at the given offsets."""
    image = FrameImage(preview="AA==", blob=b"\x00", width=4, height=3)
    return FrameSequence([Frame(time_offset=offset, image=image) for offset in offsets])


@pytest.fixture
def decoder_factory():
    return DecoderFactory()


@pytest.fixture
def ten_frames() -> FrameSequence:
    return make_frames([i * 1.5 for i in range(10)])


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Run every test from an empty directory so no config file is picked up."""
    monkeypatch.chdir(tmp_path)
    clear_config_cache()
    yield
    clear_config_cache()
