from __future__ import annotations

import base64
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Any, overload

__all__ = ["Frame", "FrameImage", "FrameSequence"]


@dataclass(frozen=True)
class FrameImage:
    """Encoded representations of one captured frame.

    Attributes:
        preview: Base64 text of the quality-reduced JPEG, used for transport and display
        blob: Higher quality JPEG bytes kept for later reuse
        width: Encoded image width in pixels
        height: Encoded image height in pixels
    """

    preview: str
    blob: bytes
    width: int
    height: int

    @property
    def preview_bytes(self) -> bytes:
        """Decoded bytes of the preview JPEG."""
        return base64.b64decode(self.preview)


@dataclass(frozen=True)
class Frame:
    """A still captured from a video at a specific time offset.

    Attributes:
        time_offset: Capture position in seconds from the start of the video
        image: Encoded image data
    """

    time_offset: float
    image: FrameImage

    def to_dict(self) -> dict[str, Any]:
        return {
            "timeOffset": self.time_offset,
            "base64": self.image.preview,
            "width": self.image.width,
            "height": self.image.height,
        }


class FrameSequence(Sequence[Frame]):
    """Ordered, immutable list of frames with non-decreasing time offsets.

    Later pipeline stages refer to frames by their position in this sequence.
    """

    def __init__(self, frames: Sequence[Frame] = ()):
        frames = tuple(frames)
        for previous, current in zip(frames, frames[1:]):
            if current.time_offset < previous.time_offset:
                raise ValueError(
                    f"Frame time offsets must be non-decreasing, got {previous.time_offset} "
                    f"followed by {current.time_offset}"
                )
        self._frames = frames

    @overload
    def __getitem__(self, index: int) -> Frame: ...

    @overload
    def __getitem__(self, index: slice) -> FrameSequence: ...

    def __getitem__(self, index: int | slice) -> Frame | FrameSequence:
        if isinstance(index, slice):
            return FrameSequence(self._frames[index])
        return self._frames[index]

    def __len__(self) -> int:
        return len(self._frames)

    def __iter__(self) -> Iterator[Frame]:
        return iter(self._frames)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FrameSequence):
            return NotImplemented
        return self._frames == other._frames

    def __hash__(self) -> int:
        return hash(self._frames)

    def __repr__(self) -> str:
        if not self._frames:
            return "FrameSequence([])"
        first, last = self._frames[0].time_offset, self._frames[-1].time_offset
        return f"FrameSequence({len(self)} frames, {first:.2f}s-{last:.2f}s)"

    @property
    def time_offsets(self) -> list[float]:
        """Capture offsets of all frames, in order."""
        return [frame.time_offset for frame in self._frames]
