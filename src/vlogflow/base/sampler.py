"""Temporal frame sampling.

Frames are captured at a fixed interval spread over the whole video, so a
long video yields frames from its end as well as its start.
"""

from __future__ import annotations

import base64
import io
import logging
import math
from collections.abc import Callable
from pathlib import Path

import cv2
import numpy as np
from PIL import Image

from vlogflow.base.decoder import OpenCVDecoder, VideoDecoder, VideoMetadata, temporary_video_file
from vlogflow.base.exceptions import DecodeError, UnsupportedFormatError
from vlogflow.base.frames import Frame, FrameImage, FrameSequence
from vlogflow.base.progress import progress_bar
from vlogflow.config import SamplingConfig, get_sampling_config

__all__ = ["FrameSampler", "compute_interval", "compute_output_size", "SEEK_EPSILON"]

logger = logging.getLogger(__name__)

# Last seek is pulled this far before the end so it still lands on a frame
SEEK_EPSILON = 1e-3


def compute_output_size(width: int, height: int, max_width: int) -> tuple[int, int]:
    """Scale (width, height) down to at most `max_width`, keeping the aspect ratio.

    Args:
        width: Source width in pixels
        height: Source height in pixels
        max_width: Maximum output width

    Returns:
        Tuple of (output_width, output_height). Sources narrower than
        `max_width` are returned unchanged.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid source dimensions: {width}x{height}")
    if max_width <= 0:
        raise ValueError("max_width must be positive")

    scale = min(1.0, max_width / width)
    return max(1, round(width * scale)), max(1, round(height * scale))


def compute_interval(duration: float, target_count: int, min_interval: float) -> float:
    """Seconds between consecutive captures.

    The interval spreads `target_count` frames over the whole `duration`, but
    never drops below `min_interval`.
    """
    if target_count < 1:
        raise ValueError("target_count must be at least 1")
    return max(min_interval, duration / target_count)


class FrameSampler:
    """Samples a video into an ordered, bounded `FrameSequence`."""

    def __init__(
        self,
        max_width: int = 960,
        min_interval: float = 0.5,
        jpeg_quality: float = 0.6,
        blob_quality: float = 0.92,
        target_frame_count: int = 120,
        decoder_factory: Callable[[Path], VideoDecoder] = OpenCVDecoder,
    ):
        """Initialize the sampler.

        Args:
            max_width: Maximum output width in pixels.
            min_interval: Smallest gap in seconds between two captures.
            jpeg_quality: JPEG quality (0-1) of the preview encoding.
            blob_quality: JPEG quality (0-1) of the retained blob.
            target_frame_count: Default number of frames when `sample` gets none.
            decoder_factory: Callable creating a decoder for a video path.
        """
        if min_interval <= 0:
            raise ValueError("min_interval must be positive")
        for name, quality in (("jpeg_quality", jpeg_quality), ("blob_quality", blob_quality)):
            if not 0 < quality <= 1:
                raise ValueError(f"{name} must be in (0, 1], got {quality}")

        self.max_width = max_width
        self.min_interval = min_interval
        self.jpeg_quality = jpeg_quality
        self.blob_quality = blob_quality
        self.target_frame_count = target_frame_count
        self.decoder_factory = decoder_factory

    @classmethod
    def from_config(
        cls, config: SamplingConfig | None = None, decoder_factory: Callable[[Path], VideoDecoder] = OpenCVDecoder
    ) -> FrameSampler:
        config = config or get_sampling_config()
        return cls(
            max_width=config.max_width,
            min_interval=config.min_interval,
            jpeg_quality=config.jpeg_quality,
            blob_quality=config.blob_quality,
            target_frame_count=config.target_frame_count,
            decoder_factory=decoder_factory,
        )

    async def sample(
        self,
        video: str | Path | bytes,
        target_count: int | None = None,
        suffix: str = ".mp4",
    ) -> FrameSequence:
        """Capture up to `target_count` frames spread across the video.

        Args:
            video: Path to a video file or the raw bytes of an uploaded video.
            target_count: Maximum number of frames, defaults to `target_frame_count`.
            suffix: File suffix used for the temporary file when `video` is bytes.

        Returns:
            FrameSequence with non-decreasing time offsets, none past the video duration.

        Raises:
            DecodeError: If the video cannot be opened or has no usable duration.
            UnsupportedFormatError: If the video opens but no frame can be read.
        """
        target_count = self.target_frame_count if target_count is None else target_count
        if target_count < 1:
            raise ValueError("target_count must be at least 1")

        if isinstance(video, (bytes, bytearray)):
            with temporary_video_file(bytes(video), suffix=suffix) as path:
                return await self._sample_path(path, target_count)
        return await self._sample_path(Path(video), target_count)

    async def _sample_path(self, path: Path, target_count: int) -> FrameSequence:
        decoder = self.decoder_factory(path)
        try:
            metadata = await decoder.open()
            return await self._capture(decoder, metadata, target_count, label=path.name)
        finally:
            await decoder.close()

    async def _capture(
        self, decoder: VideoDecoder, metadata: VideoMetadata, target_count: int, label: str
    ) -> FrameSequence:
        duration = metadata.total_seconds
        if not duration or math.isnan(duration) or duration <= 0:
            raise DecodeError(f"Could not read a positive duration from {label}")
        if metadata.width <= 0 or metadata.height <= 0:
            raise DecodeError(f"Could not read frame dimensions from {label}")

        size = compute_output_size(metadata.width, metadata.height, self.max_width)
        interval = compute_interval(duration, target_count, self.min_interval)
        expected = min(target_count, math.ceil(duration / interval))
        logger.info(
            "Sampling %s (%s): up to %d frames every %.2fs at %dx%d",
            label,
            metadata,
            expected,
            interval,
            *size,
        )

        frames: list[Frame] = []
        skipped = 0
        current = 0.0
        with progress_bar(total=expected, desc=f"Sampling {label}") as bar:
            while current < duration and len(frames) < target_count:
                seek_time = max(0.0, min(current, duration - SEEK_EPSILON))
                image = await decoder.seek(seek_time)
                current += interval
                if image is None:
                    skipped += 1
                    logger.debug("No frame at %.3fs in %s", seek_time, label)
                    continue

                frames.append(Frame(time_offset=seek_time, image=self._encode(image, size)))
                bar.update(1)

        if not frames:
            raise UnsupportedFormatError(f"No readable frame could be decoded from {label}")
        if skipped:
            logger.warning("Skipped %d unreadable positions in %s", skipped, label)

        logger.info("Captured %d frames from %s", len(frames), label)
        return FrameSequence(frames)

    def _encode(self, image: np.ndarray, size: tuple[int, int]) -> FrameImage:
        """Resize one decoded RGB frame and encode both representations from it."""
        width, height = size
        if image.shape[1] != width or image.shape[0] != height:
            image = cv2.resize(image, (width, height), interpolation=cv2.INTER_AREA)

        pil_image = Image.fromarray(np.ascontiguousarray(image, dtype=np.uint8)).convert("RGB")
        preview = _to_jpeg(pil_image, self.jpeg_quality)
        blob = _to_jpeg(pil_image, self.blob_quality)

        return FrameImage(
            preview=base64.b64encode(preview).decode(),
            blob=blob,
            width=width,
            height=height,
        )


def _to_jpeg(image: Image.Image, quality: float) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=max(1, round(quality * 100)))
    return buffer.getvalue()
