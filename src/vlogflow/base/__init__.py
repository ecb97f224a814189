from .decoder import OpenCVDecoder, VideoDecoder, VideoMetadata, temporary_video_file
from .description import HIGHLIGHT_TYPES, AnalysisResult, HighlightType, TimelineEvent
from .exceptions import ConfigError, DecodeError, UnsupportedFormatError, VideoError, VlogFlowError
from .frames import Frame, FrameImage, FrameSequence
from .sampler import FrameSampler, compute_interval, compute_output_size

__all__ = [
    # Exceptions
    "VlogFlowError",
    "VideoError",
    "DecodeError",
    "UnsupportedFormatError",
    "ConfigError",
    # Frames
    "Frame",
    "FrameImage",
    "FrameSequence",
    # Decoding
    "VideoDecoder",
    "VideoMetadata",
    "OpenCVDecoder",
    "temporary_video_file",
    # Sampling
    "FrameSampler",
    "compute_interval",
    "compute_output_size",
    # Description
    "AnalysisResult",
    "TimelineEvent",
    "HighlightType",
    "HIGHLIGHT_TYPES",
]
