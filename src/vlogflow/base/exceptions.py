"""Exception hierarchy for vlogflow.base module."""


class VlogFlowError(Exception):
    """Base exception for all vlogflow errors."""

    pass


class VideoError(VlogFlowError):
    """Base exception for video-related errors."""

    pass


class DecodeError(VideoError):
    """Raised when a video cannot be opened or its metadata cannot be read."""

    pass


class UnsupportedFormatError(VideoError):
    """Raised when a video opens but no readable frame can be produced."""

    pass


class ConfigError(VlogFlowError):
    """Raised when there's an error loading or parsing configuration."""

    pass
