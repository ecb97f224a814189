from .exceptions import (
    AnalysisError,
    AnalysisTimeoutError,
    BackendError,
    ConfigError,
    EmptyResponseError,
    MalformedResponseError,
    MissingAPIKeyError,
    UnsupportedBackendError,
)
from .analyzer import Analyzer, VideoAnalyzer
from .reconcile import AnalysisResultReconciler, clamp_frame_index
from .request import RESPONSE_SCHEMA, AnalysisRequest, AnalysisRequestBuilder, GenerationSettings, ImagePart

__all__ = [
    # Exceptions
    "BackendError",
    "MissingAPIKeyError",
    "UnsupportedBackendError",
    "ConfigError",
    "AnalysisError",
    "EmptyResponseError",
    "MalformedResponseError",
    "AnalysisTimeoutError",
    # Request
    "AnalysisRequest",
    "AnalysisRequestBuilder",
    "GenerationSettings",
    "ImagePart",
    "RESPONSE_SCHEMA",
    # Analysis
    "Analyzer",
    "VideoAnalyzer",
    # Reconciliation
    "AnalysisResultReconciler",
    "clamp_frame_index",
]
