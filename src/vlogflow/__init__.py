from .ai import AnalysisResultReconciler, AnalysisRequestBuilder, VideoAnalyzer
from .base import AnalysisResult, Frame, FrameSampler, FrameSequence, TimelineEvent
from .project import Project, ProjectPipeline, ProjectStatus, ProjectStore

__all__ = [
    "AnalysisRequestBuilder",
    "AnalysisResult",
    "AnalysisResultReconciler",
    "Frame",
    "FrameSampler",
    "FrameSequence",
    "Project",
    "ProjectPipeline",
    "ProjectStatus",
    "ProjectStore",
    "TimelineEvent",
    "VideoAnalyzer",
]
