from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

HighlightType = Literal["food", "scenery", "transport", "other"]
HIGHLIGHT_TYPES: tuple[str, ...] = ("food", "scenery", "transport", "other")


@dataclass
class TimelineEvent:
    """One moment of the travel timeline returned by the analysis model.

    Attributes:
        timestamp: Display timestamp as written by the model (e.g. "00:15")
        best_frame_index: Index into the frame sequence of the frame that best shows this event
        time_offset: Capture offset in seconds of the referenced frame
        content: Narrative description of the moment
        location: Shop or landmark name, empty if none was recognised
        food_items: Food and drink visible in the frame
        highlight_type: Category of the event
    """

    timestamp: str
    best_frame_index: int
    time_offset: float
    content: str
    location: str = ""
    food_items: list[str] = field(default_factory=list)
    highlight_type: HighlightType = "other"

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "bestFrameIndex": self.best_frame_index,
            "timeOffset": self.time_offset,
            "content": self.content,
            "location": self.location,
            "foodItems": list(self.food_items),
            "highlightType": self.highlight_type,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TimelineEvent":
        return cls(
            timestamp=data["timestamp"],
            best_frame_index=int(data["bestFrameIndex"]),
            time_offset=float(data.get("timeOffset", 0.0)),
            content=data["content"],
            location=data.get("location") or "",
            food_items=list(data.get("foodItems") or []),
            highlight_type=data.get("highlightType", "other"),
        )


@dataclass
class AnalysisResult:
    """Structured travel guide produced from one video.

    Attributes:
        title: Catchy title for the video
        summary: Short summary of the overall mood and highlights
        vibe: Style tags
        timeline: Events in the order returned by the model
    """

    title: str
    summary: str
    vibe: list[str] = field(default_factory=list)
    timeline: list[TimelineEvent] = field(default_factory=list)

    @property
    def locations(self) -> list[str]:
        """Non-empty locations of all events, in timeline order."""
        return [event.location for event in self.timeline if event.location]

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "summary": self.summary,
            "vibe": list(self.vibe),
            "timeline": [event.to_dict() for event in self.timeline],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AnalysisResult":
        return cls(
            title=data["title"],
            summary=data["summary"],
            vibe=list(data.get("vibe", [])),
            timeline=[TimelineEvent.from_dict(item) for item in data.get("timeline", [])],
        )
