"""Request construction for the external video analysis model."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from vlogflow.base.description import HIGHLIGHT_TYPES
from vlogflow.base.frames import FrameSequence

__all__ = ["AnalysisRequest", "AnalysisRequestBuilder", "GenerationSettings", "ImagePart", "RESPONSE_SCHEMA"]

INSTRUCTION = """You are a meticulous food detective and travel editor with a microscope-level eye for detail.

Turn this sequence of video frames into an exhaustive travel guide. The frames are given in chronological
order and numbered from 0 by their position.

Follow these rules:
1. Deep detail: do not skip any frame. Note every dish on the table, every menu on the wall, and every
   street stall that only flashes by.
2. Exact shop names: read the text on signboards. If it is blurry, infer the most likely name from context.
3. Food first: whenever food or drink is visible, name the specific dish (e.g. "Chongqing noodles" rather
   than "noodles").
4. Route logic: try to reconstruct the route the person filming walked.

Return:
- title: a catchy title suitable for a travel vlog
- summary: 2-3 sentences on the overall mood and highlights
- vibe: 3-5 short style tags
- timeline: chronological events, each with a display timestamp (MM:SS), a rich description, the place name
  read from visible signage, an exhaustive list of visible food and drink items, the 0-based index of the
  frame that best matches the event, and a category (food, scenery, transport or other)

Take your time to read blurry text and food details carefully. Output strictly valid JSON."""

RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "title": {
            "type": "string",
            "description": "Catchy title for the video, in travel vlog style.",
        },
        "summary": {
            "type": "string",
            "description": "2-3 sentence summary of the overall mood and highlights.",
        },
        "vibe": {
            "type": "array",
            "items": {"type": "string"},
            "description": "3-5 style tags describing the video.",
        },
        "timeline": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "timestamp": {"type": "string", "description": "Timestamp in MM:SS format."},
                    "content": {
                        "type": "string",
                        "description": "Detailed description of the moment, including actions and scene details.",
                    },
                    "location": {
                        "type": "string",
                        "description": "Shop or landmark name. Must use the signboard text when one is visible.",
                    },
                    "foodItems": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Every food or drink visible, including items at the edge of the table.",
                    },
                    "bestFrameIndex": {
                        "type": "integer",
                        "description": "0-based index of the frame that best matches this event.",
                    },
                    "highlightType": {
                        "type": "string",
                        "enum": list(HIGHLIGHT_TYPES),
                        "description": "Main category of the moment.",
                    },
                },
                "required": ["timestamp", "content", "bestFrameIndex", "highlightType"],
            },
        },
    },
    "required": ["title", "timeline", "summary", "vibe"],
}


@dataclass(frozen=True)
class ImagePart:
    """One inline image of the request. `data` is base64 encoded."""

    data: str
    mime_type: str = "image/jpeg"


@dataclass(frozen=True)
class GenerationSettings:
    """Inference settings sent with the request.

    Attributes:
        temperature: Low values favour accurate reading of signs and menus
        thinking_budget: Reasoning token budget for models that support it
        response_mime_type: Requested response encoding
    """

    temperature: float = 0.2
    thinking_budget: int = 2048
    response_mime_type: str = "application/json"


@dataclass(frozen=True)
class AnalysisRequest:
    """A single multimodal request: instruction text followed by ordered frames.

    The model refers to frames by their position in `images`.
    """

    instruction: str
    images: tuple[ImagePart, ...]
    response_schema: dict[str, Any] = field(default_factory=lambda: RESPONSE_SCHEMA)
    generation: GenerationSettings = field(default_factory=GenerationSettings)

    @property
    def frame_count(self) -> int:
        return len(self.images)

    def parts(self) -> list[str | ImagePart]:
        """Instruction followed by every image part, in frame order."""
        return [self.instruction, *self.images]


class AnalysisRequestBuilder:
    """Builds an `AnalysisRequest` from a frame sequence."""

    def __init__(self, generation: GenerationSettings | None = None, instruction: str = INSTRUCTION):
        self.generation = generation or GenerationSettings()
        self.instruction = instruction

    def build(self, frames: FrameSequence) -> AnalysisRequest:
        """Create the request for `frames`.

        An empty sequence produces a request without image parts; callers are
        expected to reject it before sending.
        """
        images = tuple(ImagePart(data=frame.image.preview) for frame in frames)
        return AnalysisRequest(
            instruction=self.instruction,
            images=images,
            response_schema=RESPONSE_SCHEMA,
            generation=self.generation,
        )
