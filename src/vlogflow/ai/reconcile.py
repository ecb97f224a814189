"""Reconciliation of model output against the captured frames.

The model references frames by position and also writes its own timestamps.
Only the frame sequence is trusted: every event is bound to an existing frame
and takes that frame's capture offset as its time.
"""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Mapping
from typing import Any

from vlogflow.ai.exceptions import EmptyResponseError, MalformedResponseError
from vlogflow.base.description import AnalysisResult, TimelineEvent
from vlogflow.base.frames import FrameSequence

__all__ = ["AnalysisResultReconciler", "clamp_frame_index"]

logger = logging.getLogger(__name__)

REQUIRED_FIELDS: tuple[str, ...] = ("title", "summary", "vibe", "timeline")


def clamp_frame_index(index: int, frame_count: int) -> int:
    """Clamp `index` to the nearest valid position in a sequence of `frame_count` frames.

    Negative indices map to 0 and indices past the end map to the last frame.
    """
    if frame_count < 1:
        raise ValueError("Cannot clamp into an empty frame sequence")
    return max(0, min(index, frame_count - 1))


class AnalysisResultReconciler:
    """Turns a raw model response into an `AnalysisResult` consistent with the frames.

    Out of range `bestFrameIndex` values are remapped to the nearest valid
    frame rather than rejected, so the event may end up attributed to a
    neighbouring frame. Missing or unparsable top-level structure is never
    repaired.
    """

    def reconcile(
        self,
        raw: str | bytes | Mapping[str, Any] | AnalysisResult | None,
        frames: FrameSequence,
    ) -> AnalysisResult:
        """Validate `raw` and bind every timeline event to a frame of `frames`.

        Args:
            raw: Model output as JSON text, a parsed mapping, or a previously reconciled result.
            frames: The frame sequence that was sent to the model.

        Returns:
            AnalysisResult with timeline order preserved exactly as received.

        Raises:
            EmptyResponseError: If `raw` carries no payload.
            MalformedResponseError: If `raw` is not a JSON object with the required fields.
        """
        data = self._load(raw)

        missing = [name for name in REQUIRED_FIELDS if name not in data]
        if missing:
            raise MalformedResponseError(f"Response is missing required fields: {', '.join(missing)}")

        vibe = data["vibe"]
        timeline = data["timeline"]
        if not isinstance(vibe, list):
            raise MalformedResponseError(f"'vibe' must be a list, got {type(vibe).__name__}")
        if not isinstance(timeline, list):
            raise MalformedResponseError(f"'timeline' must be a list, got {type(timeline).__name__}")
        if timeline and len(frames) == 0:
            raise MalformedResponseError("Response has timeline events but no frames were captured")

        events = [self._reconcile_event(position, entry, frames) for position, entry in enumerate(timeline)]

        return AnalysisResult(
            title=_as_text(data["title"]),
            summary=_as_text(data["summary"]),
            vibe=[_as_text(tag) for tag in vibe],
            timeline=events,
        )

    def _load(self, raw: str | bytes | Mapping[str, Any] | AnalysisResult | None) -> dict[str, Any]:
        if raw is None:
            raise EmptyResponseError("The model returned no result")

        if isinstance(raw, AnalysisResult):
            return raw.to_dict()

        if isinstance(raw, Mapping):
            if not raw:
                raise EmptyResponseError("The model returned an empty object")
            return dict(raw)

        if isinstance(raw, (bytes, bytearray)):
            raw = bytes(raw).decode("utf-8", errors="replace")

        text = _strip_code_fence(raw)
        if not text:
            raise EmptyResponseError("The model returned no result")

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise MalformedResponseError(f"Response is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise MalformedResponseError(f"Response must be a JSON object, got {type(data).__name__}")
        if not data:
            raise EmptyResponseError("The model returned an empty object")
        return data

    def _reconcile_event(self, position: int, entry: Any, frames: FrameSequence) -> TimelineEvent:
        if not isinstance(entry, Mapping):
            raise MalformedResponseError(f"Timeline entry {position} must be an object, got {type(entry).__name__}")
        if "bestFrameIndex" not in entry:
            raise MalformedResponseError(f"Timeline entry {position} has no bestFrameIndex")

        index = _as_index(entry["bestFrameIndex"], position)
        clamped = clamp_frame_index(index, len(frames))
        if clamped != index:
            logger.warning(
                "Timeline entry %d references frame %d of %d, using frame %d",
                position,
                index,
                len(frames),
                clamped,
            )

        return TimelineEvent(
            timestamp=_as_text(entry.get("timestamp")),
            best_frame_index=clamped,
            time_offset=frames[clamped].time_offset,
            content=_as_text(entry.get("content")),
            location=_as_text(entry.get("location")),
            food_items=_as_text_list(entry.get("foodItems"), position),
            highlight_type=entry.get("highlightType") or "other",
        )


def _strip_code_fence(text: str) -> str:
    """Remove a surrounding markdown code block if present."""
    text = text.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        text = "\n".join(lines[1:-1] if lines[-1].strip() == "```" else lines[1:])
    return text.strip()


def _as_index(value: Any, position: int) -> int:
    # bool is an int subclass but never a meaningful index
    if isinstance(value, bool):
        raise MalformedResponseError(f"Timeline entry {position} has a non-numeric bestFrameIndex: {value!r}")
    if isinstance(value, int):
        return value
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise MalformedResponseError(
            f"Timeline entry {position} has a non-numeric bestFrameIndex: {value!r}"
        ) from e
    if not math.isfinite(number):
        raise MalformedResponseError(f"Timeline entry {position} has a non-finite bestFrameIndex: {value!r}")
    return int(number)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _as_text_list(value: Any, position: int) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value else []
    if not isinstance(value, (list, tuple)):
        raise MalformedResponseError(
            f"Timeline entry {position} has foodItems of type {type(value).__name__}, expected a list"
        )
    return [_as_text(item) for item in value]
