"""Markdown export and map links for analysis results."""

from __future__ import annotations

from urllib.parse import quote

from vlogflow.base.description import AnalysisResult, TimelineEvent

__all__ = ["directions_url", "format_time", "search_url", "to_markdown", "unique_places"]

MAPS_BASE_URL = "https://www.google.com/maps"
UNKNOWN_LOCATION = "Unknown location"

# Names the model uses when it could not read a place
_PLACEHOLDERS: tuple[str, ...] = ("Unknown", "unknown", "未知")


def format_time(seconds: float) -> str:
    """Format seconds as M:SS."""
    minutes = int(seconds // 60)
    rest = int(seconds % 60)
    return f"{minutes}:{rest:02d}"


def _event_section(event: TimelineEvent) -> str:
    lines = [
        f"### {event.timestamp} - {event.location or UNKNOWN_LOCATION}",
        f"*{event.content}*",
    ]
    if event.food_items:
        lines.append("")
        lines.append(f"**Food**: {', '.join(event.food_items)}")
    return "\n".join(lines) + "\n"


def to_markdown(result: AnalysisResult) -> str:
    """Render `result` as a Markdown travel guide.

    Layout: title heading, summary blockquote, tag line, then one section per
    timeline event separated by horizontal rules.
    """
    header = [
        f"# {result.title}",
        f"> {result.summary}",
        "",
        f"**Tags**: {', '.join(result.vibe)}",
        "",
        "---",
        "",
    ]
    sections = "\n---\n\n".join(_event_section(event) for event in result.timeline)
    return "\n".join(header) + "\n" + sections


def _is_real_place(location: str) -> bool:
    return len(location) > 1 and not any(placeholder in location for placeholder in _PLACEHOLDERS)


def unique_places(result: AnalysisResult) -> list[str]:
    """Recognised place names in first-seen order, without duplicates or placeholders."""
    places: list[str] = []
    for location in result.locations:
        location = location.strip()
        if _is_real_place(location) and location not in places:
            places.append(location)
    return places


def directions_url(result: AnalysisResult) -> str | None:
    """Multi-stop directions URL visiting every recognised place in order.

    Returns:
        The URL, or None if the timeline has no usable place names.
    """
    places = unique_places(result)
    if not places:
        return None
    return f"{MAPS_BASE_URL}/dir/" + "/".join(quote(place, safe="") for place in places)


def search_url(place: str) -> str:
    """Search URL for a single place."""
    return f"{MAPS_BASE_URL}/search/{quote(place, safe='')}"
