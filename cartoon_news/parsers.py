"""Parsers for Gemini generateContent responses."""

import json
import re
from collections.abc import Mapping
from typing import Any

from .errors import MalformedDataError
from .models import ArticleAnalysis, CartoonConcept, ComicPanel, VisibleText

DEFAULT_HUMOR_SCORE = 50

JSON_ARRAY = re.compile(r"\[[\s\S]*\]")
JSON_ARRAY_LAZY = re.compile(r"\[[\s\S]*?\]")
TRAILING_COMMA = re.compile(r",(\s*[}\]])")
CODE_FENCE = re.compile(r"```(?:json)?\s*")


def response_text(response: Mapping[str, Any]) -> str:
    """Text of the first part of the first candidate, or ``""``."""
    try:
        return response["candidates"][0]["content"]["parts"][0].get("text") or ""
    except (KeyError, IndexError, TypeError, AttributeError):
        return ""


def parse_concepts(response: Mapping[str, Any], location: str) -> list[CartoonConcept]:
    """Read the concept array out of the model text.

    Raises:
        MalformedDataError: No JSON array in the text, or it does not parse
    """
    match = JSON_ARRAY.search(response_text(response))
    if not match:
        raise MalformedDataError("Could not parse cartoon concepts from API response")

    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise MalformedDataError(
            "Failed to parse cartoon concepts JSON", details={"parse_error": str(e)}
        ) from e

    if not isinstance(parsed, list):
        raise MalformedDataError("Cartoon concepts JSON is not an array")

    return [
        CartoonConcept(
            title=concept.get("title") or "Untitled",
            premise=concept.get("premise") or "A cartoon concept",
            why_funny=concept.get("why_funny") or "Political commentary",
            location=location,
        )
        for concept in parsed
        if isinstance(concept, Mapping)
    ]


def default_panels(panel_count: int) -> list[ComicPanel]:
    return [
        ComicPanel(
            panel_number=number,
            visual_description=f"Panel {number}: A scene showing the cartoon concept with visual humor",
        )
        for number in range(1, panel_count + 1)
    ]


def _visible_text(value: Any) -> list[VisibleText]:
    if not isinstance(value, list):
        return []
    return [
        VisibleText(type=item.get("type") or "sign", content=item.get("content") or "")
        for item in value
        if isinstance(item, Mapping)
    ]


def parse_comic_script(response: Mapping[str, Any], panel_count: int = 4) -> list[ComicPanel]:
    """Panels from the model text; unusable text yields placeholder panels."""
    match = JSON_ARRAY.search(response_text(response))
    if match:
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list) and parsed:
            panels = []
            for index, panel in enumerate(parsed[:panel_count], start=1):
                if not isinstance(panel, Mapping):
                    panel = {}
                characters = panel.get("characters")
                panels.append(
                    ComicPanel(
                        panel_number=panel.get("panelNumber") or index,
                        visual_description=panel.get("visualDescription")
                        or "Visual description goes here",
                        visible_text=_visible_text(panel.get("visibleText")),
                        characters=characters if isinstance(characters, list) else [],
                        setting=panel.get("setting") or "Scene",
                    )
                )
            return panels
    return default_panels(panel_count)


def parse_image(response: Mapping[str, Any]) -> tuple[str, str]:
    """Base64 image data and its MIME type.

    Looks for ``inlineData`` on the candidate itself, then on the first part
    of ``candidate.content.parts`` (or ``candidate.parts``).

    Raises:
        MalformedDataError: No candidates, no parts, or no image data
    """
    candidates = response.get("candidates") if isinstance(response, Mapping) else None
    if not candidates:
        raise MalformedDataError("No candidates in API response")

    candidate = candidates[0] if isinstance(candidates[0], Mapping) else {}
    inline = candidate.get("inlineData")
    if isinstance(inline, Mapping) and inline.get("data"):
        return inline["data"], inline.get("mimeType") or "image/png"

    content = candidate.get("content")
    parts = (content.get("parts") if isinstance(content, Mapping) else None) or candidate.get("parts") or []
    if not parts:
        raise MalformedDataError("No parts in API response candidate")

    part = parts[0] if isinstance(parts[0], Mapping) else {}
    inline = part.get("inlineData")
    if isinstance(inline, Mapping):
        if not inline.get("data"):
            raise MalformedDataError("Image data field is empty in API response")
        return inline["data"], inline.get("mimeType") or "image/png"

    if part.get("text"):
        raise MalformedDataError(
            "API returned text description instead of image",
            details={"text_preview": part["text"][:200]},
        )
    raise MalformedDataError("Could not extract image data from API response")


def parse_humor_score(response: Mapping[str, Any]) -> int:
    """Leading integer of the model text clamped to 1-100, else 50."""
    match = re.match(r"\s*([+-]?\d+)", response_text(response))
    if not match:
        return DEFAULT_HUMOR_SCORE
    return min(100, max(1, int(match.group(1))))


def parse_batch_analysis(response: Mapping[str, Any]) -> list[ArticleAnalysis]:
    """Per-article analyses, or an empty list when the text holds no array."""
    text = CODE_FENCE.sub("", response_text(response).strip())
    match = JSON_ARRAY_LAZY.search(text)
    if not match:
        return []

    cleaned = TRAILING_COMMA.sub(r"\1", match.group(0)).replace("\r", " ").replace("\n", " ")
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        return []
    if not isinstance(parsed, list):
        return []

    analyses = []
    for entry in parsed:
        if not isinstance(entry, Mapping):
            continue
        score = entry.get("humorScore")
        if isinstance(score, bool) or not isinstance(score, (int, float)):
            score = DEFAULT_HUMOR_SCORE
        analyses.append(
            ArticleAnalysis(
                summary=str(entry.get("summary") or ""),
                humor_score=min(100, max(1, int(score))),
            )
        )
    return analyses
