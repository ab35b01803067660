"""Best-effort parsing of model text into facet payloads.

Model output is free text with loosely followed conventions. These helpers
either return a fully validated payload or raise ``MalformedResponseError``;
they never hand back a partially parsed structure.
"""

from __future__ import annotations

import json
import re
from typing import Any

from pydantic import BaseModel, TypeAdapter, ValidationError

from codescope.core.exceptions import MalformedResponseError
from codescope.core.models import LineExplanation, StructuredExplanation

_FENCE = re.compile(r"```[\w+-]*[ \t]*\n?([\s\S]*?)```")
_INLINE_MARKER = re.compile(r"\[`\w+`(?:\(\))?\]")

_SECTION_HEADINGS = (
    "Summary",
    "Line-by-Line",
    "Time Complexity",
    "Space Complexity",
    "Suggestions for Improvement",
    "Suggestions",
)
_HEADING = re.compile(
    r"^[ \t]*(?:#+[ \t]*)?\**[ \t]*(?P<name>"
    + "|".join(re.escape(h) for h in _SECTION_HEADINGS)
    + r")[ \t]*\**[ \t]*(?::[ \t]*\**|$)",
    re.IGNORECASE | re.MULTILINE,
)
_LINE_ITEM = re.compile(
    r"^[ \t]*[-*][ \t]*\[?Lines?[ \t]*(?P<lines>\d+(?:[ \t]*[-,][ \t]*\d+)*)\]?[ \t]*:[ \t]*(?P<body>.*)$",
    re.IGNORECASE | re.MULTILINE,
)
_BULLET = re.compile(r"^[ \t]*(?:[-*•]|\d+[.)])[ \t]*")


def clean_ai_text(text: str) -> str:
    """Strip code fences and inline code markers from model output."""
    without_fences = _FENCE.sub(lambda m: m.group(1), text)
    return _INLINE_MARKER.sub("", without_fences).strip()


def _split_sections(text: str) -> dict[str, str]:
    matches = list(_HEADING.finditer(text))
    sections: dict[str, str] = {}
    for i, match in enumerate(matches):
        end = matches[i + 1].start() if i + 1 < len(matches) else len(text)
        key = match.group("name").lower()
        if key == "suggestions for improvement":
            key = "suggestions"
        sections.setdefault(key, text[match.end() : end].strip())
    return sections


def _parse_line_items(block: str) -> tuple[LineExplanation, ...]:
    items: list[LineExplanation] = []
    for match in _LINE_ITEM.finditer(block):
        body = clean_ai_text(match.group("body"))
        if body:
            items.append(
                LineExplanation(lines=re.sub(r"\s+", "", match.group("lines")), explanation=body)
            )
    return tuple(items)


def _parse_suggestions(block: str) -> tuple[str, ...]:
    suggestions = []
    for line in block.splitlines():
        cleaned = clean_ai_text(_BULLET.sub("", line))
        if cleaned:
            suggestions.append(cleaned)
    return tuple(suggestions)


def _first_line(block: str | None) -> str:
    if not block:
        return "N/A"
    line = block.strip().splitlines()[0].strip() if block.strip() else ""
    return clean_ai_text(line) or "N/A"


def parse_structured_explanation(text: str) -> StructuredExplanation:
    """Parse sectioned explanation text.

    Recognizes ``Summary``, ``Line-by-Line``, ``Time Complexity``, ``Space
    Complexity`` and ``Suggestions`` headings, with or without markdown
    emphasis. Raises ``MalformedResponseError`` when no summary is present.
    """
    sections = _split_sections(clean_ai_text(text))
    summary = clean_ai_text(sections.get("summary", ""))
    if not summary:
        raise MalformedResponseError("Explanation response has no 'Summary' section")
    try:
        return StructuredExplanation(
            summary=summary,
            line_by_line=_parse_line_items(sections.get("line-by-line", "")),
            time_complexity=_first_line(sections.get("time complexity")),
            space_complexity=_first_line(sections.get("space complexity")),
            suggestions=_parse_suggestions(sections.get("suggestions", "")),
        )
    except ValidationError as e:
        raise MalformedResponseError(f"Explanation failed validation: {e}") from e


def extract_mermaid(text: str) -> str:
    """Return Mermaid diagram source from model output."""
    diagram = clean_ai_text(text)
    if not diagram:
        raise MalformedResponseError("Diagram response was empty")
    return diagram


def _load_json(text: str) -> Any:
    cleaned = clean_ai_text(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"Response is not valid JSON: {e.msg}") from e


def parse_json_payload[M: BaseModel](text: str, model: type[M]) -> M:
    """Decode ``text`` as JSON and validate it as one ``model``."""
    data = _load_json(text)
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise MalformedResponseError(
            f"Response does not match {model.__name__}: {e.error_count()} error(s)"
        ) from e


def parse_json_list[M: BaseModel](text: str, model: type[M]) -> tuple[M, ...]:
    """Decode ``text`` as a JSON array of ``model`` objects.

    A top-level object wrapping a single list value (``{"findings": [...]}``)
    is unwrapped.
    """
    data = _load_json(text)
    if isinstance(data, dict):
        lists = [v for v in data.values() if isinstance(v, list)]
        if len(lists) == 1:
            data = lists[0]
    try:
        return tuple(TypeAdapter(list[model]).validate_python(data))
    except ValidationError as e:
        raise MalformedResponseError(
            f"Response is not a list of {model.__name__}: {e.error_count()} error(s)"
        ) from e
