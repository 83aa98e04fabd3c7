"""Text post-processing for model responses.

Display-side parsers (`split_script`, `parse_script_table`, `parse_scenes`,
`parse_ideas`) never raise; callers fall back to showing the raw text.
`parse_seo_content` is the one strict parser and raises `FormatError`.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from .errors import FormatError
from .models import Duration, Genre, Idea, NarrationStyle, ScriptTable, SeoContent

logger = logging.getLogger(__name__)

SUGGESTION_HEADER = "suggested narration styles"

_SEPARATOR_LINE = re.compile(r"^---[ \t]*$", re.MULTILINE)
_SUGGESTION_LINE = re.compile(r"^\d+\.\s*\*\*")
_SUGGESTION_PARTS = re.compile(r"^\d+\.\s*\*\*(.*?):\*\*(.*?)(?:\s*\*(.*)\*)?$")

_IDEA_HEADING = re.compile(
    r"^\s*(?:#{1,6}\s*)?(?:\*\*)?\s*(?:idea\s*)?\d+\s*[.):]\s*(.+?)\s*$",
    re.IGNORECASE,
)
_IDEA_FIELD = re.compile(
    r"^\s*(?:[-*]\s*)?\*\*\s*(concept|story arc|visuals?\s*(?:&|and)\s*audio)\s*:?\s*\*\*\s*:?\s*(.*)$",
    re.IGNORECASE,
)


def strip_json_fence(text: str) -> str:
    """Drop an optional ```json / ``` opening fence and a trailing ``` fence."""
    cleaned = (text or "").strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[len("```json") :]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def parse_trending_topics(text: str) -> List[str]:
    topics_text = (text or "").strip()
    if not topics_text:
        return []
    topics = [topic.strip().lower() for topic in topics_text.split(",")]
    return [topic for topic in topics if topic]


def split_script(script: str) -> Tuple[Optional[str], str]:
    """Split a draft into (narration suggestion block, scene table text).

    The suggestion block is the section before the first line holding only
    ``---``. It only counts when it carries the suggestion header or at least
    one numbered bold suggestion line; otherwise the whole draft is the table.
    """
    if not script:
        return None, ""
    match = _SEPARATOR_LINE.search(script)
    if not match:
        return None, script
    head = script[: match.start()]
    has_header = SUGGESTION_HEADER in head.lower()
    has_lines = any(_SUGGESTION_LINE.match(line.strip()) for line in head.splitlines())
    if not (has_header or has_lines):
        return None, script
    return head.strip(), script[match.end() :].strip()


def parse_narration_styles(block: Optional[str]) -> List[NarrationStyle]:
    if not block:
        return []
    styles: list[NarrationStyle] = []
    for line in block.strip().splitlines():
        line = line.strip()
        if not _SUGGESTION_LINE.match(line):
            continue
        match = _SUGGESTION_PARTS.match(line)
        if not match:
            continue
        styles.append(
            NarrationStyle(
                name=(match.group(1) or "").strip() or "Unnamed Style",
                description=(match.group(2) or "").strip(),
                justification=(match.group(3) or "").strip(),
            )
        )
    return styles


def _row_cells(line: str) -> List[str]:
    cells = [cell.strip() for cell in line.split("|")]
    # `| a | b |` yields empty first and last cells.
    if cells[0] == "" and cells[-1] == "":
        return cells[1:-1]
    return cells


def parse_script_table(markdown: str) -> Optional[ScriptTable]:
    """Parse the scene table; ``None`` means render the text verbatim."""
    try:
        lines = (markdown or "").strip().split("\n")
        header_index = next(
            (idx for idx, line in enumerate(lines) if "|" in line and "timestamp" in line.lower()),
            None,
        )
        if header_index is None:
            return None
        header = [cell.strip() for cell in lines[header_index].split("|") if cell.strip()]
        if not header:
            return None
        rows = [_row_cells(line) for line in lines[header_index + 2 :]]
        return ScriptTable(header=header, rows=[row for row in rows if len(row) > 1])
    except Exception:
        logger.exception("Failed to parse script markdown")
        return None


def parse_scenes(json_text: str) -> Optional[List[Dict[str, Any]]]:
    """Decode a finalized scene array; ``None`` when it is not one."""
    try:
        scenes = json.loads(json_text)
    except (TypeError, ValueError):
        return None
    if not isinstance(scenes, list) or not all(isinstance(scene, dict) for scene in scenes):
        return None
    return scenes


def parse_seo_content(text: str) -> SeoContent:
    try:
        payload = json.loads(strip_json_fence(text))
    except ValueError as exc:
        raise FormatError("SEO response was not valid JSON.") from exc

    if not isinstance(payload, dict):
        raise FormatError("SEO response must be a JSON object.")
    title = payload.get("title")
    description = payload.get("description")
    tags = payload.get("tags")
    if not isinstance(title, str) or not isinstance(description, str):
        raise FormatError("SEO response is missing a string title or description.")
    if not isinstance(tags, list) or not all(isinstance(tag, str) for tag in tags):
        raise FormatError("SEO response tags must be an array of strings.")
    return SeoContent(title=title.strip(), description=description.strip(), tags=[t.strip() for t in tags])


def _clean_title(raw: str) -> str:
    title = raw.strip().strip("*").strip()
    if title.lower().startswith("title:"):
        title = title[len("title:") :].strip()
    return title.strip("\"'“”").strip()


def parse_ideas(text: str, genre: Genre, duration: Duration) -> List[Idea]:
    """Turn an idea listing into `Idea` records; entries without a concept are skipped."""
    ideas: list[Idea] = []
    current: dict[str, str] | None = None

    def _flush() -> None:
        if current and current.get("title") and current.get("concept"):
            ideas.append(
                Idea(
                    title=current["title"],
                    concept=current["concept"],
                    story_arc=current.get("story arc", ""),
                    genre=genre,
                    duration=duration,
                    visuals_and_audio=current.get("visuals", ""),
                )
            )

    for line in (text or "").splitlines():
        field_match = _IDEA_FIELD.match(line)
        if field_match and current is not None:
            label = field_match.group(1).lower()
            key = "visuals" if label.startswith("visual") else label
            current[key] = field_match.group(2).strip()
            continue
        heading_match = _IDEA_HEADING.match(line)
        if heading_match and not field_match:
            _flush()
            current = {"title": _clean_title(heading_match.group(1))}
    _flush()
    return ideas
