"""Prompt shortcodes and response parsing.

Prompts in content templates contain ``{{SHORTCODE}}`` placeholders that are
filled from the pipeline context. This module also parses text-generation
responses (outlines, image prompt lists) and splits narration text.
"""

import json
import random
import re

from app.services.workflow.context import Chapter, Outline

KNOWN_SHORTCODES = frozenset(
    {
        "IDEAS",
        "OUTLINE",
        "SCRIPT",
        "TITLE",
        "SUMMARY",
        "HOOK",
        "CHANNEL_NAME",
        "CHANNEL_DESCRIPTION",
        "VISUAL_STYLE",
        "CHAPTER_NAME",
        "CHAPTER_DESCRIPTION",
        "CHAPTER_CONTENT",
        "imageCount",
    }
)

_SHORTCODE_PATTERN = re.compile(r"\{\{(\w+)\}\}")
_SENTENCE_PATTERN = re.compile(r"(?<=[.!?])\s+")
_CODE_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*|\s*```$", re.MULTILINE)
_TITLE_PATTERN = re.compile(r"^\s*Title:\s*(.+?)\s*$", re.IGNORECASE | re.MULTILINE)
_SUMMARY_PATTERN = re.compile(r"^\s*Summary:\s*(.+?)\s*$", re.IGNORECASE | re.MULTILINE)
_CHAPTER_PATTERN = re.compile(
    r"^\s*Chapter\s+\d+:\s*(.+?)(?:\s+-\s+(.+?))?\s*$", re.IGNORECASE | re.MULTILINE
)
_NUMBERED_LINE_PATTERN = re.compile(r"^\s*(?:\d+[.):]|[-*]|Image\s+\d+:)\s*(.+?)\s*$", re.MULTILINE)


def process(template: str, values: dict[str, str], chapter: Chapter | None = None) -> str:
    """Fill shortcodes in a prompt.

    Known shortcodes without a value become empty strings; unknown
    ``{{...}}`` tokens are left untouched.

    Args:
        template: Prompt text with shortcodes
        values: Shortcode values keyed by name (without braces)
        chapter: Chapter providing the CHAPTER_* shortcodes

    Returns:
        Prompt with shortcodes replaced
    """
    merged = dict(values)
    if chapter is not None:
        merged.update(
            {
                "CHAPTER_NAME": chapter.title,
                "CHAPTER_DESCRIPTION": chapter.summary,
                "CHAPTER_CONTENT": chapter.content,
            }
        )

    def _replace(match: re.Match[str]) -> str:
        key = match.group(1)
        if key not in KNOWN_SHORTCODES:
            return match.group(0)
        return merged.get(key, "")

    return _SHORTCODE_PATTERN.sub(_replace, template)


def split_ideas(ideas_list: str, delimiter: str = "---") -> list[str]:
    """Split a delimited ideas list into non-empty ideas."""
    return [idea.strip() for idea in ideas_list.split(delimiter) if idea.strip()]


def select_random_idea(
    ideas_list: str,
    delimiter: str = "---",
    last_used: str | None = None,
    rng: random.Random | None = None,
) -> str | None:
    """Pick a random idea, avoiding the previously used one when possible.

    Args:
        ideas_list: Delimited ideas
        delimiter: Idea delimiter
        last_used: Idea used by the previous run
        rng: Random source

    Returns:
        Selected idea, or None if the list is empty
    """
    ideas = split_ideas(ideas_list, delimiter)
    if not ideas:
        return None
    if len(ideas) == 1:
        return ideas[0]

    available = [idea for idea in ideas if idea != last_used] or ideas
    return (rng or random).choice(available)


def extract_data(response: str, start: str = "---", end: str = "---") -> str:
    """Extract text between the first start marker and the last end marker.

    Returns the stripped response if the markers are not found.
    """
    start_index = response.find(start)
    end_index = response.rfind(end)
    if start_index != -1 and end_index > start_index:
        return response[start_index + len(start) : end_index].strip()
    return response.strip()


def parse_outline(response: str) -> Outline | None:
    """Parse an outline from a text-generation response.

    JSON objects (optionally inside a code fence) with ``title``,
    ``summary`` and ``chapters`` are preferred; otherwise ``Title:``,
    ``Summary:`` and ``Chapter N: name - description`` lines are read.

    Returns:
        Outline with a title and at least one chapter, or None
    """
    outline = _parse_outline_json(response) or _parse_outline_text(response)
    if outline is None or not outline.title or not outline.chapters:
        return None
    return outline


def _parse_outline_json(response: str) -> Outline | None:
    text = _CODE_FENCE_PATTERN.sub("", response.strip())
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    try:
        data = json.loads(text[start : end + 1])
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None

    chapters = []
    for raw in data.get("chapters") or []:
        if isinstance(raw, str):
            chapters.append(Chapter(title=raw.strip()))
        elif isinstance(raw, dict):
            title = str(raw.get("name") or raw.get("title") or "").strip()
            summary = str(raw.get("description") or raw.get("summary") or "").strip()
            if title:
                chapters.append(Chapter(title=title, summary=summary))

    return Outline(
        title=str(data.get("title") or "").strip(),
        summary=str(data.get("summary") or "").strip(),
        chapters=chapters,
    )


def _parse_outline_text(response: str) -> Outline | None:
    title = _TITLE_PATTERN.search(response)
    if title is None:
        return None
    summary = _SUMMARY_PATTERN.search(response)
    chapters = [
        Chapter(title=match.group(1).strip(), summary=(match.group(2) or "").strip())
        for match in _CHAPTER_PATTERN.finditer(response)
    ]
    return Outline(
        title=title.group(1).strip(),
        summary=summary.group(1).strip() if summary else "",
        chapters=chapters,
    )


def parse_prompt_list(response: str) -> list[str]:
    """Parse a numbered or bulleted list of prompts.

    Falls back to non-empty lines when no list markers are present.
    """
    items = [match.group(1) for match in _NUMBERED_LINE_PATTERN.finditer(response)]
    if items:
        return [item for item in items if item]
    return [line.strip() for line in response.splitlines() if line.strip()]


def generate_image_prompts(count: int, base_prompt: str) -> list[str]:
    """Derive ``count`` numbered variants of a base image prompt."""
    return [f"{base_prompt} (Image {i}/{count})" for i in range(1, count + 1)]


def split_text(text: str, parts: int) -> list[str]:
    """Split narration text into at most ``parts`` contiguous segments.

    Sentences are kept whole when there are enough of them; otherwise the
    text is split on words. Always returns at least one segment.

    Args:
        text: Text to split
        parts: Desired number of segments

    Returns:
        List of segments, ``parts`` long when the text has enough words
    """
    text = text.strip()
    parts = max(1, parts)
    if parts == 1 or not text:
        return [text]

    units = [s for s in _SENTENCE_PATTERN.split(text) if s.strip()]
    if len(units) < parts:
        units = text.split()
    parts = min(parts, len(units))

    size, remainder = divmod(len(units), parts)
    segments = []
    index = 0
    for i in range(parts):
        take = size + (1 if i < remainder else 0)
        segments.append(" ".join(units[index : index + take]))
        index += take
    return segments


def split_script(script: str, chapters: int) -> list[str]:
    """Distribute a full script across chapters by paragraph (or sentence)."""
    paragraphs = [p.strip() for p in script.split("\n\n") if p.strip()]
    if len(paragraphs) < chapters:
        return _pad(split_text(script, chapters), chapters)

    size, remainder = divmod(len(paragraphs), chapters)
    result = []
    index = 0
    for i in range(chapters):
        take = size + (1 if i < remainder else 0)
        result.append("\n\n".join(paragraphs[index : index + take]))
        index += take
    return result


def _pad(segments: list[str], count: int) -> list[str]:
    return segments + [""] * (count - len(segments))


def word_count(text: str) -> int:
    """Count whitespace-separated words."""
    return len(text.split())


__all__ = [
    "KNOWN_SHORTCODES",
    "extract_data",
    "generate_image_prompts",
    "parse_outline",
    "parse_prompt_list",
    "process",
    "select_random_idea",
    "split_ideas",
    "split_script",
    "split_text",
    "word_count",
]
