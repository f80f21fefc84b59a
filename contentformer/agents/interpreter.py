"""Turn model output into structured records.

Only the ideas stage is structured. The model is told to answer with a bare
JSON array, but it often wraps the array in prose or a markdown fence, so
parsing is a strict attempt followed by one regex-narrowed recovery attempt.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Optional

from ..exceptions import ParseError
from ..models import ContentIdea, new_id

logger = logging.getLogger(__name__)

UNTITLED_IDEA = "Untitled Idea"
NO_DESCRIPTION = "No description provided"
PARSE_FAILURE_MESSAGE = (
    "Failed to parse response from AI service. "
    "The response was not in the expected JSON format."
)

# Greedy: from the first "[" to the last "]"
_ARRAY_PATTERN = re.compile(r"\[[\s\S]*\]")


@dataclass
class IdeaParse:
    """Tagged result of parsing ideas-stage output."""

    ok: bool
    ideas: list[ContentIdea] = field(default_factory=list)
    strategy: Optional[str] = None  # "direct" | "recovered"
    error: Optional[str] = None


def _load_array(text: str) -> Optional[list]:
    try:
        data = json.loads(text)
    except (TypeError, ValueError, RecursionError):
        return None
    return data if isinstance(data, list) else None


def _text_or(value: Any, default: str) -> str:
    return str(value) if value else default


def _to_ideas(items: list) -> list[ContentIdea]:
    ideas = []
    seen: set[str] = set()
    for item in items:
        idea_id = new_id("idea")
        while idea_id in seen:
            idea_id = new_id("idea")
        seen.add(idea_id)
        ideas.append(_to_idea(item, idea_id))
    return ideas


def _to_idea(item: Any, idea_id: str) -> ContentIdea:
    fields = item if isinstance(item, dict) else {}
    return ContentIdea(
        id=idea_id,
        title=_text_or(fields.get("title"), UNTITLED_IDEA),
        description=_text_or(fields.get("description"), NO_DESCRIPTION),
    )


def extract_idea_array(text: str) -> IdeaParse:
    """Parse ideas from model output without raising.

    1. Strict parse of the whole text, accepted only if it is an array.
    2. Strict parse of the widest bracket-delimited substring.
    """
    data = _load_array(text)
    if data is not None:
        return IdeaParse(ok=True, ideas=_to_ideas(data), strategy="direct")

    logger.debug("[IDEAS] Direct JSON parse failed, trying to extract an array")
    match = _ARRAY_PATTERN.search(text or "")
    if match:
        data = _load_array(match.group(0))
        if data is not None:
            return IdeaParse(
                ok=True, ideas=_to_ideas(data), strategy="recovered"
            )

    return IdeaParse(ok=False, error=PARSE_FAILURE_MESSAGE)


def parse_ideas(text: str) -> list[ContentIdea]:
    """Parse ideas from model output, raising ParseError if no array can be recovered."""
    result = extract_idea_array(text)
    if not result.ok:
        logger.error("[IDEAS] No valid JSON array found in response (%d chars)", len(text or ""))
        raise ParseError(result.error or PARSE_FAILURE_MESSAGE)

    logger.info("[IDEAS] Parsed %d ideas (%s)", len(result.ideas), result.strategy)
    return result.ideas


def passthrough_text(text: str) -> str:
    """Scripts and posts are free text; the invoker already rejected blank output."""
    return text
