"""
Action and section extraction from model replies.

A reply is free text that may carry two kinds of structure:

* fenced ```json blocks holding ``{"actions": [...], "confidence": x}``.
  Only the last block counts: a later block supersedes earlier ones, which
  is how a model corrects itself mid-reply.
* labeled sections (``#TITLE``, ``#ABSTRACT``, ``#BODY_MD``/``#BODY``,
  ``#TAGS``), each running from its header to the next header or the end.

Both parsers are pure and never raise on malformed input.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .actions import Action, action_from_dict, normalize_tags
from .errors import ParseError

logger = logging.getLogger(__name__)

_JSON_FENCE = re.compile(r"```json\s*(.*?)\s*```", re.IGNORECASE | re.DOTALL)
_TAGS_LABEL = re.compile(r"^#?\s*tags?\s*:\s*", re.IGNORECASE)
_LIST_BULLET = re.compile(r"^[ \t>]*[•*\-]\s*", re.MULTILINE)
_TAG_SEPARATORS = re.compile(r"[,|;/]+")


@dataclass(frozen=True)
class ActionBlock:
    """Parsed structured action block."""
    actions: Tuple[Action, ...]
    confidence: Optional[float] = None


@dataclass(frozen=True)
class Sections:
    """Labeled sections of a reply. Absent headers are None / empty."""
    title: Optional[str] = None
    abstract: Optional[str] = None
    body: Optional[str] = None
    tags: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return not (self.title or self.abstract or self.body or self.tags)


def parse_action_block(payload: str) -> ActionBlock:
    """Parse the inside of one fenced block.

    Entries that are not a known action with its required field are skipped.

    Raises:
        ParseError: If the payload is not a JSON object with an actions list
    """
    try:
        data = json.loads(payload)
    except (json.JSONDecodeError, RecursionError) as e:
        raise ParseError(f"invalid JSON in action block: {e}") from e

    if not isinstance(data, dict):
        raise ParseError("action block must be a JSON object")
    raw_actions = data.get("actions")
    if not isinstance(raw_actions, list):
        raise ParseError("action block has no actions list")

    actions = []
    for entry in raw_actions:
        action = action_from_dict(entry)
        if action is None:
            logger.debug("Skipping unsupported action entry: %r", entry)
            continue
        actions.append(action)

    confidence = data.get("confidence")
    if isinstance(confidence, (int, float)) and not isinstance(confidence, bool):
        confidence = min(1.0, max(0.0, float(confidence)))
    else:
        confidence = None

    return ActionBlock(actions=tuple(actions), confidence=confidence)


def extract_action_block(raw_text: Optional[str]) -> Optional[ActionBlock]:
    """Parse the last fenced json block, or None if there is none or it is malformed."""
    if not raw_text:
        return None
    blocks = _JSON_FENCE.findall(raw_text)
    if not blocks:
        return None

    # Last occurrence wins
    try:
        return parse_action_block(blocks[-1])
    except ParseError as e:
        logger.debug("Ignoring malformed action block: %s", e)
        return None


def extract_actions(raw_text: Optional[str]) -> List[Action]:
    """Actions requested by a model reply; empty when there are none."""
    block = extract_action_block(raw_text)
    return list(block.actions) if block else []


def section_grab(text: str, name: str) -> Optional[str]:
    """Text under ``#NAME`` up to the next ``#WORD`` header, or None."""
    pattern = re.compile(
        rf"#{re.escape(name)}\s*\n(.*?)(?=\n#\w+\b|\Z)",
        re.IGNORECASE | re.DOTALL
    )
    match = pattern.search(text)
    if not match:
        return None
    return match.group(1).strip()


def parse_tags(raw: Optional[str]) -> List[str]:
    """Parse a free-form tag list into normalized, de-duplicated tags.

    Strips a leading ``tags:`` label and list bullets, splits on
    ``, | ; /`` (or on whitespace when that yields a single token) and
    normalizes each tag.
    """
    if not raw:
        return []
    s = raw.strip()
    s = _TAGS_LABEL.sub("", s)
    s = _LIST_BULLET.sub("", s)
    s = re.sub(r"\n+", ",", s)

    parts = [part.strip() for part in _TAG_SEPARATORS.split(s)]
    parts = [part for part in parts if part]
    if len(parts) <= 1:
        parts = s.split()
    return normalize_tags(parts)


def _strip_action_blocks(text: str) -> str:
    def _replace(match):
        try:
            data = json.loads(match.group(1))
        except (json.JSONDecodeError, RecursionError):
            return match.group(0)
        if isinstance(data, dict) and "actions" in data:
            return ""
        return match.group(0)

    return _JSON_FENCE.sub(_replace, text)


def extract_sections(raw_text: Optional[str]) -> Sections:
    """Labeled sections of a reply; action blocks are not part of any section."""
    if not raw_text:
        return Sections()
    text = _strip_action_blocks(raw_text)
    body = section_grab(text, "BODY_MD") or section_grab(text, "BODY")
    return Sections(
        title=section_grab(text, "TITLE") or None,
        abstract=section_grab(text, "ABSTRACT") or None,
        body=body or None,
        tags=tuple(parse_tags(section_grab(text, "TAGS"))),
    )
