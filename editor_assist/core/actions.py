"""
Editor actions and tag normalization.

Actions are the closed set of edits a model reply may request. Each variant
declares the fields it needs; payloads that do not match a variant are
dropped rather than raised.
"""

import re
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Tuple, Union

_WHITESPACE = re.compile(r"\s+")
_DISALLOWED_TAG_CHARS = re.compile(r"[^a-z0-9+-]")


def normalize_tag(raw: str) -> str:
    """Normalize a single tag.

    Lowercases, collapses immediately repeated words ("React React"),
    joins the remaining words with hyphens and strips every character
    outside ``[a-z0-9+-]``. May return an empty string.
    """
    words = _WHITESPACE.split(raw.strip().lower())
    collapsed: List[str] = []
    for word in words:
        if word and (not collapsed or collapsed[-1] != word):
            collapsed.append(word)
    return _DISALLOWED_TAG_CHARS.sub("", "-".join(collapsed))


def normalize_tags(raw_tags: Iterable[str]) -> List[str]:
    """Normalize tags, dropping blanks and duplicates while keeping order."""
    seen = set()
    result = []
    for raw in raw_tags:
        if not isinstance(raw, str):
            continue
        tag = normalize_tag(raw)
        if tag and tag not in seen:
            seen.add(tag)
            result.append(tag)
    return result


def merge_tags(existing: Iterable[str], additions: Iterable[str]) -> List[str]:
    """Union of existing and added tags, normalized, existing tags first."""
    return normalize_tags(list(existing) + list(additions))


@dataclass(frozen=True)
class ReplaceBody:
    """Swap the whole body for new Markdown."""
    body_md: str
    type: ClassVar[str] = "REPLACE_BODY"


@dataclass(frozen=True)
class AppendBody:
    """Add Markdown to the end of the body."""
    body_md: str
    type: ClassVar[str] = "APPEND_BODY"


@dataclass(frozen=True)
class ApplyTitle:
    title: str
    type: ClassVar[str] = "APPLY_TITLE"


@dataclass(frozen=True)
class ApplyAbstract:
    abstract: str
    type: ClassVar[str] = "APPLY_ABSTRACT"


@dataclass(frozen=True)
class ApplyTags:
    """Add tags; always holds normalized, de-duplicated tags."""
    tags: Tuple[str, ...]
    type: ClassVar[str] = "APPLY_TAGS"


@dataclass(frozen=True)
class Confirm:
    """Yes/no question for the user. Has no effect on the editor."""
    question: str
    type: ClassVar[str] = "CONFIRM"


Action = Union[ReplaceBody, AppendBody, ApplyTitle, ApplyAbstract, ApplyTags, Confirm]

# Wire type tag -> (variant, payload field)
ACTION_TYPES: Dict[str, Tuple[type, str]] = {
    ReplaceBody.type: (ReplaceBody, "body_md"),
    AppendBody.type: (AppendBody, "body_md"),
    ApplyTitle.type: (ApplyTitle, "title"),
    ApplyAbstract.type: (ApplyAbstract, "abstract"),
    ApplyTags.type: (ApplyTags, "tags"),
    Confirm.type: (Confirm, "question"),
}


def action_from_dict(data: Any) -> Optional[Action]:
    """Build an action from its wire form.

    Returns None for anything that is not a known variant with its required
    field present and non-empty.
    """
    if not isinstance(data, dict):
        return None
    type_tag = data.get("type")
    if not isinstance(type_tag, str) or type_tag.upper() not in ACTION_TYPES:
        return None

    variant, field = ACTION_TYPES[type_tag.upper()]
    value = data.get(field)

    if variant is ApplyTags:
        if not isinstance(value, list):
            return None
        tags = normalize_tags(value)
        return ApplyTags(tags=tuple(tags)) if tags else None

    if not isinstance(value, str) or not value.strip():
        return None
    return variant(value)


def action_to_dict(action: Action) -> Dict[str, Any]:
    """Wire form of an action."""
    _, field = ACTION_TYPES[action.type]
    value = getattr(action, field)
    if isinstance(value, tuple):
        value = list(value)
    return {"type": action.type, field: value}
