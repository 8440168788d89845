"""
Application of extracted actions to editor state.

The hosting editor exposes optional callbacks. An action whose callback is
missing is skipped, and a callback that raises only loses its own action.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from .actions import (
    Action,
    AppendBody,
    ApplyAbstract,
    ApplyTags,
    ApplyTitle,
    ReplaceBody,
    merge_tags,
)

logger = logging.getLogger(__name__)


@dataclass
class EditorCallbacks:
    """Capability hooks provided by the hosting editor."""
    on_apply_title: Optional[Callable[[str], None]] = None
    on_apply_abstract: Optional[Callable[[str], None]] = None
    on_replace_body: Optional[Callable[[str], None]] = None
    on_append_body: Optional[Callable[[str], None]] = None
    on_apply_tags: Optional[Callable[[List[str]], None]] = None


@dataclass
class ApplyReport:
    """What happened to each action of one apply pass."""
    applied: List[Action] = field(default_factory=list)
    skipped: List[Action] = field(default_factory=list)
    failed: List[Tuple[Action, Exception]] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)


def apply_actions(
    actions: Iterable[Action],
    callbacks: EditorCallbacks,
    current_tags: Sequence[str] = ()
) -> ApplyReport:
    """Apply actions in order.

    Each tag action is merged with ``current_tags`` plus the tags applied
    earlier in the same pass, so the callback always receives the full
    normalized list without duplicates.
    Confirm actions are recorded as skipped; answering them is up to the
    conversation.

    Args:
        actions: Actions in the order they were extracted
        callbacks: Editor hooks; any of them may be None
        current_tags: Tags already on the post

    Returns:
        ApplyReport listing applied, skipped and failed actions and the
        resulting tag list
    """
    report = ApplyReport(tags=list(current_tags))
    for action in actions:
        handler = _resolve(action, callbacks, report.tags)
        if handler is None:
            report.skipped.append(action)
            continue
        try:
            handler()
        except Exception as e:
            logger.exception("Editor callback failed for %s", action.type)
            report.failed.append((action, e))
        else:
            report.applied.append(action)
            if isinstance(action, ApplyTags):
                report.tags = merge_tags(report.tags, action.tags)
    return report


def _resolve(action: Action, callbacks: EditorCallbacks, tags: Sequence[str]):
    """Bind an action to its callback, or None when it has no effect."""
    if isinstance(action, ReplaceBody) and callbacks.on_replace_body:
        return lambda: callbacks.on_replace_body(action.body_md)
    if isinstance(action, AppendBody) and callbacks.on_append_body:
        return lambda: callbacks.on_append_body(action.body_md)
    if isinstance(action, ApplyTitle) and callbacks.on_apply_title:
        return lambda: callbacks.on_apply_title(action.title)
    if isinstance(action, ApplyAbstract) and callbacks.on_apply_abstract:
        return lambda: callbacks.on_apply_abstract(action.abstract)
    if isinstance(action, ApplyTags) and callbacks.on_apply_tags:
        merged = merge_tags(tags, action.tags)
        return lambda: callbacks.on_apply_tags(merged)
    return None
