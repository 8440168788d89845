"""
Editing session: one writer talking to the assistant about one post.

Runs a turn end to end on the client side: compose the prompt, send it,
extract actions and sections from the reply, apply them, and fall back to
intent inference when the reply carried no structured actions. Structured
actions always take precedence over the fallback.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from .actions import (
    Action,
    AppendBody,
    ApplyAbstract,
    ApplyTags,
    ApplyTitle,
    ReplaceBody,
)
from .applicator import ApplyReport, EditorCallbacks, apply_actions
from .extractor import Sections, extract_actions, extract_sections
from .fallback import ProposalBuffer, infer_actions
from .prompts import DEFAULT_FEATURE, compose

logger = logging.getLogger(__name__)

SendFn = Callable[..., Dict[str, Any]]


@dataclass(frozen=True)
class ChatTurn:
    """One message in the session history."""
    role: str
    text: str
    sections: Optional[Sections] = None
    actions: Tuple[Action, ...] = field(default_factory=tuple)


@dataclass
class TurnResult:
    """Outcome of a single turn."""
    text: str
    sections: Sections
    actions: List[Action]
    inferred: List[Action]
    report: Optional[ApplyReport]
    quota: Optional[Dict[str, int]]


class EditingSession:
    """Session-scoped chat history, proposal buffer and editor wiring.

    Args:
        send: Callable taking ``feature, prompt, context, power`` keywords and
            returning the endpoint's success payload; raises AssistError
        callbacks: Editor hooks the actions are applied to
        get_context: Returns a snapshot of the current editor content
        post_type: "article" or "question"
        current_tags: Tags already on the post
        auto_apply: Apply actions as soon as they arrive
    """

    def __init__(
        self,
        send: SendFn,
        callbacks: Optional[EditorCallbacks] = None,
        get_context: Optional[Callable[[], str]] = None,
        post_type: str = "article",
        current_tags: Optional[List[str]] = None,
        auto_apply: bool = True,
        power: bool = False
    ):
        self.send = send
        self.callbacks = callbacks or EditorCallbacks()
        self.get_context = get_context
        self.post_type = post_type
        self.current_tags = list(current_tags or [])
        self.auto_apply = auto_apply
        self.power = power
        self.turns: List[ChatTurn] = []
        self.buffer = ProposalBuffer()
        self.quota: Optional[Dict[str, int]] = None

    def _context(self) -> str:
        if callable(self.get_context):
            return self.get_context() or ""
        return ""

    def run_turn(self, raw: str, feature_hint: str = DEFAULT_FEATURE) -> Optional[TurnResult]:
        """Send one user message and apply what comes back.

        Blank input is ignored and returns None.

        Raises:
            AssistError: If the request fails; the user turn stays in history
        """
        raw = (raw or "").strip()
        if not raw:
            return None

        self.turns.append(ChatTurn(role="user", text=raw))
        composed = compose(raw, feature_hint, self._context(), self.post_type)
        response = self.send(
            feature=composed.feature,
            prompt=composed.user_prompt,
            context=composed.context,
            power=self.power,
        )

        text = response.get("text") or ""
        sections = extract_sections(text)
        actions = extract_actions(text)

        report = None
        if actions and self.auto_apply:
            report = self._apply(actions)

        self.buffer = self.buffer.capture(actions, sections)

        inferred: List[Action] = []
        if not actions and self.auto_apply:
            inferred = infer_actions(raw, self.buffer)
            if inferred:
                logger.debug("Inferred %s from user message", inferred[0].type)
                report = self._apply(inferred)

        self.turns.append(ChatTurn(role="assistant", text=text, sections=sections, actions=tuple(actions)))
        if response.get("quota"):
            self.quota = response["quota"]

        return TurnResult(
            text=text,
            sections=sections,
            actions=actions,
            inferred=inferred,
            report=report,
            quota=self.quota,
        )

    def _apply(self, actions: List[Action]) -> ApplyReport:
        report = apply_actions(actions, self.callbacks, self.current_tags)
        self.current_tags = report.tags
        return report

    def apply_sections(self, sections: Sections, replace_body: bool = True) -> ApplyReport:
        """Manually apply a reply's labeled sections (the "Apply" buttons)."""
        actions: List[Action] = []
        if sections.title:
            actions.append(ApplyTitle(sections.title))
        if sections.abstract:
            actions.append(ApplyAbstract(sections.abstract))
        if sections.body:
            actions.append(ReplaceBody(sections.body) if replace_body else AppendBody(sections.body))
        if sections.tags:
            actions.append(ApplyTags(tuple(sections.tags)))
        return self._apply(actions)

