"""
Conversational fallback for replies without structured actions.

Best-effort heuristic only: it looks for an explicit replace or insert
request in the user's own message and pairs it with content the user pasted
or the assistant proposed earlier. Missing an intent is acceptable; firing
on the wrong one is not, so every trigger needs a verb plus a target.
"""

import re
from dataclasses import dataclass, field, replace
from typing import Iterable, List, Optional, Tuple

from .actions import Action, AppendBody, ApplyTags, ApplyTitle, ReplaceBody
from .extractor import Sections

REPLACE_VERBS = ("replace", "overwrite", "swap")
INSERT_VERBS = ("insert", "add", "append", "put")
TARGET_NOUNS = ("body", "article")
# Fields a message may name instead of the body ("add it to the title")
NON_BODY_FIELDS = ("title", "abstract", "tag", "tags", "heading", "headings")
# Pronouns that point at the last proposal ("insert it", "replace that.")
PROPOSAL_PRONOUNS = ("it", "this", "that")
_PRONOUN_FOLLOWERS = ("in", "into", "to", "there", "below", "above", "now", "please", "instead")

_NOUN = re.compile(r"\b(?:%s)\b" % "|".join(TARGET_NOUNS))
_FIELD_DETERMINER = r"(?:(?:the|my|its|this|that|a|an)\s+)?"
_FIELD_NAMES = "|".join(NON_BODY_FIELDS)
# "in the title", "to the post abstract"
_OTHER_FIELD = re.compile(
    rf"\b(?:in|into|to|on|for)\s+{_FIELD_DETERMINER}(?:\w+\s+)?(?:{_FIELD_NAMES})\b"
)
_PASTED_FENCE = re.compile(r"```([\w+-]*)[ \t]*\n?(.*?)```", re.DOTALL)

PASTED_MIN_CHARS = 120


@dataclass(frozen=True)
class ProposalBuffer:
    """Last candidate content the assistant offered in this session."""
    body_md: str = ""
    title: str = ""
    tags: Tuple[str, ...] = field(default_factory=tuple)

    def capture(self, actions: Iterable[Action], sections: Optional[Sections] = None) -> "ProposalBuffer":
        """New buffer holding the latest candidates.

        Actions win over sections; a field with no new candidate keeps its
        previous value.
        """
        body, title, tags = "", "", ()
        for action in actions:
            if isinstance(action, (ReplaceBody, AppendBody)):
                body = action.body_md
            elif isinstance(action, ApplyTitle):
                title = action.title
            elif isinstance(action, ApplyTags):
                tags = action.tags

        if sections is not None:
            body = body or (sections.body or "")
            title = title or (sections.title or "")
            tags = tags or sections.tags

        return replace(
            self,
            body_md=body or self.body_md,
            title=title or self.title,
            tags=tuple(tags) if tags else self.tags,
        )


def _verb_signal(text: str, verbs: Tuple[str, ...]) -> bool:
    """True when a verb from ``verbs`` targets the body or the last proposal."""
    verb = "|".join(verbs)
    # Edits aimed at the title, abstract, tags or a heading never touch the body
    direct_field = re.compile(rf"\b(?:{verb})\s+{_FIELD_DETERMINER}(?:{_FIELD_NAMES})\b")
    if _OTHER_FIELD.search(text) or direct_field.search(text):
        return False
    if re.search(rf"\b(?:{verb})\b", text) and _NOUN.search(text):
        return True
    pronoun_form = re.compile(
        rf"\b(?:{verb})\s+(?:{'|'.join(PROPOSAL_PRONOUNS)})"
        rf"(?=\s*(?:$|[.,!?;:]|\b(?:{'|'.join(_PRONOUN_FOLLOWERS)})\b))"
    )
    return bool(pronoun_form.search(text))


def wants_replace(text: str) -> bool:
    return _verb_signal(text.lower(), REPLACE_VERBS)


def wants_insert(text: str) -> bool:
    return _verb_signal(text.lower(), INSERT_VERBS)


def extract_pasted_body(raw: str) -> str:
    """Content the user pasted into the message, or an empty string.

    A fenced Markdown or plain block yields its inside; a fence in any other
    language is kept whole so the code stays fenced in the body. Without a
    fence, a long multi-line message counts as pasted content, minus a
    leading instruction line ending in a colon.
    """
    match = _PASTED_FENCE.search(raw)
    if match:
        lang = match.group(1).lower()
        if lang in ("", "md", "markdown"):
            return match.group(2).strip()
        return match.group(0).strip()

    text = raw.strip()
    lines = text.split("\n")
    if len(lines) >= 2 and len(text) > PASTED_MIN_CHARS:
        if lines[0].rstrip().endswith(":"):
            return "\n".join(lines[1:]).strip()
        return text
    return ""


def infer_actions(raw_user_text: str, buffer: ProposalBuffer) -> List[Action]:
    """Guess a body edit from the user's message.

    Only meant for turns where the reply carried no structured actions.

    Returns:
        One ReplaceBody or AppendBody action, or an empty list
    """
    if not raw_user_text or not raw_user_text.strip():
        return []
    candidate = extract_pasted_body(raw_user_text) or buffer.body_md
    if not candidate:
        return []
    if wants_replace(raw_user_text):
        return [ReplaceBody(candidate)]
    if wants_insert(raw_user_text):
        return [AppendBody(candidate)]
    return []
