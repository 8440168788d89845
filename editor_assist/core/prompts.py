"""
Prompt composition for the writing assistant.

Turns the user's free text into a feature, a task prompt and an editing
context, recognizing a small slash-command grammar. Every composed prompt
ends with the action-format guide so the model knows how to request edits.
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from editor_assist.config.loader import LimitsConfig

from .errors import PayloadTooLargeError, ValidationError

FEATURES = ("chat", "editor", "summarise", "tags")
DEFAULT_FEATURE = "chat"

_SLASH_COMMAND = re.compile(r"^/(\w+)\s*(.*)$", re.DOTALL)

ACTION_GUIDE = "\n".join([
    "After your natural-language reply, include at most one fenced JSON block when relevant:",
    "```json",
    '{"actions":[{"type":"REPLACE_BODY","body_md":"..."},{"type":"APPEND_BODY","body_md":"..."},'
    '{"type":"APPLY_TITLE","title":"..."},{"type":"APPLY_ABSTRACT","abstract":"..."},'
    '{"type":"APPLY_TAGS","tags":["..."]},{"type":"CONFIRM","question":"..."}],"confidence":0.0}',
    "```",
    "Only include this JSON if at least one action is appropriate. Confidence in [0,1].",
    "Prefer REPLACE_BODY when user clearly wants to swap full body; prefer APPEND_BODY for incremental snippets.",
])

SYSTEM_PROMPTS: Dict[str, str] = {
    "chat": (
        "You are a friendly writing assistant for a developer community site. "
        "Answer conversationally and keep replies concise."
    ),
    "editor": (
        "You are an editor for technical articles and questions. Use Markdown. "
        "When asked for a section, label it with its header on its own line: "
        "#TITLE, #ABSTRACT, #BODY_MD or #TAGS."
    ),
    "summarise": (
        "You summarise technical writing into one clear, accurate paragraph."
    ),
    "tags": (
        "You suggest 3-6 short, lowercase, comma-separated tags for technical posts."
    ),
}


@dataclass(frozen=True)
class ComposedPrompt:
    """A model request ready to send to the assistant endpoint."""
    feature: str
    system_prompt: str
    user_prompt: str
    context: str
    command: Optional[str] = None


def system_prompt_for(feature: str) -> str:
    return SYSTEM_PROMPTS.get(feature, SYSTEM_PROMPTS[DEFAULT_FEATURE])


def compose(
    raw_text: str,
    feature_hint: str = DEFAULT_FEATURE,
    context: str = "",
    post_type: str = "article"
) -> ComposedPrompt:
    """Compose a prompt from the user's input.

    Args:
        raw_text: What the user typed, possibly starting with a slash command
        feature_hint: Feature to use when no slash command is present
        context: Snapshot of the current editor state
        post_type: "article" or "question"; changes the /improve wording

    Returns:
        ComposedPrompt with the task prompt and the context to send
    """
    raw = raw_text.strip()
    ctx = context or ""
    match = _SLASH_COMMAND.match(raw)

    if not match:
        feature = feature_hint if feature_hint in FEATURES else DEFAULT_FEATURE
        prompt = "\n".join([
            "Chat naturally about their writing. Acknowledge briefly, then offer 1-3 specific suggestions.",
            "Ask at most one clarifying question when helpful.",
            "Keep outputs concise and concrete.",
            "If the user requests inserting/adding/replacing content, include the actions JSON.",
            "",
            "User message:",
            raw,
            "",
            ACTION_GUIDE,
        ])
        return ComposedPrompt(feature, system_prompt_for(feature), prompt, ctx)

    command = match.group(1).lower()
    rest = match.group(2).strip()

    if command in _COMMANDS:
        instruction, contract = _COMMANDS[command]
        if command == "improve":
            target = "article body" if post_type == "article" else "question description"
            instruction = instruction.format(target=target)
        else:
            instruction = instruction.format(rest=rest)
        return ComposedPrompt(
            feature="editor",
            system_prompt=system_prompt_for("editor"),
            user_prompt=f"{instruction}\n{ACTION_GUIDE}",
            context=f"{ctx}\n{contract}",
            command=command,
        )

    # Unknown command: conversational edit
    return ComposedPrompt(
        feature="editor",
        system_prompt=system_prompt_for("editor"),
        user_prompt=(
            "Acknowledge briefly, then provide concrete suggestions.\n"
            f"User message: {raw}\n{ACTION_GUIDE}"
        ),
        context=ctx,
        command=command,
    )


# command -> (task instruction, expected-output contract)
_COMMANDS = {
    "title": (
        "Propose an improved, succinct, compelling title. Return #TITLE only.",
        "Return #TITLE only.",
    ),
    "abstract": (
        "Summarise the body into one crisp paragraph. Return #ABSTRACT only.",
        "Return #ABSTRACT only.",
    ),
    "tags": (
        "Generate 3-6 relevant, short, lowercase tags, comma-separated. Return #TAGS only.",
        "Return #TAGS only.",
    ),
    "write": (
        "Write an article on: {rest}. Use Markdown headings and brief examples.",
        "Return #BODY_MD (and optionally #TITLE, #ABSTRACT, #TAGS).",
    ),
    "code": (
        "Write code for: {rest}. Provide fenced Markdown and a brief explanation.",
        "Return #BODY_MD only.",
    ),
    "improve": (
        "Improve the current {target} for clarity and structure while preserving author voice. Keep Markdown.",
        "Return #BODY_MD only.",
    ),
}


def validate_request(prompt, context, limits: LimitsConfig = LimitsConfig()) -> None:
    """Check an incoming request before anything external is called.

    Raises:
        ValidationError: If the prompt is missing or blank
        PayloadTooLargeError: If prompt or context exceeds its limit
    """
    if not isinstance(prompt, str) or not prompt.strip():
        raise ValidationError("Prompt is required")
    if context is not None and not isinstance(context, str):
        raise ValidationError("Context must be a string")
    if len(prompt) > limits.max_prompt_chars:
        raise PayloadTooLargeError(f"Prompt too large (max {limits.max_prompt_chars} characters)")
    if context and len(context) > limits.max_context_chars:
        raise PayloadTooLargeError(f"Context too large (max {limits.max_context_chars} characters)")


def build_messages(system_prompt: str, prompt: str, context: str = "") -> List[Dict[str, str]]:
    """Message list for the model: system instructions, then context and prompt."""
    user_content = prompt
    if context and context.strip():
        user_content = f"Context:\n{context.strip()}\n\n{prompt}"
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_content},
    ]
