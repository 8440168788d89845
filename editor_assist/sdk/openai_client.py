"""
Model gateway over the OpenAI client.

Sends a composed request to the language model and returns its raw text.
Usage recording is left to the caller so it can run after the response.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import openai
from openai import OpenAI

from ..core.errors import UpstreamError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenUsage:
    """Token counts reported by the backend."""
    prompt_tokens: int
    completion_tokens: int

    @property
    def total_tokens(self) -> int:
        """Total tokens used (prompt + completion)."""
        return self.prompt_tokens + self.completion_tokens

    def as_dict(self) -> Dict[str, int]:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        }


@dataclass(frozen=True)
class GenerationResult:
    """Text and metadata from one completion."""
    text: str
    model: str
    usage: Optional[TokenUsage] = None
    request_id: Optional[str] = None


def _error_detail(error: Exception) -> str:
    """Upstream error text without request headers or credentials."""
    body = getattr(error, "body", None)
    if isinstance(body, dict):
        message = body.get("message") or (body.get("error") or {}).get("message")
        if message:
            return str(message)
    message = getattr(error, "message", None)
    return str(message or error)


class ModelGateway:
    """Thin wrapper over OpenAI chat completions.

    Never retries; a non-success response becomes an UpstreamError and the
    caller decides what to do with it.
    """

    def __init__(self, client: Optional[OpenAI] = None):
        """Initialize the gateway.

        Args:
            client: Preconfigured OpenAI client; by default one is built
                from the OPENAI_API_KEY environment variable
        """
        self.client = client or OpenAI()

    def generate(
        self,
        model: str,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **kwargs: Any
    ) -> GenerationResult:
        """Create a chat completion and return its text.

        Args:
            model: Model name chosen by the tier policy (required)
            messages: System/user message dictionaries (required)
            temperature: Sampling temperature (optional)
            max_tokens: Maximum tokens to generate (optional)
            **kwargs: Additional OpenAI parameters

        Returns:
            GenerationResult with the reply text and token usage

        Raises:
            ValueError: If model or messages is missing
            UpstreamError: If the backend call fails
        """
        if not model or not model.strip():
            raise ValueError("model is required and cannot be empty")
        if not messages:
            raise ValueError("messages is required and cannot be empty")

        try:
            response = self.client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
                **kwargs
            )
        except openai.APIStatusError as e:
            logger.error("Model backend returned %s for %s: %s", e.status_code, model, _error_detail(e))
            raise UpstreamError(_error_detail(e), status_code=e.status_code) from e
        except openai.APIError as e:
            logger.error("Model backend call failed for %s: %s", model, _error_detail(e))
            raise UpstreamError(_error_detail(e)) from e

        if not response.choices:
            raise UpstreamError("Model response contained no choices")
        text = response.choices[0].message.content or ""

        usage = None
        if response.usage:
            usage = TokenUsage(
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens
            )

        return GenerationResult(
            text=text,
            model=model,
            usage=usage,
            request_id=response.id
        )
