"""
SDK for Editor Assist.

Provides the model gateway used by the endpoint and the HTTP client used by
editing sessions.
"""

from .assist_client import AssistClient
from .openai_client import GenerationResult, ModelGateway

__all__ = ["AssistClient", "GenerationResult", "ModelGateway"]
