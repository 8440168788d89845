"""
HTTP client for the assistant endpoint.

Used by editing sessions. Error responses are turned back into the
matching AssistError with a message fit for the user.
"""

import json
from typing import Any, Callable, Dict, Optional, Union

import httpx

from ..core.errors import (
    AssistError,
    AuthError,
    PayloadTooLargeError,
    QuotaExceededError,
    UpstreamError,
    ValidationError,
)

ASSIST_PATH = "/api/assist"

TokenSource = Union[str, Callable[[], Optional[str]]]


class AssistClient:
    """Calls ``POST /api/assist`` with a bearer identity token.

    Args:
        token: Identity token, or a callable returning the current one
            (None when the user is signed out)
        base_url: Endpoint root, ignored when ``http_client`` is given
        http_client: Preconfigured httpx client
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        token: TokenSource,
        base_url: str = "http://localhost:8000",
        http_client: Optional[httpx.Client] = None,
        timeout: float = 60.0
    ):
        self._token = token
        self.http = http_client or httpx.Client(base_url=base_url, timeout=timeout)

    def _current_token(self) -> str:
        token = self._token() if callable(self._token) else self._token
        if not token:
            raise AuthError("Not signed in")
        return token

    def assist(
        self,
        prompt: str,
        feature: str = "chat",
        context: str = "",
        power: bool = False
    ) -> Dict[str, Any]:
        """Send one request and return the success payload.

        Raises:
            AssistError: The subclass matching the endpoint's status code
        """
        response = self.http.post(
            ASSIST_PATH,
            json={"feature": feature, "prompt": prompt, "context": context, "power": power},
            headers={"Authorization": f"Bearer {self._current_token()}"},
        )
        try:
            data = response.json()
        except (json.JSONDecodeError, ValueError):
            data = {"error": response.text}
        if not isinstance(data, dict):
            data = {"error": str(data)}

        if response.is_success:
            return data
        raise _error_from_response(response.status_code, data)

    # EditingSession calls send(feature=..., prompt=..., context=..., power=...)
    __call__ = assist

    def close(self) -> None:
        self.http.close()


def _error_from_response(status: int, data: Dict[str, Any]) -> AssistError:
    message = data.get("error") or "AI request failed"
    if status == 429:
        quota = data.get("quota") or {}
        used, limit = quota.get("used", 0), quota.get("limit", 0)
        return QuotaExceededError(used, limit, message=f"Daily AI limit reached ({used}/{limit}).")
    if status == 401:
        return AuthError(message)
    if status == 413:
        return PayloadTooLargeError(message)
    if status == 400:
        return ValidationError(message)
    if status == 502:
        return UpstreamError(str(data.get("detail") or message))
    return AssistError(message)
