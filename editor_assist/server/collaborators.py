"""
External collaborators of the assistant endpoint.

Identity verification and user profiles belong to an outside auth/profile
provider; only their interfaces matter here. The implementations below back
local development and tests.
"""

import hmac
from typing import Dict, Optional, Protocol

from editor_assist.core.errors import AuthError
from editor_assist.storage.repository import UsageRepository


class IdentityVerifier(Protocol):
    """Resolves a bearer token to a stable user id."""

    def verify(self, token: str) -> str:
        """Return the user id for ``token``.

        Raises:
            AuthError: If the token is invalid
        """
        ...


class ProfileStore(Protocol):
    """Read access to user profiles."""

    def is_premium(self, user_id: str) -> bool:
        ...


def bearer_token(authorization: Optional[str]) -> str:
    """Token from an ``Authorization: Bearer <token>`` header.

    Raises:
        AuthError: If the header is missing or not a bearer token
    """
    if not authorization:
        raise AuthError("Missing identity token")
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthError("Missing identity token")
    return token.strip()


class StaticTokenVerifier:
    """Verifier over a fixed token -> user id table."""

    def __init__(self, tokens: Dict[str, str]):
        self.tokens = dict(tokens)

    def verify(self, token: str) -> str:
        for known, user_id in self.tokens.items():
            if hmac.compare_digest(known.encode(), token.encode()):
                return user_id
        raise AuthError("Invalid identity token")


class RepositoryProfileStore:
    """Profiles kept in the local usage database."""

    def __init__(self, repository: UsageRepository):
        self.repository = repository

    def is_premium(self, user_id: str) -> bool:
        return self.repository.get_profile(user_id).premium
