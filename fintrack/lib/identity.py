"""Authenticated identity providers.

Every persistence operation in fintrack is scoped to the calling user. Callers
hand services an ``IdentityProvider``; services resolve the user id once at the
start of an operation and fail before doing any work when there is none.
"""

import os
from typing import Optional, Protocol

from fintrack.lib.config import ENV_USER_ID
from fintrack.lib.errors import UnauthenticatedError


class IdentityProvider(Protocol):
    """Resolves the current user id or raises UnauthenticatedError."""

    def current_user_id(self) -> str: ...


class StaticIdentity:
    """Identity fixed at construction time (e.g. from a verified session)."""

    def __init__(self, user_id: Optional[str]):
        self.user_id = user_id.strip() if user_id else None

    def current_user_id(self) -> str:
        if not self.user_id:
            raise UnauthenticatedError()
        return self.user_id


class EnvIdentity:
    """Identity read from the FINTRACK_USER_ID environment variable."""

    def __init__(self, env_var: str = ENV_USER_ID):
        self.env_var = env_var

    def current_user_id(self) -> str:
        user_id = os.getenv(self.env_var, "").strip()
        if not user_id:
            raise UnauthenticatedError(f"set {self.env_var} or pass --user")
        return user_id


def require_user(identity: Optional[IdentityProvider]) -> str:
    """
    Resolve the user id from an identity provider.

    Args:
        identity: Provider to consult; None means no session at all

    Returns:
        The authenticated user id

    Raises:
        UnauthenticatedError: If there is no resolvable identity
    """
    if identity is None:
        raise UnauthenticatedError()
    return identity.current_user_id()
