"""Authentication dependency helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Optional

from fastapi import Header

from ...models.auth import JWTPayload
from ...services.auth import AuthService
from ...services.config import get_config
from ...services.errors import UnauthorizedError


@dataclass
class AuthContext:
    """Session identity plus the credential used for remote store calls."""

    user_id: str
    token: str
    payload: JWTPayload
    github_token: str


def get_auth_context(
    authorization: Annotated[Optional[str], Header(alias="Authorization")] = None,
    x_github_token: Annotated[Optional[str], Header(alias="X-GitHub-Token")] = None,
) -> AuthContext:
    """
    Validate the Bearer session token and resolve the GitHub credential.

    The credential comes from ``X-GitHub-Token`` and falls back to the
    configured ``GITHUB_TOKEN``. Raises UnauthorizedError when either is missing.
    """
    if not authorization:
        raise UnauthorizedError("Authorization header required")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise UnauthorizedError("Authorization header must be in format: Bearer <token>")

    config = get_config()
    payload = AuthService(config).validate_jwt(token)

    github_token = x_github_token or config.github_token
    if not github_token:
        raise UnauthorizedError(
            "GitHub credential required",
            detail={"hint": "Send X-GitHub-Token or configure GITHUB_TOKEN"},
        )

    return AuthContext(
        user_id=payload.sub,
        token=token,
        payload=payload,
        github_token=github_token,
    )


__all__ = ["AuthContext", "get_auth_context"]
