"""Session token validation (static local-dev token + HS256 JWT)."""

from __future__ import annotations

import abc
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import jwt
from fastapi import status

from ..models.auth import JWTPayload
from .config import AppConfig, get_config
from .errors import UnauthorizedError

LOCAL_USER_ID = "local-dev"


class AuthError(UnauthorizedError):
    """Authentication failure carrying a machine-readable code."""

    def __init__(
        self,
        error: str,
        message: str,
        *,
        status_code: int = status.HTTP_401_UNAUTHORIZED,
        detail: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, error=error, status_code=status_code, detail=detail)


class TokenValidator(abc.ABC):
    """Abstract base class for token validation strategies."""

    @abc.abstractmethod
    def validate(self, token: str) -> Optional[JWTPayload]:
        """
        Return the payload if the token is valid, or None if this validator
        does not recognize the token (allow fallthrough).
        Raises AuthError if the token is recognized but invalid or expired.
        """


class StaticTokenValidator(TokenValidator):
    """Validates against a configured static token (local development)."""

    def __init__(self, static_token: Optional[str], user_id: str):
        self.static_token = static_token
        self.user_id = user_id

    def validate(self, token: str) -> Optional[JWTPayload]:
        if self.static_token and token == self.static_token:
            now = datetime.now(timezone.utc)
            return JWTPayload(
                sub=self.user_id,
                iat=int(now.timestamp()),
                exp=int((now + timedelta(days=365)).timestamp()),
            )
        return None


class JWTValidator(TokenValidator):
    """Validates JWTs signed by the application secret."""

    def __init__(self, config: AppConfig, algorithm: str = "HS256"):
        self.config = config
        self.algorithm = algorithm

    def validate(self, token: str) -> Optional[JWTPayload]:
        secret = self.config.jwt_secret_key
        if not secret:
            return None
        try:
            decoded = jwt.decode(token, secret, algorithms=[self.algorithm])
            return JWTPayload(**decoded)
        except jwt.ExpiredSignatureError as exc:
            raise AuthError("token_expired", "Token expired") from exc
        except jwt.DecodeError:
            # Not a JWT at all; let the chain report generic invalid credentials
            return None
        except jwt.InvalidTokenError as exc:
            raise AuthError("invalid_token", f"Invalid token: {exc}") from exc


class AuthService:
    """Issue and validate session tokens using the configured strategies."""

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        algorithm: str = "HS256",
        token_ttl_days: int = 90,
    ) -> None:
        self.config = config or get_config()
        self.algorithm = algorithm
        self.token_ttl_days = token_ttl_days

        self.validators: List[TokenValidator] = []
        if self.config.enable_local_mode:
            self.validators.append(
                StaticTokenValidator(self.config.local_dev_token, LOCAL_USER_ID)
            )
        self.validators.append(JWTValidator(self.config, algorithm))

    def validate_jwt(self, token: str) -> JWTPayload:
        """
        Validate a token against all registered strategies.

        Returns the first successful payload. A validator that recognizes the
        token but rejects it stops the chain.
        """
        for validator in self.validators:
            payload = validator.validate(token)
            if payload:
                return payload
        raise AuthError("invalid_token", "Invalid authentication credentials")

    def _require_secret(self) -> str:
        secret = self.config.jwt_secret_key
        if not secret:
            raise AuthError(
                "missing_jwt_secret",
                "JWT secret is not configured.",
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )
        return secret

    def _build_payload(self, user_id: str, expires_in: Optional[timedelta] = None) -> JWTPayload:
        now = datetime.now(timezone.utc)
        lifetime = expires_in or timedelta(days=self.token_ttl_days)
        return JWTPayload(
            sub=user_id,
            iat=int(now.timestamp()),
            exp=int((now + lifetime).timestamp()),
        )

    def create_jwt(self, user_id: str, *, expires_in: Optional[timedelta] = None) -> str:
        """Create a signed JWT for the given user."""
        payload = self._build_payload(user_id, expires_in)
        return jwt.encode(payload.model_dump(), self._require_secret(), algorithm=self.algorithm)


__all__ = [
    "AuthService",
    "AuthError",
    "TokenValidator",
    "StaticTokenValidator",
    "JWTValidator",
    "LOCAL_USER_ID",
]
