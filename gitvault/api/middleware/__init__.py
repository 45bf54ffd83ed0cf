"""FastAPI middleware for authentication and error handling."""

from .auth_middleware import AuthContext, get_auth_context
from .error_handlers import (
    http_exception_handler,
    internal_exception_handler,
    register_error_handlers,
    validation_exception_handler,
    vault_error_handler,
)

__all__ = [
    "AuthContext",
    "get_auth_context",
    "register_error_handlers",
    "validation_exception_handler",
    "http_exception_handler",
    "vault_error_handler",
    "internal_exception_handler",
]
