"""
Error types shared across ConectaLead.

GatewayError  - remote call failed (network or backend rejection)
AuthError     - authentication service rejected the request
ValidationError - input rejected before any remote call
AccessDenied  - operation not allowed for the current identity
"""

from typing import Any


class GatewayError(Exception):
    """Error from the remote backend."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.code = code
        self.details = details or {}
        self.retryable = retryable


class AuthError(GatewayError):
    """Error from the authentication service."""


class ValidationError(Exception):
    """Input failed client-side validation."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class AccessDenied(Exception):
    """Current identity may not perform this operation."""
