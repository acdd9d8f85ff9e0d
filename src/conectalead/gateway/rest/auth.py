"""
REST auth service for the hosted backend (GoTrue API).

The role is read from the server-controlled app_metadata of the user,
falling back to the access token claims.
"""

import logging
from datetime import timedelta
from typing import Any

import httpx
from jose import JWTError, jwt

from conectalead.contracts.enums import Role, SessionEvent
from conectalead.contracts.models import AuthSession, Identity, utcnow
from conectalead.errors import AuthError
from conectalead.gateway.base import AuthService
from conectalead.gateway.rest.http import SupabaseHttp

logger = logging.getLogger(__name__)


def role_from_claims(access_token: str) -> Role | None:
    """Read app_metadata.role from an access token without verifying it."""
    try:
        claims = jwt.get_unverified_claims(access_token)
    except JWTError:
        return None
    role = (claims.get("app_metadata") or {}).get("role")
    try:
        return Role(role) if role else None
    except ValueError:
        return None


class RestAuthService(SupabaseHttp, AuthService):
    """Auth service for the hosted backend."""

    error_class = AuthError

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        SupabaseHttp.__init__(self, base_url, api_key, timeout=timeout, transport=transport)
        AuthService.__init__(self)

    def access_token(self) -> str | None:
        return self.session.access_token if self.session else None

    def _bearer(self) -> dict[str, str]:
        if self.session is None:
            raise AuthError("Not signed in", code="no_session")
        return {"Authorization": f"Bearer {self.session.access_token}"}

    def _identity(self, user: dict[str, Any], access_token: str | None = None) -> Identity:
        role = (user.get("app_metadata") or {}).get("role")
        resolved = None
        if role:
            try:
                resolved = Role(role)
            except ValueError:
                logger.warning(f"Unknown role '{role}' for user {user.get('id')}")
        if resolved is None and access_token:
            resolved = role_from_claims(access_token)
        return Identity(id=user["id"], email=user.get("email") or "", role=resolved)

    async def sign_in(self, email: str, password: str) -> AuthSession:
        data = await self._make_request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json_data={"email": email, "password": password},
        )
        access_token = data["access_token"]
        self.session = AuthSession(
            access_token=access_token,
            refresh_token=data.get("refresh_token"),
            expires_at=utcnow() + timedelta(seconds=int(data.get("expires_in") or 3600)),
            user=self._identity(data["user"], access_token),
        )
        logger.info("User signed in", extra={"user_id": self.session.user.id})
        await self._emit(SessionEvent.SIGNED_IN, self.session)
        return self.session

    async def sign_out(self) -> None:
        """Revoke the session remotely; local state is cleared even if that fails."""
        try:
            if self.session is not None:
                await self._make_request("POST", "/auth/v1/logout", headers=self._bearer())
        finally:
            self.session = None
            await self._emit(SessionEvent.SIGNED_OUT, None)

    async def get_current_user(self) -> Identity | None:
        if self.session is None:
            return None
        try:
            user = await self._make_request("GET", "/auth/v1/user", headers=self._bearer())
        except AuthError as e:
            if e.code in ("401", "403", "bad_jwt", "session_not_found"):
                return None
            raise
        return self._identity(user, self.session.access_token)

    async def update_password(self, new_password: str) -> None:
        await self._make_request(
            "PUT", "/auth/v1/user", json_data={"password": new_password}, headers=self._bearer()
        )
        await self._emit(SessionEvent.USER_UPDATED, self.session)

    async def sign_up(self, email: str, password: str, role: Role = Role.CLIENT) -> Identity:
        data = await self._make_request(
            "POST",
            "/auth/v1/signup",
            json_data={"email": email, "password": password, "data": {"role": role.value}},
        )
        # With email confirmation on, the user object is the body itself
        user = data.get("user") if isinstance(data, dict) and "user" in data else data
        if not user or not user.get("id"):
            raise AuthError("Sign-up returned no user", code="no_user", details=data or {})
        return self._identity(user)

    async def reset_password_for_email(self, email: str) -> None:
        await self._make_request("POST", "/auth/v1/recover", json_data={"email": email})
