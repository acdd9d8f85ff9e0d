"""
Local auth service for the self-hosted backend.

Accounts live in the users table; passwords are bcrypt hashes and
sessions are HS256 JWTs carrying the account id, email and role.
"""

import logging
from datetime import timedelta

from conectalead.contracts.enums import Role, SessionEvent
from conectalead.contracts.models import AuthSession, Identity, utcnow
from conectalead.errors import AuthError
from conectalead.gateway.base import AuthService, eq
from conectalead.gateway.sql.gateway import SqlGateway
from conectalead.gateway.sql.security import (
    create_access_token,
    decode_access_token,
    get_password_hash,
    verify_password,
)

logger = logging.getLogger(__name__)

USERS = "users"
RECOVERY_TTL = timedelta(hours=1)


class SqlAuthService(AuthService):
    """Auth service over the users table."""

    def __init__(
        self,
        gateway: SqlGateway,
        secret: str,
        algorithm: str = "HS256",
        token_ttl: timedelta = timedelta(minutes=60),
        bcrypt_rounds: int = 12,
    ):
        super().__init__()
        self.gateway = gateway
        self.secret = secret
        self.algorithm = algorithm
        self.token_ttl = token_ttl
        self.bcrypt_rounds = bcrypt_rounds

    def _identity(self, user: dict) -> Identity:
        return Identity(id=user["id"], email=user["email"], role=Role(user.get("role") or Role.CLIENT))

    def _issue(self, identity: Identity) -> AuthSession:
        claims = {"sub": identity.id, "email": identity.email, "role": identity.role.value}
        token = create_access_token(claims, self.secret, self.algorithm, self.token_ttl)
        return AuthSession(access_token=token, expires_at=utcnow() + self.token_ttl, user=identity)

    async def sign_in(self, email: str, password: str) -> AuthSession:
        user = await self.gateway.select_one(USERS, [eq("email", email.strip().lower())])
        if not user or not verify_password(password, user["password_hash"]):
            raise AuthError("Invalid login credentials", code="invalid_credentials")

        self.session = self._issue(self._identity(user))
        logger.info("User signed in", extra={"user_id": user["id"]})
        await self._emit(SessionEvent.SIGNED_IN, self.session)
        return self.session

    async def sign_out(self) -> None:
        self.session = None
        await self._emit(SessionEvent.SIGNED_OUT, None)

    async def get_current_user(self) -> Identity | None:
        if self.session is None:
            return None
        claims = decode_access_token(self.session.access_token, self.secret, self.algorithm)
        if not claims or claims.get("purpose"):
            return None
        return Identity(id=claims["sub"], email=claims["email"], role=Role(claims.get("role", Role.CLIENT)))

    async def update_password(self, new_password: str) -> None:
        identity = await self.get_current_user()
        if identity is None:
            raise AuthError("Not signed in", code="no_session")
        await self.gateway.update(
            USERS,
            {"password_hash": get_password_hash(new_password, self.bcrypt_rounds)},
            [eq("id", identity.id)],
        )
        await self._emit(SessionEvent.USER_UPDATED, self.session)

    async def sign_up(self, email: str, password: str, role: Role = Role.CLIENT) -> Identity:
        email = email.strip().lower()
        if await self.gateway.select_one(USERS, [eq("email", email)]):
            raise AuthError("User already registered", code="user_already_exists")

        rows = await self.gateway.insert(
            USERS,
            {
                "email": email,
                "password_hash": get_password_hash(password, self.bcrypt_rounds),
                "role": role.value,
            },
        )
        return self._identity(rows[0])

    async def reset_password_for_email(self, email: str) -> None:
        """
        Issue a recovery token.

        There is no mailer in the self-hosted backend; the token is logged
        for the operator to deliver. Unknown emails are accepted silently.
        """
        user = await self.gateway.select_one(USERS, [eq("email", email.strip().lower())])
        if not user:
            logger.info("Password reset requested for unknown email")
            return

        token = create_access_token(
            {"sub": user["id"], "purpose": "recovery"}, self.secret, self.algorithm, RECOVERY_TTL
        )
        logger.info(f"Password recovery token for {user['email']}: {token}", extra={"user_id": user["id"]})

    async def complete_password_reset(self, token: str, new_password: str) -> None:
        """Set a new password using a recovery token."""
        claims = decode_access_token(token, self.secret, self.algorithm)
        if not claims or claims.get("purpose") != "recovery":
            raise AuthError("Invalid or expired recovery token", code="invalid_token")
        await self.gateway.update(
            USERS,
            {"password_hash": get_password_hash(new_password, self.bcrypt_rounds)},
            [eq("id", claims["sub"])],
        )
