"""
Sign-in flow.

After signing in, a non-admin account without a client row gets a
starter client (status pendente, 30-day expiry) so the first login
lands on a usable dashboard.
"""

import logging
from datetime import timedelta

from conectalead.contracts import schema
from conectalead.contracts.enums import ClientStatus, PlanType
from conectalead.contracts.models import AuthSession, utcnow
from conectalead.errors import GatewayError, ValidationError
from conectalead.store import SessionState
from conectalead.services.base import Controller

logger = logging.getLogger(__name__)

STARTER_CLIENT_NAME = "Novo Cliente"
STARTER_PERIOD = timedelta(days=30)


class SessionController(Controller):
    async def login(self, email: str, password: str, create_missing_client: bool = True) -> SessionState:
        if not email or not password:
            raise ValidationError("Email and password are required", field="email" if not email else "password")

        await self.auth.sign_in(email.strip(), password)
        # Attached stores resolve on the SIGNED_IN event
        if not self.store.attached:
            await self.store.resolve_identity()

        if self.store.state == SessionState.TENANT_UNBOUND and create_missing_client:
            await self.create_initial_client()
            await self.store.resolve_identity()

        return self.store.state

    async def create_initial_client(self) -> None:
        user = self.store.user
        if user is None:
            return
        try:
            await self.gateway.insert(
                schema.CLIENTS,
                {
                    "id": user.id,
                    "name": STARTER_CLIENT_NAME,
                    "email": user.email,
                    "plan_type": PlanType.MENSAL.value,
                    "status": ClientStatus.PENDENTE.value,
                    "expiration_date": (utcnow() + STARTER_PERIOD).date(),
                    "initial_fee": 0,
                    "monthly_fee": 0,
                },
            )
            logger.info("Created starter client", extra={"user_id": user.id})
        except GatewayError as e:
            logger.error(f"Error creating initial client: {e}", extra={"user_id": user.id})

    async def restore(self, session: AuthSession) -> SessionState:
        """Adopt a persisted session and resolve it."""
        await self.auth.restore_session(session)
        return await self.store.resolve_identity()

    async def logout(self) -> None:
        await self.store.logout()
