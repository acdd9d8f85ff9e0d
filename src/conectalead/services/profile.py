"""
Client self-service profile: company name and password.
"""

import logging

from conectalead.contracts import schema
from conectalead.contracts.models import Client
from conectalead.errors import ValidationError
from conectalead.gateway import eq
from conectalead.services.base import Controller

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


class ProfileController(Controller):
    """The email is read-only; only the company name is editable."""

    async def rename(self, name: str) -> Client | None:
        client = self.require_client()
        name = (name or "").strip()
        if not name:
            raise ValidationError("Company name is required", field="name")

        await self.gateway.update(schema.CLIENTS, {"name": name}, [eq("id", client.id)])
        return await self.store.refresh_client()

    async def request_password_reset(self) -> str:
        """Send a reset email to the account address; returns that address."""
        email = (self.store.client.email if self.store.client else None) or (
            self.store.user.email if self.store.user else None
        )
        if not email:
            raise ValidationError("No email on file", field="email")
        await self.auth.reset_password_for_email(email)
        return email

    async def change_password(self, new_password: str, confirm_password: str) -> None:
        if new_password != confirm_password:
            raise ValidationError("Passwords do not match", field="confirm_password")
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must have at least {MIN_PASSWORD_LENGTH} characters", field="new_password"
            )
        await self.auth.update_password(new_password)
        logger.info("Password updated", extra={"user_id": self.store.user.id if self.store.user else None})
