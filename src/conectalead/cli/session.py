"""
Session persistence for the CLI.

The signed-in session is kept in CONECTALEAD_SESSION_FILE between
invocations, Fernet-encrypted with CONECTALEAD_ENCRYPTION_KEY when one is
configured.
"""

import logging

import pydantic
from cryptography.fernet import Fernet, InvalidToken
from rich import print as rprint

from conectalead.contracts.models import AuthSession
from conectalead.settings import Settings

logger = logging.getLogger(__name__)


def save_session(session: AuthSession, settings: Settings) -> None:
    payload = session.model_dump_json().encode()

    if settings.ENCRYPTION_KEY:
        f = Fernet(settings.ENCRYPTION_KEY.encode())
        payload = f.encrypt(payload)
    else:
        # Store unencrypted (for development)
        rprint("[yellow]Warning: CONECTALEAD_ENCRYPTION_KEY not set, storing session unencrypted[/yellow]")

    path = settings.SESSION_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(payload)
    path.chmod(0o600)


def load_session(settings: Settings) -> AuthSession | None:
    """The saved session, or None when missing or unreadable."""
    path = settings.SESSION_FILE
    if not path.exists():
        return None

    payload = path.read_bytes()
    if settings.ENCRYPTION_KEY:
        try:
            payload = Fernet(settings.ENCRYPTION_KEY.encode()).decrypt(payload)
        except InvalidToken:
            logger.warning(f"Could not decrypt session file {path}; sign in again")
            return None

    try:
        return AuthSession.model_validate_json(payload)
    except pydantic.ValidationError as e:
        logger.warning(f"Ignoring unreadable session file {path}: {e}")
        return None


def clear_session(settings: Settings) -> None:
    settings.SESSION_FILE.unlink(missing_ok=True)
