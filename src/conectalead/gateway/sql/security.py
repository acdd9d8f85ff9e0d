from datetime import timedelta

import bcrypt
from jose import JWTError, jwt

from conectalead.contracts.models import utcnow


def verify_password(plain_password: str, hashed_password: str | bytes) -> bool:
    """Verify a password against a bcrypt hash."""
    if isinstance(hashed_password, str):
        hashed_password = hashed_password.encode("utf-8")

    return bcrypt.checkpw(
        plain_password.encode("utf-8"),
        hashed_password,
    )


def get_password_hash(password: str, rounds: int = 12) -> str:
    """Generate a bcrypt hash for a password."""
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def create_access_token(data: dict, secret: str, algorithm: str, expires_delta: timedelta):
    to_encode = data.copy()
    to_encode.update({"exp": utcnow() + expires_delta})
    return jwt.encode(to_encode, secret, algorithm=algorithm)


def decode_access_token(token: str, secret: str, algorithm: str) -> dict | None:
    try:
        return jwt.decode(token, secret, algorithms=[algorithm])
    except JWTError:
        return None
