"""
Remote Data Gateway.

create_backend() picks the implementation configured in settings:
- rest: hosted backend-as-a-service (PostgREST + GoTrue over httpx)
- sql:  self-hosted database (SQLAlchemy + bcrypt/JWT auth)
"""

from dataclasses import dataclass
from datetime import timedelta

from conectalead.gateway.base import (
    AuthService,
    Embed,
    Filter,
    Gateway,
    Order,
    Row,
    eq,
    gt,
    gte,
    ilike,
    in_,
    is_,
    lt,
    lte,
    neq,
)
from conectalead.settings import Settings, get_settings


@dataclass
class Backend:
    """Table gateway and auth service of one remote backend."""

    gateway: Gateway
    auth: AuthService

    async def close(self) -> None:
        await self.gateway.close()
        close = getattr(self.auth, "close", None)
        if close is not None:
            await close()


def create_backend(settings: Settings | None = None) -> Backend:
    """Build the configured backend."""
    settings = settings or get_settings()

    if settings.BACKEND == "rest":
        from conectalead.gateway.rest import RestAuthService, RestGateway

        if not settings.SUPABASE_URL or not settings.SUPABASE_ANON_KEY:
            raise ValueError("CONECTALEAD_SUPABASE_URL and CONECTALEAD_SUPABASE_ANON_KEY are required")

        auth = RestAuthService(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY, timeout=settings.HTTP_TIMEOUT)
        gateway = RestGateway(
            settings.SUPABASE_URL,
            settings.SUPABASE_ANON_KEY,
            token_provider=auth.access_token,
            timeout=settings.HTTP_TIMEOUT,
        )
        return Backend(gateway=gateway, auth=auth)

    if settings.BACKEND == "sql":
        from conectalead.gateway.sql import SqlAuthService, SqlGateway, create_schema, create_sql_engine

        engine = create_sql_engine(settings.DATABASE_URL)
        create_schema(engine)
        gateway = SqlGateway(engine)
        auth = SqlAuthService(
            gateway,
            secret=settings.JWT_SECRET,
            algorithm=settings.JWT_ALGORITHM,
            token_ttl=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        )
        return Backend(gateway=gateway, auth=auth)

    raise ValueError(f"Unknown backend: {settings.BACKEND}")


__all__ = [
    "AuthService",
    "Backend",
    "Embed",
    "Filter",
    "Gateway",
    "Order",
    "Row",
    "create_backend",
    "eq",
    "gt",
    "gte",
    "ilike",
    "in_",
    "is_",
    "lt",
    "lte",
    "neq",
]
