"""
Self-hosted backend over SQLAlchemy.
"""

from conectalead.gateway.sql.auth import SqlAuthService
from conectalead.gateway.sql.gateway import SqlGateway, create_schema, create_sql_engine

__all__ = ["SqlAuthService", "SqlGateway", "create_schema", "create_sql_engine"]
