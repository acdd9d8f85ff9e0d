"""
Hosted backend over HTTP (PostgREST tables + GoTrue auth).
"""

from conectalead.gateway.rest.auth import RestAuthService
from conectalead.gateway.rest.client import RestGateway

__all__ = ["RestAuthService", "RestGateway"]
