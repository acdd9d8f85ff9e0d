"""
ConectaLead

Multi-tenant lead management: Kanban pipeline per client company,
WhatsApp follow-up scheduling and billing administration.

Persistence and authentication are delegated to a remote backend
reached through conectalead.gateway.
"""

__version__ = "1.0.0"
