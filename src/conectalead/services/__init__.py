"""
Screen controllers.

Each controller takes the session AppStore and issues its own queries
through the gateway.
"""

from conectalead.services.automation import AutomationController
from conectalead.services.clients import ClientsController
from conectalead.services.dashboard import DashboardController
from conectalead.services.followups import FollowupsController
from conectalead.services.forecast import ForecastController
from conectalead.services.payments import PaymentsController
from conectalead.services.profile import ProfileController
from conectalead.services.recurrence import RecurrenceController
from conectalead.services.reports import ReportsController
from conectalead.services.session import SessionController
from conectalead.services.webhook import WebhookController

__all__ = [
    "AutomationController",
    "ClientsController",
    "DashboardController",
    "FollowupsController",
    "ForecastController",
    "PaymentsController",
    "ProfileController",
    "RecurrenceController",
    "ReportsController",
    "SessionController",
    "WebhookController",
]
