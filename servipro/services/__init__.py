"""
Services layer for SERVIPRO.

The authentication engine and its SMS collaborator, consumed by the API
and by the maintenance scripts.
"""

from .auth_engine import AuthEngine, Notifier
from .sms_service import SMSService

__all__ = [
    "AuthEngine",
    "Notifier",
    "SMSService",
]
