"""
SERVIPRO authentication backend.

Phone-number login with SMS one-time codes, short-lived access tokens,
rotating refresh tokens and a master-code admin path.
"""

__version__ = "1.0.0"
