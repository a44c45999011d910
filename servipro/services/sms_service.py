"""
SMS Service using Twilio.

Delivers verification codes. Any provider failure surfaces as a
SendFailureError; the provider's detail is only logged.
"""

import logging
from typing import Optional

from twilio.base.exceptions import TwilioException
from twilio.rest import Client

from ..config import TwilioConfig
from ..errors import SendFailureError

logger = logging.getLogger(__name__)

VERIFICATION_MESSAGE = "Tu código de verificación es: {code}"


class SMSService:
    """Service for sending SMS messages via Twilio."""

    def __init__(self, config: TwilioConfig, client: Optional[Client] = None):
        """
        Initialize the service.

        Args:
            config: Twilio credentials and sender number
            client: Pre-built Twilio client (built from config if omitted)
        """
        self.from_number = config.phone_number
        self._client = client or Client(config.account_sid, config.auth_token)
        logger.info("Twilio SMS service initialized")

    def send(self, to_phone: str, body: str) -> str:
        """
        Send an SMS.

        Args:
            to_phone: Destination in E.164 format
            body: Message text

        Returns:
            Twilio message SID

        Raises:
            SendFailureError: If Twilio rejects or cannot deliver the message
        """
        try:
            message = self._client.messages.create(
                body=body,
                from_=self.from_number,
                to=to_phone
            )
        except (TwilioException, OSError) as e:
            logger.error(f"SMS send failed to {to_phone}: {e}")
            raise SendFailureError() from e

        logger.info(f"SMS sent successfully to {to_phone}: {message.sid}")
        return message.sid

    def send_verification_code(self, to_phone: str, code: str) -> str:
        """Send the one-time login code."""
        return self.send(to_phone, VERIFICATION_MESSAGE.format(code=code))
