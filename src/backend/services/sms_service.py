"""
SMS Service using Azure Communication Services.

Delivers voter verification codes to a phone on file.
"""

import structlog
from azure.communication.sms import SmsClient

from core.config import settings
from core.security import mask_value

logger = structlog.get_logger(__name__)


class SMSService:
    """SMS notification service using Azure Communication Services."""

    def __init__(self):
        self._client = None
        self._initialized = False

    async def initialize(self):
        """Initialize the Azure Communication Services client."""
        if self._initialized:
            return

        if not settings.AZURE_COMMUNICATION_CONNECTION_STRING:
            logger.warning("sms_service_not_configured")
            self._initialized = True
            return

        try:
            self._client = SmsClient.from_connection_string(settings.AZURE_COMMUNICATION_CONNECTION_STRING)
            logger.info("sms_service_initialized")
        except Exception as e:
            logger.error("sms_service_init_failed", error=str(e))
        self._initialized = True

    @property
    def is_available(self) -> bool:
        return self._client is not None and bool(settings.AZURE_COMMUNICATION_SENDER_NUMBER)

    async def send_verification_code(self, phone_number: str, code: str) -> bool:
        """
        Send a verification code via SMS.

        Args:
            phone_number: Destination phone number
            code: 6-digit verification code

        Returns:
            True if sent successfully, False otherwise
        """
        await self.initialize()

        if not self.is_available:
            logger.warning("sms_service_unavailable", to=mask_value(phone_number))
            return False

        message = (
            f"Your {settings.APP_NAME} verification code is: {code}\n\n"
            f"This code expires in {settings.SMS_VERIFICATION_CODE_EXPIRY_MINUTES} minutes."
        )

        try:
            responses = self._client.send(
                from_=settings.AZURE_COMMUNICATION_SENDER_NUMBER,
                to=phone_number,
                message=message,
            )
            response = responses[0] if isinstance(responses, list) else responses

            if response.successful:
                logger.info("verification_sms_sent", to=mask_value(phone_number))
                return True

            logger.error("verification_sms_failed", error=response.error_message)
            return False

        except Exception as e:
            logger.error("verification_sms_error", error=str(e), to=mask_value(phone_number))
            return False


# Singleton instance
sms_service = SMSService()
