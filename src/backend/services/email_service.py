"""
Email Service using Azure Communication Services.

Delivers voter verification codes when no phone is on file.
"""

from typing import Optional

import structlog
from azure.communication.email import EmailClient

from core.config import settings
from core.security import mask_value

logger = structlog.get_logger(__name__)


class EmailService:
    """Email service using Azure Communication Services."""

    def __init__(self):
        self._client = None
        self._initialized = False
        self._sender_address: Optional[str] = None

    async def initialize(self) -> None:
        """Initialize the Azure Email client."""
        if self._initialized:
            return

        connection_string = settings.AZURE_COMMUNICATION_CONNECTION_STRING
        self._sender_address = settings.AZURE_EMAIL_SENDER_ADDRESS

        if not connection_string or not self._sender_address:
            logger.warning(
                "email_service_not_configured",
                has_connection_string=bool(connection_string),
                has_sender_address=bool(self._sender_address),
            )
            self._initialized = True
            return

        try:
            self._client = EmailClient.from_connection_string(connection_string)
            logger.info("email_service_initialized")
        except Exception as e:
            logger.error("email_service_init_failed", error=str(e))
        self._initialized = True

    @property
    def is_available(self) -> bool:
        """Check if email service is available."""
        return self._client is not None and self._sender_address is not None

    async def send_verification_code(self, to_email: str, code: str) -> bool:
        """
        Send a voter verification code by email.

        Returns:
            True if sent successfully
        """
        await self.initialize()

        if not self.is_available:
            logger.warning(
                "email_service_unavailable",
                action="verification_code",
                to_email=mask_value(to_email),
            )
            return False

        expiry = settings.SMS_VERIFICATION_CODE_EXPIRY_MINUTES
        subject = f"Your {settings.APP_NAME} verification code"
        html_content = f"""
        <!DOCTYPE html>
        <html>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; padding: 20px;">
            <div style="max-width: 600px; margin: 0 auto; background: white; border-radius: 8px; padding: 40px;">
                <h1 style="color: #1a1a1a;">Verify your identity</h1>
                <p style="color: #4a4a4a; line-height: 1.6;">Use this code to finish verifying before you vote:</p>
                <p style="font-size: 32px; letter-spacing: 8px; font-weight: 700; text-align: center;">{code}</p>
                <p style="color: #6b7280; font-size: 14px;">This code expires in {expiry} minutes.</p>
                <p style="color: #9ca3af; font-size: 12px;">
                    If you did not request this code, you can safely ignore this email.
                </p>
            </div>
        </body>
        </html>
        """

        plain_text = f"""
Your {settings.APP_NAME} verification code is: {code}

This code expires in {expiry} minutes.

If you did not request this code, you can safely ignore this email.
        """.strip()

        return await self._send_email(
            to_email=to_email,
            subject=subject,
            html_content=html_content,
            plain_text=plain_text,
        )

    async def _send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        plain_text: str,
    ) -> bool:
        """Send one message through the Azure poller and wait for the outcome."""
        if not self._client or not self._sender_address:
            return False

        try:
            message = {
                "senderAddress": self._sender_address,
                "recipients": {
                    "to": [{"address": to_email}],
                },
                "content": {
                    "subject": subject,
                    "plainText": plain_text,
                    "html": html_content,
                },
            }

            poller = self._client.begin_send(message)
            result = poller.result()

            if result["status"] == "Succeeded":
                logger.info("email_sent", to=mask_value(to_email), message_id=result.get("id"))
                return True

            logger.error("email_send_failed", status=result["status"], error=result.get("error"))
            return False

        except Exception as e:
            logger.error("email_send_error", error=str(e), to=mask_value(to_email))
            return False


# Global instance
email_service = EmailService()
