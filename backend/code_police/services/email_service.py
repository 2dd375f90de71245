"""Email delivery through the Resend HTTP API."""

import logging

import httpx

from code_police.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


class EmailService:
    """Sends transactional email through Resend."""

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        self.api_key = settings.resend_api_key
        self.api_base = settings.resend_api_base.rstrip("/")
        self.sender = f"{settings.email_from_name} <{settings.email_from_address}>"
        self.transport = transport

    async def send(self, to: str, subject: str, html: str) -> str:
        """Send one email.

        Args:
            to: Recipient address
            subject: Subject line
            html: HTML body

        Returns:
            Provider message id

        Raises:
            RuntimeError: if no API key is configured
            httpx.HTTPStatusError: if the provider rejects the message
        """
        if not self.api_key:
            raise RuntimeError("RESEND_API_KEY is not configured")

        async with httpx.AsyncClient(transport=self.transport, timeout=30.0) as client:
            response = await client.post(
                f"{self.api_base}/emails",
                json={
                    "from": self.sender,
                    "to": [to],
                    "subject": subject,
                    "html": html,
                },
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
            response.raise_for_status()
            message_id = response.json().get("id", "")

        logger.info(f"Sent email to {to} ({message_id})")
        return message_id
