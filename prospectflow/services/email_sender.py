"""Outbound prospecting email via SendGrid."""

import asyncio
import html
import logging
from dataclasses import dataclass
from typing import Optional

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail, ReplyTo, Bcc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailSendResult:
    sent: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


def text_to_html(body: str) -> str:
    return html.escape(body).replace("\n", "<br>")


class EmailSender:
    """Email sender for prospecting messages. ``send`` never raises."""

    def __init__(
        self,
        api_key: str = "",
        from_email: str = "onboarding@prospectflow.com",
        from_name: str = "ProspectFlow",
        reply_to: str = "",
        bcc: str = "",
        client: SendGridAPIClient | None = None,
    ):
        self.from_email = from_email
        self.from_name = from_name
        self.reply_to = reply_to
        self.bcc = bcc

        if client is not None:
            self.client = client
            self.enabled = True
        elif not api_key:
            logger.warning("SENDGRID_API_KEY not configured. Emails will not be sent.")
            self.client = None
            self.enabled = False
        else:
            self.client = SendGridAPIClient(api_key)
            self.enabled = True

    def build_message(self, to: str, subject: str, body: str) -> Mail:
        message = Mail(
            from_email=(self.from_email, self.from_name),
            to_emails=to,
            subject=subject,
            html_content=text_to_html(body),
            plain_text_content=body,
        )
        if self.reply_to:
            message.reply_to = ReplyTo(self.reply_to)
        if self.bcc and self.bcc.lower() != to.lower():
            message.add_bcc(Bcc(self.bcc))
        return message

    async def send(self, to: str, subject: str, body: str) -> EmailSendResult:
        """Send a plain-text body (converted to simple HTML as well)."""
        if not self.enabled:
            logger.info("Email sender disabled. Would have sent to %s: %s", to, subject)
            return EmailSendResult(sent=False, error="Email sending is not configured")

        try:
            message = self.build_message(to, subject, body)
            # The SendGrid client is synchronous
            response = await asyncio.to_thread(self.client.send, message)
        except Exception as e:
            logger.error("Error sending email to %s: %s", to, e)
            return EmailSendResult(sent=False, error=str(e))

        if 200 <= response.status_code < 300:
            headers = response.headers or {}
            message_id = headers.get("X-Message-Id") if hasattr(headers, "get") else None
            logger.info("Email sent successfully to %s: %s", to, subject)
            return EmailSendResult(sent=True, message_id=message_id)

        logger.error("Failed to send email to %s: %s %s", to, response.status_code, response.body)
        return EmailSendResult(sent=False, error=f"SendGrid returned {response.status_code}")
