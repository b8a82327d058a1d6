"""Email service for sending invitations."""

import html
import logging
import re
import smtplib
import ssl
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import httpx

from taskboard.config import get_settings

logger = logging.getLogger(__name__)


class EmailService:
    """Service for sending emails via SMTP or the Resend HTTP API.

    Attributes:
        settings: Application settings containing email configuration.
    """

    def __init__(self):
        """Initialize the email service with settings."""
        self.settings = get_settings()

    @property
    def app_name(self) -> str:
        """Get the application name from settings."""
        return self.settings.app_name

    @property
    def is_configured(self) -> bool:
        """Whether outbound delivery is set up for the selected backend."""
        if self.settings.email_backend == "resend":
            return bool(self.settings.resend_api_key)
        return bool(self.settings.smtp_host)

    @property
    def from_address(self) -> str:
        return f"{self.settings.email_from_name} <{self.settings.email_from}>"

    def _create_smtp_connection(self) -> smtplib.SMTP_SSL | smtplib.SMTP:
        """Create an SMTP connection based on settings.

        Raises:
            smtplib.SMTPException: If connection fails.
        """
        if self.settings.smtp_use_tls:
            # Use SSL/TLS from the start (port 465)
            context = ssl.create_default_context()
            server = smtplib.SMTP_SSL(
                self.settings.smtp_host,
                self.settings.smtp_port,
                context=context,
            )
        else:
            # Use STARTTLS (port 587)
            server = smtplib.SMTP(self.settings.smtp_host, self.settings.smtp_port)
            server.starttls()

        if self.settings.smtp_user and self.settings.smtp_password:
            server.login(self.settings.smtp_user, self.settings.smtp_password)

        return server

    def _send_smtp(self, to_email: str, subject: str, body_html: str, body_text: str) -> None:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.from_address
        msg["To"] = to_email
        msg.attach(MIMEText(body_text, "plain"))
        msg.attach(MIMEText(body_html, "html"))

        with self._create_smtp_connection() as server:
            server.sendmail(self.settings.email_from, to_email, msg.as_string())

    def _send_resend(self, to_email: str, subject: str, body_html: str, body_text: str) -> None:
        response = httpx.post(
            self.settings.resend_api_url,
            headers={"Authorization": f"Bearer {self.settings.resend_api_key}"},
            json={
                "from": self.from_address,
                "to": [to_email],
                "subject": subject,
                "html": body_html,
                "text": body_text,
            },
            timeout=10.0,
        )
        response.raise_for_status()

    def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: str | None = None,
    ) -> bool:
        """Send an email.

        Args:
            to_email: Recipient email address.
            subject: Email subject.
            body_html: HTML body content.
            body_text: Plain text body (generated from HTML if not provided).

        Returns:
            bool: True if email sent successfully, False otherwise.
        """
        if not self.is_configured:
            logger.warning(f"Email delivery not configured; not sending to {to_email}")
            return False

        if body_text is None:
            body_text = re.sub(r"<[^>]+>", "", body_html)
            body_text = re.sub(r"\s+", " ", body_text).strip()

        try:
            if self.settings.email_backend == "resend":
                self._send_resend(to_email, subject, body_html, body_text)
            else:
                self._send_smtp(to_email, subject, body_html, body_text)
        except smtplib.SMTPException as e:
            logger.error(f"SMTP error sending email to {to_email}: {e}")
            return False
        except httpx.HTTPError as e:
            logger.error(f"Email API error sending email to {to_email}: {e}")
            return False
        except OSError as e:
            logger.error(f"Error sending email to {to_email}: {e}")
            return False

        logger.info(f"Email sent successfully to {to_email}: {subject}")
        return True

    def send_invitation_email(
        self,
        to_email: str,
        organization_name: str,
        inviter_name: str,
        invite_url: str,
        expires_at: datetime,
    ) -> bool:
        """Send an invitation to join an organization.

        Args:
            to_email: Invitee's email address.
            organization_name: Organization being joined.
            inviter_name: Name or email of the person inviting.
            invite_url: Capability link for accepting the invitation.
            expires_at: When the invitation stops working.

        Returns:
            bool: True if sent successfully.
        """
        org = html.escape(organization_name)
        inviter = html.escape(inviter_name)
        subject = f"You've been invited to join {organization_name}"
        body_html = f"""
        <html>
        <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
            <h2>You're invited!</h2>
            <p><strong>{inviter}</strong> has invited you to join <strong>{org}</strong>
            on {self.app_name}.</p>
            <p style="text-align: center; margin: 30px 0;">
                <a href="{invite_url}"
                   style="background: #3b82f6; color: white; padding: 14px 28px;
                          text-decoration: none; border-radius: 6px; font-weight: bold;">
                    Accept Invitation
                </a>
            </p>
            <p style="font-size: 14px; color: #666;">Or copy this link: {invite_url}</p>
            <p style="font-size: 14px;">This invitation expires on
            <strong>{expires_at.strftime("%B %d, %Y")}</strong>.</p>
        </body>
        </html>
        """
        return self.send_email(to_email, subject, body_html)


def get_email_service() -> EmailService:
    """Factory function for EmailService."""
    return EmailService()
