"""
Email Service for BioCMS
========================
Transactional email over SMTP:
- Password reset links
- Newsletter subscription verification
- Contact form confirmation and admin notification

Sends are scheduled with ``dispatch`` so a slow or failing mail server never
delays or fails the request that triggered the email.
"""

import asyncio
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Coroutine, Optional, Set

import aiosmtplib

from biocms.core.config import settings
from biocms.core.logging_config import logger


class EmailService:
    """Async email service using SMTP"""

    def __init__(self):
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_user = settings.SMTP_USER
        self.smtp_password = settings.SMTP_PASSWORD
        self.from_email = settings.EMAIL_FROM
        self.from_name = settings.EMAIL_FROM_NAME
        self._pending: Set[asyncio.Task] = set()

    @property
    def is_configured(self) -> bool:
        """Check if email service is properly configured"""
        return bool(self.smtp_host and self.smtp_user and self.smtp_password)

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None
    ) -> bool:
        """
        Send an email asynchronously.

        Returns True if successful, False otherwise.
        """
        if not self.is_configured:
            logger.warning(f"[Email] Email service not configured, skipping '{subject}' to {to_email}")
            return False

        message = MIMEMultipart("alternative")
        message["From"] = f"{self.from_name} <{self.from_email}>"
        message["To"] = to_email
        message["Subject"] = subject

        if text_content:
            message.attach(MIMEText(text_content, "plain"))
        message.attach(MIMEText(html_content, "html"))

        try:
            await aiosmtplib.send(
                message,
                hostname=self.smtp_host,
                port=self.smtp_port,
                username=self.smtp_user,
                password=self.smtp_password,
                start_tls=True
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"[Email/SMTP] Failed to send email to {to_email}: {e}")
            return False

        logger.info(f"[Email/SMTP] Successfully sent email to {to_email}: {subject}")
        return True

    def dispatch(self, send: Coroutine) -> asyncio.Task:
        """Schedule a send without awaiting it"""
        task = asyncio.create_task(send)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def send_password_reset_email(self, to_email: str, name: str, token: str) -> bool:
        reset_url = settings.get_password_reset_url(token)
        minutes = settings.PASSWORD_RESET_EXPIRE_MINUTES
        html_content = f"""
        <p>Hi {name},</p>
        <p>Forgot your password? Use the link below to choose a new one.</p>
        <p><a href="{reset_url}">{reset_url}</a></p>
        <p>The link is valid for {minutes} minutes. If you didn't request this, ignore this email.</p>
        """
        text_content = (
            f"Hi {name},\n\nReset your password here (valid for {minutes} minutes):\n{reset_url}\n\n"
            "If you didn't request this, ignore this email."
        )
        return await self.send_email(to_email, "Your password reset link", html_content, text_content)

    async def send_newsletter_verification_email(self, to_email: str, name: Optional[str], token: str) -> bool:
        verify_url = settings.get_newsletter_verify_url(token)
        greeting = f"Hi {name}," if name else "Hi,"
        html_content = f"""
        <p>{greeting}</p>
        <p>Please confirm your subscription to the {settings.APP_NAME} newsletter.</p>
        <p><a href="{verify_url}">{verify_url}</a></p>
        """
        text_content = f"{greeting}\n\nConfirm your subscription:\n{verify_url}"
        return await self.send_email(to_email, "Confirm your newsletter subscription", html_content, text_content)

    async def send_contact_confirmation(self, to_email: str, name: str, subject: str) -> bool:
        html_content = f"""
        <p>Hi {name},</p>
        <p>Thanks for reaching out. We received your message "{subject}" and will get back to you soon.</p>
        """
        text_content = f"Hi {name},\n\nThanks for reaching out. We received your message \"{subject}\"."
        return await self.send_email(to_email, f"Thank you for contacting {settings.APP_NAME}", html_content, text_content)

    async def send_contact_admin_notification(
        self,
        name: str,
        email: str,
        subject: str,
        message: str,
        priority: str
    ) -> bool:
        admin_email = settings.ADMIN_NOTIFICATION_EMAIL
        if not admin_email:
            logger.debug("[Email] Admin email not configured, skipping admin notification")
            return False
        html_content = f"""
        <p>New contact message ({priority} priority)</p>
        <p><strong>From:</strong> {name} &lt;{email}&gt;</p>
        <p><strong>Subject:</strong> {subject}</p>
        <p>{message}</p>
        """
        text_content = f"New contact message ({priority})\nFrom: {name} <{email}>\nSubject: {subject}\n\n{message}"
        return await self.send_email(admin_email, f"New contact: {subject}", html_content, text_content)


# Singleton instance
email_service = EmailService()
