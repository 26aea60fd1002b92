"""
Email Service for SBTE Portal
=============================
Sends transactional mail (password reset OTPs, account notices) over SMTP.
"""

import aiosmtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional

from app.core.config import settings
from app.core.logging_config import logger


class EmailService:
    """Async email service using SMTP"""

    def __init__(self):
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_user = settings.SMTP_USER
        self.smtp_password = settings.SMTP_PASSWORD
        self.use_tls = settings.SMTP_USE_TLS
        self.from_email = settings.EMAIL_FROM
        self.from_name = settings.EMAIL_FROM_NAME

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
            logger.warning("[Email] Email service not configured, skipping email send")
            return False

        try:
            message = MIMEMultipart("alternative")
            message["From"] = f"{self.from_name} <{self.from_email}>"
            message["To"] = to_email
            message["Subject"] = subject

            if text_content:
                message.attach(MIMEText(text_content, "plain"))
            message.attach(MIMEText(html_content, "html"))

            await aiosmtplib.send(
                message,
                hostname=self.smtp_host,
                port=self.smtp_port,
                username=self.smtp_user,
                password=self.smtp_password,
                start_tls=self.use_tls
            )

            logger.info(f"[Email/SMTP] Successfully sent email to {to_email}: {subject}")
            return True

        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"[Email/SMTP] Failed to send email to {to_email}: {e}")
            return False

    async def send_otp_email(self, to_email: str, name: str, otp: str) -> bool:
        """Send the password reset one-time code"""
        minutes = settings.OTP_EXPIRE_MINUTES
        html_content = f"""
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
            <h2 style="color: #1e3a8a;">{settings.APP_NAME} password reset</h2>
            <p>Hello {name},</p>
            <p>Use the code below to reset your password. It expires in {minutes} minutes.</p>
            <p style="font-size: 28px; font-weight: bold; letter-spacing: 6px;">{otp}</p>
            <p>If you did not request a reset, you can ignore this email.</p>
        </div>
        """
        text_content = (
            f"Hello {name},\n\n"
            f"Your password reset code is {otp}. It expires in {minutes} minutes.\n\n"
            "If you did not request a reset, you can ignore this email."
        )
        return await self.send_email(
            to_email, f"{settings.APP_NAME} - Password reset code", html_content, text_content
        )


email_service = EmailService()
