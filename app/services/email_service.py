"""
Email service for transactional emails using Brevo (formerly Sendinblue).

Delivery is best-effort: send_email never raises, it logs and returns False.
"""
import logging
from datetime import datetime
from typing import Optional

import sib_api_v3_sdk
from sib_api_v3_sdk.rest import ApiException

from app.core.config import get_settings
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)


class EmailService:
    """Email service for sending transactional emails via Brevo"""

    def __init__(self):
        settings = get_settings()
        self.sender_email = settings.email_from
        self.sender_name = settings.email_from_name
        self.portal_name = settings.portal_name
        self.login_url = settings.login_url
        self.reset_password_url = settings.reset_password_url

        if settings.brevo_api_key:
            configuration = sib_api_v3_sdk.Configuration()
            configuration.api_key['api-key'] = settings.brevo_api_key
            api_client = sib_api_v3_sdk.ApiClient(configuration)
            self.client = sib_api_v3_sdk.TransactionalEmailsApi(api_client)
            self.is_configured = True
        else:
            self.client = None
            self.is_configured = False
            logger.warning("Brevo API key not configured. Email sending disabled.")

    def send_email(self, to: str, subject: str, text: str, html: str) -> bool:
        """
        Send one email.

        Returns:
            True if email sent successfully, False otherwise
        """
        if not self.is_configured:
            logger.warning(f"Email not sent to {to}: Brevo not configured")
            return False

        try:
            email = sib_api_v3_sdk.SendSmtpEmail(
                sender=sib_api_v3_sdk.SendSmtpEmailSender(name=self.sender_name, email=self.sender_email),
                to=[sib_api_v3_sdk.SendSmtpEmailTo(email=to)],
                subject=subject,
                html_content=html,
                text_content=text
            )
            response = self.client.send_transac_email(email)
            logger.info(f"Email sent successfully to {to}. Message ID: {response.message_id}")
            return True
        except ApiException as e:
            logger.error(f"Brevo API error sending email to {to}: {e.status} - {e.reason}")
            return False
        except Exception as e:
            logger.error(f"Failed to send email to {to}: {str(e)}")
            return False

    def send_welcome_email(self, to: str, temp_password: str) -> bool:
        """Account-created email with the temporary password."""
        subject = f"Welcome to {self.portal_name} - Your Account Details"

        text = f"""
Welcome to {self.portal_name}!

Your login details:
Email: {to}
Temporary Password: {temp_password}

Please login at: {self.login_url}

Please change your password after first login.
        """

        html = f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <style>
        body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px; }}
        .header {{ background-color: #2563eb; color: white; padding: 20px; text-align: center; border-radius: 8px 8px 0 0; }}
        .content {{ padding: 20px; background-color: #f9fafb; border-radius: 0 0 8px 8px; }}
        .credentials {{ background-color: #e5e7eb; padding: 15px; border-radius: 4px; margin: 15px 0; }}
        .button {{ display: inline-block; padding: 10px 20px; background-color: #2563eb; color: white; text-decoration: none; border-radius: 4px; margin: 15px 0; }}
        .footer {{ margin-top: 20px; font-size: 12px; color: #6b7280; text-align: center; }}
    </style>
</head>
<body>
    <div class="header">
        <h1>Welcome to {self.portal_name}!</h1>
    </div>
    <div class="content">
        <p>Hello,</p>
        <p>An account has been created for you on {self.portal_name}. Here are your login details:</p>
        <div class="credentials">
            <p><strong>Email:</strong> {to}</p>
            <p><strong>Temporary Password:</strong> {temp_password}</p>
        </div>
        <a href="{self.login_url}" class="button">Login to Your Account</a>
        <p>Please change your password immediately after first login and never share your credentials.</p>
        <div class="footer">
            <p>&copy; {utcnow().year} {self.portal_name}. All rights reserved.</p>
            <p>This is an automated message, please do not reply directly to this email.</p>
        </div>
    </div>
</body>
</html>
        """

        return self.send_email(to=to, subject=subject, text=text, html=html)

    def send_access_code_email(
        self,
        to: str,
        code: str,
        duration_text: str,
        expires_at: datetime,
        temp_password: Optional[str] = None
    ) -> bool:
        """Access code email; includes the temporary password for new accounts."""
        subject = f"Your {self.portal_name} Portal Access Code!"
        expiry = expires_at.strftime("%d-%b-%Y")
        password_line = (
            f"Your temporary password is: {temp_password} (You will be prompted to change this on first login.)\n\n"
            if temp_password else ""
        )

        text = (
            f"Hello {to},\n\n"
            f"An administrator has generated an exclusive access code for you to log in to {self.portal_name} Portal.\n\n"
            f"Your Access Code: {code}\n\n"
            f"This code is valid for {duration_text} from now (until {expiry}) and can be used once.\n\n"
            f"Please use it to log in and complete your profile here: {self.login_url}\n\n"
            f"{password_line}"
            f"We look forward to having you!\n\n{self.sender_name}"
        )

        password_html = (
            f"<p><strong>Temporary Password:</strong> {temp_password}</p>" if temp_password else ""
        )
        html = f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <style>
        body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px; }}
        .code {{ font-size: 24px; font-weight: bold; letter-spacing: 4px; background-color: #e5e7eb; padding: 15px; text-align: center; border-radius: 4px; }}
        .footer {{ margin-top: 20px; font-size: 12px; color: #6b7280; text-align: center; }}
    </style>
</head>
<body>
    <p>Hello {to},</p>
    <p>An administrator has generated an exclusive access code for you to log in to {self.portal_name} Portal.</p>
    <div class="code">{code}</div>
    <p>This code is valid for <strong>{duration_text}</strong> (until {expiry}) and can be used once.</p>
    {password_html}
    <p><a href="{self.login_url}">Log in and complete your profile</a></p>
    <div class="footer"><p>{self.sender_name}</p></div>
</body>
</html>
        """

        return self.send_email(to=to, subject=subject, text=text, html=html)

    def send_password_reset_email(self, to: str, name: str, token: str, valid_minutes: int) -> bool:
        """Reset link email for the forgot-password flow."""
        subject = f"Password Reset Request for Your {self.portal_name} Account"
        reset_link = f"{self.reset_password_url}?token={token}"

        text = (
            f"Hello {name},\n\n"
            f"You have requested to reset the password for your {self.portal_name} account. "
            f"Please open the link below to reset your password:\n\n"
            f"{reset_link}\n\n"
            f"This link is valid for {valid_minutes} minutes. If you did not request a password reset, "
            f"please ignore this email.\n\n{self.sender_name}"
        )

        html = f"""
<!DOCTYPE html>
<html>
<head><meta charset="UTF-8"></head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
    <p>Hello <strong>{name}</strong>,</p>
    <p>You have requested to reset the password for your {self.portal_name} account.</p>
    <p><a href="{reset_link}" style="color: #1a73e8; text-decoration: none;">Reset Your Password</a></p>
    <p>This link is valid for <strong>{valid_minutes} minutes</strong>. If you did not request a password reset, please ignore this email.</p>
    <p>{self.sender_name}</p>
</body>
</html>
        """

        return self.send_email(to=to, subject=subject, text=text, html=html)
