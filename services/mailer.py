"""Outbound email for account flows."""

import logging
from smtplib import SMTPException

from django.conf import settings
from django.core.mail import send_mail

from . import ServiceIntegrationError

logger = logging.getLogger(__name__)


def send_password_reset_code(user, code):
    """
    Email a password reset code to ``user``.

    Without SMTP credentials the message is only logged.

    Raises:
        ServiceIntegrationError: when the mail backend fails
    """
    ttl = settings.PASSWORD_RESET_CODE_TTL_MINUTES
    subject = 'Password Reset Code'
    message = f"Your password reset code is {code}. This code will expire in {ttl} minutes."
    html_message = (
        f"<p>Your password reset code is <strong>{code}</strong>.</p>"
        f"<p>This code will expire in {ttl} minutes.</p>"
    )

    if not settings.EMAIL_HOST_USER:
        logger.info(f"Email not configured - reset code for {user.email}: {message}")
        return

    try:
        send_mail(
            subject,
            message,
            settings.DEFAULT_FROM_EMAIL,
            [user.email],
            html_message=html_message,
        )
    except (SMTPException, OSError) as e:
        logger.error(f"Failed to send reset code to user {user.id}: {e}")
        raise ServiceIntegrationError(f"Error sending email: {e}") from e

    logger.info(f"Password reset code sent to user {user.id}")
