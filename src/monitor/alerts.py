"""Health alert delivery.

Alerts are always logged. When SMTP is configured they are also emailed,
using stdlib smtplib with STARTTLS. All functions are designed to never
raise; they return success/failure booleans and log errors.
"""

import logging
import smtplib
from email.mime.text import MIMEText

from src.config import get_settings
from src.observability.metrics import HEALTH_ALERTS_TOTAL

logger = logging.getLogger(__name__)


def is_email_configured() -> bool:
    """Check whether all required SMTP settings are present."""
    settings = get_settings()
    return bool(
        settings.smtp_host and settings.smtp_username and settings.smtp_password and settings.alert_recipient_email
    )


def send_alert_email(body: str, subject: str) -> bool:
    """Send a plain-text alert via SMTP with STARTTLS.

    Returns:
        True if the email was sent successfully, False otherwise.
    """
    settings = get_settings()

    if not is_email_configured():
        logger.debug("Email not configured, skipping send")
        return False

    msg = MIMEText(body, "plain", "utf-8")
    msg["Subject"] = subject
    msg["From"] = settings.smtp_username
    msg["To"] = settings.alert_recipient_email

    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=30) as server:
            _ = server.starttls()
            server.login(settings.smtp_username, settings.smtp_password)
            server.send_message(msg)
        logger.info("Alert email sent to %s", settings.alert_recipient_email)
        return True
    except Exception:
        logger.exception("Failed to send alert email")
        return False


def send_health_alert(service: str, status: str, message: str) -> bool:
    """Raise a health alert for an integration.

    Returns:
        True if the alert also went out by email.
    """
    HEALTH_ALERTS_TOTAL.labels(service=service, status=status).inc()
    logger.warning("Health Alert - %s: %s - %s", service, status, message)
    return send_alert_email(
        f"{service} is {status}\n\n{message}\n",
        subject=f"Integration alert: {service} is {status}",
    )
