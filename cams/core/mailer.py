"""Welcome email delivery over SMTP."""
from __future__ import annotations
import logging
import smtplib
from email.message import EmailMessage

from cams.config import AppConfig
from cams.core.validators import sanitize_for_log

logger = logging.getLogger(__name__)


def build_welcome_email(cfg: AppConfig, *, username: str, email: str, first_name: str | None,
                        temp_password: str | None) -> EmailMessage:
    greeting = first_name or username
    lines = [
        f"Hello {greeting},",
        "",
        "An account has been created for you on the CAMS platform.",
        f"Username: {username}",
    ]
    if temp_password:
        lines.append(f"Temporary password: {temp_password}")
        lines.append("Please change this password after your first login.")
    lines += ["", "-- CAMS administration"]

    message = EmailMessage()
    message["Subject"] = "Welcome to CAMS"
    message["From"] = cfg.smtp_from or cfg.smtp_user
    message["To"] = email
    message.set_content("\n".join(lines))
    return message


def send_welcome_email(cfg: AppConfig, *, username: str, email: str, first_name: str | None = None,
                       temp_password: str | None = None) -> bool:
    """Send a welcome email. Returns False when SMTP is not configured.

    SMTP failures propagate; the side-effect dispatcher logs and swallows them.
    """
    if not cfg.smtp_enabled:
        logger.info("SMTP not configured; skipping welcome email for %s", sanitize_for_log(username))
        return False

    message = build_welcome_email(
        cfg, username=username, email=email, first_name=first_name, temp_password=temp_password
    )
    with smtplib.SMTP(cfg.smtp_host, cfg.smtp_port, timeout=10) as server:
        server.starttls()
        if cfg.smtp_user and cfg.smtp_password:
            server.login(cfg.smtp_user, cfg.smtp_password)
        server.send_message(message)

    logger.info("Welcome email sent to %s", sanitize_for_log(username))
    return True
