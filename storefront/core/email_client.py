"""
Email client utilities for the storefront.

Responsibilities:
  - Read SMTP configuration from environment variables.
  - Provide send_email(...) for plain delivery.
  - Provide send_order_email(...), which composes the order notification
    subject and body from the order id, invoice rows and total.
  - Support both TLS (STARTTLS) and SSL connections.

Typical .env configuration (Gmail example with App Password):

    SMTP_HOST=smtp.gmail.com
    SMTP_PORT=465
    SMTP_USERNAME=orders@example.com
    SMTP_PASSWORD=<app password>
    SMTP_FROM_EMAIL=orders@example.com
    SMTP_FROM_NAME=Ballerz
    SMTP_USE_TLS=false
    SMTP_USE_SSL=true
"""

from __future__ import annotations

import logging
import os
import smtplib
from collections.abc import Sequence
from email.message import EmailMessage

from storefront.schemas.invoice import InvoiceRow

logger = logging.getLogger(__name__)


def _get_bool_env(name: str, default: bool = False) -> bool:
    """
    Read a boolean env var.

    Accepted truthy values (case-insensitive):
      - "1", "true", "yes", "y"

    Everything else is treated as False.
    """
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y"}


# ---------------------------------------------------------------------------
# Configuration: read once at import time
# ---------------------------------------------------------------------------

SMTP_HOST: str | None = os.getenv("SMTP_HOST")
SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))

SMTP_USERNAME: str | None = os.getenv("SMTP_USERNAME")
SMTP_PASSWORD: str | None = os.getenv("SMTP_PASSWORD")

# Fallback: if FROM_EMAIL is not set, default to username
SMTP_FROM_EMAIL: str = os.getenv("SMTP_FROM_EMAIL", SMTP_USERNAME or "")

# Human-readable sender name, shown in email clients
SMTP_FROM_NAME: str = os.getenv("SMTP_FROM_NAME", "Ballerz")

# Connection mode flags
SMTP_USE_TLS: bool = _get_bool_env("SMTP_USE_TLS", default=True)
SMTP_USE_SSL: bool = _get_bool_env("SMTP_USE_SSL", default=False)


def _create_smtp_client() -> smtplib.SMTP:
    """
    Create and return an SMTP client configured for TLS or SSL.

    Priority:
      - If SMTP_USE_SSL is True → use smtplib.SMTP_SSL (e.g., Gmail on 465).
      - Else → use smtplib.SMTP + optional STARTTLS if SMTP_USE_TLS is True.
    """
    if not SMTP_HOST:
        raise RuntimeError("SMTP_HOST is not configured. Please set it in .env.")

    if SMTP_USE_SSL:
        server: smtplib.SMTP = smtplib.SMTP_SSL(SMTP_HOST, SMTP_PORT, timeout=30)
    else:
        server = smtplib.SMTP(SMTP_HOST, SMTP_PORT, timeout=30)
        if SMTP_USE_TLS:
            server.starttls()

    return server


def send_email(
    to_email: str,
    subject: str,
    text_body: str,
    html_body: str | None = None,
) -> None:
    """
    Send an email to a single recipient.

    Raises
    ------
    RuntimeError:
        If required SMTP configuration is missing.
    smtplib.SMTPException:
        If the underlying SMTP connection or send fails.
    """
    if not (SMTP_HOST and SMTP_USERNAME and SMTP_PASSWORD):
        raise RuntimeError(
            "SMTP is not configured correctly. "
            "Please set SMTP_HOST, SMTP_USERNAME, and SMTP_PASSWORD in .env."
        )

    msg = EmailMessage()

    from_header = (
        f"{SMTP_FROM_NAME} <{SMTP_FROM_EMAIL}>"
        if SMTP_FROM_EMAIL
        else SMTP_USERNAME
    )
    msg["From"] = from_header
    msg["To"] = to_email
    msg["Subject"] = subject

    msg.set_content(text_body)

    if html_body:
        msg.add_alternative(html_body, subtype="html")

    server = _create_smtp_client()
    try:
        server.login(SMTP_USERNAME, SMTP_PASSWORD)  # type: ignore[arg-type]
        server.send_message(msg)
    finally:
        try:
            server.quit()
        except smtplib.SMTPException:
            # Connection is being torn down anyway.
            pass

    logger.info("Sent '%s' to %s", subject, to_email)


def compose_order_email(
    order_id: str,
    items: Sequence[InvoiceRow],
    total: str,
    store_name: str | None = None,
) -> tuple[str, str]:
    """
    Build (subject, text_body) for an order notification.
    """
    store_name = store_name or SMTP_FROM_NAME
    subject = f"Your {store_name} Order {order_id}"

    plain_items = "\n".join(
        f"{it.label} x{it.quantity} - {it.line_total_display}" for it in items
    )
    text_body = (
        f"Thank you for your order with {store_name}.\n"
        f"\n"
        f"Order ID: {order_id}\n"
        f"Total: {total}\n"
        f"\n"
        f"Items:\n"
        f"{plain_items or '(details unavailable)'}\n"
        f"\n"
        f"If you have any questions, just reply to this email."
    )
    return subject, text_body


def send_order_email(
    to_email: str,
    order_id: str,
    items: Sequence[InvoiceRow],
    total: str,
) -> None:
    """
    Send the order notification email. Subject and body are composed here;
    callers only pass the order data.
    """
    subject, text_body = compose_order_email(order_id, items, total)
    send_email(to_email=to_email, subject=subject, text_body=text_body)
