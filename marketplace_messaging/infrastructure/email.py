"""Helpers for delivering notification emails via SendGrid."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from html import escape
from typing import Any

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from marketplace_messaging.config import get_settings
from marketplace_messaging.domain.entities import Notification

logger = logging.getLogger(__name__)


def _extract_sendgrid_error_details(body: Any) -> str | None:
    """Return a human readable description for a SendGrid error payload."""

    if body in (None, ""):
        return None

    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError:
            return None

    if isinstance(body, str):
        body = body.strip()
        if not body:
            return None
        try:
            parsed = json.loads(body)
        except json.JSONDecodeError:
            return body
    else:
        parsed = body

    if isinstance(parsed, dict):
        errors = parsed.get("errors")
        if isinstance(errors, list):
            messages: list[str] = []
            for item in errors:
                if not isinstance(item, dict):
                    continue
                message = item.get("message")
                help_link = item.get("help")
                if message and help_link:
                    messages.append(f"{message} (help: {help_link})")
                elif message:
                    messages.append(str(message))
            if messages:
                return "; ".join(messages)
        try:
            return json.dumps(parsed)
        except (TypeError, ValueError):
            return None

    if isinstance(parsed, list):
        try:
            return "; ".join(str(item) for item in parsed)
        except TypeError:
            return None

    return None


def _log_sendgrid_exception(exc: Exception) -> None:
    """Log a SendGrid API error with helpful troubleshooting details."""

    status_code = getattr(exc, "status_code", None)
    body = getattr(exc, "body", None)
    details = _extract_sendgrid_error_details(body)

    if status_code and details:
        logger.error(
            "SendGrid API request failed with status %s: %s", status_code, details
        )
    elif status_code:
        logger.error("SendGrid API request failed with status %s", status_code)
    elif details:
        logger.error("SendGrid API request failed: %s", details)
    else:
        logger.exception("Error sending email via SendGrid: %s", exc)


def _log_unsuccessful_response(response: Any) -> None:
    """Log details from an unsuccessful SendGrid response object."""

    status_code = getattr(response, "status_code", None)
    body = getattr(response, "body", None)
    details = _extract_sendgrid_error_details(body)

    if details:
        logger.error(
            "SendGrid API responded with status %s: %s", status_code, details
        )
    else:
        logger.error("SendGrid API responded with status %s", status_code)


def send_email(subject: str, html_content: str, recipient: str) -> bool:
    """Send an email using the configured SendGrid credentials."""

    settings = get_settings()
    if not (settings.sendgrid_api_key and settings.sendgrid_sender):
        logger.info("SendGrid configuration incomplete; skipping email delivery")
        return False

    message = Mail(
        from_email=settings.sendgrid_sender,
        to_emails=recipient,
        subject=subject,
        html_content=html_content,
    )

    try:
        client = SendGridAPIClient(settings.sendgrid_api_key)
        response = client.send(message)
    except Exception as exc:  # pragma: no cover - network failures depend on environment
        _log_sendgrid_exception(exc)
        return False

    status_code = getattr(response, "status_code", None)
    if not isinstance(status_code, int) or not 200 <= status_code < 300:
        _log_unsuccessful_response(response)
        return False

    return True


def _absolute_url(action_url: str | None) -> str | None:
    if not action_url:
        return None
    if action_url.startswith(("http://", "https://")):
        return action_url
    base_url = get_settings().public_base_url.rstrip("/")
    return f"{base_url}/{action_url.lstrip('/')}"


def _render_notification_block(notification: Notification) -> str:
    title = escape(notification.title)
    body = escape(notification.message)
    link = _absolute_url(notification.action_url)
    block = f"<h3>{title}</h3><p>{body}</p>"
    if link:
        block += f'<p><a href="{escape(link, quote=True)}">Open</a></p>'
    return block


def send_notification_email(recipient: str, notification: Notification) -> bool:
    """Deliver a single notification by email."""

    html_content = (
        "<p>Hi,</p>"
        f"{_render_notification_block(notification)}"
        "<p>You can change how often we email you from your notification settings.</p>"
    )
    return send_email(notification.title, html_content, recipient)


def send_digest_email(
    recipient: str, notifications: Sequence[Notification], *, period: str
) -> bool:
    """Deliver a summary of ``notifications`` collected during ``period``."""

    if not notifications:
        return False

    count = len(notifications)
    noun = "notification" if count == 1 else "notifications"
    subject = f"Your {period} summary: {count} new {noun}"
    blocks = "".join(_render_notification_block(item) for item in notifications)
    html_content = (
        "<p>Hi,</p>"
        f"<p>Here is what happened since your last {period} summary.</p>"
        f"{blocks}"
    )
    return send_email(subject, html_content, recipient)


__all__ = ["send_email", "send_notification_email", "send_digest_email"]
