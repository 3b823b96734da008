"""Transactional email through a Mailgun-compatible HTTP API (POST form to <MAIL_API_URL>/messages)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

WELCOME_SUBJECT = "Welcome to Tech-E!"
WELCOME_HTML = """
<h1>Welcome to Tech-E!</h1>
<p>We're excited to have you join our community.</p>
<p>Cheers,<br/>Tech-E.</p>"""

PROMOTION_SUBJECT = "Your Role has been Updated"
PROMOTION_TEXT = "Congratulations! You are now an Admin."
PROMOTION_HTML = """
<h1>Congratulations!</h1>
<p>You have been assigned the Admin role on Tech-E.</p>
<p>If you have any questions, feel free to reach out to us.</p>
<p>Cheers,<br/>Tech-E Team</p>"""

EDIT_REQUEST_SUBJECT = "Request to Edit Avatar Model"


class MailerNotConfiguredError(Exception):
    """Raised when a send is attempted but MAIL_API_URL or MAIL_API_KEY is missing."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class MailerError(Exception):
    """Raised when the mail API rejects the message or cannot be reached."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def _is_configured(settings: Settings) -> bool:
    if not settings.MAIL_API_URL:
        return False
    if settings.MAIL_API_KEY is None:
        return False
    return bool(settings.MAIL_API_KEY.get_secret_value().strip())


async def send_mail(
    to: str,
    subject: str,
    text: str,
    settings: Settings,
    html: str | None = None,
    reply_to: str | None = None,
) -> None:
    """
    Send one message. Raises MailerNotConfiguredError or MailerError.

    Callers decide whether a failure matters; account workflows treat it as
    non-fatal and report it separately.
    """
    if not _is_configured(settings):
        raise MailerNotConfiguredError("Mail is not configured; set MAIL_API_URL and MAIL_API_KEY.")
    url = f"{settings.MAIL_API_URL}/messages"
    data = {"from": settings.MAIL_FROM, "to": to, "subject": subject, "text": text}
    if html:
        data["html"] = html
    if reply_to:
        data["h:Reply-To"] = reply_to
    timeout = max(1.0, min(300.0, settings.MAIL_REQUEST_TIMEOUT_SEC))
    auth = ("api", settings.MAIL_API_KEY.get_secret_value())
    try:
        async with httpx.AsyncClient(auth=auth, timeout=timeout) as client:
            resp = await client.post(url, data=data)
    except httpx.HTTPError as e:
        raise MailerError(f"Mail API unreachable: {e!s}") from e
    if resp.status_code >= 400:
        detail = resp.text[:500] if resp.text else "Unknown error"
        raise MailerError(f"Mail API returned {resp.status_code}: {detail}", resp.status_code)


async def _deliver(kind: str, to: str, subject: str, text: str, settings: Settings, **kwargs: str | None) -> bool:
    """Send and swallow delivery errors into a logged False."""
    try:
        await send_mail(to, subject, text, settings, **kwargs)
    except (MailerNotConfiguredError, MailerError) as e:
        logger.warning("Email not sent", extra={"mail_kind": kind, "reason": e.message[:500]})
        return False
    logger.info("Email sent", extra={"mail_kind": kind})
    return True


async def send_welcome_email(name: str, email: str, settings: Settings) -> bool:
    return await _deliver(
        "welcome",
        email,
        WELCOME_SUBJECT,
        f"Welcome to Our Platform, {name}!",
        settings,
        html=WELCOME_HTML,
    )


async def send_admin_promotion_email(email: str, settings: Settings) -> bool:
    return await _deliver(
        "admin_promotion",
        email,
        PROMOTION_SUBJECT,
        PROMOTION_TEXT,
        settings,
        html=PROMOTION_HTML,
    )


async def send_edit_request_email(requester_email: str, image_url: str, settings: Settings) -> bool:
    """Forward an avatar edit request to support; falls back to the requester when no support address is set."""
    text = (
        "Hello,\n\n"
        "I hope this message finds you well. I would like to request your assistance "
        "in editing my avatar model.\n\n"
        "Here is the image I would like you to work on:\n"
        f"{image_url}\n"
    )
    return await _deliver(
        "edit_request",
        settings.MAIL_SUPPORT_ADDRESS or requester_email,
        EDIT_REQUEST_SUBJECT,
        text,
        settings,
        reply_to=requester_email,
    )
