"""
Outbound mail: password-reset links.

Sends through the SendGrid v3 HTTP API when ``sendgrid_api_key`` is set;
otherwise the link is only logged so local development works offline.
Delivery failures are logged and never surface to the caller, so
``/forgot-password`` answers the same way whether or not mail went out.
"""

from __future__ import annotations

import httpx
import structlog

from app.core.config import get_settings

log = structlog.get_logger()
settings = get_settings()

SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"
REQUEST_TIMEOUT_SECONDS = 10


def reset_link(token: str) -> str:
    return f"{settings.client_base_url.rstrip('/')}/reset-password/{token}"


def _reset_message(to_email: str, link: str) -> dict:
    body = (
        "You requested a password reset for your TaskPad account.\n\n"
        f"Open this link to choose a new password:\n{link}\n\n"
        "The link expires in one hour. If you did not request a reset, "
        "ignore this email."
    )
    return {
        "personalizations": [{"to": [{"email": to_email}]}],
        "from": {"email": settings.sender_email, "name": settings.sender_name},
        "subject": "Reset your TaskPad password",
        "content": [{"type": "text/plain", "value": body}],
    }


async def send_password_reset(
    to_email: str, token: str, *, client: httpx.AsyncClient | None = None
) -> bool:
    """Deliver a reset link. Returns True if SendGrid accepted the message."""
    link = reset_link(token)
    if not settings.sendgrid_api_key or not settings.sender_email:
        log.info("mail.reset_link", email=to_email, link=link, delivered=False)
        return False

    owns_client = client is None
    client = client or httpx.AsyncClient(timeout=httpx.Timeout(REQUEST_TIMEOUT_SECONDS))
    try:
        resp = await client.post(
            SENDGRID_URL,
            json=_reset_message(to_email, link),
            headers={"Authorization": f"Bearer {settings.sendgrid_api_key}"},
        )
        resp.raise_for_status()
    except httpx.HTTPStatusError as exc:
        log.error("mail.send_failed", email=to_email, status=exc.response.status_code)
        return False
    except httpx.HTTPError as exc:
        log.error("mail.unreachable", email=to_email, error=str(exc))
        return False
    finally:
        if owns_client:
            await client.aclose()

    log.info("mail.reset_sent", email=to_email)
    return True
