"""SendGrid email service for booking lifecycle notifications.

Sends a short HTML mail per notification to the recipient's account address.
Uses asyncio.to_thread to wrap the synchronous SendGrid client.
"""

import asyncio
import html
import logging

import sendgrid
from sendgrid.helpers.mail import Email, HtmlContent, Mail, To

logger = logging.getLogger(__name__)


def _get_config():
    """Get email config from app settings (lazy to avoid import-time issues)."""
    from warehub.app.config import get_settings
    s = get_settings()
    return s.sendgrid_api_key, s.notification_from_email, s.frontend_url


def _get_client() -> sendgrid.SendGridAPIClient:
    """Return a configured SendGrid API client."""
    api_key, _, _ = _get_config()
    return sendgrid.SendGridAPIClient(api_key=api_key)


def build_notification_html(title: str, body: str, inquiry_id: str | None, frontend_url: str) -> str:
    """Build the notification HTML email body."""
    link = ""
    if inquiry_id:
        url = f"{frontend_url.rstrip('/')}/inquiries/{inquiry_id}"
        link = (
            f'<p style="margin-top: 24px;"><a href="{html.escape(url)}" '
            f'style="color: #065f46; font-weight: 600;">View inquiry</a></p>'
        )

    return f"""
<!DOCTYPE html>
<html lang="en">
<head><meta charset="UTF-8"></head>
<body style="margin: 0; padding: 20px; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; background-color: #f3f4f6;">
    <table width="600" cellpadding="0" cellspacing="0" style="background: #fff; border-radius: 8px; padding: 32px; margin: 0 auto;">
        <tr>
            <td>
                <h2 style="color: #065f46; margin-top: 0;">{html.escape(title)}</h2>
                <p style="font-size: 15px; color: #374151;">{html.escape(body)}</p>
                {link}
            </td>
        </tr>
    </table>
</body>
</html>
"""


def _send_mail(mail: Mail) -> bool:
    """Synchronous send via SendGrid. Returns True on success."""
    client = _get_client()
    response = client.send(mail)
    if response.status_code in (200, 201, 202):
        return True
    logger.error(
        "SendGrid returned status %s: %s",
        response.status_code,
        response.body,
    )
    return False


async def send_notification_email(
    to_email: str,
    title: str,
    body: str,
    inquiry_id: str | None = None,
) -> bool:
    """Send one lifecycle notification by email.

    Returns:
        True on success, False when email is not configured or SendGrid
        rejected the message. Transport errors propagate to the caller.
    """
    api_key, from_email, frontend_url = _get_config()
    if not api_key or not from_email:
        logger.warning("SendGrid not configured, skipping notification email to %s", to_email)
        return False

    mail = Mail(
        from_email=Email(from_email, "Warehub"),
        to_emails=To(to_email),
        subject=f"[Warehub] {title}",
        html_content=HtmlContent(build_notification_html(title, body, inquiry_id, frontend_url)),
    )
    result = await asyncio.to_thread(_send_mail, mail)
    if result:
        logger.info("Notification email '%s' sent to %s", title, to_email)
    return result
