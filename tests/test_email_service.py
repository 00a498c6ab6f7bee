"""Tests for the SendGrid notification email helpers."""

from unittest.mock import MagicMock, patch

from warehub.services import email_service
from warehub.services.email_service import build_notification_html, send_notification_email


def test_html_links_to_inquiry_and_escapes_text():
    html = build_notification_html(
        "Offer <Accepted>", "Body & more", "inq-42", "https://app.example.com/"
    )
    assert "https://app.example.com/inquiries/inq-42" in html
    assert "Offer &lt;Accepted&gt;" in html
    assert "Body &amp; more" in html


def test_html_without_inquiry_has_no_link():
    assert "View inquiry" not in build_notification_html("t", "b", None, "https://x")


async def test_unconfigured_sendgrid_skips_send():
    with (
        patch.object(email_service, "_get_config", return_value=("", "", "http://localhost")),
        patch.object(email_service, "_send_mail") as mock_send,
    ):
        assert await send_notification_email("tom@example.com", "t", "b") is False
    mock_send.assert_not_called()


async def test_configured_sendgrid_sends_mail():
    with (
        patch.object(
            email_service, "_get_config",
            return_value=("SG.key", "ops@warehub.test", "http://localhost"),
        ),
        patch.object(email_service, "_send_mail", return_value=True) as mock_send,
    ):
        assert await send_notification_email("tom@example.com", "New Offer Available", "b", "inq-1")
    mail = mock_send.call_args.args[0]
    assert mail.subject.get() == "[Warehub] New Offer Available"


def test_non_2xx_response_is_failure():
    client = MagicMock()
    client.send.return_value = MagicMock(status_code=400, body=b"bad request")
    with patch.object(email_service, "_get_client", return_value=client):
        assert email_service._send_mail(MagicMock()) is False
