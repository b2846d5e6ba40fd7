"""Tests for order status emails."""
from __future__ import annotations

from unittest.mock import patch

import pytest

from bhakthas.notifications import render_order_status_email, send_order_status_email


@pytest.fixture
def email_app(app):
    app.config.update(EMAIL_ENABLED=True, RESEND_API_KEY="re_test_key", EMAIL_FROM_ADDRESS="Bhakthas <orders@example.com>")
    return app


def _send(status: str = "processing") -> bool:
    return send_order_status_email(
        recipient="asha@example.com",
        name="Asha",
        order_id=7,
        product="Brass Diya",
        status=status,
        total=400,
    )


def test_render_known_status() -> None:
    subject, html = render_order_status_email("Asha", 7, "Brass Diya", "completed", 400)

    assert subject == "Your Order Has Been Delivered - Order #7"
    assert "Dear Asha" in html
    assert "#7" in html
    assert "&#8377;400" in html


def test_render_unknown_status_falls_back() -> None:
    subject, html = render_order_status_email("Asha", 7, "Brass Diya", "awaiting_payment", 400)

    assert subject == "Order Status Update - Order #7"
    assert "awaiting_payment" in html
    assert "Awaiting Payment" in html


def test_render_escapes_customer_name() -> None:
    _, html = render_order_status_email("<script>", 7, "Diya", "processing", 400)

    assert "<script>" not in html
    assert "&lt;script&gt;" in html


def test_send_uses_resend(email_app) -> None:
    with email_app.app_context(), patch("bhakthas.notifications.resend") as resend:
        resend.Emails.send.return_value = {"id": "email_123"}
        assert _send() is True

    sent = resend.Emails.send.call_args.args[0]
    assert sent["to"] == ["asha@example.com"]
    assert sent["from"] == "Bhakthas <orders@example.com>"
    assert sent["subject"] == "Your Order is Being Processed - Order #7"
    assert resend.api_key == "re_test_key"


def test_send_failure_returns_false(email_app) -> None:
    with email_app.app_context(), patch("bhakthas.notifications.resend") as resend:
        resend.Emails.send.side_effect = RuntimeError("rate limited")
        assert _send() is False


def test_send_skipped_when_disabled(app) -> None:
    with app.app_context(), patch("bhakthas.notifications.resend") as resend:
        assert _send() is False

    resend.Emails.send.assert_not_called()


def test_send_skipped_without_api_key(email_app) -> None:
    email_app.config["RESEND_API_KEY"] = None

    with email_app.app_context(), patch("bhakthas.notifications.resend") as resend:
        assert _send() is False

    resend.Emails.send.assert_not_called()
