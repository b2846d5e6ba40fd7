"""Order status emails sent through Resend.

Sending is fire-and-forget: the order status has already been committed when
these run, so a failed send is logged and swallowed.
"""
from __future__ import annotations

import logging
from html import escape

import resend
from flask import current_app

logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    "processing": (
        "Your Order is Being Processed",
        "Great news! Your order is now being processed. We are preparing your items for shipment.",
        "#3b82f6",
    ),
    "completed": (
        "Your Order Has Been Delivered",
        "Your order has been successfully delivered. Thank you for shopping with Bhakthas!",
        "#22c55e",
    ),
    "cancelled": (
        "Your Order Has Been Cancelled",
        "We regret to inform you that your order has been cancelled. "
        "If you have any questions, please contact our support.",
        "#ef4444",
    ),
}


def status_message(status: str) -> tuple[str, str, str]:
    """Return (subject, message, colour) for an order status."""
    return STATUS_MESSAGES.get(
        status,
        ("Order Status Update", f"Your order status has been updated to: {status}", "#f59e0b"),
    )


def render_order_status_email(name: str, order_id: int, product: str, status: str, total: int) -> tuple[str, str]:
    subject, message, color = status_message(status)
    html = f"""
<div style="max-width: 600px; margin: 0 auto; font-family: Arial, sans-serif; padding: 40px;">
  <h1 style="color: #c45d2c; text-align: center;">Bhakthas</h1>
  <div style="background-color: {color}; color: white; padding: 20px; border-radius: 10px; text-align: center;">
    <h2 style="margin: 0;">{escape(subject)}</h2>
  </div>
  <p>Dear {escape(name)},</p>
  <p>{escape(message)}</p>
  <table style="width: 100%; margin-top: 20px;">
    <tr><td>Order</td><td>#{order_id}</td></tr>
    <tr><td>Product</td><td>{escape(product)}</td></tr>
    <tr><td>Status</td><td>{escape(status.replace('_', ' ').title())}</td></tr>
    <tr><td>Total</td><td>&#8377;{total}</td></tr>
  </table>
</div>
"""
    return f"{subject} - Order #{order_id}", html


def send_order_status_email(
    recipient: str, name: str, order_id: int, product: str, status: str, total: int
) -> bool:
    """Send the notification. Returns False when skipped or failed, never raises."""
    api_key = current_app.config.get("RESEND_API_KEY")
    if not current_app.config.get("EMAIL_ENABLED", True) or not api_key:
        logger.info("Email disabled, skipping order status email for order %s", order_id)
        return False

    subject, html = render_order_status_email(name, order_id, product, status, total)
    try:
        resend.api_key = api_key
        response = resend.Emails.send(
            {
                "from": current_app.config["EMAIL_FROM_ADDRESS"],
                "to": [recipient],
                "subject": subject,
                "html": html,
            }
        )
    except Exception as exc:  # noqa: BLE001
        logger.error("Failed to send order status email for order %s: %s", order_id, exc)
        return False

    logger.info("Order status email sent for order %s: %s", order_id, response)
    return True
