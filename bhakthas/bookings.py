"""Darshan booking lifecycle.

Every booking starts ``awaiting``, including free darshan, because an admin
verifies identity and payment by hand. Only an admin may move a booking out
of ``awaiting``; ``confirmed``, ``cancelled`` and ``refunded`` are terminal.
"""
from __future__ import annotations

import logging
import secrets
from datetime import date, datetime, timezone

from .errors import BusinessRuleError, ForbiddenError, NotFoundError, ValidationError
from .extensions import db
from .models import DarshanBooking, Temple
from .realtime import BookingEvent, booking_channel
from .validators import (parse_date, parse_time, positive_int, require_text,
                         validate_email, validate_phone)

logger = logging.getLogger(__name__)

AWAITING = "awaiting"
TERMINAL_STATUSES = ("confirmed", "cancelled", "refunded")

# Ticket price per person for each darshan type
DARSHAN_PRICES = {
    "free": 0,
    "standard_100": 100,
    "standard_500": 500,
    "vip_1000": 1000,
}

MAX_TICKETS = 10
INVOICE_ATTEMPTS = 5


def generate_invoice_number(today: date | None = None) -> str:
    """``INV-YYYYMMDD-`` followed by 12 upper-case hex chars from a CSPRNG."""
    today = today or datetime.now(timezone.utc).date()
    return f"INV-{today.strftime('%Y%m%d')}-{secrets.token_hex(6).upper()}"


def _unique_invoice_number() -> str:
    for _ in range(INVOICE_ATTEMPTS):
        invoice_number = generate_invoice_number()
        if not DarshanBooking.query.filter_by(invoice_number=invoice_number).first():
            return invoice_number
    raise RuntimeError("could not generate a unique invoice number")


def needs_attention(booking: DarshanBooking, today: date | None = None) -> bool:
    """An awaiting booking whose darshan date has already passed."""
    today = today or datetime.now(timezone.utc).date()
    return booking.status == AWAITING and booking.darshan_date is not None and booking.darshan_date < today


def _parse_bhakthas(raw, number_of_tickets: int) -> list[dict[str, object]]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError("bhaktha_details must be a list")
    if len(raw) > number_of_tickets:
        raise ValidationError("bhaktha_details cannot list more people than tickets")

    bhakthas = []
    for index, entry in enumerate(raw, start=1):
        if not isinstance(entry, dict):
            raise ValidationError(f"Bhaktha {index}: details must be an object")
        name = require_text(entry, "name")
        age = positive_int(entry.get("age", 0), f"Bhaktha {index} age", minimum=0)
        if age > 120:
            raise ValidationError(f"Bhaktha {index} age must be at most 120")
        bhakthas.append({"name": name, "age": age, "contact": (entry.get("contact") or "").strip()})
    return bhakthas


def create_booking(user_id: int, temple_id: int, payload: dict) -> DarshanBooking:
    """Validate a booking request and add it to the session as ``awaiting``.

    The caller commits.
    """
    temple = db.session.get(Temple, temple_id)
    if temple is None:
        raise NotFoundError("Temple not found")
    if not temple.darshan_enabled:
        raise BusinessRuleError("Darshan booking is not available for this temple", code="darshan_unavailable")

    customer_name = require_text(payload, "name")
    customer_email = validate_email(payload.get("email"))
    customer_phone = validate_phone(payload.get("phone"))

    darshan_type = payload.get("darshan_type")
    if darshan_type not in DARSHAN_PRICES:
        raise ValidationError(f"darshan_type must be one of: {', '.join(DARSHAN_PRICES)}")

    number_of_tickets = positive_int(payload.get("number_of_tickets", 1), "number_of_tickets")
    if number_of_tickets > MAX_TICKETS:
        raise ValidationError(f"number_of_tickets must be at most {MAX_TICKETS}")

    darshan_date = parse_date(payload.get("darshan_date"), "darshan_date")
    if darshan_date < datetime.now(timezone.utc).date():
        raise ValidationError("darshan_date cannot be in the past")
    darshan_time = parse_time(payload.get("darshan_time", "10:00"), "darshan_time")

    bhakthas = _parse_bhakthas(payload.get("bhaktha_details"), number_of_tickets)
    main_index = positive_int(payload.get("main_bhaktha_index", 0), "main_bhaktha_index", minimum=0)
    if bhakthas and main_index >= len(bhakthas):
        raise ValidationError("main_bhaktha_index must point at one of the bhakthas")

    booking = DarshanBooking(
        temple_id=temple.temple_id,
        user_id=user_id,
        customer_name=customer_name,
        customer_email=customer_email,
        customer_phone=customer_phone,
        darshan_type=darshan_type,
        amount_paid=DARSHAN_PRICES[darshan_type] * number_of_tickets,
        number_of_tickets=number_of_tickets,
        bhaktha_details=bhakthas,
        main_bhaktha_index=main_index,
        darshan_date=darshan_date,
        darshan_time=darshan_time,
        invoice_number=_unique_invoice_number(),
        status=AWAITING,
    )
    db.session.add(booking)
    return booking


def transition(booking_id: int, target: str, actor) -> DarshanBooking:
    """Move an awaiting booking to a terminal status on behalf of an admin.

    The write is a compare-and-swap on ``status``: if another admin already
    moved the booking, this call is rejected instead of overwriting. Commits
    and publishes a ``BookingEvent`` to subscribers of the booking.
    """
    if actor is None or not actor.is_admin:
        raise ForbiddenError("Only admins can change a booking status")
    if target not in TERMINAL_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(TERMINAL_STATUSES)}", code="invalid_status")

    booking = db.session.get(DarshanBooking, booking_id)
    if booking is None:
        raise NotFoundError("Booking not found")

    now = datetime.now(timezone.utc)
    updated = DarshanBooking.query.filter(
        DarshanBooking.booking_id == booking_id,
        DarshanBooking.status == AWAITING,
    ).update(
        {DarshanBooking.status: target, DarshanBooking.updated_at: now},
        synchronize_session=False,
    )
    if updated != 1:
        db.session.rollback()
        db.session.refresh(booking)
        raise BusinessRuleError(
            f"Cannot change status of a {booking.status} booking",
            code="invalid_transition",
        )

    db.session.commit()
    db.session.refresh(booking)
    logger.info("Booking %s moved %s -> %s by admin %s", booking_id, AWAITING, target, actor.user_id)

    booking_channel.publish(
        BookingEvent(
            booking_id=booking.booking_id,
            status=booking.status,
            previous_status=AWAITING,
            updated_at=booking.updated_at.isoformat(),
        )
    )
    return booking
