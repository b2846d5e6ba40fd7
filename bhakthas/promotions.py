"""Promo code validation and discount resolution for the cart."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

from .errors import BusinessRuleError, ValidationError
from .extensions import db
from .models import PromoCode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiscountDecision:
    source: str  # "promo", "loyalty" or "none"
    percent: int
    promo_code: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {"source": self.source, "percent": self.percent, "promo_code": self.promo_code}


def normalize_code(code: str | None) -> str:
    return (code or "").strip().upper()


def _as_utc(value: datetime | None) -> datetime | None:
    # sqlite hands back naive datetimes; they were stored as UTC
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def validate_promo(promo: PromoCode | None, now: datetime | None = None) -> PromoCode:
    """Return the promo if it can be applied right now, otherwise raise.

    Fails closed: any failed check means no discount.
    """
    now = _as_utc(now) or datetime.now(timezone.utc)

    if promo is None:
        raise BusinessRuleError("This promo code is not valid", code="promo_invalid", status_code=400)
    if not promo.is_active:
        raise BusinessRuleError("This promo code is no longer active", code="promo_inactive", status_code=400)
    if promo.max_uses is not None and promo.current_uses >= promo.max_uses:
        raise BusinessRuleError(
            "This promo code has reached its maximum number of uses",
            code="promo_exhausted",
            status_code=400,
        )

    valid_from = _as_utc(promo.valid_from)
    valid_until = _as_utc(promo.valid_until)
    if valid_from is not None and now < valid_from:
        raise BusinessRuleError("This promo code is not active yet", code="promo_not_started", status_code=400)
    if valid_until is not None and now > valid_until:
        raise BusinessRuleError("This promo code has expired", code="promo_expired", status_code=400)

    return promo


def lookup_promo(code: str | None, now: datetime | None = None) -> PromoCode:
    normalized = normalize_code(code)
    if not normalized:
        raise ValidationError("promo code is required")
    return validate_promo(PromoCode.query.filter_by(code=normalized).first(), now)


def resolve_discount(promo: PromoCode | None, loyalty_percent: int) -> DiscountDecision:
    """Pick the single discount that applies. Discounts never stack.

    A valid promo always wins, even over a larger loyalty discount.
    """
    if promo is not None:
        return DiscountDecision(source="promo", percent=promo.discount_percent, promo_code=promo.code)
    if loyalty_percent > 0:
        return DiscountDecision(source="loyalty", percent=loyalty_percent)
    return DiscountDecision(source="none", percent=0)


def apply_discount(subtotal: int, percent: int) -> int:
    """Round to the nearest whole currency unit, halves rounding up."""
    final = Decimal(subtotal) * (Decimal(100) - Decimal(percent)) / Decimal(100)
    return int(final.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def quote_cart(subtotal: int, code: str | None, loyalty_percent: int, now: datetime | None = None) -> dict[str, object]:
    """Price a cart without touching any usage counters."""
    if subtotal < 0:
        raise ValidationError("subtotal cannot be negative")

    promo = lookup_promo(code, now) if normalize_code(code) else None
    decision = resolve_discount(promo, loyalty_percent)
    return {
        "subtotal": subtotal,
        "discount": decision.to_dict(),
        "loyalty_percent": loyalty_percent,
        "final": apply_discount(subtotal, decision.percent),
    }


def redeem_promo(promo: PromoCode) -> None:
    """Count one use of a promo for a completed checkout.

    The increment is a conditional update, so two checkouts racing for the
    last use cannot both succeed. Callers commit the surrounding session.
    """
    query = PromoCode.query.filter(
        PromoCode.promo_code_id == promo.promo_code_id,
        PromoCode.is_active.is_(True),
    )
    if promo.max_uses is not None:
        query = query.filter(PromoCode.current_uses < PromoCode.max_uses)

    updated = query.update(
        {PromoCode.current_uses: PromoCode.current_uses + 1},
        synchronize_session=False,
    )
    if updated != 1:
        raise BusinessRuleError(
            "This promo code has reached its maximum number of uses",
            code="promo_exhausted",
            status_code=400,
        )
    db.session.expire(promo, ["current_uses"])
    logger.info("Redeemed promo code %s", promo.code)
