"""Tests for promo code validation and discount resolution."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from bhakthas.errors import BusinessRuleError, ValidationError
from bhakthas.extensions import db
from bhakthas.models import PromoCode
from bhakthas.promotions import (apply_discount, lookup_promo, normalize_code,
                                 quote_cart, redeem_promo, resolve_discount,
                                 validate_promo)

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def _promo(**overrides) -> PromoCode:
    fields = {"code": "DIWALI20", "discount_percent": 20, "current_uses": 0, "is_active": True}
    fields.update(overrides)
    return PromoCode(**fields)


def test_normalize_code() -> None:
    assert normalize_code("  diwali20 ") == "DIWALI20"
    assert normalize_code(None) == ""


def test_missing_promo_is_invalid() -> None:
    with pytest.raises(BusinessRuleError) as excinfo:
        validate_promo(None, NOW)
    assert excinfo.value.code == "promo_invalid"


def test_inactive_promo_rejected() -> None:
    with pytest.raises(BusinessRuleError) as excinfo:
        validate_promo(_promo(is_active=False), NOW)
    assert excinfo.value.code == "promo_inactive"


@pytest.mark.parametrize("max_uses", [1, 5, 100])
def test_promo_at_max_uses_rejected(max_uses) -> None:
    with pytest.raises(BusinessRuleError) as excinfo:
        validate_promo(_promo(max_uses=max_uses, current_uses=max_uses), NOW)
    assert excinfo.value.code == "promo_exhausted"


def test_promo_below_max_uses_accepted() -> None:
    promo = _promo(max_uses=3, current_uses=2)

    assert validate_promo(promo, NOW) is promo


def test_promo_outside_window_rejected() -> None:
    not_started = _promo(valid_from=(NOW + timedelta(days=1)).replace(tzinfo=None))
    expired = _promo(valid_until=(NOW - timedelta(seconds=1)).replace(tzinfo=None))

    with pytest.raises(BusinessRuleError) as excinfo:
        validate_promo(not_started, NOW)
    assert excinfo.value.code == "promo_not_started"

    with pytest.raises(BusinessRuleError) as excinfo:
        validate_promo(expired, NOW)
    assert excinfo.value.code == "promo_expired"


def test_promo_inside_window_accepted() -> None:
    promo = _promo(
        valid_from=(NOW - timedelta(days=1)).replace(tzinfo=None),
        valid_until=(NOW + timedelta(days=1)).replace(tzinfo=None),
    )

    assert validate_promo(promo, NOW) is promo


def test_promo_overrides_larger_loyalty_discount() -> None:
    decision = resolve_discount(_promo(discount_percent=20), loyalty_percent=25)

    assert decision.source == "promo"
    assert decision.percent == 20
    assert apply_discount(1000, decision.percent) == 800


def test_loyalty_used_without_promo() -> None:
    assert resolve_discount(None, 25).to_dict() == {"source": "loyalty", "percent": 25, "promo_code": None}
    assert resolve_discount(None, 0).source == "none"


@pytest.mark.parametrize(
    ("subtotal", "percent", "expected"),
    [(1000, 20, 800), (999, 25, 749), (150, 15, 128), (0, 50, 0), (349, 0, 349), (500, 100, 0)],
)
def test_apply_discount_rounds_to_whole_units(subtotal, percent, expected) -> None:
    assert apply_discount(subtotal, percent) == expected


def test_lookup_is_case_insensitive(app, make_promo) -> None:
    make_promo(code="DIWALI20")

    with app.app_context():
        assert lookup_promo("diwali20").code == "DIWALI20"


def test_lookup_requires_code(app) -> None:
    with app.app_context():
        with pytest.raises(ValidationError):
            lookup_promo("   ")


def test_quote_is_pure(app, make_promo) -> None:
    promo_id = make_promo(code="TEN", discount_percent=10, max_uses=1)

    with app.app_context():
        first = quote_cart(1000, "ten", loyalty_percent=25)
        second = quote_cart(1000, "ten", loyalty_percent=25)
        assert first == second
        assert first["final"] == 900
        assert db.session.get(PromoCode, promo_id).current_uses == 0


def test_redeem_promo_counts_once_and_respects_cap(app, make_promo) -> None:
    promo_id = make_promo(code="ONCE", max_uses=1)

    with app.app_context():
        promo = db.session.get(PromoCode, promo_id)
        redeem_promo(promo)
        db.session.commit()
        assert db.session.get(PromoCode, promo_id).current_uses == 1

        with pytest.raises(BusinessRuleError) as excinfo:
            redeem_promo(promo)
        assert excinfo.value.code == "promo_exhausted"
        db.session.rollback()
        assert db.session.get(PromoCode, promo_id).current_uses == 1
