"""Tests for placing orders at checkout."""
from __future__ import annotations

from bhakthas.extensions import db
from bhakthas.models import Order, Product, PromoCode


def _checkout_payload(items, promo_code=None):
    payload = {
        "name": "Asha Devotee",
        "email": "asha@example.com",
        "phone": "9876543210",
        "shipping_address": "12 Temple Street, Varanasi",
        "items": items,
    }
    if promo_code is not None:
        payload["promo_code"] = promo_code
    return payload


def test_checkout_counts_promo_once(app, client, user, make_product, make_promo) -> None:
    _, headers = user
    diya = make_product(name="Brass Diya", price=500, stock=10)
    mala = make_product(name="Rudraksha Mala", price=333, stock=5)
    promo_id = make_promo(code="DIWALI20", discount_percent=20, max_uses=10)

    response = client.post(
        "/orders",
        json=_checkout_payload(
            [{"product_id": diya, "quantity": 1}, {"product_id": mala, "quantity": 1}], promo_code="diwali20"
        ),
        headers=headers,
    )

    assert response.status_code == 201
    body = response.get_json()
    assert body["subtotal"] == 833
    assert body["final"] == 666
    assert sum(order["total_price"] for order in body["orders"]) == 666
    assert all(order["promo_code"] == "DIWALI20" for order in body["orders"])
    assert all(order["status"] == "pending" for order in body["orders"])

    with app.app_context():
        assert db.session.get(PromoCode, promo_id).current_uses == 1
        assert db.session.get(Product, diya).stock == 9
        assert Order.query.count() == 2


def test_checkout_last_promo_use_then_exhausted(app, client, user, make_product, make_promo) -> None:
    _, headers = user
    product_id = make_product(price=1000, stock=10)
    promo_id = make_promo(code="LAST", discount_percent=10, max_uses=1)

    first = client.post(
        "/orders", json=_checkout_payload([{"product_id": product_id}], promo_code="LAST"), headers=headers
    )
    second = client.post(
        "/orders", json=_checkout_payload([{"product_id": product_id}], promo_code="LAST"), headers=headers
    )

    assert first.status_code == 201
    assert first.get_json()["final"] == 900
    assert second.status_code == 400
    assert second.get_json()["error"] == "promo_exhausted"

    with app.app_context():
        assert db.session.get(PromoCode, promo_id).current_uses == 1
        assert Order.query.count() == 1
        assert db.session.get(Product, product_id).stock == 9


def test_checkout_requires_login(client, make_product) -> None:
    product_id = make_product()

    response = client.post("/orders", json=_checkout_payload([{"product_id": product_id}]))

    assert response.status_code == 401


def test_checkout_insufficient_stock_409(client, user, make_product) -> None:
    _, headers = user
    product_id = make_product(stock=1)

    response = client.post(
        "/orders", json=_checkout_payload([{"product_id": product_id, "quantity": 2}]), headers=headers
    )

    assert response.status_code == 409
    assert response.get_json()["error"] == "insufficient_stock"


def test_checkout_validates_email(client, user, make_product) -> None:
    _, headers = user
    product_id = make_product()
    payload = _checkout_payload([{"product_id": product_id}])
    payload["email"] = "not-an-email"

    response = client.post("/orders", json=payload, headers=headers)

    assert response.status_code == 400
    assert response.get_json()["error"] == "invalid_payload"


def test_my_orders_lists_only_own(client, user, make_user, make_product) -> None:
    _, headers = user
    _, other_headers = make_user()
    product_id = make_product()
    client.post("/orders", json=_checkout_payload([{"product_id": product_id}]), headers=headers)

    mine = client.get("/users/me/orders", headers=headers)
    theirs = client.get("/users/me/orders", headers=other_headers)

    assert len(mine.get_json()["orders"]) == 1
    assert theirs.get_json()["orders"] == []


def test_repeated_product_lines_share_stock(app, client, user, make_product) -> None:
    _, headers = user
    product_id = make_product(stock=5)

    response = client.post(
        "/orders",
        json=_checkout_payload([{"product_id": product_id, "quantity": 3}, {"product_id": product_id, "quantity": 3}]),
        headers=headers,
    )

    assert response.status_code == 409
    assert response.get_json()["error"] == "insufficient_stock"
    with app.app_context():
        assert db.session.get(Product, product_id).stock == 5
        assert Order.query.count() == 0


def test_repeated_product_lines_merge_into_one_order(app, client, user, make_product) -> None:
    _, headers = user
    product_id = make_product(price=100, stock=5)

    response = client.post(
        "/orders",
        json=_checkout_payload([{"product_id": product_id, "quantity": 2}, {"product_id": product_id, "quantity": 3}]),
        headers=headers,
    )

    assert response.status_code == 201
    orders = response.get_json()["orders"]
    assert [(order["quantity"], order["total_price"]) for order in orders] == [(5, 500)]
    with app.app_context():
        assert db.session.get(Product, product_id).stock == 0


def test_discounted_line_totals_never_negative(client, user, make_product, make_promo) -> None:
    _, headers = user
    product_ids = [make_product(name=f"Incense {n}", price=1, stock=5) for n in range(5)]
    make_promo(code="HALF", discount_percent=50)

    response = client.post(
        "/orders",
        json=_checkout_payload([{"product_id": pid, "quantity": 1} for pid in product_ids], promo_code="HALF"),
        headers=headers,
    )

    assert response.status_code == 201
    body = response.get_json()
    totals = [order["total_price"] for order in body["orders"]]
    assert body["final"] == 3
    assert sum(totals) == 3
    assert all(0 <= total <= 1 for total in totals)
