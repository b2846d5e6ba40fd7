"""Admin dashboard totals."""
from __future__ import annotations


def _checkout(client, headers, product_id, quantity):
    return client.post(
        "/orders",
        json={
            "name": "Asha Devotee",
            "email": "asha@example.com",
            "shipping_address": "12 Temple Street, Varanasi",
            "items": [{"product_id": product_id, "quantity": quantity}],
        },
        headers=headers,
    )


def test_stats_on_empty_store(client, admin) -> None:
    _, admin_headers = admin

    response = client.get("/admin/stats", headers=admin_headers)

    assert response.status_code == 200
    assert response.get_json() == {
        "total_users": 1,
        "total_temples": 0,
        "total_visits": 0,
        "total_orders": 0,
        "total_revenue": 0,
    }


def test_stats_totals(client, user, admin, make_temple, make_product) -> None:
    _, headers = user
    _, admin_headers = admin
    temple_id = make_temple()
    make_temple(name="Somnath")
    product_id = make_product(price=250, stock=10)
    client.post(f"/temples/{temple_id}/visits", json={}, headers=headers)
    assert _checkout(client, headers, product_id, 2).status_code == 201
    assert _checkout(client, headers, product_id, 1).status_code == 201

    stats = client.get("/admin/stats", headers=admin_headers).get_json()

    assert stats == {
        "total_users": 2,
        "total_temples": 2,
        "total_visits": 1,
        "total_orders": 2,
        "total_revenue": 750,
    }


def test_stats_requires_admin(client, user) -> None:
    _, headers = user

    assert client.get("/admin/stats").status_code == 401
    assert client.get("/admin/stats", headers=headers).status_code == 403
