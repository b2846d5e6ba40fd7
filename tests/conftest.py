"""pytest configuration and shared fixtures."""
from __future__ import annotations

import sys
from datetime import date, timedelta
from pathlib import Path

import pytest
from werkzeug.security import generate_password_hash

# Ensure the project root is available on sys.path so tests can import the app package.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from bhakthas import create_app  # noqa: E402
from bhakthas.auth import build_token  # noqa: E402
from bhakthas.extensions import db  # noqa: E402
from bhakthas.models import AuthAccount, Product, PromoCode, Temple, User  # noqa: E402


@pytest.fixture
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "SECRET_KEY": "test-secret",
        "EMAIL_ENABLED": False,
        "CHANT_HISTORY_PATH": str(tmp_path / "achievements.json"),
        "BOOKING_STREAM_KEEPALIVE": 0.05,
        "BOOKING_STREAM_MAX_SECONDS": 1,
    })
    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    """Create a user with a password and return ``(user_id, auth headers)``."""
    counter = {"n": 0}

    def _make_user(role: str = "user", name: str = "Devotee", email: str | None = None):
        counter["n"] += 1
        email = email or f"{role}{counter['n']}@example.com"
        with app.app_context():
            user = User(name=name, email=email, role=role)
            db.session.add(user)
            db.session.flush()
            db.session.add(AuthAccount(user_id=user.user_id, password_hash=generate_password_hash("Secret123!")))
            db.session.commit()
            token = build_token(user)
            return user.user_id, {"Authorization": f"Bearer {token}"}

    return _make_user


@pytest.fixture
def user(make_user):
    return make_user("user", name="Asha Devotee")


@pytest.fixture
def admin(make_user):
    return make_user("admin", name="Temple Admin")


@pytest.fixture
def make_temple(app):
    def _make_temple(**overrides) -> int:
        fields = {
            "name": "Kashi Vishwanath",
            "latitude": 25.3109,
            "longitude": 83.0107,
            "city": "Varanasi",
            "state": "Uttar Pradesh",
            "country": "India",
            "rating": 4.9,
            "points": 100,
            "darshan_enabled": True,
        }
        fields.update(overrides)
        with app.app_context():
            temple = Temple(**fields)
            db.session.add(temple)
            db.session.commit()
            return temple.temple_id

    return _make_temple


@pytest.fixture
def make_product(app):
    def _make_product(**overrides) -> int:
        fields = {"name": "Brass Diya", "price": 500, "stock": 20, "is_active": True}
        fields.update(overrides)
        with app.app_context():
            product = Product(**fields)
            db.session.add(product)
            db.session.commit()
            return product.product_id

    return _make_product


@pytest.fixture
def make_promo(app):
    def _make_promo(**overrides) -> int:
        fields = {"code": "DIWALI20", "discount_percent": 20, "current_uses": 0, "is_active": True}
        fields.update(overrides)
        with app.app_context():
            promo = PromoCode(**fields)
            db.session.add(promo)
            db.session.commit()
            return promo.promo_code_id

    return _make_promo


@pytest.fixture
def booking_payload():
    return {
        "name": "Asha Devotee",
        "email": "asha@example.com",
        "phone": "9876543210",
        "darshan_type": "standard_100",
        "number_of_tickets": 2,
        "darshan_date": (date.today() + timedelta(days=7)).isoformat(),
        "darshan_time": "10:30",
        "bhaktha_details": [
            {"name": "Asha Devotee", "age": 34, "contact": "9876543210"},
            {"name": "Ravi Devotee", "age": 36},
        ],
    }
