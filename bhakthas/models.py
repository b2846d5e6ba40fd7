"""Database models for the Bhakthas backend."""
from __future__ import annotations

from datetime import date, datetime, timezone

from .extensions import db


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def _iso(value: datetime | date | None) -> str | None:
    return value.isoformat() if value else None


class User(db.Model):
    __tablename__ = "users"

    user_id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    role = db.Column(
        db.Enum(
            "user",
            "admin",
            name="user_role",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
        server_default="user",
    )
    phone = db.Column(db.String(30))
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    auth_account = db.relationship("AuthAccount", back_populates="user", uselist=False)

    def to_dict_basic(self) -> dict[str, object]:
        return {
            "id": self.user_id,
            "user_id": self.user_id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "phone": self.phone,
        }


class AuthAccount(db.Model):
    __tablename__ = "auth_accounts"

    user_id = db.Column(db.Integer, db.ForeignKey("users.user_id"), primary_key=True)
    password_hash = db.Column(db.String(255), nullable=False)
    last_login_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    user = db.relationship("User", back_populates="auth_account")


class Temple(db.Model):
    __tablename__ = "temples"

    temple_id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text)
    deity = db.Column(db.String(100))
    latitude = db.Column(db.Float, nullable=False)
    longitude = db.Column(db.Float, nullable=False)
    city = db.Column(db.String(100))
    state = db.Column(db.String(100))
    country = db.Column(db.String(100), nullable=False, server_default="India")
    rating = db.Column(db.Float, nullable=False, default=0)
    # Bhakthi points awarded for each verified visit
    points = db.Column(db.Integer, nullable=False, default=100)
    darshan_enabled = db.Column(db.Boolean, nullable=False, default=False)
    image_url = db.Column(db.String(500))
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.temple_id,
            "name": self.name,
            "description": self.description,
            "deity": self.deity,
            "location": {
                "latitude": self.latitude,
                "longitude": self.longitude,
                "city": self.city,
                "state": self.state,
                "country": self.country,
            },
            "rating": self.rating,
            "points": self.points,
            "darshan_enabled": bool(self.darshan_enabled),
            "image_url": self.image_url,
            "source": "temple",
        }


class DarshanBooking(db.Model):
    """A darshan slot booked by a devotee, verified manually by an admin."""

    __tablename__ = "darshan_bookings"

    booking_id = db.Column(db.Integer, primary_key=True)
    temple_id = db.Column(db.Integer, db.ForeignKey("temples.temple_id"), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.user_id"), nullable=False)
    customer_name = db.Column(db.String(100), nullable=False)
    customer_email = db.Column(db.String(255), nullable=False)
    customer_phone = db.Column(db.String(10), nullable=False)
    darshan_type = db.Column(
        db.Enum(
            "free",
            "standard_100",
            "standard_500",
            "vip_1000",
            name="darshan_type",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
    )
    amount_paid = db.Column(db.Integer, nullable=False, default=0)
    number_of_tickets = db.Column(db.Integer, nullable=False, default=1)
    bhaktha_details = db.Column(db.JSON, nullable=True, default=list)
    main_bhaktha_index = db.Column(db.Integer, nullable=False, default=0)
    darshan_date = db.Column(db.Date, nullable=False)
    darshan_time = db.Column(db.Time, nullable=False)
    invoice_number = db.Column(db.String(32), unique=True, nullable=False)
    status = db.Column(
        db.Enum(
            "awaiting",
            "confirmed",
            "cancelled",
            "refunded",
            name="booking_status",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
        server_default="awaiting",
    )
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    temple = db.relationship("Temple")
    user = db.relationship("User")

    def to_dict(self, today: date | None = None) -> dict[str, object]:
        from .bookings import needs_attention

        return {
            "id": self.booking_id,
            "temple_id": self.temple_id,
            "temple": {"id": self.temple.temple_id, "name": self.temple.name} if self.temple else None,
            "user_id": self.user_id,
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "customer_phone": self.customer_phone,
            "darshan_type": self.darshan_type,
            "amount_paid": self.amount_paid,
            "number_of_tickets": self.number_of_tickets,
            "bhaktha_details": self.bhaktha_details or [],
            "main_bhaktha_index": self.main_bhaktha_index,
            "darshan_date": _iso(self.darshan_date),
            "darshan_time": self.darshan_time.strftime("%H:%M") if self.darshan_time else None,
            "invoice_number": self.invoice_number,
            "status": self.status,
            "needs_attention": needs_attention(self, today),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class TempleVisit(db.Model):
    """A logged temple visit. Points count towards the ledger once verified."""

    __tablename__ = "temple_visits"

    visit_id = db.Column(db.Integer, primary_key=True)
    temple_id = db.Column(db.Integer, db.ForeignKey("temples.temple_id"), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.user_id"), nullable=False)
    points_earned = db.Column(db.Integer, nullable=False, default=0)
    verified = db.Column(db.Boolean, nullable=False, default=False)
    visit_date = db.Column(db.Date, nullable=False)
    photo_url = db.Column(db.String(500))
    verified_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)

    temple = db.relationship("Temple")
    user = db.relationship("User")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.visit_id,
            "temple_id": self.temple_id,
            "temple_name": self.temple.name if self.temple else None,
            "user_id": self.user_id,
            "points_earned": self.points_earned,
            "verified": bool(self.verified),
            "visit_date": _iso(self.visit_date),
            "photo_url": self.photo_url,
            "verified_at": _iso(self.verified_at),
            "created_at": _iso(self.created_at),
        }


class PromoCode(db.Model):
    __tablename__ = "promo_codes"

    promo_code_id = db.Column(db.Integer, primary_key=True)
    # Always stored upper-cased
    code = db.Column(db.String(50), unique=True, nullable=False)
    description = db.Column(db.Text)
    discount_percent = db.Column(db.Integer, nullable=False)
    valid_from = db.Column(db.DateTime, nullable=True)
    valid_until = db.Column(db.DateTime, nullable=True)
    max_uses = db.Column(db.Integer, nullable=True)
    current_uses = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.promo_code_id,
            "code": self.code,
            "description": self.description,
            "discount_percent": self.discount_percent,
            "valid_from": _iso(self.valid_from),
            "valid_until": _iso(self.valid_until),
            "max_uses": self.max_uses,
            "current_uses": self.current_uses,
            "is_active": bool(self.is_active),
        }


class Product(db.Model):
    """Devotional products sold in the storefront."""

    __tablename__ = "products"

    product_id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    category = db.Column(db.String(100))
    price = db.Column(db.Integer, nullable=False)
    stock = db.Column(db.Integer, nullable=False, default=0)
    image_url = db.Column(db.String(500))
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.product_id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "price": self.price,
            "stock": self.stock,
            "image_url": self.image_url,
            "is_active": bool(self.is_active),
        }


class Order(db.Model):
    __tablename__ = "orders"

    order_id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.product_id"), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.user_id"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    total_price = db.Column(db.Integer, nullable=False)
    discount_percent = db.Column(db.Integer, nullable=False, default=0)
    promo_code = db.Column(db.String(50))
    customer_name = db.Column(db.String(100), nullable=False)
    customer_email = db.Column(db.String(255), nullable=False)
    customer_phone = db.Column(db.String(10))
    shipping_address = db.Column(db.Text)
    status = db.Column(
        db.Enum(
            "pending",
            "awaiting_payment",
            "processing",
            "completed",
            "cancelled",
            name="order_status",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
        server_default="pending",
    )
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    product = db.relationship("Product")
    user = db.relationship("User")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.order_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "user_id": self.user_id,
            "quantity": self.quantity,
            "total_price": self.total_price,
            "discount_percent": self.discount_percent,
            "promo_code": self.promo_code,
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "customer_phone": self.customer_phone,
            "shipping_address": self.shipping_address,
            "status": self.status,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class Contribution(db.Model):
    """A temple suggested by a user, reviewed by an admin."""

    __tablename__ = "contributions"

    contribution_id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.user_id"), nullable=False)
    temple_name = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text)
    city = db.Column(db.String(100))
    state = db.Column(db.String(100))
    country = db.Column(db.String(100))
    latitude = db.Column(db.Float)
    longitude = db.Column(db.Float)
    image_url = db.Column(db.String(500))
    status = db.Column(
        db.Enum(
            "pending",
            "approved",
            "rejected",
            "waiting",
            name="contribution_status",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
        server_default="pending",
    )
    admin_notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    user = db.relationship("User")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.contribution_id,
            "user_id": self.user_id,
            "temple_name": self.temple_name,
            "description": self.description,
            "location": {
                "latitude": self.latitude,
                "longitude": self.longitude,
                "city": self.city,
                "state": self.state,
                "country": self.country,
            },
            "image_url": self.image_url,
            "status": self.status,
            "admin_notes": self.admin_notes,
            "created_at": _iso(self.created_at),
        }

    def to_discovery_dict(self) -> dict[str, object]:
        """Shape an approved contribution like a temple for discovery views."""
        return {
            "id": self.contribution_id,
            "name": self.temple_name,
            "description": self.description,
            "location": {
                "latitude": self.latitude,
                "longitude": self.longitude,
                "city": self.city,
                "state": self.state,
                "country": self.country,
            },
            "image_url": self.image_url,
            "source": "contribution",
        }


class Mantra(db.Model):
    __tablename__ = "mantras"

    mantra_id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    deity = db.Column(db.String(100))
    text = db.Column(db.Text, nullable=False)
    meaning = db.Column(db.Text)
    audio_url = db.Column(db.String(500))
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.mantra_id,
            "title": self.title,
            "deity": self.deity,
            "text": self.text,
            "meaning": self.meaning,
            "audio_url": self.audio_url,
            "audio_available": bool(self.audio_url),
        }


class Challenge(db.Model):
    """A community seva challenge devotees can sign up for."""

    __tablename__ = "challenges"

    challenge_id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False)
    reward = db.Column(db.String(200))
    deadline = db.Column(db.DateTime)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    submissions = db.relationship(
        "ChallengeSubmission",
        back_populates="challenge",
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.challenge_id,
            "title": self.title,
            "description": self.description,
            "reward": self.reward,
            "deadline": _iso(self.deadline),
            "is_active": bool(self.is_active),
            "created_at": _iso(self.created_at),
        }


class ChallengeSubmission(db.Model):
    __tablename__ = "challenge_submissions"

    submission_id = db.Column(db.Integer, primary_key=True)
    challenge_id = db.Column(db.Integer, db.ForeignKey("challenges.challenge_id"), nullable=False)
    # Guests may sign up without an account
    user_id = db.Column(db.Integer, db.ForeignKey("users.user_id"))
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(10), nullable=False)
    message = db.Column(db.Text)
    status = db.Column(
        db.Enum(
            "pending",
            "completed",
            "rejected",
            name="challenge_submission_status",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
        server_default="pending",
    )
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    challenge = db.relationship("Challenge", back_populates="submissions")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.submission_id,
            "challenge_id": self.challenge_id,
            "challenge_title": self.challenge.title if self.challenge else None,
            "user_id": self.user_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "message": self.message,
            "status": self.status,
            "created_at": _iso(self.created_at),
        }


class Volunteer(db.Model):
    """A volunteer application, reviewed by an admin."""

    __tablename__ = "volunteers"

    volunteer_id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.user_id"))
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(10), nullable=False)
    city = db.Column(db.String(100))
    skills = db.Column(db.Text)
    availability = db.Column(db.String(200))
    message = db.Column(db.Text)
    status = db.Column(
        db.Enum(
            "pending",
            "approved",
            "rejected",
            name="volunteer_status",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
        server_default="pending",
    )
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.volunteer_id,
            "user_id": self.user_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "city": self.city,
            "skills": self.skills,
            "availability": self.availability,
            "message": self.message,
            "status": self.status,
            "created_at": _iso(self.created_at),
        }
