"""HTTP routes for the Bhakthas backend."""
from __future__ import annotations

import json
from datetime import datetime, timezone

from flask import (Blueprint, Response, current_app, jsonify, request,
                   stream_with_context)
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload
from werkzeug.security import check_password_hash, generate_password_hash

from . import bookings, loyalty, promotions
from .auth import build_token, optional_session, require_session
from .errors import (BusinessRuleError, ForbiddenError, NotFoundError,
                     ValidationError)
from .extensions import db
from .models import (AuthAccount, Challenge, ChallengeSubmission, Contribution,
                     DarshanBooking, Mantra, Order, Product, Temple,
                     TempleVisit, User, Volunteer)
from .realtime import booking_channel
from .validators import (optional_text, parse_date, positive_int,
                         require_text, validate_coordinates, validate_email,
                         validate_phone)

bp = Blueprint("api", __name__)


def register_routes(app) -> None:
    from .routes_admin import bp_admin

    app.register_blueprint(bp)
    app.register_blueprint(bp_admin, url_prefix="/admin")


@bp.get("/health")
def health_check() -> tuple[dict[str, str], int]:
    """
    Expose a simple uptime check endpoint.
    ---
    tags:
      - Health
    responses:
      200:
        description: Service is healthy and running.
    """
    return jsonify({"status": "ok"}), 200


@bp.get("/db-health")
def database_health() -> tuple[dict[str, str], int]:
    """Check connectivity to the configured database.
    ---
    tags:
      - Health
    responses:
      200:
        description: Database connection is ok.
      500:
        description: Database connection failed.
    """
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        current_app.logger.exception("Database connectivity check failed", exc_info=exc)
        return jsonify({"database": "unavailable"}), 500

    return jsonify({"database": "ok"}), 200


# ============================================================================
# Authentication
# ============================================================================

@bp.post("/auth/register")
def register_user() -> tuple[dict[str, object], int]:
    """Register a new devotee account.
    ---
    tags:
      - Authentication
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            name:
              type: string
            email:
              type: string
            password:
              type: string
            phone:
              type: string
          required:
            - name
            - email
            - password
    responses:
      201:
        description: User registered successfully
      400:
        description: Invalid payload
      409:
        description: Email already in use
    """
    payload = request.get_json(silent=True) or {}

    name = require_text(payload, "name")
    email = validate_email(payload.get("email"))
    password = payload.get("password") or ""
    phone = validate_phone(payload["phone"]) if payload.get("phone") else None

    if len(password) < 8:
        raise ValidationError("password must be at least 8 characters")

    if User.query.filter_by(email=email).first():
        return jsonify({"error": "conflict", "message": "email address is already in use"}), 409

    # Admins are never created through the public endpoint
    try:
        new_user = User(name=name, email=email, role="user", phone=phone)
        db.session.add(new_user)
        db.session.flush()  # Get the new user_id before creating the AuthAccount

        db.session.add(AuthAccount(user_id=new_user.user_id, password_hash=generate_password_hash(password)))
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to register new user", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"token": build_token(new_user), "user": new_user.to_dict_basic()}), 201


@bp.post("/auth/login")
def login() -> tuple[dict[str, object], int]:
    """Authenticate a user by email/password and return an access token.
    ---
    tags:
      - Authentication
    responses:
      200:
        description: Login successful, returns access token
      400:
        description: Missing email or password
      401:
        description: Invalid credentials
    """
    payload = request.get_json(silent=True) or {}

    email = (payload.get("email") or "").strip().lower()
    password = payload.get("password") or ""

    if not email or not password:
        return (
            jsonify({"error": "invalid_payload", "message": "email and password are required"}),
            400,
        )

    record = (
        db.session.query(User, AuthAccount)
        .join(AuthAccount, AuthAccount.user_id == User.user_id)
        .filter(User.email == email)
        .first()
    )

    if not record:
        return jsonify({"error": "unauthorized", "message": "invalid email or password"}), 401

    user, auth_account = record

    if not check_password_hash(auth_account.password_hash, password):
        return jsonify({"error": "unauthorized", "message": "invalid email or password"}), 401

    auth_account.last_login_at = datetime.now(timezone.utc)

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update last login timestamp", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"token": build_token(user), "user": user.to_dict_basic()}), 200


@bp.get("/auth/me")
@require_session
def get_current_user(session) -> tuple[dict[str, object], int]:
    user = db.session.get(User, session.user_id)
    return jsonify({"user": user.to_dict_basic(), "is_admin": session.is_admin}), 200


@bp.post("/auth/logout")
@require_session
def logout(session) -> tuple[dict[str, str], int]:
    """Tokens are stateless; the client drops its copy and it expires on its own."""
    current_app.logger.info("User %s logged out", session.user_id)
    return jsonify({"message": "logged out"}), 200


# ============================================================================
# Temple discovery
# ============================================================================

@bp.get("/temples")
def list_temples() -> tuple[dict[str, object], int]:
    """Return temples with search/filter support.
    ---
    tags:
      - Temples
    parameters:
      - name: query
        in: query
        type: string
        description: Search by temple name (partial match, case-insensitive)
      - name: city
        in: query
        type: string
      - name: state
        in: query
        type: string
      - name: darshan_enabled
        in: query
        type: boolean
      - name: include_contributions
        in: query
        type: boolean
        description: Also return approved user contributions
      - name: page
        in: query
        type: integer
        default: 1
      - name: limit
        in: query
        type: integer
        default: 12
        maximum: 50
    responses:
      200:
        description: List of temples with pagination metadata
      400:
        description: Invalid parameters
    """
    try:
        query = request.args.get("query", "").strip()
        city = request.args.get("city", "").strip()
        state = request.args.get("state", "").strip()
        darshan_only = request.args.get("darshan_enabled", "false").lower() == "true"
        include_contributions = request.args.get("include_contributions", "false").lower() == "true"
        page = max(1, int(request.args.get("page", 1)))
        limit = min(50, max(1, int(request.args.get("limit", 12))))
    except (ValueError, TypeError) as exc:
        current_app.logger.warning(f"Invalid pagination parameters: {exc}")
        return jsonify({"error": "invalid_parameters"}), 400

    try:
        temple_query = Temple.query

        if query:
            temple_query = temple_query.filter(Temple.name.ilike(f"%{query}%"))
        if city:
            temple_query = temple_query.filter(Temple.city.ilike(city))
        if state:
            temple_query = temple_query.filter(Temple.state.ilike(state))
        if darshan_only:
            temple_query = temple_query.filter(Temple.darshan_enabled.is_(True))

        temple_query = temple_query.order_by(Temple.rating.desc(), Temple.name.asc())
        total_count = temple_query.count()
        temples = temple_query.limit(limit).offset((page - 1) * limit).all()

        payload = {
            "temples": [temple.to_dict() for temple in temples],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total_count,
                "pages": (total_count + limit - 1) // limit,
            },
        }

        if include_contributions:
            contribution_query = Contribution.query.filter(Contribution.status == "approved")
            if query:
                contribution_query = contribution_query.filter(Contribution.temple_name.ilike(f"%{query}%"))
            if city:
                contribution_query = contribution_query.filter(Contribution.city.ilike(city))
            if state:
                contribution_query = contribution_query.filter(Contribution.state.ilike(state))
            payload["contributions"] = [
                contribution.to_discovery_dict()
                for contribution in contribution_query.order_by(Contribution.created_at.desc()).all()
            ]

        return jsonify(payload), 200

    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch temples", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp.get("/temples/<int:temple_id>")
def get_temple(temple_id: int) -> tuple[dict[str, object], int]:
    temple = db.session.get(Temple, temple_id)
    if temple is None:
        raise NotFoundError("Temple not found")
    return jsonify({"temple": temple.to_dict()}), 200


# ============================================================================
# Temple visits and Bhakthi points
# ============================================================================

@bp.post("/temples/<int:temple_id>/visits")
@require_session
def log_temple_visit(temple_id: int, session) -> tuple[dict[str, object], int]:
    """Log a visit. Points count once an admin verifies the visit.
    ---
    tags:
      - Bhakthi
    responses:
      201:
        description: Visit logged, awaiting verification
      404:
        description: Temple not found
      409:
        description: Visit already logged for that day
    """
    payload = request.get_json(silent=True) or {}

    temple = db.session.get(Temple, temple_id)
    if temple is None:
        raise NotFoundError("Temple not found")

    visit_date = parse_date(payload.get("visit_date"), "visit_date") if payload.get("visit_date") else (
        datetime.now(timezone.utc).date()
    )
    if visit_date > datetime.now(timezone.utc).date():
        raise ValidationError("visit_date cannot be in the future")

    duplicate = TempleVisit.query.filter_by(
        user_id=session.user_id, temple_id=temple_id, visit_date=visit_date
    ).first()
    if duplicate:
        return jsonify({"error": "conflict", "message": "visit already logged for this day"}), 409

    try:
        visit = TempleVisit(
            temple_id=temple_id,
            user_id=session.user_id,
            points_earned=temple.points,
            verified=False,
            visit_date=visit_date,
            photo_url=optional_text(payload, "photo_url", max_length=500),
        )
        db.session.add(visit)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to log temple visit", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"visit": visit.to_dict()}), 201


@bp.get("/users/me/visits")
@require_session
def list_my_visits(session) -> tuple[dict[str, object], int]:
    visits = (
        TempleVisit.query.options(joinedload(TempleVisit.temple))
        .filter_by(user_id=session.user_id)
        .order_by(TempleVisit.visit_date.desc())
        .all()
    )
    return jsonify({"visits": [visit.to_dict() for visit in visits]}), 200


@bp.get("/users/me/bhakthi")
@require_session
def get_bhakthi_summary(session) -> tuple[dict[str, object], int]:
    """Bhakthi score, discount tier and progress to the next tier.
    ---
    tags:
      - Bhakthi
    responses:
      200:
        description: Ledger summary recomputed from verified visits
    """
    try:
        summary = loyalty.ledger_for_user(session.user_id)
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to compute bhakthi ledger", exc_info=exc)
        return jsonify({"error": "database_error"}), 500
    return jsonify({"user_id": session.user_id, **summary.to_dict()}), 200


# ============================================================================
# Darshan bookings
# ============================================================================

@bp.post("/temples/<int:temple_id>/bookings")
@require_session
def create_darshan_booking(temple_id: int, session) -> tuple[dict[str, object], int]:
    """Book a darshan slot. The booking waits for admin verification.
    ---
    tags:
      - Darshan
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            name:
              type: string
            email:
              type: string
            phone:
              type: string
            darshan_type:
              type: string
              enum: [free, standard_100, standard_500, vip_1000]
            number_of_tickets:
              type: integer
            darshan_date:
              type: string
              format: date
            darshan_time:
              type: string
            bhaktha_details:
              type: array
    responses:
      201:
        description: Booking created in awaiting state
      400:
        description: Invalid payload
      404:
        description: Temple not found
    """
    payload = request.get_json(silent=True) or {}
    booking = bookings.create_booking(session.user_id, temple_id, payload)

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to create darshan booking", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    current_app.logger.info("Darshan booking %s created for temple %s", booking.booking_id, temple_id)
    return (
        jsonify({
            "message": "Your booking is awaiting admin confirmation and payment verification",
            "booking": booking.to_dict(),
        }),
        201,
    )


def _get_owned_booking(booking_id: int, session) -> DarshanBooking:
    booking = db.session.get(DarshanBooking, booking_id)
    if booking is None:
        raise NotFoundError("Booking not found")
    if booking.user_id != session.user_id and not session.is_admin:
        raise ForbiddenError("You can only view your own bookings")
    return booking


@bp.get("/bookings/<int:booking_id>")
@require_session
def get_darshan_booking(booking_id: int, session) -> tuple[dict[str, object], int]:
    booking = _get_owned_booking(booking_id, session)
    return jsonify({"booking": booking.to_dict()}), 200


@bp.get("/users/me/bookings")
@require_session
def list_my_bookings(session) -> tuple[dict[str, object], int]:
    results = (
        DarshanBooking.query.options(joinedload(DarshanBooking.temple))
        .filter_by(user_id=session.user_id)
        .order_by(DarshanBooking.created_at.desc())
        .all()
    )
    return jsonify({"bookings": [booking.to_dict() for booking in results]}), 200


def _sse(event: str, data: str) -> str:
    return f"event: {event}\ndata: {data}\n\n"


@bp.get("/bookings/<int:booking_id>/events")
@require_session
def stream_booking_events(booking_id: int, session) -> Response:
    """Server-sent events for status changes of one booking.

    The first event is the current snapshot. The stream ends once the
    booking reaches a terminal status or the stream lifetime runs out.
    """
    booking = _get_owned_booking(booking_id, session)

    keepalive = current_app.config.get("BOOKING_STREAM_KEEPALIVE", 15)
    max_seconds = current_app.config.get("BOOKING_STREAM_MAX_SECONDS", 300)
    # Subscribe before reading the snapshot so a change committed in between is still delivered
    subscription = booking_channel.subscribe(booking_id)
    db.session.refresh(booking)
    snapshot = booking.to_dict()

    def generate():
        with subscription:
            yield _sse("snapshot", json.dumps(snapshot))
            if snapshot["status"] in bookings.TERMINAL_STATUSES:
                return

            started = datetime.now(timezone.utc)
            while (datetime.now(timezone.utc) - started).total_seconds() < max_seconds:
                event = subscription.get(timeout=keepalive)
                if event is None:
                    yield ": keepalive\n\n"
                    continue
                yield _sse("status", event.to_json())
                if event.status in bookings.TERMINAL_STATUSES:
                    return

    response = Response(stream_with_context(generate()), mimetype="text/event-stream")
    response.call_on_close(subscription.close)
    return response


# ============================================================================
# Storefront
# ============================================================================

@bp.get("/products")
def list_products() -> tuple[dict[str, object], int]:
    category = request.args.get("category", "").strip()
    try:
        product_query = Product.query.filter(Product.is_active.is_(True))
        if category:
            product_query = product_query.filter(Product.category.ilike(category))
        products = product_query.order_by(Product.name.asc()).all()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch products", exc_info=exc)
        return jsonify({"error": "database_error"}), 500
    return jsonify({"products": [product.to_dict() for product in products]}), 200


@bp.get("/products/<int:product_id>")
def get_product(product_id: int) -> tuple[dict[str, object], int]:
    product = db.session.get(Product, product_id)
    if product is None or not product.is_active:
        raise NotFoundError("Product not found")
    return jsonify({"product": product.to_dict()}), 200


def _load_cart_lines(items) -> list[tuple[Product, int]]:
    """Resolve cart items to products; repeated products merge into one line."""
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list")

    quantities: dict[int, int] = {}
    products: dict[int, Product] = {}
    for item in items:
        if not isinstance(item, dict):
            raise ValidationError("each item needs a product_id and quantity")
        product_id = positive_int(item.get("product_id"), "product_id")
        quantity = positive_int(item.get("quantity", 1), "quantity")
        product = db.session.get(Product, product_id)
        if product is None or not product.is_active:
            raise NotFoundError(f"Product {product_id} not found")
        products[product_id] = product
        quantities[product_id] = quantities.get(product_id, 0) + quantity
    return [(products[product_id], quantity) for product_id, quantity in quantities.items()]


@bp.post("/promo-codes/validate")
def validate_promo_code() -> tuple[dict[str, object], int]:
    """Check a promo code without using it up.
    ---
    tags:
      - Cart
    responses:
      200:
        description: The code is valid right now
      400:
        description: The code is invalid, inactive, expired or exhausted
    """
    payload = request.get_json(silent=True) or {}
    promo = promotions.lookup_promo(payload.get("code"))
    return jsonify({"code": promo.code, "discount_percent": promo.discount_percent}), 200


@bp.post("/cart/quote")
def quote_cart() -> tuple[dict[str, object], int]:
    """Price a cart with the single best applicable discount.

    Read-only: quoting never counts a promo code use.
    """
    payload = request.get_json(silent=True) or {}
    lines = _load_cart_lines(payload.get("items"))
    subtotal = sum(product.price * quantity for product, quantity in lines)

    session = optional_session()
    summary = loyalty.ledger_for_user(session.user_id if session else None)
    quote = promotions.quote_cart(subtotal, payload.get("promo_code"), summary.discount_percent)
    return jsonify(quote), 200


def _allocate(final: int, line_subtotals: list[int]) -> list[int]:
    """Split the discounted total across lines in proportion to their subtotals.

    Each line gets the floor of its share; the units left over go to the
    lines with the largest remainders. Every line stays between zero and its
    own subtotal, and the lines sum to ``final``.
    """
    subtotal = sum(line_subtotals)
    if subtotal == 0:
        return [0 for _ in line_subtotals]

    shares = [divmod(amount * final, subtotal) for amount in line_subtotals]
    totals = [share for share, _ in shares]
    leftover = final - sum(totals)
    by_remainder = sorted(range(len(shares)), key=lambda index: (-shares[index][1], index))
    for index in by_remainder[:leftover]:
        totals[index] += 1
    return totals


@bp.post("/orders")
@require_session
def checkout(session) -> tuple[dict[str, object], int]:
    """Place orders for every cart line.

    A promo code is counted as used here, once per completed checkout.
    ---
    tags:
      - Cart
    responses:
      201:
        description: Orders created
      400:
        description: Invalid payload or promo code
      404:
        description: Product not found
      409:
        description: Not enough stock
    """
    payload = request.get_json(silent=True) or {}

    customer_name = require_text(payload, "name")
    customer_email = validate_email(payload.get("email"))
    customer_phone = validate_phone(payload["phone"]) if payload.get("phone") else None
    shipping_address = require_text(payload, "shipping_address", max_length=500)
    lines = _load_cart_lines(payload.get("items"))

    for product, quantity in lines:
        if product.stock < quantity:
            return (
                jsonify({"error": "insufficient_stock", "message": f"Only {product.stock} of {product.name} left"}),
                409,
            )

    subtotal = sum(product.price * quantity for product, quantity in lines)
    summary = loyalty.ledger_for_user(session.user_id)
    promo = promotions.lookup_promo(payload.get("promo_code")) if promotions.normalize_code(
        payload.get("promo_code")
    ) else None
    decision = promotions.resolve_discount(promo, summary.discount_percent)
    final = promotions.apply_discount(subtotal, decision.percent)
    totals = _allocate(final, [product.price * quantity for product, quantity in lines])

    try:
        orders = []
        for (product, quantity), total in zip(lines, totals):
            product.stock -= quantity
            order = Order(
                product_id=product.product_id,
                user_id=session.user_id,
                quantity=quantity,
                total_price=total,
                discount_percent=decision.percent,
                promo_code=decision.promo_code,
                customer_name=customer_name,
                customer_email=customer_email,
                customer_phone=customer_phone,
                shipping_address=shipping_address,
                status="pending",
            )
            db.session.add(order)
            orders.append(order)

        if promo is not None:
            promotions.redeem_promo(promo)

        db.session.commit()
    except BusinessRuleError:
        db.session.rollback()
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to place orders", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return (
        jsonify({
            "orders": [order.to_dict() for order in orders],
            "subtotal": subtotal,
            "discount": decision.to_dict(),
            "final": final,
        }),
        201,
    )


@bp.get("/users/me/orders")
@require_session
def list_my_orders(session) -> tuple[dict[str, object], int]:
    orders = (
        Order.query.options(joinedload(Order.product))
        .filter_by(user_id=session.user_id)
        .order_by(Order.created_at.desc())
        .all()
    )
    return jsonify({"orders": [order.to_dict() for order in orders]}), 200


# ============================================================================
# Contributions
# ============================================================================

@bp.post("/contributions")
@require_session
def submit_contribution(session) -> tuple[dict[str, object], int]:
    """Suggest a temple for the directory; an admin reviews it."""
    payload = request.get_json(silent=True) or {}

    temple_name = require_text(payload, "temple_name", max_length=150)
    latitude = longitude = None
    if payload.get("latitude") is not None or payload.get("longitude") is not None:
        latitude, longitude = validate_coordinates(payload.get("latitude"), payload.get("longitude"))

    try:
        contribution = Contribution(
            user_id=session.user_id,
            temple_name=temple_name,
            description=optional_text(payload, "description"),
            city=optional_text(payload, "city", max_length=100),
            state=optional_text(payload, "state", max_length=100),
            country=optional_text(payload, "country", max_length=100),
            latitude=latitude,
            longitude=longitude,
            image_url=optional_text(payload, "image_url", max_length=500),
            status="pending",
        )
        db.session.add(contribution)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to submit contribution", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"contribution": contribution.to_dict()}), 201


@bp.get("/users/me/contributions")
@require_session
def list_my_contributions(session) -> tuple[dict[str, object], int]:
    contributions = (
        Contribution.query.filter_by(user_id=session.user_id)
        .order_by(Contribution.created_at.desc())
        .all()
    )
    return jsonify({"contributions": [c.to_dict() for c in contributions]}), 200


# ============================================================================
# Challenges and volunteering
# ============================================================================

def _deadline_passed(challenge: Challenge, now: datetime) -> bool:
    if challenge.deadline is None:
        return False
    deadline = challenge.deadline
    if deadline.tzinfo is None:
        deadline = deadline.replace(tzinfo=timezone.utc)
    return deadline < now


@bp.get("/challenges")
def list_challenges() -> tuple[dict[str, object], int]:
    """Active challenges, newest first."""
    challenges = (
        Challenge.query.filter(Challenge.is_active.is_(True))
        .order_by(Challenge.created_at.desc())
        .all()
    )
    return jsonify({"challenges": [challenge.to_dict() for challenge in challenges]}), 200


@bp.post("/challenges/<int:challenge_id>/submissions")
def accept_challenge(challenge_id: int) -> tuple[dict[str, object], int]:
    """Sign up for a challenge. Works with or without an account.
    ---
    tags:
      - Challenges
    responses:
      201:
        description: Submission recorded as pending
      400:
        description: Invalid payload
      404:
        description: Challenge not found
      409:
        description: Challenge is closed
    """
    challenge = db.session.get(Challenge, challenge_id)
    if challenge is None:
        raise NotFoundError("Challenge not found")
    if not challenge.is_active or _deadline_passed(challenge, datetime.now(timezone.utc)):
        raise BusinessRuleError("This challenge is no longer accepting participants", code="challenge_closed")

    payload = request.get_json(silent=True) or {}
    session = optional_session()

    try:
        submission = ChallengeSubmission(
            challenge_id=challenge.challenge_id,
            user_id=session.user_id if session else None,
            name=require_text(payload, "name"),
            email=validate_email(payload.get("email")),
            phone=validate_phone(payload.get("phone")),
            message=optional_text(payload, "message"),
            status="pending",
        )
        db.session.add(submission)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to record challenge submission", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    current_app.logger.info("Challenge %s accepted, submission %s", challenge_id, submission.submission_id)
    return jsonify({"submission": submission.to_dict()}), 201


@bp.post("/volunteers")
def apply_to_volunteer() -> tuple[dict[str, object], int]:
    """Submit a volunteer application. Works with or without an account."""
    payload = request.get_json(silent=True) or {}
    session = optional_session()

    try:
        volunteer = Volunteer(
            user_id=session.user_id if session else None,
            name=require_text(payload, "name"),
            email=validate_email(payload.get("email")),
            phone=validate_phone(payload.get("phone")),
            city=optional_text(payload, "city", max_length=100),
            skills=optional_text(payload, "skills"),
            availability=optional_text(payload, "availability", max_length=200),
            message=optional_text(payload, "message"),
            status="pending",
        )
        db.session.add(volunteer)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to record volunteer application", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"volunteer": volunteer.to_dict()}), 201


# ============================================================================
# Mantras
# ============================================================================

@bp.get("/mantras")
def list_mantras() -> tuple[dict[str, object], int]:
    mantras = Mantra.query.order_by(Mantra.title.asc()).all()
    return jsonify({"mantras": [mantra.to_dict() for mantra in mantras]}), 200


@bp.get("/mantras/<int:mantra_id>")
def get_mantra(mantra_id: int) -> tuple[dict[str, object], int]:
    mantra = db.session.get(Mantra, mantra_id)
    if mantra is None:
        raise NotFoundError("Mantra not found")
    return jsonify({"mantra": mantra.to_dict()}), 200
