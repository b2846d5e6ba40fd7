"""Admin back-office routes. Every view here requires the admin role."""
from __future__ import annotations

from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import case, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload

from . import bookings, loyalty
from .auth import require_admin
from .errors import NotFoundError, ValidationError
from .extensions import db
from .models import (Challenge, ChallengeSubmission, Contribution,
                     DarshanBooking, Mantra, Order, Product, PromoCode, Temple,
                     TempleVisit, User, Volunteer)
from .notifications import send_order_status_email
from .promotions import normalize_code
from .validators import (optional_text, parse_datetime, positive_int,
                         require_text, validate_coordinates, validate_rating)

bp_admin = Blueprint("admin", __name__)

ORDER_STATUSES = ("pending", "awaiting_payment", "processing", "completed", "cancelled")
CONTRIBUTION_STATUSES = ("pending", "approved", "rejected", "waiting")
SUBMISSION_STATUSES = ("pending", "completed", "rejected")
VOLUNTEER_STATUSES = ("pending", "approved", "rejected")


# ============================================================================
# Darshan bookings
# ============================================================================

@bp_admin.get("/bookings")
@require_admin
def list_all_bookings(session) -> tuple[dict[str, object], int]:
    """List every darshan booking with its temple, newest first.
    ---
    tags:
      - Admin
    parameters:
      - name: status
        in: query
        type: string
        enum: [awaiting, confirmed, cancelled, refunded]
    responses:
      200:
        description: All bookings
      401:
        description: Missing or invalid token
      403:
        description: Admin access required
    """
    status = request.args.get("status", "").strip()
    try:
        booking_query = DarshanBooking.query.options(joinedload(DarshanBooking.temple))
        if status:
            booking_query = booking_query.filter(DarshanBooking.status == status)
        results = booking_query.order_by(DarshanBooking.created_at.desc()).all()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch bookings", exc_info=exc)
        return jsonify({"error": "Failed to fetch bookings"}), 500

    current_app.logger.info("Successfully fetched bookings for admin: %s", session.user_id)
    payload = [booking.to_dict() for booking in results]
    return (
        jsonify({
            "bookings": payload,
            "needs_attention": sum(1 for booking in payload if booking["needs_attention"]),
        }),
        200,
    )


@bp_admin.put("/bookings/<int:booking_id>/status")
@require_admin
def update_booking_status(booking_id: int, session) -> tuple[dict[str, object], int]:
    """Confirm, cancel or refund an awaiting booking.
    ---
    tags:
      - Admin
    parameters:
      - in: body
        name: body
        required: true
        schema:
          properties:
            status:
              type: string
              enum: [confirmed, cancelled, refunded]
    responses:
      200:
        description: Booking status updated
      400:
        description: Invalid status
      404:
        description: Booking not found
      409:
        description: Booking already left the awaiting state
    """
    data = request.get_json(silent=True) or {}
    if "status" not in data:
        return jsonify({"error": "invalid_input", "message": "status is required"}), 400

    try:
        booking = bookings.transition(booking_id, data["status"], session)
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update booking status", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"booking": booking.to_dict()}), 200


# ============================================================================
# Users and temple visits
# ============================================================================

@bp_admin.get("/users")
@require_admin
def list_users(session) -> tuple[dict[str, object], int]:
    """All users with their visit aggregates."""
    verified_points = func.coalesce(
        func.sum(case((TempleVisit.verified.is_(True), TempleVisit.points_earned), else_=0)), 0
    )
    verified_visits = func.coalesce(func.sum(case((TempleVisit.verified.is_(True), 1), else_=0)), 0)

    try:
        rows = (
            db.session.query(
                User,
                func.count(TempleVisit.visit_id),
                verified_visits,
                verified_points,
            )
            .outerjoin(TempleVisit, TempleVisit.user_id == User.user_id)
            .group_by(User.user_id)
            .order_by(User.created_at.desc())
            .all()
        )
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch users", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    users = []
    for user, total, verified, points in rows:
        entry = user.to_dict_basic()
        entry.update({
            "created_at": user.created_at.isoformat() if user.created_at else None,
            "total_visits": int(total),
            "verified_visits": int(verified),
            "bhakthi_points": int(points),
            "discount_percent": loyalty.discount_for_score(int(points)),
        })
        users.append(entry)

    return jsonify({"users": users, "total": len(users)}), 200


@bp_admin.get("/visits")
@require_admin
def list_visits(session) -> tuple[dict[str, object], int]:
    verified = request.args.get("verified", "").strip().lower()
    visit_query = TempleVisit.query.options(joinedload(TempleVisit.temple))
    if verified in ("true", "false"):
        visit_query = visit_query.filter(TempleVisit.verified.is_(verified == "true"))
    visits = visit_query.order_by(TempleVisit.created_at.desc()).all()
    return jsonify({"visits": [visit.to_dict() for visit in visits]}), 200


@bp_admin.put("/visits/<int:visit_id>/verify")
@require_admin
def verify_visit(visit_id: int, session) -> tuple[dict[str, object], int]:
    """Mark a visit verified so its points count towards the ledger."""
    visit = db.session.get(TempleVisit, visit_id)
    if visit is None:
        raise NotFoundError("Visit not found")
    if visit.verified:
        return jsonify({"error": "already_verified", "message": "Visit is already verified"}), 409

    try:
        visit.verified = True
        visit.verified_at = datetime.now(timezone.utc)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to verify visit", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    current_app.logger.info("Visit %s verified by admin %s", visit_id, session.user_id)
    return jsonify({"visit": visit.to_dict()}), 200


# ============================================================================
# Temples
# ============================================================================

def _apply_temple_fields(temple: Temple, payload: dict, creating: bool) -> None:
    if creating or "name" in payload:
        temple.name = require_text(payload, "name", max_length=150)
    if creating or "latitude" in payload or "longitude" in payload:
        temple.latitude, temple.longitude = validate_coordinates(
            payload.get("latitude", temple.latitude), payload.get("longitude", temple.longitude)
        )
    for field, max_length in (("description", 5000), ("deity", 100), ("city", 100),
                              ("state", 100), ("image_url", 500)):
        if field in payload:
            setattr(temple, field, optional_text(payload, field, max_length=max_length))
    if "country" in payload:
        temple.country = require_text(payload, "country")
    if "rating" in payload:
        temple.rating = validate_rating(payload["rating"])
    if "points" in payload:
        temple.points = positive_int(payload["points"], "points", minimum=0)
    if "darshan_enabled" in payload:
        temple.darshan_enabled = bool(payload["darshan_enabled"])


@bp_admin.post("/temples")
@require_admin
def create_temple(session) -> tuple[dict[str, object], int]:
    payload = request.get_json(silent=True) or {}
    temple = Temple()
    _apply_temple_fields(temple, payload, creating=True)

    try:
        db.session.add(temple)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to create temple", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"temple": temple.to_dict()}), 201


@bp_admin.put("/temples/<int:temple_id>")
@require_admin
def update_temple(temple_id: int, session) -> tuple[dict[str, object], int]:
    temple = db.session.get(Temple, temple_id)
    if temple is None:
        raise NotFoundError("Temple not found")

    payload = request.get_json(silent=True) or {}
    _apply_temple_fields(temple, payload, creating=False)

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update temple", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"temple": temple.to_dict()}), 200


# ============================================================================
# Products and orders
# ============================================================================

def _apply_product_fields(product: Product, payload: dict, creating: bool) -> None:
    if creating or "name" in payload:
        product.name = require_text(payload, "name", max_length=200)
    if creating or "price" in payload:
        product.price = positive_int(payload.get("price"), "price", minimum=0)
    if "stock" in payload:
        product.stock = positive_int(payload["stock"], "stock", minimum=0)
    for field, max_length in (("description", 5000), ("category", 100), ("image_url", 500)):
        if field in payload:
            setattr(product, field, optional_text(payload, field, max_length=max_length))
    if "is_active" in payload:
        product.is_active = bool(payload["is_active"])


@bp_admin.post("/products")
@require_admin
def create_product(session) -> tuple[dict[str, object], int]:
    payload = request.get_json(silent=True) or {}
    product = Product(stock=0, is_active=True)
    _apply_product_fields(product, payload, creating=True)

    try:
        db.session.add(product)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to create product", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"product": product.to_dict()}), 201


@bp_admin.put("/products/<int:product_id>")
@require_admin
def update_product(product_id: int, session) -> tuple[dict[str, object], int]:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")

    _apply_product_fields(product, request.get_json(silent=True) or {}, creating=False)

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update product", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"product": product.to_dict()}), 200


@bp_admin.get("/orders")
@require_admin
def list_orders(session) -> tuple[dict[str, object], int]:
    status = request.args.get("status", "").strip()
    order_query = Order.query.options(joinedload(Order.product))
    if status:
        order_query = order_query.filter(Order.status == status)
    orders = order_query.order_by(Order.created_at.desc()).all()
    return jsonify({"orders": [order.to_dict() for order in orders]}), 200


@bp_admin.put("/orders/<int:order_id>/status")
@require_admin
def update_order_status(order_id: int, session) -> tuple[dict[str, object], int]:
    """Set an order's status and email the customer about it.

    The email is fire-and-forget: a failed send is logged and the status
    change stands.
    ---
    tags:
      - Admin
    responses:
      200:
        description: Order updated
      400:
        description: Invalid status
      404:
        description: Order not found
    """
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFoundError("Order not found")

    data = request.get_json(silent=True) or {}
    new_status = data.get("status")
    if new_status not in ORDER_STATUSES:
        return (
            jsonify({"error": "invalid_status", "message": f"Status must be one of: {', '.join(ORDER_STATUSES)}"}),
            400,
        )

    if order.status == new_status:
        return jsonify({"order": order.to_dict(), "email_sent": False}), 200

    try:
        order.status = new_status
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update order status", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    email_sent = send_order_status_email(
        recipient=order.customer_email,
        name=order.customer_name,
        order_id=order.order_id,
        product=order.product.name if order.product else "your item",
        status=new_status,
        total=order.total_price,
    )
    return jsonify({"order": order.to_dict(), "email_sent": email_sent}), 200


# ============================================================================
# Promo codes
# ============================================================================

def _apply_promo_fields(promo: PromoCode, payload: dict, creating: bool) -> None:
    if creating or "code" in payload:
        code = normalize_code(payload.get("code"))
        if not code or len(code) > 50:
            raise ValidationError("code is required and must be at most 50 characters")
        promo.code = code
    if creating or "discount_percent" in payload:
        percent = positive_int(payload.get("discount_percent"), "discount_percent")
        if percent > 100:
            raise ValidationError("discount_percent must be between 1 and 100")
        promo.discount_percent = percent
    if "description" in payload:
        promo.description = optional_text(payload, "description")
    if "valid_from" in payload:
        promo.valid_from = parse_datetime(payload["valid_from"], "valid_from")
    if "valid_until" in payload:
        promo.valid_until = parse_datetime(payload["valid_until"], "valid_until")
    if "max_uses" in payload:
        promo.max_uses = (
            positive_int(payload["max_uses"], "max_uses") if payload["max_uses"] is not None else None
        )
    if "is_active" in payload:
        promo.is_active = bool(payload["is_active"])

    if promo.valid_from and promo.valid_until and promo.valid_from > promo.valid_until:
        raise ValidationError("valid_from must be before valid_until")
    if promo.max_uses is not None and (promo.current_uses or 0) > promo.max_uses:
        raise ValidationError("max_uses cannot be lower than the uses already counted")


@bp_admin.get("/promo-codes")
@require_admin
def list_promo_codes(session) -> tuple[dict[str, object], int]:
    promos = PromoCode.query.order_by(PromoCode.created_at.desc()).all()
    return jsonify({"promo_codes": [promo.to_dict() for promo in promos]}), 200


@bp_admin.post("/promo-codes")
@require_admin
def create_promo_code(session) -> tuple[dict[str, object], int]:
    payload = request.get_json(silent=True) or {}
    promo = PromoCode(current_uses=0, is_active=True)
    _apply_promo_fields(promo, payload, creating=True)

    if PromoCode.query.filter_by(code=promo.code).first():
        return jsonify({"error": "conflict", "message": "promo code already exists"}), 409

    try:
        db.session.add(promo)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to create promo code", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"promo_code": promo.to_dict()}), 201


@bp_admin.put("/promo-codes/<int:promo_code_id>")
@require_admin
def update_promo_code(promo_code_id: int, session) -> tuple[dict[str, object], int]:
    promo = db.session.get(PromoCode, promo_code_id)
    if promo is None:
        raise NotFoundError("Promo code not found")

    payload = request.get_json(silent=True) or {}
    with db.session.no_autoflush:
        _apply_promo_fields(promo, payload, creating=False)
        duplicate = PromoCode.query.filter(
            PromoCode.code == promo.code, PromoCode.promo_code_id != promo_code_id
        ).first()
    if duplicate:
        db.session.rollback()
        return jsonify({"error": "conflict", "message": "promo code already exists"}), 409

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update promo code", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"promo_code": promo.to_dict()}), 200


# ============================================================================
# Contributions and mantras
# ============================================================================

@bp_admin.get("/contributions")
@require_admin
def list_contributions(session) -> tuple[dict[str, object], int]:
    status = request.args.get("status", "").strip()
    contribution_query = Contribution.query
    if status:
        contribution_query = contribution_query.filter(Contribution.status == status)
    contributions = contribution_query.order_by(Contribution.created_at.desc()).all()
    return jsonify({"contributions": [c.to_dict() for c in contributions]}), 200


@bp_admin.put("/contributions/<int:contribution_id>/status")
@require_admin
def review_contribution(contribution_id: int, session) -> tuple[dict[str, object], int]:
    contribution = db.session.get(Contribution, contribution_id)
    if contribution is None:
        raise NotFoundError("Contribution not found")

    payload = request.get_json(silent=True) or {}
    new_status = payload.get("status")
    if new_status not in CONTRIBUTION_STATUSES:
        return (
            jsonify({
                "error": "invalid_status",
                "message": f"Status must be one of: {', '.join(CONTRIBUTION_STATUSES)}",
            }),
            400,
        )
    if new_status == "approved" and (contribution.latitude is None or contribution.longitude is None):
        raise ValidationError("A contribution needs coordinates before it can be approved")

    try:
        contribution.status = new_status
        if "admin_notes" in payload:
            contribution.admin_notes = optional_text(payload, "admin_notes")
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to review contribution", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"contribution": contribution.to_dict()}), 200


@bp_admin.post("/mantras")
@require_admin
def create_mantra(session) -> tuple[dict[str, object], int]:
    payload = request.get_json(silent=True) or {}
    try:
        mantra = Mantra(
            title=require_text(payload, "title", max_length=200),
            deity=optional_text(payload, "deity", max_length=100),
            text=require_text(payload, "text", max_length=5000),
            meaning=optional_text(payload, "meaning"),
            audio_url=optional_text(payload, "audio_url", max_length=500),
        )
        db.session.add(mantra)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to create mantra", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"mantra": mantra.to_dict()}), 201


# ============================================================================
# Challenges and volunteers
# ============================================================================

def _apply_challenge_fields(challenge: Challenge, payload: dict, creating: bool) -> None:
    if creating or "title" in payload:
        challenge.title = require_text(payload, "title", max_length=200)
    if creating or "description" in payload:
        challenge.description = require_text(payload, "description", max_length=5000)
    if "reward" in payload:
        challenge.reward = optional_text(payload, "reward", max_length=200)
    if "deadline" in payload:
        challenge.deadline = parse_datetime(payload["deadline"], "deadline")
    if "is_active" in payload:
        challenge.is_active = bool(payload["is_active"])


@bp_admin.get("/challenges")
@require_admin
def list_all_challenges(session) -> tuple[dict[str, object], int]:
    challenges = Challenge.query.order_by(Challenge.created_at.desc()).all()
    return jsonify({"challenges": [challenge.to_dict() for challenge in challenges]}), 200


@bp_admin.post("/challenges")
@require_admin
def create_challenge(session) -> tuple[dict[str, object], int]:
    payload = request.get_json(silent=True) or {}
    challenge = Challenge(is_active=True)
    _apply_challenge_fields(challenge, payload, creating=True)

    try:
        db.session.add(challenge)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to create challenge", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"challenge": challenge.to_dict()}), 201


@bp_admin.put("/challenges/<int:challenge_id>")
@require_admin
def update_challenge(challenge_id: int, session) -> tuple[dict[str, object], int]:
    challenge = db.session.get(Challenge, challenge_id)
    if challenge is None:
        raise NotFoundError("Challenge not found")

    _apply_challenge_fields(challenge, request.get_json(silent=True) or {}, creating=False)

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update challenge", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"challenge": challenge.to_dict()}), 200


@bp_admin.delete("/challenges/<int:challenge_id>")
@require_admin
def delete_challenge(challenge_id: int, session) -> tuple[dict[str, str], int]:
    """Delete a challenge together with its submissions.
    ---
    tags:
      - Admin
    responses:
      200:
        description: Challenge deleted
      404:
        description: Challenge not found
    """
    challenge = db.session.get(Challenge, challenge_id)
    if challenge is None:
        raise NotFoundError("Challenge not found")

    try:
        db.session.delete(challenge)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to delete challenge", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    current_app.logger.info("Challenge %s deleted by admin %s", challenge_id, session.user_id)
    return jsonify({"message": "Challenge deleted successfully"}), 200


@bp_admin.get("/challenge-submissions")
@require_admin
def list_challenge_submissions(session) -> tuple[dict[str, object], int]:
    status = request.args.get("status", "").strip()
    submission_query = ChallengeSubmission.query.options(joinedload(ChallengeSubmission.challenge))
    if status:
        submission_query = submission_query.filter(ChallengeSubmission.status == status)
    submissions = submission_query.order_by(ChallengeSubmission.created_at.desc()).all()
    return jsonify({"submissions": [submission.to_dict() for submission in submissions]}), 200


@bp_admin.put("/challenge-submissions/<int:submission_id>/status")
@require_admin
def review_challenge_submission(submission_id: int, session) -> tuple[dict[str, object], int]:
    submission = db.session.get(ChallengeSubmission, submission_id)
    if submission is None:
        raise NotFoundError("Submission not found")

    new_status = (request.get_json(silent=True) or {}).get("status")
    if new_status not in SUBMISSION_STATUSES:
        return (
            jsonify({
                "error": "invalid_status",
                "message": f"Status must be one of: {', '.join(SUBMISSION_STATUSES)}",
            }),
            400,
        )

    try:
        submission.status = new_status
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to review challenge submission", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"submission": submission.to_dict()}), 200


@bp_admin.get("/volunteers")
@require_admin
def list_volunteers(session) -> tuple[dict[str, object], int]:
    status = request.args.get("status", "").strip()
    volunteer_query = Volunteer.query
    if status:
        volunteer_query = volunteer_query.filter(Volunteer.status == status)
    volunteers = volunteer_query.order_by(Volunteer.created_at.desc()).all()
    return jsonify({"volunteers": [volunteer.to_dict() for volunteer in volunteers]}), 200


@bp_admin.put("/volunteers/<int:volunteer_id>/status")
@require_admin
def review_volunteer(volunteer_id: int, session) -> tuple[dict[str, object], int]:
    volunteer = db.session.get(Volunteer, volunteer_id)
    if volunteer is None:
        raise NotFoundError("Volunteer application not found")

    new_status = (request.get_json(silent=True) or {}).get("status")
    if new_status not in VOLUNTEER_STATUSES:
        return (
            jsonify({
                "error": "invalid_status",
                "message": f"Status must be one of: {', '.join(VOLUNTEER_STATUSES)}",
            }),
            400,
        )

    try:
        volunteer.status = new_status
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to review volunteer application", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"volunteer": volunteer.to_dict()}), 200


# ============================================================================
# Dashboard
# ============================================================================

@bp_admin.get("/stats")
@require_admin
def get_admin_stats(session) -> tuple[dict[str, object], int]:
    """Headline totals for the admin dashboard.
    ---
    tags:
      - Admin
    responses:
      200:
        description: Totals for users, temples, visits, orders and revenue
      401:
        description: Missing or invalid token
      403:
        description: Admin access required
    """
    try:
        stats = {
            "total_users": db.session.query(func.count(User.user_id)).scalar(),
            "total_temples": db.session.query(func.count(Temple.temple_id)).scalar(),
            "total_visits": db.session.query(func.count(TempleVisit.visit_id)).scalar(),
            "total_orders": db.session.query(func.count(Order.order_id)).scalar(),
            "total_revenue": db.session.query(func.coalesce(func.sum(Order.total_price), 0)).scalar(),
        }
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to compute admin stats", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({key: int(value or 0) for key, value in stats.items()}), 200
