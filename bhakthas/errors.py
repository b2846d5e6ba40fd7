"""Error taxonomy shared by the domain modules and the HTTP layer."""
from __future__ import annotations

from flask import current_app, jsonify


class BhakthasError(Exception):
    """Base class for errors that map onto a JSON error response."""

    status_code = 400
    code = "error"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_dict(self) -> dict[str, str]:
        return {"error": self.code, "message": self.message}


class ValidationError(BhakthasError):
    """Malformed input, rejected before any write."""

    status_code = 400
    code = "invalid_payload"


class AuthenticationError(BhakthasError):
    status_code = 401
    code = "unauthorized"


class ForbiddenError(BhakthasError):
    """Authenticated, but not allowed to perform the action."""

    status_code = 403
    code = "forbidden"


class NotFoundError(BhakthasError):
    status_code = 404
    code = "not_found"


class BusinessRuleError(BhakthasError):
    """A well-formed request that the business rules refuse.

    Examples: an exhausted promo code, a booking that already left the
    awaiting state, a chant session that already reached its target.
    """

    status_code = 409
    code = "business_rule_violation"

    def __init__(self, message: str, code: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message, code)
        if status_code is not None:
            self.status_code = status_code


def register_error_handlers(app) -> None:
    @app.errorhandler(BhakthasError)
    def handle_domain_error(exc: BhakthasError):
        if exc.status_code >= 500:
            current_app.logger.error("Unhandled domain error: %s", exc.message)
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(404)
    def handle_missing_route(_exc):
        return jsonify({"error": "not_found", "message": "resource not found"}), 404

    @app.errorhandler(405)
    def handle_bad_method(_exc):
        return jsonify({"error": "method_not_allowed", "message": "method not allowed"}), 405
