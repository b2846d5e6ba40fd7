"""Token based identity and the per-request session context."""
from __future__ import annotations

from dataclasses import dataclass
from functools import wraps

from flask import current_app, request
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from .errors import AuthenticationError, ForbiddenError
from .extensions import db
from .models import User

TOKEN_SALT = "auth-token"


@dataclass(frozen=True)
class SessionContext:
    """Who is making the request.

    Built from the bearer token when a protected view is entered and passed
    to the view explicitly; it lives exactly as long as the request. Signing
    out is the client discarding its token.
    """

    user_id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=TOKEN_SALT)


def build_token(user: User) -> str:
    return _serializer().dumps({"user_id": user.user_id, "role": user.role})


def get_jwt_identity() -> int | None:
    """Extract and validate user_id from the Authorization header token.

    Returns the user_id if the token is valid, None if missing or invalid.
    """
    auth_header = request.headers.get("Authorization", "")

    if not auth_header.startswith("Bearer "):
        return None

    token = auth_header[7:]  # Remove "Bearer " prefix

    try:
        payload = _serializer().loads(token, max_age=current_app.config.get("TOKEN_MAX_AGE", 86400))
    except (BadSignature, SignatureExpired):
        return None
    user_id = payload.get("user_id") if isinstance(payload, dict) else None
    return user_id if isinstance(user_id, int) else None


def has_role(user_id: int, role: str) -> bool:
    user = db.session.get(User, user_id)
    return user is not None and user.role == role


def load_session() -> SessionContext:
    user_id = get_jwt_identity()
    if user_id is None:
        raise AuthenticationError("Invalid or missing token")

    # The role is read from the database, so demoting an admin takes effect
    # before their token expires.
    user = db.session.get(User, user_id)
    if user is None:
        raise AuthenticationError("Invalid or missing token")
    return SessionContext(user_id=user.user_id, role=user.role)


def optional_session() -> SessionContext | None:
    try:
        return load_session()
    except AuthenticationError:
        return None


def require_session(view):
    """Pass the caller's ``SessionContext`` to the view as ``session``."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        kwargs["session"] = load_session()
        return view(*args, **kwargs)

    return wrapper


def require_admin(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        session = load_session()
        if not has_role(session.user_id, "admin"):
            current_app.logger.warning("Admin role verification failed for user %s", session.user_id)
            raise ForbiddenError("Admin access required")
        kwargs["session"] = session
        return view(*args, **kwargs)

    return wrapper
