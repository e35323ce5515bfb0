"""Bearer-token authentication on top of Flask-Login.

Tokens are HS256 JWTs whose ``sub`` claim is the user id. The login manager's
request loader resolves ``Authorization: Bearer <token>`` on every request, so
``login_required`` and ``current_user`` work unchanged for the JSON API.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from functools import wraps

import jwt
from flask import current_app, g, jsonify
from flask_login import current_user

from .errors import Forbidden, Unauthorized
from .extensions import db, login_manager
from .models.user import User

log = logging.getLogger(__name__)


def issue_token(user: User, secret: str, algorithm: str = "HS256", expires_hours: int = 24) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "iat": now,
        "exp": now + timedelta(hours=expires_hours),
    }
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_token(token: str, secret: str, algorithm: str = "HS256") -> dict:
    return jwt.decode(
        token, secret, algorithms=[algorithm], options={"require": ["sub", "exp"]}
    )


def issue_token_for(user: User) -> str:
    cfg = current_app.config
    return issue_token(
        user,
        cfg["JWT_SECRET_KEY"],
        cfg.get("JWT_ALGORITHM", "HS256"),
        cfg.get("JWT_EXPIRES_HOURS", 24),
    )


def _bearer_token(header: str | None) -> str | None:
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


@login_manager.request_loader
def load_user_from_request(req):
    token = _bearer_token(req.headers.get("Authorization"))
    if token is None:
        return None
    cfg = current_app.config
    try:
        payload = decode_token(token, cfg["JWT_SECRET_KEY"], cfg.get("JWT_ALGORITHM", "HS256"))
    except jwt.ExpiredSignatureError:
        g.auth_error = "Token expired"
        return None
    except jwt.InvalidTokenError as exc:
        log.debug("Rejected bearer token: %s", exc)
        g.auth_error = "Invalid token"
        return None

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        g.auth_error = "Invalid token"
        return None

    user = db.session.get(User, user_id)
    if user is None or not user.is_active:
        g.auth_error = "User not found"
        return None
    return user


@login_manager.unauthorized_handler
def _unauthorized():
    exc = Unauthorized(g.get("auth_error"))
    return jsonify(exc.to_dict()), exc.status_code


def admin_required(view):
    """Reject authenticated non-admins with 403; anonymous callers get 401."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        if not current_user.is_authenticated:
            return login_manager.unauthorized()
        if not current_user.is_admin:
            raise Forbidden()
        return view(*args, **kwargs)

    return wrapper
