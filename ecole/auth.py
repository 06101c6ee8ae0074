"""Bearer token authentication for the REST API.

Tokens are issued elsewhere; this module only verifies them. A token is a
JWT signed with ``SECRET_KEY`` carrying the caller's ``userId``.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from functools import wraps

import jwt
from flask import current_app, g, request
from flask_restx import abort

from .extensions import db
from .models import User


def create_token(user_id: int, *, expires_in: timedelta = timedelta(hours=24)) -> str:
    payload = {
        "userId": user_id,
        "exp": datetime.now(timezone.utc) + expires_in,
    }
    return jwt.encode(
        payload,
        current_app.config["SECRET_KEY"],
        algorithm=current_app.config.get("JWT_ALGORITHM", "HS256"),
    )


def _authenticate() -> User:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if not header or scheme.lower() != "bearer" or not token:
        abort(401, "Jeton d'accès requis")
    try:
        claims = jwt.decode(
            token,
            current_app.config["SECRET_KEY"],
            algorithms=[current_app.config.get("JWT_ALGORITHM", "HS256")],
        )
    except jwt.PyJWTError:
        abort(403, "Jeton invalide ou expiré")
    user_id = claims.get("userId")
    user = db.session.get(User, user_id) if isinstance(user_id, int) else None
    if user is None:
        abort(401, "Jeton invalide")
    g.current_user = user
    return user


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        _authenticate()
        return view(*args, **kwargs)

    return wrapper


def admin_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        user = _authenticate()
        if not user.admin:
            abort(403, "Droits administrateur requis")
        return view(*args, **kwargs)

    return wrapper
