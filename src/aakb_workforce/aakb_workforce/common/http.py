from __future__ import annotations

import logging
from datetime import date, datetime, time
from enum import Enum
from functools import wraps

from flask import Flask, jsonify, request, session
from werkzeug.exceptions import HTTPException

from ..core.enums import Role
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DeviceNotAuthorized,
    DomainError,
    NoActiveSession,
    NotFoundError,
    StoreUnavailable,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Most specific first: DeviceNotAuthorized is an AuthorizationError.
_STATUS_BY_ERROR: list[tuple[type[DomainError], int, str]] = [
    (ValidationError, 400, "VALIDATION_ERROR"),
    (AuthenticationError, 401, "AUTHENTICATION_ERROR"),
    (DeviceNotAuthorized, 403, "DEVICE_NOT_AUTHORIZED"),
    (AuthorizationError, 403, "FORBIDDEN"),
    (NotFoundError, 404, "NOT_FOUND"),
    (NoActiveSession, 409, "NO_ACTIVE_SESSION"),
    (StoreUnavailable, 503, "STORE_UNAVAILABLE"),
]


def to_jsonable(value):
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, dict):
        return {(k.value if isinstance(k, Enum) else k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    if hasattr(value, "__dataclass_fields__"):
        return {name: to_jsonable(getattr(value, name)) for name in value.__dataclass_fields__}
    return value


def ok(data=None, status: int = 200, **meta):
    payload = {"success": True, "data": to_jsonable(data)}
    if meta:
        payload["meta"] = to_jsonable(meta)
    return jsonify(payload), status


def fail(message: str = "Bad Request", status: int = 400, code: str | None = None):
    err = {"message": message}
    if code:
        err["code"] = code
    return jsonify({"success": False, "error": err}), status


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def _domain(e: DomainError):
        for exc_type, status, code in _STATUS_BY_ERROR:
            if isinstance(e, exc_type):
                if isinstance(e, StoreUnavailable):
                    logger.error("Store unavailable: %s", e)
                return fail(str(e) or code, status=status, code=code)
        return fail(str(e), status=400, code="DOMAIN_ERROR")

    @app.errorhandler(HTTPException)
    def _http(e: HTTPException):
        return fail(e.description or e.name, status=e.code or 500)

    @app.errorhandler(Exception)
    def _unhandled(e: Exception):
        logger.exception("Unhandled error")
        return fail("Internal server error", status=500)


def current_user_id() -> int:
    return int(session["user_id"])


def current_role() -> Role:
    return Role(session.get("role"))


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return fail("Please log in to continue", status=401, code="UNAUTHENTICATED")
        return view(*args, **kwargs)

    return wrapper


def roles_required(*roles: Role):
    allowed = {r.value for r in roles}

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return fail("Please log in to continue", status=401, code="UNAUTHENTICATED")
            if session.get("role") not in allowed:
                return fail("You do not have permission", status=403, code="FORBIDDEN")
            return view(*args, **kwargs)

        return wrapper

    return decorator


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def int_arg(name: str, default: int | None = None) -> int | None:
    raw = request.args.get(name)
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")
