from __future__ import annotations

import logging
from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import jsonify, request
from flask_jwt_extended import get_jwt, get_jwt_identity, verify_jwt_in_request

logger = logging.getLogger(__name__)


def current_user_id() -> int | None:
    raw_identity = get_jwt_identity()
    try:
        return int(raw_identity)
    except (TypeError, ValueError):
        return None


def require_permissions(*required_permissions: str) -> Callable[..., Any]:
    required_set = set(required_permissions)

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            verify_jwt_in_request()
            claims = get_jwt()
            permissions = set(claims.get("permissions", []))

            missing = required_set - permissions
            if missing:
                logger.warning(
                    f"Access denied for user {get_jwt_identity()} on {request.path}: "
                    f"missing {', '.join(sorted(missing))}"
                )
                return jsonify({"message": "Forbidden"}), 403

            return func(*args, **kwargs)

        return wrapper

    return decorator
