from __future__ import annotations

import logging

from flask import Blueprint, request
from flask_jwt_extended import get_jwt_identity
from sqlalchemy.exc import IntegrityError

from app.extensions import cache
from app.security.decorators import require_permissions
from app.services.auth_service import (
    assign_roles_to_user,
    create_user,
    find_role_by_name,
    find_user_by_id,
    list_users,
)

logger = logging.getLogger(__name__)

admin_bp = Blueprint("admin", __name__)


@admin_bp.get("/users")
@require_permissions("user.read")
def get_users() -> tuple[dict[str, list[dict[str, object]]], int]:
    role_filter = request.args.get("role")
    page = _int_query_arg("page", 1, minimum=1)
    page_size = _int_query_arg("page_size", 20, minimum=1, maximum=100)

    users = list_users()
    if role_filter:
        normalized_role = role_filter.strip().lower()
        users = [u for u in users if any(r.name == normalized_role for r in u.roles)]

    total = len(users)
    start = (page - 1) * page_size
    page_users = users[start:start + page_size]

    return {
        "items": [_serialize_user(user) for user in page_users],
        "pagination": {
            "page": page,
            "page_size": page_size,
            "total": total,
            "total_pages": (total + page_size - 1) // page_size,
        },
    }, 200


@admin_bp.post("/users")
@require_permissions("user.create")
def create_staff_user() -> tuple[dict[str, object], int]:
    payload = request.get_json(silent=True) or {}
    email = str(payload.get("email", "")).strip().lower()
    password = str(payload.get("password", ""))
    name = str(payload.get("name") or "").strip()

    if not email or not password:
        return {"message": "email and password are required"}, 400

    roles, error = _resolve_roles(payload.get("roles"))
    if error:
        return error, 400

    try:
        user = create_user(email=email, password=password, name=name, roles=roles)
    except IntegrityError:
        return {"message": "email already exists"}, 409

    logger.info(f"User {get_jwt_identity()} created user {user.email} with roles {_role_names(user)}")
    return _serialize_user(user), 201


@admin_bp.post("/users/<int:user_id>/roles")
@require_permissions("user.role.update")
def update_user_roles(user_id: int) -> tuple[dict[str, object], int]:
    payload = request.get_json(silent=True) or {}
    roles, error = _resolve_roles(payload.get("roles"))
    if error:
        return error, 400

    user = find_user_by_id(user_id)
    if user is None:
        return {"message": "user not found"}, 404

    updated_user = assign_roles_to_user(user, roles)
    logger.info(f"User {get_jwt_identity()} set roles of user {user_id} to {_role_names(updated_user)}")
    return {
        "id": updated_user.id,
        "email": updated_user.email,
        "roles": _role_names(updated_user),
    }, 200


@admin_bp.get("/cache/stats")
@require_permissions("cache.manage")
def cache_stats() -> tuple[dict[str, object], int]:
    stats = cache.stats()
    if stats is None:
        return {"enabled": False}, 200
    return {"enabled": True, **stats}, 200


@admin_bp.delete("/cache")
@require_permissions("cache.manage")
def flush_cache() -> tuple[dict[str, object], int]:
    pattern = request.args.get("pattern")
    deleted = cache.invalidate(pattern) if pattern else cache.flush()
    logger.info(f"User {get_jwt_identity()} cleared {deleted} cache keys")
    return {"deleted": deleted}, 200


def _resolve_roles(role_names: object) -> tuple[list, dict[str, object] | None]:
    if not isinstance(role_names, list) or not role_names:
        return [], {"message": "roles must be a non-empty list"}

    normalized = sorted({str(role).strip().lower() for role in role_names if str(role).strip()})
    roles = []
    missing_roles = []
    for role_name in normalized:
        role = find_role_by_name(role_name)
        if role is None:
            missing_roles.append(role_name)
        else:
            roles.append(role)

    if missing_roles:
        return [], {"message": "unknown roles", "roles": missing_roles}
    return roles, None


def _role_names(user) -> list[str]:
    return sorted(role.name for role in user.roles)


def _serialize_user(user) -> dict[str, object]:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "is_active": user.is_active,
        "roles": _role_names(user),
        "last_login_at": user.last_login_at.isoformat() if user.last_login_at else None,
    }


def _int_query_arg(
    name: str,
    default: int,
    *,
    minimum: int | None = None,
    maximum: int | None = None,
) -> int:
    raw = request.args.get(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    if minimum is not None and value < minimum:
        return minimum
    if maximum is not None and value > maximum:
        return maximum
    return value
