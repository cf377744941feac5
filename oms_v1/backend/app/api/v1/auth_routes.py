import logging

from flask import Blueprint, request
from flask_jwt_extended import (
    create_access_token,
    create_refresh_token,
    jwt_required,
)
from sqlalchemy.exc import IntegrityError

from app.security.decorators import current_user_id
from app.services.auth_service import (
    any_users_exist,
    authenticate_user,
    build_auth_claims,
    create_user,
    find_role_by_name,
    find_user_by_id,
)

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__)


@auth_bp.post("/bootstrap-admin")
def bootstrap_admin() -> tuple[dict[str, object], int]:
    payload = request.get_json(silent=True) or {}
    email = str(payload.get("email", "")).strip().lower()
    password = str(payload.get("password", ""))
    name = str(payload.get("name") or "").strip()

    if not email or not password:
        return {"message": "email and password are required"}, 400
    if len(name) > 255:
        return {"message": "name exceeds max length 255"}, 400

    if any_users_exist():
        return {"message": "bootstrap already completed"}, 409

    admin_role = find_role_by_name("admin")
    if admin_role is None:
        return {"message": "admin role not found; run migrations"}, 500

    try:
        user = create_user(email=email, password=password, name=name, roles=[admin_role])
    except IntegrityError:
        return {"message": "email already exists"}, 409

    logger.info(f"Bootstrap admin created: {user.email}")
    return _token_response(user, include_refresh=True), 201


@auth_bp.post("/login")
def login() -> tuple[dict[str, object], int]:
    payload = request.get_json(silent=True) or {}
    email = str(payload.get("email", "")).strip().lower()
    password = str(payload.get("password", ""))

    if not email or not password:
        return {"message": "email and password are required"}, 400

    user = authenticate_user(email, password)
    if user is None:
        logger.warning(f"Failed login attempt for {email}")
        return {"message": "invalid credentials"}, 401

    return _token_response(user, include_refresh=True), 200


@auth_bp.post("/refresh")
@jwt_required(refresh=True)
def refresh() -> tuple[dict[str, str], int]:
    identity = current_user_id()
    if identity is None:
        return {"message": "invalid token identity"}, 401
    user = find_user_by_id(identity)
    if user is None or not user.is_active:
        return {"message": "user not found or inactive"}, 401

    claims = build_auth_claims(user)
    access_token = create_access_token(identity=str(user.id), additional_claims=claims)
    return {"access_token": access_token}, 200


@auth_bp.get("/me")
@jwt_required()
def me() -> tuple[dict[str, object], int]:
    identity = current_user_id()
    if identity is None:
        return {"message": "invalid token identity"}, 401
    user = find_user_by_id(identity)
    if user is None:
        return {"message": "user not found"}, 404

    claims = build_auth_claims(user)
    return build_user_response(user, claims["roles"], claims["permissions"]), 200


def _token_response(user, include_refresh: bool = False) -> dict[str, object]:
    claims = build_auth_claims(user)
    response: dict[str, object] = {
        "access_token": create_access_token(identity=str(user.id), additional_claims=claims),
        "user": build_user_response(user, claims["roles"], claims["permissions"]),
    }
    if include_refresh:
        response["refresh_token"] = create_refresh_token(identity=str(user.id))
    return response


def build_user_response(user, roles: list[str], permissions: list[str] | None = None) -> dict[str, object]:
    response: dict[str, object] = {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "is_active": user.is_active,
        "roles": roles,
        "last_login_at": user.last_login_at.isoformat() if user.last_login_at else None,
    }
    if permissions is not None:
        response["permissions"] = permissions
    return response
