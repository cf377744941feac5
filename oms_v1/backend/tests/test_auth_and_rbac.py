from __future__ import annotations

from app.extensions import db
from app.models import Role, User


def _bootstrap_admin(client):
    return client.post(
        "/api/v1/auth/bootstrap-admin",
        json={"email": "admin1@example.com", "password": "Admin123!", "name": "First Admin"},
    )


def _admin_token(client) -> str:
    _bootstrap_admin(client)
    login = client.post(
        "/api/v1/auth/login",
        json={"email": "admin1@example.com", "password": "Admin123!"},
    )
    return login.get_json()["access_token"]


def _create_user(client, token: str, email: str, roles: list[str]):
    return client.post(
        "/api/v1/admin/users",
        json={"email": email, "password": "User123!", "name": "Staff", "roles": roles},
        headers={"Authorization": f"Bearer {token}"},
    )


def test_bootstrap_admin_only_once(client):
    first = _bootstrap_admin(client)
    assert first.status_code == 201
    data = first.get_json()
    assert data["user"]["roles"] == ["admin"]
    assert "cache.manage" in data["user"]["permissions"]
    assert "refresh_token" in data

    second = _bootstrap_admin(client)
    assert second.status_code == 409


def test_bootstrap_admin_requires_credentials(client):
    response = client.post("/api/v1/auth/bootstrap-admin", json={"email": "admin1@example.com"})
    assert response.status_code == 400


def test_login_and_me(client):
    _bootstrap_admin(client)

    login_response = client.post(
        "/api/v1/auth/login",
        json={"email": "ADMIN1@example.com", "password": "Admin123!"},
    )
    assert login_response.status_code == 200
    login_data = login_response.get_json()
    assert "access_token" in login_data
    assert "refresh_token" in login_data

    me = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {login_data['access_token']}"})
    assert me.status_code == 200
    assert me.get_json()["email"] == "admin1@example.com"
    assert me.get_json()["name"] == "First Admin"
    assert me.get_json()["last_login_at"] is not None


def test_login_rejects_bad_password(client):
    _bootstrap_admin(client)

    response = client.post(
        "/api/v1/auth/login",
        json={"email": "admin1@example.com", "password": "wrong"},
    )
    assert response.status_code == 401
    assert response.get_json() == {"message": "invalid credentials"}


def test_login_rejects_inactive_user(client):
    _bootstrap_admin(client)
    user = db.session.query(User).filter_by(email="admin1@example.com").one()
    user.is_active = False
    db.session.commit()

    response = client.post(
        "/api/v1/auth/login",
        json={"email": "admin1@example.com", "password": "Admin123!"},
    )
    assert response.status_code == 401


def test_refresh_issues_new_access_token(client):
    refresh_token = _bootstrap_admin(client).get_json()["refresh_token"]

    response = client.post("/api/v1/auth/refresh", headers={"Authorization": f"Bearer {refresh_token}"})
    assert response.status_code == 200
    assert "access_token" in response.get_json()


def test_access_token_cannot_refresh(client):
    access_token = _bootstrap_admin(client).get_json()["access_token"]

    response = client.post("/api/v1/auth/refresh", headers={"Authorization": f"Bearer {access_token}"})
    assert response.status_code == 401


def test_invalid_token_is_rejected(client):
    response = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


def test_admin_can_create_staff_users(client):
    token = _admin_token(client)

    response = _create_user(client, token, "ops1@example.com", ["ops"])
    assert response.status_code == 201
    assert response.get_json()["roles"] == ["ops"]

    duplicate = _create_user(client, token, "ops1@example.com", ["ops"])
    assert duplicate.status_code == 409

    unknown = _create_user(client, token, "ops2@example.com", ["warehouse"])
    assert unknown.status_code == 400
    assert unknown.get_json()["roles"] == ["warehouse"]


def test_ops_user_permissions_come_from_role(client):
    token = _admin_token(client)
    _create_user(client, token, "ops1@example.com", ["ops"])

    login = client.post("/api/v1/auth/login", json={"email": "ops1@example.com", "password": "User123!"})
    permissions = login.get_json()["user"]["permissions"]
    assert permissions == ["order.tracking.export", "order.tracking.read", "order.tracking.update"]


def test_admin_role_assignment_requires_permission(client):
    token = _admin_token(client)
    _create_user(client, token, "accounts1@example.com", ["accounts"])
    accounts_login = client.post(
        "/api/v1/auth/login",
        json={"email": "accounts1@example.com", "password": "User123!"},
    )
    accounts_token = accounts_login.get_json()["access_token"]

    target_user = db.session.query(User).filter_by(email="accounts1@example.com").one()

    forbidden_response = client.post(
        f"/api/v1/admin/users/{target_user.id}/roles",
        json={"roles": ["admin"]},
        headers={"Authorization": f"Bearer {accounts_token}"},
    )
    assert forbidden_response.status_code == 403


def test_admin_can_assign_roles(client):
    token = _admin_token(client)
    _create_user(client, token, "user3@example.com", ["vendor"])
    user = db.session.query(User).filter_by(email="user3@example.com").one()

    assign_response = client.post(
        f"/api/v1/admin/users/{user.id}/roles",
        json={"roles": ["ops", "accounts"]},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert assign_response.status_code == 200
    assert assign_response.get_json()["roles"] == ["accounts", "ops"]

    refreshed_user = db.session.get(User, user.id)
    assert sorted(role.name for role in refreshed_user.roles) == ["accounts", "ops"]


def test_assign_roles_validation(client):
    token = _admin_token(client)

    empty = client.post(
        "/api/v1/admin/users/1/roles", json={"roles": []}, headers={"Authorization": f"Bearer {token}"}
    )
    missing_user = client.post(
        "/api/v1/admin/users/999/roles", json={"roles": ["ops"]}, headers={"Authorization": f"Bearer {token}"}
    )
    assert empty.status_code == 400
    assert missing_user.status_code == 404


def test_admin_users_requires_permission(client, vendor_headers):
    response = client.get("/api/v1/admin/users", headers=vendor_headers)
    assert response.status_code == 403


def test_admin_users_lists_and_filters(client):
    token = _admin_token(client)
    _create_user(client, token, "ops1@example.com", ["ops"])
    _create_user(client, token, "ops2@example.com", ["ops"])

    response = client.get("/api/v1/admin/users?page_size=2", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    data = response.get_json()
    assert len(data["items"]) == 2
    assert data["pagination"]["total"] == 3
    assert data["pagination"]["total_pages"] == 2

    ops_only = client.get("/api/v1/admin/users?role=ops", headers={"Authorization": f"Bearer {token}"})
    assert {item["email"] for item in ops_only.get_json()["items"]} == {"ops1@example.com", "ops2@example.com"}


def test_cache_admin_endpoints(client, fake_redis):
    token = _admin_token(client)
    headers = {"Authorization": f"Bearer {token}"}
    client.get("/api/v1/order-tracking/summary", headers=headers)

    stats = client.get("/api/v1/admin/cache/stats", headers=headers)
    assert stats.get_json() == {"enabled": True, "connected": True, "keys": 1, "prefix": "test"}

    cleared = client.delete("/api/v1/admin/cache", headers=headers)
    assert cleared.get_json() == {"deleted": 1}
    assert fake_redis.store == {}


def test_cache_admin_requires_permission(client, ops_headers):
    assert client.get("/api/v1/admin/cache/stats", headers=ops_headers).status_code == 403
    assert client.delete("/api/v1/admin/cache", headers=ops_headers).status_code == 403


def test_seeded_roles_match_permission_table(app):
    role_names = sorted(role.name for role in db.session.query(Role).all())
    assert role_names == ["accounts", "admin", "ops", "vendor"]


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.get_json() == {"status": "ok", "cache": "enabled"}


def test_unknown_route_returns_json_404(client):
    response = client.get("/api/v1/nowhere")
    assert response.status_code == 404
    assert "message" in response.get_json()
