from __future__ import annotations

import fnmatch
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from app import create_app
from app.constants import (
    ASSIGNMENT_PENDING_CONFIRMATION,
    GRN_ITEM_VERIFIED_OK,
    PAYMENT_PENDING,
)
from app.extensions import cache, db
from app.models import (
    AssignedOrderItem,
    GoodsReceiptItem,
    GoodsReceiptNote,
    Order,
    OrderItem,
    Payment,
    PurchaseOrder,
    PurchaseOrderItem,
    Role,
    User,
    VendorProfile,
)
from app.security.password import hash_password
from app.services.auth_service import seed_roles_and_permissions


class TestConfig:
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JWT_SECRET_KEY = "test-secret-with-enough-length-for-hs256"
    REDIS_URL = ""
    CACHE_KEY_PREFIX = "test"
    ORDER_TRACKING_LIST_TTL = 300
    ORDER_TRACKING_SUMMARY_TTL = 180
    ORDER_TRACKING_DETAIL_TTL = 60
    ORDER_TRACKING_EXPORT_LIMIT = 10000
    LOG_LEVEL = "WARNING"


class FakeRedis:
    """In-memory stand-in for the redis-py calls the cache service makes."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value):
        self.store[key] = value
        return True

    def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl
        return True

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    def exists(self, key):
        return int(key in self.store)

    def scan_iter(self, match="*", count=None):
        return iter([key for key in list(self.store) if fnmatch.fnmatchcase(key, match)])

    def dbsize(self):
        return len(self.store)

    def flushdb(self):
        self.store.clear()
        self.ttls.clear()
        return True


@pytest.fixture()
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture()
def app(fake_redis):
    app = create_app(TestConfig)
    cache.init_app(app, client=fake_redis)
    with app.app_context():
        db.create_all()
        seed_roles_and_permissions()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


def create_user_with_role(email: str, password: str, role_name: str) -> User:
    role = db.session.query(Role).filter_by(name=role_name).one()
    user = User(email=email, name=role_name.title(), password_hash=hash_password(password), is_active=True)
    user.roles.append(role)
    db.session.add(user)
    db.session.commit()
    db.session.refresh(user)
    return user


def login(client, email: str, password: str) -> str:
    response = client.post("/api/v1/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.get_json()
    return response.get_json()["access_token"]


def auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def admin_user(app) -> User:
    return create_user_with_role("admin@example.com", "Admin123!", "admin")


@pytest.fixture()
def admin_headers(client, admin_user) -> dict[str, str]:
    return auth_header(login(client, "admin@example.com", "Admin123!"))


@pytest.fixture()
def ops_headers(client) -> dict[str, str]:
    create_user_with_role("ops@example.com", "Ops12345!", "ops")
    return auth_header(login(client, "ops@example.com", "Ops12345!"))


@pytest.fixture()
def accounts_headers(client) -> dict[str, str]:
    create_user_with_role("accounts@example.com", "Accounts1!", "accounts")
    return auth_header(login(client, "accounts@example.com", "Accounts1!"))


@pytest.fixture()
def vendor_headers(client) -> dict[str, str]:
    create_user_with_role("vendor@example.com", "Vendor123!", "vendor")
    return auth_header(login(client, "vendor@example.com", "Vendor123!"))


class OrderFactory:
    """Builds orders and their fulfilment rows directly in the test database."""

    def __init__(self) -> None:
        self._sequence = 0

    def _next(self) -> int:
        self._sequence += 1
        return self._sequence

    def vendor(self, company_name: str = "Acme Supplies") -> VendorProfile:
        vendor = VendorProfile(
            company_name=company_name,
            contact_person_name="Jordan Lee",
            contact_phone="9876543210",
            verified=True,
        )
        db.session.add(vendor)
        db.session.commit()
        return vendor

    def order(
        self,
        *,
        vendor: VendorProfile | None = None,
        created_at: datetime | None = None,
        items: list[tuple[str, int]] | None = None,
        client_order_id: str | None = None,
    ) -> Order:
        seq = self._next()
        order = Order(
            client_order_id=client_order_id or f"CLIENT-{seq:04d}",
            order_number=f"ORD-{seq:04d}",
            primary_vendor_id=vendor.id if vendor else None,
        )
        if created_at is not None:
            order.created_at = created_at
        for index, (product_name, quantity) in enumerate(items or [("Widget", 10)], start=1):
            order.items.append(
                OrderItem(
                    product_name=product_name,
                    sku=f"SKU-{seq}-{index}",
                    quantity=quantity,
                    price_per_unit=Decimal("12.50"),
                    total_price=Decimal("12.50") * quantity,
                )
            )
        db.session.add(order)
        db.session.commit()
        return order

    def item(self, **kwargs) -> OrderItem:
        return self.order(**kwargs).items[0]

    def assign(
        self,
        item: OrderItem,
        vendor: VendorProfile,
        status: str = ASSIGNMENT_PENDING_CONFIRMATION,
        *,
        assigned_at: datetime | None = None,
    ) -> AssignedOrderItem:
        assignment = AssignedOrderItem(
            order_item_id=item.id,
            vendor_id=vendor.id,
            status=status,
            assigned_quantity=item.quantity,
            assigned_at=assigned_at or datetime.now(timezone.utc),
        )
        db.session.add(assignment)
        db.session.commit()
        return assignment

    def purchase_order(
        self, assignment: AssignedOrderItem, payment_status: str | None = PAYMENT_PENDING
    ) -> PurchaseOrder:
        seq = self._next()
        purchase_order = PurchaseOrder(
            po_number=f"PO-{seq:04d}",
            vendor_id=assignment.vendor_id,
            status="ISSUED",
            total_amount=Decimal("100.00"),
        )
        purchase_order.items.append(
            PurchaseOrderItem(
                assigned_order_item_id=assignment.id,
                quantity=assignment.assigned_quantity,
                price_per_unit=Decimal("10.00"),
                total_price=Decimal("100.00"),
            )
        )
        if payment_status is not None:
            purchase_order.payment = Payment(amount=Decimal("100.00"), status=payment_status)
        db.session.add(purchase_order)
        db.session.commit()
        return purchase_order

    def goods_receipt(self, assignment: AssignedOrderItem, status: str = GRN_ITEM_VERIFIED_OK) -> GoodsReceiptItem:
        seq = self._next()
        note = GoodsReceiptNote(grn_number=f"GRN-{seq:04d}")
        grn_item = GoodsReceiptItem(
            assigned_order_item_id=assignment.id,
            assigned_quantity=assignment.assigned_quantity,
            confirmed_quantity=assignment.assigned_quantity,
            received_quantity=assignment.assigned_quantity,
            status=status,
        )
        note.items.append(grn_item)
        db.session.add(note)
        db.session.commit()
        return grn_item


@pytest.fixture()
def factory(app) -> OrderFactory:
    return OrderFactory()


@pytest.fixture()
def days_ago():
    now = datetime.now(timezone.utc)
    return lambda days: now - timedelta(days=days)
