"""seed roles and permissions

Revision ID: 20261019_0002
Revises: 20261019_0001
Create Date: 2026-10-19 00:15:00
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "20261019_0002"
down_revision: str | None = "20261019_0001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

# frozen copy; later permission changes get their own revision
ROLE_PERMISSIONS = {
    "admin": [
        "order.tracking.read",
        "order.tracking.update",
        "order.tracking.export",
        "user.read",
        "user.create",
        "user.role.update",
        "cache.manage",
    ],
    "ops": ["order.tracking.read", "order.tracking.update", "order.tracking.export"],
    "accounts": ["order.tracking.read", "order.tracking.export"],
    "vendor": [],
}


def upgrade() -> None:
    roles_table = sa.table(
        "roles",
        sa.column("id", sa.Integer),
        sa.column("name", sa.String),
    )
    permissions_table = sa.table(
        "permissions",
        sa.column("id", sa.Integer),
        sa.column("code", sa.String),
    )
    role_permissions_table = sa.table(
        "role_permissions",
        sa.column("role_id", sa.Integer),
        sa.column("permission_id", sa.Integer),
    )

    op.bulk_insert(roles_table, [{"name": name} for name in ROLE_PERMISSIONS])
    op.bulk_insert(permissions_table, [{"code": code} for code in ROLE_PERMISSIONS["admin"]])

    connection = op.get_bind()
    role_rows = connection.execute(sa.text("SELECT id, name FROM roles")).mappings().all()
    permission_rows = connection.execute(sa.text("SELECT id, code FROM permissions")).mappings().all()

    role_id_by_name = {row["name"]: row["id"] for row in role_rows}
    permission_id_by_code = {row["code"]: row["id"] for row in permission_rows}

    op.bulk_insert(
        role_permissions_table,
        [
            {"role_id": role_id_by_name[role_name], "permission_id": permission_id_by_code[code]}
            for role_name, codes in ROLE_PERMISSIONS.items()
            for code in codes
        ],
    )


def downgrade() -> None:
    connection = op.get_bind()
    role_names = sa.bindparam("names", expanding=True)
    codes = sa.bindparam("codes", expanding=True)

    connection.execute(
        sa.text("DELETE FROM role_permissions WHERE role_id IN (SELECT id FROM roles WHERE name IN :names)").bindparams(
            role_names
        ),
        {"names": list(ROLE_PERMISSIONS)},
    )
    connection.execute(
        sa.text("DELETE FROM permissions WHERE code IN :codes").bindparams(codes),
        {"codes": ROLE_PERMISSIONS["admin"]},
    )
    connection.execute(
        sa.text("DELETE FROM roles WHERE name IN :names").bindparams(role_names),
        {"names": list(ROLE_PERMISSIONS)},
    )
