"""moderation pipeline schema: sales, items, item images, profiles, user flags

Revision ID: 3b7d1e9a0c42
Revises:
Create Date: 2026-10-19 09:30:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3b7d1e9a0c42"
down_revision = None
branch_labels = None
depends_on = None


def _create_indexes(insp, table_name: str, indexes) -> None:
    existing = {str(idx.get("name") or "") for idx in insp.get_indexes(table_name)}
    for name, columns in indexes:
        if name not in existing:
            op.create_index(name, table_name, columns, unique=False)


def upgrade() -> None:
    bind = op.get_bind()
    insp = sa.inspect(bind)

    if not insp.has_table("sales"):
        op.create_table(
            "sales",
            sa.Column("id", sa.String(length=64), nullable=False),
            sa.Column("user_id", sa.String(length=128), nullable=False),
            sa.Column("title", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("address", sa.String(length=300), nullable=False),
            sa.Column("latitude", sa.Float(), nullable=False),
            sa.Column("longitude", sa.Float(), nullable=False),
            sa.Column("start_date", sa.DateTime(), nullable=True),
            sa.Column("end_date", sa.DateTime(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False),
            sa.Column("sale_cover_photo", sa.String(length=1024), nullable=False, server_default=""),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
    _create_indexes(insp, "sales", (
        ("ix_sales_user_id", ["user_id"]),
        ("ix_sales_created_at", ["created_at"]),
    ))

    if not insp.has_table("items"):
        op.create_table(
            "items",
            sa.Column("id", sa.String(length=64), nullable=False),
            sa.Column("sale_id", sa.String(length=64), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("price", sa.Float(), nullable=False),
            sa.Column("category", sa.String(length=64), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["sale_id"], ["sales.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
    _create_indexes(insp, "items", (
        ("ix_items_sale_id", ["sale_id"]),
        ("ix_items_created_at", ["created_at"]),
    ))

    if not insp.has_table("item_images"):
        op.create_table(
            "item_images",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("item_id", sa.String(length=64), nullable=False),
            sa.Column("position", sa.Integer(), nullable=False),
            sa.Column("url", sa.String(length=1024), nullable=False),
            sa.ForeignKeyConstraint(["item_id"], ["items.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
    _create_indexes(insp, "item_images", (
        ("ix_item_images_item_id", ["item_id"]),
        ("ix_item_images_url", ["url"]),
    ))

    if not insp.has_table("profiles"):
        op.create_table(
            "profiles",
            sa.Column("user_id", sa.String(length=128), nullable=False),
            sa.Column("email", sa.String(length=255), nullable=False),
            sa.Column("display_name", sa.String(length=120), nullable=False),
            sa.Column("bio", sa.Text(), nullable=True),
            sa.Column("dob", sa.DateTime(), nullable=True),
            sa.Column("photo_url", sa.String(length=1024), nullable=False, server_default=""),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint("user_id"),
        )

    if not insp.has_table("user_flags"):
        op.create_table(
            "user_flags",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("user_id", sa.String(length=128), nullable=False),
            sa.Column("strikes", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("last_strike_at", sa.DateTime(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("user_id", name="uq_user_flags_user_id"),
        )
    _create_indexes(insp, "user_flags", (
        ("ix_user_flags_user_id", ["user_id"]),
    ))


def downgrade() -> None:
    bind = op.get_bind()
    insp = sa.inspect(bind)
    for table_name in ("user_flags", "profiles", "item_images", "items", "sales"):
        if insp.has_table(table_name):
            op.drop_table(table_name)
