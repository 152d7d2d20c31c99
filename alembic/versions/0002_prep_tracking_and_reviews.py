from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


revision = "0002_prep_tracking_and_reviews"
down_revision = "0001_create_schema"
branch_labels = None
depends_on = None


def _has_column(inspector, table_name: str, column_name: str) -> bool:
    return any(col["name"] == column_name for col in inspector.get_columns(table_name))


def upgrade() -> None:
    bind = op.get_bind()
    inspector = inspect(bind)

    if not _has_column(inspector, "order_items", "started_preparing_at"):
        with op.batch_alter_table("order_items") as batch_op:
            batch_op.add_column(sa.Column("started_preparing_at", sa.DateTime(timezone=True), nullable=True))

    inspector = inspect(bind)
    if "dish_reviews" not in inspector.get_table_names():
        op.create_table(
            "dish_reviews",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("menu_item_id", sa.Integer(), sa.ForeignKey("menu_items.id"), nullable=False),
            sa.Column("rating", sa.Integer(), nullable=False),
            sa.Column("comment", sa.Text(), nullable=True),
            sa.Column("customer_name", sa.String(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
            sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_dish_reviews_rating"),
        )
        op.create_index("ix_dish_reviews_menu_item_id", "dish_reviews", ["menu_item_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_dish_reviews_menu_item_id", table_name="dish_reviews")
    op.drop_table("dish_reviews")
    with op.batch_alter_table("order_items") as batch_op:
        batch_op.drop_column("started_preparing_at")
