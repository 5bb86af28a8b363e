"""prep_tasks_baseline

Revision ID: 3f2b9c1d7a10
Revises:
Create Date: 2026-10-19 09:30:00.000000

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3f2b9c1d7a10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

QTY = sa.Numeric(18, 3)


def _ts(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=nullable,
        server_default=None if nullable else sa.func.now(),
    )


def upgrade() -> None:
    # 只读参考数据
    op.create_table(
        "departments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("code", sa.String(32), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        _ts("created_at"),
        sa.UniqueConstraint("code", name="uq_departments_code"),
    )
    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("sku_code", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("low_stock_threshold", QTY, nullable=False, server_default=sa.text("0")),
        sa.Column("near_expiry_days", sa.Integer(), nullable=False, server_default=sa.text("0")),
        _ts("created_at"),
        sa.UniqueConstraint("sku_code", name="uq_products_sku_code"),
    )

    # 批次
    op.create_table(
        "inventory_lots",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "product_id",
            sa.Integer(),
            sa.ForeignKey("products.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "department_id",
            sa.Integer(),
            sa.ForeignKey("departments.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("lot_no", sa.String(64), nullable=False),
        sa.Column("expiry_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("quantity_on_hand", QTY, nullable=False, server_default=sa.text("0")),
        sa.Column("conversion_rate", QTY, nullable=False, server_default=sa.text("1")),
        _ts("created_at"),
        _ts("updated_at"),
        sa.CheckConstraint("quantity_on_hand >= 0", name="ck_inventory_lots_qty_nonneg"),
        sa.CheckConstraint("conversion_rate > 0", name="ck_inventory_lots_conv_pos"),
        sa.UniqueConstraint(
            "product_id", "department_id", "lot_no", name="uq_inventory_lots_prod_dept_lot"
        ),
    )
    op.create_index("ix_inventory_lots_product", "inventory_lots", ["product_id"])
    op.create_index("ix_inventory_lots_expiry", "inventory_lots", ["expiry_at"])

    # 订单（协作方表，这里只建备货链路用到的列）
    op.create_table(
        "sales_orders",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("order_no", sa.String(64), nullable=False),
        sa.Column("status", sa.String(32), nullable=False, server_default=sa.text("'confirmed'")),
        _ts("created_at"),
        sa.UniqueConstraint("order_no", name="uq_sales_orders_order_no"),
    )
    op.create_table(
        "sales_order_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "order_id",
            sa.Integer(),
            sa.ForeignKey("sales_orders.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "product_id",
            sa.Integer(),
            sa.ForeignKey("products.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("quantity", QTY, nullable=False),
        sa.Column("remain", QTY, nullable=False),
        sa.CheckConstraint("remain >= 0", name="ck_sales_order_items_remain_nonneg"),
    )
    op.create_index("ix_sales_order_items_order", "sales_order_items", ["order_id"])

    # 备货任务
    op.create_table(
        "prep_tasks",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "order_id",
            sa.Integer(),
            sa.ForeignKey("sales_orders.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("supervisor_id", sa.Integer(), nullable=True),
        sa.Column("packer_id", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(32), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        _ts("created_at"),
        _ts("updated_at"),
        _ts("started_at", nullable=True),
        _ts("completed_at", nullable=True),
        sa.CheckConstraint(
            "status IN ('pending','in_progress','completed','cancelled')",
            name="ck_prep_tasks_status",
        ),
    )
    op.create_index("ix_prep_tasks_order", "prep_tasks", ["order_id"])
    op.create_index("ix_prep_tasks_status", "prep_tasks", ["status"])
    op.create_index("ix_prep_tasks_supervisor", "prep_tasks", ["supervisor_id"])
    op.create_index("ix_prep_tasks_packer", "prep_tasks", ["packer_id"])

    op.create_table(
        "prep_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "task_id",
            sa.Integer(),
            sa.ForeignKey("prep_tasks.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "order_item_id",
            sa.Integer(),
            sa.ForeignKey("sales_order_items.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "lot_id",
            sa.Integer(),
            sa.ForeignKey("inventory_lots.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("requested_qty", QTY, nullable=False),
        sa.Column("packed_qty", QTY, nullable=False, server_default=sa.text("0")),
        sa.Column("pre_evidence", sa.Text(), nullable=True),
        sa.Column("post_evidence", sa.Text(), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        _ts("created_at"),
        _ts("updated_at"),
        sa.CheckConstraint("requested_qty > 0", name="ck_prep_items_requested_pos"),
        sa.CheckConstraint("packed_qty >= 0", name="ck_prep_items_packed_nonneg"),
    )
    op.create_index("ix_prep_items_task", "prep_items", ["task_id"])
    op.create_index("ix_prep_items_order_item", "prep_items", ["order_item_id"])
    op.create_index("ix_prep_items_lot", "prep_items", ["lot_id"])

    op.create_table(
        "prep_reviews",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "task_id",
            sa.Integer(),
            sa.ForeignKey("prep_tasks.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("reviewer_id", sa.Integer(), nullable=True),
        sa.Column("result", sa.String(16), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("reason", sa.Text(), nullable=True),
        _ts("created_at"),
        _ts("updated_at"),
        sa.UniqueConstraint("task_id", name="uq_prep_reviews_task"),
        sa.CheckConstraint(
            "result IN ('pending','confirmed','rejected')",
            name="ck_prep_reviews_result",
        ),
    )


def downgrade() -> None:
    op.drop_table("prep_reviews")

    op.drop_index("ix_prep_items_lot", table_name="prep_items")
    op.drop_index("ix_prep_items_order_item", table_name="prep_items")
    op.drop_index("ix_prep_items_task", table_name="prep_items")
    op.drop_table("prep_items")

    op.drop_index("ix_prep_tasks_packer", table_name="prep_tasks")
    op.drop_index("ix_prep_tasks_supervisor", table_name="prep_tasks")
    op.drop_index("ix_prep_tasks_status", table_name="prep_tasks")
    op.drop_index("ix_prep_tasks_order", table_name="prep_tasks")
    op.drop_table("prep_tasks")

    op.drop_index("ix_sales_order_items_order", table_name="sales_order_items")
    op.drop_table("sales_order_items")
    op.drop_table("sales_orders")

    op.drop_index("ix_inventory_lots_expiry", table_name="inventory_lots")
    op.drop_index("ix_inventory_lots_product", table_name="inventory_lots")
    op.drop_table("inventory_lots")

    op.drop_table("products")
    op.drop_table("departments")
