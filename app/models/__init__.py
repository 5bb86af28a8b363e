# app/models/__init__.py
"""
统一导出 ORM 模型。
"""

from app.models.department import Department
from app.models.inventory_lot import InventoryLot
from app.models.prep_item import PrepItem
from app.models.prep_review import PrepReview
from app.models.prep_task import PrepTask
from app.models.product import Product
from app.models.sales_order import SalesOrder, SalesOrderItem

__all__ = [
    "Department",
    "InventoryLot",
    "PrepItem",
    "PrepReview",
    "PrepTask",
    "Product",
    "SalesOrder",
    "SalesOrderItem",
]
