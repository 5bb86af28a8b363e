# app/models/product.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Integer, Numeric, String, UniqueConstraint, func, text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.utils.time import utc_now


class Product(Base):
    """
    商品（只读目录数据）

    - low_stock_threshold : 批次现存量 <= 阈值 时触发低库存预警（0 表示不预警）
    - near_expiry_days    : 距到期 <= N 天 时触发临期预警（0 表示不预警）
    """

    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sku_code: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    low_stock_threshold: Mapped[Decimal] = mapped_column(
        Numeric(18, 3), nullable=False, default=Decimal("0"), server_default=text("0")
    )
    near_expiry_days: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, server_default=func.now()
    )

    __table_args__ = (UniqueConstraint("sku_code", name="uq_products_sku_code"),)

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku_code}>"
