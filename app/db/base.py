# app/db/base.py
from __future__ import annotations

import importlib
import logging
from typing import Iterable, List

from sqlalchemy.orm import DeclarativeBase, configure_mappers

log = logging.getLogger("wmsprep.models")


class Base(DeclarativeBase):
    """全局唯一 ORM Base"""

    pass


_INITIALIZED: bool = False  # 防重复初始化

# 字符串关系目标需要先注册，顺序即依赖顺序
MODEL_MODULES = (
    "app.models.department",
    "app.models.product",
    "app.models.inventory_lot",
    "app.models.sales_order",
    "app.models.prep_task",
    "app.models.prep_item",
    "app.models.prep_review",
)


def init_models(*, extra_modules: Iterable[str] | None = None, force: bool = False) -> None:
    """
    集中导入模型 + 固化关系映射（Alembic / 建表 / 应用启动前调用）。
    """
    global _INITIALIZED
    if _INITIALIZED and not force:
        return

    loaded: List[str] = []
    for mod in (*MODEL_MODULES, *(extra_modules or ())):
        importlib.import_module(mod)
        loaded.append(mod)

    configure_mappers()
    _INITIALIZED = True
    log.info("ORM models initialized & mappers configured (loaded %d modules)", len(loaded))
