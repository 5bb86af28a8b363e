# app/api/routers/prep_tasks.py
from __future__ import annotations

from fastapi import APIRouter

from app.api.routers import prep_tasks_routes_items, prep_tasks_routes_read, prep_tasks_routes_write

router = APIRouter(prefix="/prep-tasks", tags=["prep-tasks"])

# 静态路径（/stats/...、/order-items/...）先于 /{task_id} 注册
prep_tasks_routes_read.register(router)
prep_tasks_routes_write.register(router)
prep_tasks_routes_items.register(router)
