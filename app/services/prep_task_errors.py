# app/services/prep_task_errors.py
from __future__ import annotations

from typing import Any, Dict, Optional


class PrepTaskError(Exception):
    """
    备货链路业务错误基类：
    - code        : 稳定错误码（HTTP Problem.error_code）
    - http_status : 路由层映射用
    - context     : 结构化上下文（lot_id / requested / available ...）

    任一错误都会中止当前事务，不自动重试。
    """

    code = "prep_task_error"
    http_status = 400

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context

    def to_context(self) -> Optional[Dict[str, Any]]:
        return {k: _jsonable(v) for k, v in self.context.items()} or None


class NotFound(PrepTaskError):
    """任务 / 明细 / 批次 / 订单行 / 复核不存在"""

    code = "not_found"
    http_status = 404


class ExpiredLot(PrepTaskError):
    code = "expired_lot"
    http_status = 409


class InsufficientStock(PrepTaskError):
    code = "insufficient_stock"
    http_status = 409


class InvalidState(PrepTaskError):
    """状态不允许该操作"""

    code = "invalid_state"
    http_status = 409


class AlreadyCancelled(InvalidState):
    code = "already_cancelled"


class ValidationError(PrepTaskError):
    """入参不合法（缺 id、数量 <= 0、空 patch、非法枚举值）"""

    code = "validation_error"
    http_status = 422


class OutstandingExceeded(ValidationError):
    """明细数量超过订单行剩余未备数量"""

    code = "outstanding_exceeded"


def _jsonable(v: Any) -> Any:
    if v is None or isinstance(v, (bool, int, float, str)):
        return v
    if isinstance(v, (list, tuple)):
        return [_jsonable(x) for x in v]
    return str(v)
