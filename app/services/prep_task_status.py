# app/services/prep_task_status.py
from __future__ import annotations

from datetime import datetime

from app.models.enums import FORWARD_TRANSITIONS, PrepTaskStatus
from app.models.prep_task import PrepTask
from app.services.prep_task_errors import AlreadyCancelled, InvalidState, ValidationError


def parse_status(value) -> PrepTaskStatus:
    try:
        return PrepTaskStatus(str(value))
    except ValueError:
        allowed = ", ".join(s.value for s in PrepTaskStatus)
        raise ValidationError(f"invalid status {value!r}, expected one of: {allowed}", status=value)


def ensure_editable(task: PrepTask) -> PrepTaskStatus:
    current = PrepTaskStatus(task.status)
    if current is PrepTaskStatus.CANCELLED:
        raise AlreadyCancelled(f"PrepTask {task.id} is already cancelled", task_id=task.id)
    if current.is_terminal:
        raise InvalidState(
            f"PrepTask {task.id} is {current.value} and can no longer be changed",
            task_id=task.id,
            status=current.value,
        )
    return current


def apply_status(task: PrepTask, target: PrepTaskStatus, *, now: datetime) -> bool:
    """
    正向流转：pending → in_progress → completed。
    - 同状态：no-op，返回 False
    - cancelled 不走这里（须调用 cancel_task 归还预占）
    - 进入 in_progress 时补 started_at，进入 completed 时补 completed_at
    """
    if target is PrepTaskStatus(task.status) and target is not PrepTaskStatus.CANCELLED:
        return False
    current = ensure_editable(task)
    if target is PrepTaskStatus.CANCELLED:
        raise InvalidState(
            "use cancel to move a task to cancelled",
            task_id=task.id,
            status=current.value,
        )
    if FORWARD_TRANSITIONS.get(current) is not target:
        raise InvalidState(
            f"PrepTask {task.id}: transition {current.value} -> {target.value} is not allowed",
            task_id=task.id,
            status=current.value,
            target=target.value,
        )

    task.status = target.value
    if target is PrepTaskStatus.IN_PROGRESS and task.started_at is None:
        task.started_at = now
    if target is PrepTaskStatus.COMPLETED and task.completed_at is None:
        task.completed_at = now
    return True
