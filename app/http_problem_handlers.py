# app/http_problem_handlers.py
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.api.problem import ProblemDetail, make_problem
from app.services.prep_task_errors import (
    ExpiredLot,
    InsufficientStock,
    InvalidState,
    PrepTaskError,
    ValidationError,
)

logger = logging.getLogger("wmsprep")


def _new_trace_id() -> str:
    return f"t_{uuid.uuid4().hex[:12]}"


def _req_ctx(req: Request) -> Dict[str, Any]:
    return {"path": getattr(req.url, "path", ""), "method": req.method}


def _detail_type(exc: PrepTaskError) -> str:
    if isinstance(exc, InsufficientStock):
        return "shortage"
    if isinstance(exc, ExpiredLot):
        return "expiry"
    if isinstance(exc, InvalidState):
        return "state"
    if isinstance(exc, ValidationError):
        return "validation"
    return "not_found"


def problem_from_prep_error(req: Request, exc: PrepTaskError) -> Dict[str, Any]:
    ctx = _req_ctx(req)
    ctx.update(exc.to_context() or {})

    detail: ProblemDetail = {"type": _detail_type(exc), "reason": exc.message}
    if "lot_id" in exc.context:
        detail["lot_id"] = int(exc.context["lot_id"])
    if "order_item_id" in exc.context:
        detail["order_item_id"] = int(exc.context["order_item_id"])
    if "requested" in exc.context:
        detail["requested_qty"] = str(exc.context["requested"])
    if "available" in exc.context:
        detail["available_qty"] = str(exc.context["available"])

    return make_problem(
        status_code=exc.http_status,
        error_code=exc.code,
        message=exc.message,
        context=ctx,
        details=[detail],
        trace_id=_new_trace_id(),
    )


def _problem_from_http_exc(req: Request, exc: HTTPException) -> Dict[str, Any]:
    """
    HTTPException.detail → Problem：
    - 已是 Problem dict：补齐 http_status / trace_id / context
    - str / 其它：兜底为 state
    """
    status_code = int(exc.status_code)
    trace_id = _new_trace_id()
    ctx = _req_ctx(req)
    d = exc.detail

    if isinstance(d, dict) and "error_code" in d and "message" in d:
        out = dict(d)
        out.setdefault("http_status", status_code)
        out.setdefault("trace_id", trace_id)
        merged = dict(ctx)
        if isinstance(out.get("context"), dict):
            merged.update(out["context"])
        out["context"] = merged
        return out

    msg = str(d) if d is not None else "request rejected"
    return make_problem(
        status_code=status_code,
        error_code="not_found" if status_code == 404 else "http_error",
        message=msg,
        context=ctx,
        details=[{"type": "state", "reason": msg}],
        trace_id=trace_id,
    )


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(PrepTaskError)
    async def _prep_exc(req: Request, exc: PrepTaskError):
        content = problem_from_prep_error(req, exc)
        return JSONResponse(status_code=exc.http_status, content=content)

    @app.exception_handler(Exception)
    async def _unhandled_exc(req: Request, exc: Exception):
        trace_id = _new_trace_id()
        logger.exception("UNHANDLED_EXC[%s]: %s", trace_id, exc)
        content = make_problem(
            status_code=500,
            error_code="internal_error",
            message="internal error, please retry later",
            context=_req_ctx(req),
            trace_id=trace_id,
        )
        return JSONResponse(status_code=500, content=content)

    @app.exception_handler(RequestValidationError)
    async def _validation_exc(req: Request, exc: RequestValidationError):
        details: List[Dict[str, Any]] = []
        for i, e in enumerate(exc.errors()):
            if not isinstance(e, dict):
                continue
            loc = ".".join(str(p) for p in e.get("loc", ()) if p != "body")
            details.append(
                {
                    "type": "validation",
                    "path": loc or f"validation[{i}]",
                    "reason": str(e.get("msg") or e.get("type") or "invalid"),
                }
            )

        content = make_problem(
            status_code=422,
            error_code="request_validation_error",
            message="invalid request",
            context=_req_ctx(req),
            details=details,
            trace_id=_new_trace_id(),
        )
        return JSONResponse(status_code=422, content=content)

    @app.exception_handler(HTTPException)
    async def _http_exc(req: Request, exc: HTTPException):
        content = _problem_from_http_exc(req, exc)
        return JSONResponse(status_code=int(exc.status_code), content=content)
