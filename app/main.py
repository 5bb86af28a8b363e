# app/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routers.inventory_lots import router as inventory_lots_router
from app.api.routers.prep_tasks import router as prep_tasks_router
from app.core.config import get_settings
from app.core.logging import setup_logging
from app.core.scheduler import init_scheduler, shutdown_scheduler
from app.db.base import init_models
from app.db.session import close_engines
from app.http_problem_handlers import register_exception_handlers
from app.metrics import router as metrics_router
from app.obs.metrics import PrometheusMiddleware

settings = get_settings()
setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger("wmsprep")

init_models()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    init_scheduler()
    logger.info("wms-prep started: env=%s", settings.ENV)
    try:
        yield
    finally:
        shutdown_scheduler()
        await close_engines()


app = FastAPI(
    title="WMS-PREP",
    version="0.3.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://127.0.0.1:5173",
        "http://localhost:5173",
        "http://127.0.0.1:8000",
        "http://localhost:8000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(PrometheusMiddleware)

register_exception_handlers(app)

app.include_router(prep_tasks_router)
app.include_router(inventory_lots_router)
app.include_router(metrics_router)


@app.get("/ping")
async def ping():
    return {"pong": True}


@app.get("/healthz")
async def healthz():
    return {"ok": True, "env": settings.ENV}
