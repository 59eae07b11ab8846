"""FastAPI application entrypoint."""

import logging
import os
from uuid import uuid4

from fastapi import FastAPI
from fastapi import Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.responses import Response
from sqlalchemy import text
from sqlmodel import Session

from panelgrade import db
from panelgrade.routers.directory import router as directory_router
from panelgrade.routers.evaluations import router as evaluations_router
from panelgrade.routers.grades import router as grades_router
from panelgrade.routers.notifications import router as notifications_router
from panelgrade.routers.students import router as students_router
from panelgrade.settings import settings

logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name, version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

_PUBLIC_PATHS = {
    "/health",
    "/health/deep",
    "/docs",
    "/openapi.json",
    "/redoc",
    "/favicon.ico",
}


@app.middleware("http")
async def enforce_api_key(request: Request, call_next):
    if request.method == "OPTIONS":
        return await call_next(request)

    if request.url.path in _PUBLIC_PATHS:
        return await call_next(request)

    expected_api_key = os.getenv("BACKEND_API_KEY", "").strip()
    if expected_api_key:
        received_api_key = request.headers.get("X-API-Key", "")
        if received_api_key != expected_api_key:
            return JSONResponse(status_code=401, content={"detail": "Unauthorized"})

    return await call_next(request)

app.include_router(directory_router, prefix="/api")
app.include_router(evaluations_router, prefix="/api")
app.include_router(students_router, prefix="/api")
app.include_router(grades_router, prefix="/api")
app.include_router(notifications_router, prefix="/api")


@app.on_event("startup")
def on_startup() -> None:
    logging.getLogger("panelgrade").setLevel(settings.log_level.upper())
    settings.data_path.mkdir(parents=True, exist_ok=True)
    db.create_db_and_tables()
    logger.info("panelgrade started", extra={"notifier": settings.notifier_backend, "data_dir": str(settings.data_path)})


@app.get("/health", tags=["meta"])
def health() -> dict[str, bool | str]:
    return {"ok": True, "notifier": settings.notifier_backend}


@app.get("/health/deep", tags=["meta"])
def deep_health() -> dict[str, bool | str]:
    data_dir = settings.data_path

    storage_writable = False
    try:
        data_dir.mkdir(parents=True, exist_ok=True)
        probe_path = data_dir / f".health_probe_{uuid4().hex}"
        probe_path.write_text("ok", encoding="utf-8")
        probe_path.unlink(missing_ok=True)
        storage_writable = True
    except OSError:
        storage_writable = False

    db_ok = False
    try:
        with Session(db.engine) as session:
            session.exec(text("SELECT 1"))
        db_ok = True
    except Exception:
        logger.exception("database health probe failed")
        db_ok = False

    return {
        "ok": True,
        "notifier": settings.notifier_backend,
        "storage_writable": storage_writable,
        "data_dir": str(data_dir),
        "db_ok": db_ok,
    }


@app.options("/{path:path}", include_in_schema=False)
async def preflight(path: str) -> Response:
    del path
    return Response(status_code=204)
