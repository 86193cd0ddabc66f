"""
Boda Suite - FastAPI Backend
Main application entry point: app factory, error handlers and API routing.
"""

import logging
from contextlib import asynccontextmanager
from http import HTTPStatus
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import Settings, settings, validate_security_settings
from database import Database
from routers import audit, auth, dashboard, guests, health, payments, rooms, wedding
from services.accounts import ensure_admin_account
from services.audit import AuditRecorder
from services.errors import AppError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    app_settings: Settings = app.state.settings
    database: Database = app.state.database
    # Startup
    print("🚀 Starting Boda Suite API...")
    validate_security_settings(app_settings)
    for directory in (app_settings.RECEIPTS_DIR, app_settings.UPLOAD_DIR):
        Path(directory).mkdir(parents=True, exist_ok=True)
    if app_settings.AUTO_CREATE_DB_SCHEMA:
        await database.create_all()
        print("🗄️ Database schema verified.")
    try:
        created = await ensure_admin_account(
            database.session_maker,
            app_settings.SEED_ADMIN_EMAIL,
            app_settings.SEED_ADMIN_PASSWORD,
            rounds=app_settings.BCRYPT_ROUNDS,
        )
        if created:
            print(f"👤 Default admin account created: {app_settings.SEED_ADMIN_EMAIL}")
    except Exception as exc:
        print(f"⚠️ Default admin bootstrap skipped: {exc}")
    yield
    # Shutdown
    await app.state.audit_recorder.drain()
    await database.dispose()
    print("👋 Shutting down API...")


_DEFAULT_HTTP_MESSAGES = {
    400: "Error en la solicitud",
    401: "No autorizado",
    403: "Acceso denegado",
    404: "Recurso no encontrado",
    405: "Método no permitido",
    413: "La solicitud es demasiado grande",
    415: "Tipo de contenido no soportado",
    429: "Demasiados intentos. Inténtalo de nuevo más tarde.",
}


def _status_phrase(status_code: int) -> Optional[str]:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return None


def _error_response(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(_request: Request, exc: AppError):
        return _error_response(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(_request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else None
        if not message or message == _status_phrase(exc.status_code):
            message = _DEFAULT_HTTP_MESSAGES.get(exc.status_code, "Error en la solicitud")
        return _error_response(exc.status_code, message, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(_request: Request, exc: RequestValidationError):
        logger.info("Rejected request payload: %s", exc.errors())
        return _error_response(400, "Datos inválidos")

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error_response(500, "Error interno del servidor")


def _mount_frontend(app: FastAPI, dist_dir: str) -> None:
    """Serve the built dashboard and fall back to index.html for client-side routes."""
    root = Path(dist_dir)
    index_file = root / "index.html"
    if not index_file.is_file():
        logger.warning("Frontend build not found at %s; static serving disabled", root)
        return

    assets_dir = root / "assets"
    if assets_dir.is_dir():
        app.mount("/assets", StaticFiles(directory=assets_dir), name="assets")

    @app.get("/{full_path:path}", include_in_schema=False)
    async def spa_fallback(full_path: str):
        candidate = root / full_path
        if full_path and candidate.is_file() and root.resolve() in candidate.resolve().parents:
            return FileResponse(candidate)
        return FileResponse(index_file)


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    app_settings = app_settings or settings

    app = FastAPI(
        title="Boda Suite API",
        description="Administración de invitados, habitaciones, pagos y auditoría de la boda",
        version="1.0.0",
        lifespan=lifespan,
    )
    database = Database(app_settings.DATABASE_URL)
    app.state.settings = app_settings
    app.state.database = database
    app.state.audit_recorder = AuditRecorder(database.session_maker)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if app_settings.is_production else app_settings.CORS_ORIGINS,
        allow_credentials=not app_settings.is_production,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    # Include routers
    prefix = app_settings.API_PREFIX.rstrip("/")
    app.include_router(health.router, prefix=prefix, tags=["Health"])
    app.include_router(auth.router, prefix=prefix, tags=["Authentication"])
    app.include_router(dashboard.router, prefix=prefix, tags=["Dashboard"])
    app.include_router(wedding.router, prefix=prefix, tags=["Wedding"])
    app.include_router(rooms.router, prefix=prefix, tags=["Rooms"])
    app.include_router(guests.router, prefix=prefix, tags=["Guests"])
    app.include_router(payments.router, prefix=prefix, tags=["Payments"])
    app.include_router(audit.router, prefix=prefix, tags=["Audit"])

    # Generated receipts and uploaded cover images
    for url_path, directory, name in (
        ("/recibos", app_settings.RECEIPTS_DIR, "recibos"),
        ("/uploads", app_settings.UPLOAD_DIR, "uploads"),
    ):
        app.mount(url_path, StaticFiles(directory=directory, check_dir=False), name=name)

    if app_settings.is_production:
        _mount_frontend(app, app_settings.FRONTEND_DIST_DIR)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=settings.API_HOST, port=settings.API_PORT)
