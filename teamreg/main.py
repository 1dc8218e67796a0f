"""
FastAPI main application
Team Registration Platform

Routers in teamreg/api/:
- health.py: Health check
- registration.py: Team registration, reCAPTCHA check, team lookup
- chat.py: Support chat widget

All routers reach the shared services through teamreg.state.
"""
from contextlib import asynccontextmanager
from typing import Optional
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException

from teamreg.api import chat, health, registration
from teamreg.config import Settings, load_settings
from teamreg.errors import RegistrationError
from teamreg.state import ServiceContainer, build_services


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def install_error_handlers(app: FastAPI, settings: Settings) -> None:
    """Render every error as {"success": false, "error": ...}"""

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
        return error_response(exc.status_code, message)

    @app.exception_handler(RegistrationError)
    async def registration_error_handler(request: Request, exc: RegistrationError):
        return error_response(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        problems = []
        for error in exc.errors():
            location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
            problems.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
        return error_response(400, "Invalid request: " + "; ".join(problems))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(f"❌ Unhandled error on {request.url.path}: {type(exc).__name__}: {exc}", exc_info=True)
        message = str(exc) if settings.is_development else "Internal server error"
        return error_response(500, message)


def create_app(settings: Optional[Settings] = None, services: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Build the application

    Args:
        settings: Loaded settings (default: load_settings())
        services: Pre-built services; when omitted they are built from settings at startup
    """
    settings = settings or (services.settings if services else load_settings())
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown events"""
        container = services or build_services(settings)
        app.state.services = container
        await container.startup()
        logger.info(f"🚀 Server started (environment: {settings.environment}, port: {settings.port})")

        yield

        await container.shutdown()
        logger.info("🛑 Server shutting down")

    app = FastAPI(
        title="Team Registration Platform",
        description="Team registration with ID upload, bot verification, confirmation email and support chat",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url, "https://reg-site.onrender.com"],
        allow_origin_regex=r"https://.*\.vercel\.app",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    install_error_handlers(app, settings)

    # ==================== INCLUDE ROUTERS ====================

    # GET /api/health
    app.include_router(health.router)

    # POST /api/register, POST /api/verify-recaptcha, GET /api/team/{team_id}
    app.include_router(registration.router)

    # POST /api/chat
    app.include_router(chat.router)

    # ==================== STATIC FILES ====================

    # Uploaded ID documents
    app.mount("/uploads", StaticFiles(directory=settings.uploads_dir, check_dir=False), name="uploads")

    return app


app = create_app()


# ==================== RUN SERVER ====================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)
