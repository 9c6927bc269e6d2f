"""FastAPI application factory for the web interface."""

import secrets
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from starlette.middleware.sessions import SessionMiddleware

from opex_planner import __version__, audit
from opex_planner.config import load_config
from opex_planner.errors import DataAccessError, PlannerError, VendorNotFoundError
from opex_planner.logging import get_logger
from opex_planner.web.sessions import PlannerStore

logger = get_logger(__name__)


def get_templates_dir() -> Path:
    """Get the path to the web templates directory."""
    return Path(__file__).parent / "templates"


def get_static_dir() -> Path:
    """Get the path to the static files directory."""
    return Path(__file__).parent / "static"


def currency(value: float | None) -> str:
    """Format an amount as whole dollars, negatives with a leading minus."""
    if not value:
        return "$0"
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.0f}"


def error_status(exc: PlannerError) -> int:
    """HTTP status for a planner error."""
    if isinstance(exc, VendorNotFoundError):
        return 404
    if isinstance(exc, DataAccessError):
        return 500
    return 400


def create_app(config_path: Path | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config_path: Path to the configuration file.

    Returns:
        Configured FastAPI application.
    """
    config = load_config(config_path)

    audit.configure(enabled=config.logging.enabled)

    app = FastAPI(
        title="OpEx Planner",
        description="Operating expense planning: forecasts, budgets and product allocation",
        version=__version__,
        docs_url=None,
        redoc_url=None,
    )

    app.state.config = config
    app.state.planners = PlannerStore(max_age_seconds=config.web.session_lifetime_hours * 3600)

    # Session cookie only carries the planner token and flash messages
    secret_key = config.web.secret_key or secrets.token_hex(32)
    app.add_middleware(
        SessionMiddleware,
        secret_key=secret_key,
        session_cookie="opex_planner_session",
        max_age=config.web.session_lifetime_hours * 3600,
        same_site="lax",
        https_only=False,
    )

    static_dir = get_static_dir()
    if static_dir.exists():
        app.mount("/static", StaticFiles(directory=static_dir), name="static")

    templates_dir = get_templates_dir()
    if not templates_dir.exists():
        raise RuntimeError(f"Templates directory not found: {templates_dir}")
    templates = Jinja2Templates(directory=templates_dir)
    templates.env.filters["currency"] = currency
    templates.env.filters["percent"] = lambda v: f"{v:+.1f}%" if v else "0.0%"
    app.state.templates = templates

    from opex_planner.web.routes import (
        allocation,
        dashboard,
        planner,
        seed,
        tagging,
        vendors,
    )

    app.include_router(planner.router)
    app.include_router(planner.api_router)
    app.include_router(vendors.router)
    app.include_router(vendors.api_router)
    app.include_router(tagging.router)
    app.include_router(tagging.api_router)
    app.include_router(allocation.router)
    app.include_router(allocation.api_router)
    app.include_router(dashboard.router)
    app.include_router(dashboard.api_router)
    app.include_router(seed.router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "ok", "version": __version__}

    @app.exception_handler(PlannerError)
    async def planner_error_handler(request: Request, exc: PlannerError):
        """Return planner errors as JSON with a matching status code."""
        status_code = error_status(exc)
        if status_code >= 500:
            logger.error("request_failed", path=request.url.path, error=exc.message)
        return JSONResponse(
            {"success": False, "error": exc.message, "code": exc.code},
            status_code=status_code,
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        """Reject unknown versions, months, products and the like."""
        return JSONResponse(
            {"success": False, "error": str(exc), "code": "INVALID_INPUT"},
            status_code=400,
        )

    return app
