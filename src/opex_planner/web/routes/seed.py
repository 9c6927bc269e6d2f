"""Database seeding routes."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse

from opex_planner.config import Config
from opex_planner.db import Database
from opex_planner.planner import ExpenseDataService
from opex_planner.seed import seed_database
from opex_planner.web.deps import (
    get_config,
    get_db,
    get_flash_messages,
    get_planner_session,
    get_service,
)
from opex_planner.web.routes.planner import reload_session
from opex_planner.web.sessions import PlannerSession

router = APIRouter(prefix="/seed", tags=["seed"])


@router.get("", response_class=HTMLResponse)
async def seed_page(request: Request, db: Database = Depends(get_db)):
    """Show the seed form with the current row counts."""
    templates = request.app.state.templates
    return templates.TemplateResponse(
        request,
        "pages/seed.html",
        {
            "flash_messages": get_flash_messages(request),
            "vendor_count": db.count_vendors(),
            "row_count": db.count_expense_rows(),
            "result": None,
            "page_title": "Seed Database",
        },
    )


@router.post("")
async def seed(
    request: Request,
    db: Database = Depends(get_db),
    config: Config = Depends(get_config),
    session: PlannerSession = Depends(get_planner_session),
    service: ExpenseDataService = Depends(get_service),
):
    """Replace all data with the sample vendors and random figures.

    Returns JSON for API clients and the seed page otherwise.
    """
    result = seed_database(
        db,
        year=config.planning.fiscal_year,
        closed_months=config.planning.closed_months,
    )
    if result.success:
        reload_session(session, service)

    payload = {
        "success": result.success,
        "message": result.message,
        "vendor_count": result.vendor_count,
        "row_count": result.row_count,
    }
    if "application/json" in request.headers.get("accept", ""):
        return payload

    templates = request.app.state.templates
    return templates.TemplateResponse(
        request,
        "pages/seed.html",
        {
            "flash_messages": get_flash_messages(request),
            "vendor_count": db.count_vendors(),
            "row_count": db.count_expense_rows(),
            "result": payload,
            "page_title": "Seed Database",
        },
    )
