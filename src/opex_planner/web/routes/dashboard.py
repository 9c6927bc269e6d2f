"""Forecast vs budget summary dashboard routes."""

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse

from opex_planner.config import Config
from opex_planner.dimensions import ALL
from opex_planner.periods import FULL_YEAR
from opex_planner.planner import ExpensePlanner
from opex_planner.web.deps import add_flash_message, get_config, get_flash_messages, get_planner
from opex_planner.web.services import DashboardService

router = APIRouter(prefix="/reporting", tags=["dashboard"])
api_router = APIRouter(prefix="/api/dashboard", tags=["dashboard-api"])


@router.get("/summary-dashboard", response_class=HTMLResponse)
async def summary_dashboard(
    request: Request,
    period: str = Query(FULL_YEAR),
    gl_account: str = Query(ALL),
    cost_center: list[str] | None = Query(None),
    planner: ExpensePlanner = Depends(get_planner),
    config: Config = Depends(get_config),
):
    """Live Forecast against Budget by period, GL account and cost center."""
    templates = request.app.state.templates
    service = DashboardService(planner)

    try:
        data = service.forecast_vs_budget(period, gl_account, cost_center)
    except ValueError as e:
        add_flash_message(request, "error", str(e))
        data = service.forecast_vs_budget(FULL_YEAR, ALL, None)

    return templates.TemplateResponse(
        request,
        "pages/summary_dashboard.html",
        {
            "flash_messages": get_flash_messages(request),
            "data": data,
            "gl_accounts": config.planning.gl_accounts,
            "cost_centers": config.planning.cost_centers,
            "all_value": ALL,
            "page_title": "Summary Dashboard",
        },
    )


@api_router.get("/summary")
async def summary_data(
    period: str = Query(FULL_YEAR),
    gl_account: str = Query(ALL),
    cost_center: list[str] | None = Query(None),
    planner: ExpensePlanner = Depends(get_planner),
):
    """Totals and GL breakdown; includes the vendor table when a GL account is selected."""
    return DashboardService(planner).forecast_vs_budget(period, gl_account, cost_center)


@api_router.get("/gl/{gl_account}/vendors")
async def gl_vendors(
    gl_account: str,
    period: str = Query(FULL_YEAR),
    cost_center: list[str] | None = Query(None),
    planner: ExpensePlanner = Depends(get_planner),
):
    """Drill-down from a GL account bar to its vendors."""
    data = DashboardService(planner).forecast_vs_budget(period, gl_account, cost_center)
    return {"gl_account": gl_account, "period": data["period"], "vendors": data["vendors"]}
