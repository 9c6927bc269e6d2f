"""Operating expense planner routes: the grid, filters, save, load and synchronize."""

from dataclasses import asdict

from fastapi import APIRouter, Depends, Form, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from opex_planner.config import Config
from opex_planner.dimensions import ALL, VERSIONS
from opex_planner.errors import VendorNotFoundError
from opex_planner.periods import GRANULARITIES, MONTHLY
from opex_planner.planner import (
    ASCENDING,
    DESCENDING,
    ExpenseDataService,
    ExpensePlanner,
    build_grid,
)
from opex_planner.tagging import ProductTagger
from opex_planner.web.deps import (
    add_flash_message,
    add_notice,
    get_config,
    get_flash_messages,
    get_planner,
    get_planner_session,
    get_service,
    get_tagger,
    notice_payload,
)
from opex_planner.web.schemas import ExpenseCellRequest, FiltersRequest, SaveRequest
from opex_planner.web.services import DashboardService
from opex_planner.web.sessions import PlannerSession

router = APIRouter(tags=["planner"])
api_router = APIRouter(prefix="/api", tags=["planner-api"])


def apply_filters(
    planner: ExpensePlanner,
    version: str | None = None,
    time_granularity: str | None = None,
    gl_account: str | None = None,
    cost_centers: list[str] | None = None,
    year: int | None = None,
) -> None:
    """Apply whichever filters were supplied; raises ValueError on unknown values."""
    if version is not None:
        planner.set_version(version)
    if time_granularity is not None:
        planner.set_time_granularity(time_granularity)
    if gl_account is not None:
        planner.set_gl_account(gl_account)
    if cost_centers is not None:
        planner.set_selected_cost_centers(cost_centers)
    if year is not None:
        planner.set_year(year)


def filters_payload(planner: ExpensePlanner) -> dict:
    return {
        "version": planner.version,
        "time_granularity": planner.time_granularity,
        "gl_account": planner.gl_account,
        "cost_centers": planner.selected_cost_centers,
        "year": planner.year,
    }


def _grid_context(
    request: Request,
    planner: ExpensePlanner,
    config: Config,
    version: str | None,
    granularity: str | None,
    gl_account: str | None,
    cost_center: list[str] | None,
    search: str | None,
    sort: str | None,
    direction: str,
    product_tags: dict[str, list[str]] | None = None,
    products: list[str] | None = None,
) -> dict:
    try:
        apply_filters(planner, version, granularity, gl_account, cost_center)
        grid = build_grid(
            planner,
            search=search,
            sort_key=sort,
            direction=direction,
            product_tags=product_tags,
            products=products,
        )
    except ValueError as e:
        add_flash_message(request, "error", str(e))
        grid = build_grid(planner, search=search, product_tags=product_tags)

    forecast_columns = set()
    if planner.time_granularity == MONTHLY:
        forecast_columns = {column for column in grid.columns if planner.is_forecast_period(column)}

    if planner.notice is not None:
        add_notice(request, planner.notice)
        planner.clear_notice()

    return {
        "flash_messages": get_flash_messages(request),
        "planner": planner,
        "grid": grid,
        "forecast_columns": forecast_columns,
        "summary": DashboardService(planner).planner_summary(),
        "versions": VERSIONS,
        "granularities": GRANULARITIES,
        "gl_accounts": config.planning.gl_accounts,
        "cost_centers": config.planning.cost_centers,
        "products": config.planning.products,
        "all_value": ALL,
        "search": search or "",
        "sort": sort or "",
        "direction": direction,
        "directions": (ASCENDING, DESCENDING),
    }


@router.get("/", response_class=HTMLResponse)
async def planner_page(
    request: Request,
    version: str | None = Query(None),
    granularity: str | None = Query(None),
    gl_account: str | None = Query(None),
    cost_center: list[str] | None = Query(None),
    search: str | None = Query(None),
    sort: str | None = Query(None),
    direction: str = Query(ASCENDING),
    planner: ExpensePlanner = Depends(get_planner),
    config: Config = Depends(get_config),
):
    """Operating expense grid for the selected version."""
    templates = request.app.state.templates
    context = _grid_context(
        request, planner, config, version, granularity, gl_account, cost_center, search, sort, direction
    )
    context["page_title"] = "Operating Expenses"
    return templates.TemplateResponse(request, "pages/planner.html", context)


@router.get("/operating-expenses-with-product", response_class=HTMLResponse)
async def planner_with_product_page(
    request: Request,
    version: str | None = Query(None),
    granularity: str | None = Query(None),
    gl_account: str | None = Query(None),
    cost_center: list[str] | None = Query(None),
    product: list[str] | None = Query(None),
    search: str | None = Query(None),
    sort: str | None = Query(None),
    direction: str = Query(ASCENDING),
    planner: ExpensePlanner = Depends(get_planner),
    tagger: ProductTagger = Depends(get_tagger),
    config: Config = Depends(get_config),
):
    """Operating expense grid with a product column and product filter."""
    templates = request.app.state.templates
    context = _grid_context(
        request,
        planner,
        config,
        version,
        granularity,
        gl_account,
        cost_center,
        search,
        sort,
        direction,
        product_tags=tagger.tags,
        products=product,
    )
    context["selected_products"] = product or [ALL]
    context["page_title"] = "Operating Expenses by Product"
    return templates.TemplateResponse(request, "pages/planner_with_product.html", context)


@router.post("/expenses/cell")
async def update_cell(
    request: Request,
    vendor_id: str = Form(...),
    column: str = Form(...),
    amount: float = Form(...),
    planner: ExpensePlanner = Depends(get_planner),
):
    """Update one grid cell from the page form."""
    try:
        planner.set_period_value(vendor_id, column, amount)
    except VendorNotFoundError as e:
        add_flash_message(request, "error", e.message)
    except ValueError as e:
        add_flash_message(request, "error", str(e))
    return RedirectResponse(url="/", status_code=303)


@router.post("/save")
async def save(
    request: Request,
    confirm_empty: bool = Form(False),
    planner: ExpensePlanner = Depends(get_planner),
    service: ExpenseDataService = Depends(get_service),
):
    """Save the session's changes to the database."""
    notice = planner.save(service, confirm_empty=lambda: confirm_empty)
    planner.clear_notice()
    add_notice(request, notice)
    return RedirectResponse(url="/", status_code=303)


@router.post("/load")
async def load(
    request: Request,
    session: PlannerSession = Depends(get_planner_session),
    service: ExpenseDataService = Depends(get_service),
):
    """Discard unsaved changes and reload everything from the database."""
    notice = reload_session(session, service)
    if notice is not None:
        add_notice(request, notice)
    else:
        add_flash_message(request, "success", "Data loaded from database")
    return RedirectResponse(url="/", status_code=303)


@router.post("/synchronize")
async def synchronize(
    request: Request,
    planner: ExpensePlanner = Depends(get_planner),
):
    """Copy the selected version onto the other versions."""
    planner.synchronize_versions()
    add_notice(request, planner.notice)
    planner.clear_notice()
    return RedirectResponse(url="/", status_code=303)


def reload_session(session: PlannerSession, service: ExpenseDataService):
    """Reload the planner and drop the working tags and allocations."""
    with session.lock:
        notice = session.planner.load(service)
        session.planner.clear_notice()
        session.tagger = None
        session.allocations = None
    return notice


# JSON API


@api_router.get("/expenses")
async def get_grid(
    search: str | None = Query(None),
    sort: str | None = Query(None),
    direction: str = Query(ASCENDING),
    product: list[str] | None = Query(None),
    planner: ExpensePlanner = Depends(get_planner),
    tagger: ProductTagger = Depends(get_tagger),
):
    """Grid rows and totals for the current filters."""
    grid = build_grid(
        planner,
        search=search,
        sort_key=sort,
        direction=direction,
        product_tags=tagger.tags,
        products=product,
    )
    return asdict(grid)


@api_router.post("/expenses/cell")
async def set_cell(
    body: ExpenseCellRequest,
    planner: ExpensePlanner = Depends(get_planner),
):
    """Write one grid cell at the current granularity."""
    changed = planner.set_period_value(body.vendor_id, body.column, body.amount)
    return {
        "success": True,
        "changed": changed,
        "value": planner.get_period_value(body.vendor_id, body.column),
        "is_data_changed": planner.change_tracking.is_data_changed,
    }


@api_router.get("/filters")
async def get_filters(planner: ExpensePlanner = Depends(get_planner)):
    return filters_payload(planner)


@api_router.post("/filters")
async def set_filters(
    body: FiltersRequest,
    planner: ExpensePlanner = Depends(get_planner),
):
    """Change the version, granularity, GL account, cost centers or year."""
    apply_filters(
        planner,
        body.version,
        body.time_granularity,
        body.gl_account,
        body.cost_centers,
        body.year,
    )
    return filters_payload(planner)


@api_router.post("/save")
async def save_api(
    body: SaveRequest,
    planner: ExpensePlanner = Depends(get_planner),
    service: ExpenseDataService = Depends(get_service),
):
    """Save the session's changes; an empty registry needs confirm_empty."""
    notice = planner.save(service, confirm_empty=lambda: body.confirm_empty)
    planner.clear_notice()
    return {"success": not notice.is_error, "notice": notice_payload(notice)}


@api_router.post("/load")
async def load_api(
    session: PlannerSession = Depends(get_planner_session),
    service: ExpenseDataService = Depends(get_service),
):
    notice = reload_session(session, service)
    return {
        "success": notice is None,
        "notice": notice_payload(notice),
        "vendor_count": len(session.planner.registry),
    }


@api_router.post("/synchronize")
async def synchronize_api(planner: ExpensePlanner = Depends(get_planner)):
    planner.synchronize_versions()
    notice = planner.notice
    planner.clear_notice()
    return {"success": True, "notice": notice_payload(notice)}


@api_router.get("/summary")
async def planner_summary(planner: ExpensePlanner = Depends(get_planner)):
    """Chart data for the selected version and filters."""
    return DashboardService(planner).planner_summary()


@api_router.get("/status")
async def status(planner: ExpensePlanner = Depends(get_planner)):
    return {
        "data_loaded": planner.data_loaded,
        "is_data_changed": planner.change_tracking.is_data_changed,
        "vendor_count": len(planner.registry),
        "deleted_vendor_count": len(planner.deleted_vendor_ids),
    }
