"""Vendor spend allocation across tagged products."""

from dataclasses import asdict

from fastapi import APIRouter, Depends, Form, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from opex_planner.allocation import AllocationLedger
from opex_planner.config import Config
from opex_planner.db import Database
from opex_planner.dimensions import ALL, LIVE_FORECAST
from opex_planner.periods import GRANULARITIES
from opex_planner.planner import ExpensePlanner, VendorSummary
from opex_planner.web.deps import (
    add_flash_message,
    get_config,
    get_db,
    get_flash_messages,
    get_ledger,
    get_planner,
)
from opex_planner.web.schemas import (
    AllocateRemainingRequest,
    AllocationRequest,
    ApplyToAllRequest,
)

router = APIRouter(prefix="/vendor-product-allocation", tags=["allocation"])
api_router = APIRouter(prefix="/api/allocations", tags=["allocation-api"])

PAGE_URL = "/vendor-product-allocation"


def ledger_rows(ledger: AllocationLedger, vendors: list[VendorSummary]) -> list[dict]:
    """Per vendor: products, column figures and balance state."""
    rows = []
    for vendor in vendors:
        products = ledger.product_tags.get(vendor.id, [])
        columns = []
        for column in ledger.columns:
            columns.append(
                {
                    "column": column,
                    "expense": ledger.vendor_expense(vendor.id, column),
                    "allocations": {
                        product: ledger.allocated_amount(vendor.id, product, column)
                        for product in products
                    },
                    "unallocated": ledger.unallocated(vendor.id, column),
                    "is_balanced": ledger.is_balanced(vendor.id, column),
                }
            )
        rows.append(
            {
                "vendor": asdict(vendor),
                "products": products,
                "columns": columns,
                "summary": asdict(ledger.summary(vendor.id)),
                "all_balanced": ledger.all_balanced(vendor.id),
            }
        )
    return rows


@router.get("", response_class=HTMLResponse)
async def allocation_page(
    request: Request,
    granularity: str | None = Query(None),
    gl_account: str = Query(ALL),
    cost_center: list[str] | None = Query(None),
    search: str | None = Query(None),
    planner: ExpensePlanner = Depends(get_planner),
    ledger: AllocationLedger = Depends(get_ledger),
    config: Config = Depends(get_config),
):
    """Allocation table for Live Forecast vendors with product tags."""
    templates = request.app.state.templates
    if granularity is not None:
        try:
            planner.set_time_granularity(granularity)
            ledger.set_granularity(planner.time_granularity)
        except ValueError as e:
            add_flash_message(request, "error", str(e))

    cost_centers = cost_center or [ALL]
    vendors = ledger.vendors(planner.view_for(LIVE_FORECAST), gl_account, cost_centers, search)

    return templates.TemplateResponse(
        request,
        "pages/vendor_allocation.html",
        {
            "flash_messages": get_flash_messages(request),
            "rows": ledger_rows(ledger, vendors),
            "columns": ledger.columns,
            "granularity": ledger.granularity,
            "granularities": GRANULARITIES,
            "gl_accounts": config.planning.gl_accounts,
            "cost_centers": config.planning.cost_centers,
            "gl_account": gl_account,
            "selected_cost_centers": cost_centers,
            "search": search or "",
            "all_value": ALL,
            "page_title": "Vendor Product Allocation",
        },
    )


@router.post("/cell")
async def set_allocation_form(
    request: Request,
    vendor_id: str = Form(...),
    product: str = Form(...),
    column: str = Form(...),
    amount: float = Form(...),
    ledger: AllocationLedger = Depends(get_ledger),
):
    if amount < 0:
        add_flash_message(request, "error", "Allocation amounts cannot be negative.")
        return RedirectResponse(url=PAGE_URL, status_code=303)
    try:
        ledger.set_allocation(vendor_id, product, column, amount)
    except ValueError as e:
        add_flash_message(request, "error", str(e))
    return RedirectResponse(url=PAGE_URL, status_code=303)


@router.post("/allocate-remaining")
async def allocate_remaining_form(
    request: Request,
    vendor_id: str = Form(...),
    product: str = Form(...),
    column: str = Form(...),
    ledger: AllocationLedger = Depends(get_ledger),
):
    """Put a column's unallocated spend on one product."""
    try:
        if not ledger.allocate_remaining(vendor_id, product, column):
            add_flash_message(request, "warning", f"Nothing left to allocate for {column}.")
    except ValueError as e:
        add_flash_message(request, "error", str(e))
    return RedirectResponse(url=PAGE_URL, status_code=303)


@router.post("/apply-all")
async def apply_to_all_form(
    request: Request,
    vendor_id: str = Form(...),
    source_column: str = Form(...),
    ledger: AllocationLedger = Depends(get_ledger),
):
    """Copy one column's percentage split to every other column."""
    try:
        ledger.apply_to_all_months(vendor_id, source_column)
        add_flash_message(request, "success", f"Applied the {source_column} split to all periods.")
    except ValueError as e:
        add_flash_message(request, "error", str(e))
    return RedirectResponse(url=PAGE_URL, status_code=303)


@router.post("/save")
async def save_allocations_form(
    request: Request,
    ledger: AllocationLedger = Depends(get_ledger),
    db: Database = Depends(get_db),
):
    stored = ledger.save(db)
    add_flash_message(request, "success", f"Saved {stored} allocations.")
    return RedirectResponse(url=PAGE_URL, status_code=303)


# JSON API


@api_router.get("")
async def get_allocations(
    planner: ExpensePlanner = Depends(get_planner),
    ledger: AllocationLedger = Depends(get_ledger),
):
    """Allocation rows for every tagged Live Forecast vendor."""
    vendors = ledger.vendors(planner.view_for(LIVE_FORECAST))
    return {
        "granularity": ledger.granularity,
        "columns": ledger.columns,
        "rows": ledger_rows(ledger, vendors),
    }


@api_router.post("")
async def set_allocation(body: AllocationRequest, ledger: AllocationLedger = Depends(get_ledger)):
    ledger.set_allocation(body.vendor_id, body.product, body.column, body.amount)
    return {
        "success": True,
        "unallocated": ledger.unallocated(body.vendor_id, body.column),
        "is_balanced": ledger.is_balanced(body.vendor_id, body.column),
    }


@api_router.post("/allocate-remaining")
async def allocate_remaining(
    body: AllocateRemainingRequest,
    ledger: AllocationLedger = Depends(get_ledger),
):
    allocated = ledger.allocate_remaining(body.vendor_id, body.product, body.column)
    return {
        "success": allocated,
        "amount": ledger.allocated_amount(body.vendor_id, body.product, body.column),
        "unallocated": ledger.unallocated(body.vendor_id, body.column),
    }


@api_router.post("/apply-all")
async def apply_to_all(body: ApplyToAllRequest, ledger: AllocationLedger = Depends(get_ledger)):
    ledger.apply_to_all_months(body.vendor_id, body.source_column)
    return {"success": True, "summary": asdict(ledger.summary(body.vendor_id))}


@api_router.post("/save")
async def save_allocations(
    ledger: AllocationLedger = Depends(get_ledger),
    db: Database = Depends(get_db),
):
    stored = ledger.save(db)
    return {"success": True, "stored": stored}
