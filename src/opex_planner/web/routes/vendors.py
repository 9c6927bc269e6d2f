"""Vendor registry routes."""

from dataclasses import asdict

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import RedirectResponse

from opex_planner.errors import PlannerError, VendorNotFoundError
from opex_planner.planner import ExpensePlanner
from opex_planner.web.deps import add_flash_message, add_notice, get_planner
from opex_planner.web.schemas import VendorRequest
from opex_planner.web.services import DashboardService

router = APIRouter(prefix="/vendors", tags=["vendors"])
api_router = APIRouter(prefix="/api/vendors", tags=["vendors-api"])


@router.post("")
async def add_vendor(
    request: Request,
    name: str = Form(...),
    gl_account: str = Form(...),
    cost_center: str = Form(...),
    planner: ExpensePlanner = Depends(get_planner),
):
    """Add a vendor to the session's registry."""
    try:
        planner.add_vendor(name, gl_account, cost_center)
        add_flash_message(request, "success", f"Vendor {name.strip()} added. Save to keep it.")
    except PlannerError:
        add_notice(request, planner.notice)
        planner.clear_notice()
    return RedirectResponse(url="/", status_code=303)


@router.post("/{vendor_id}/edit")
async def edit_vendor(
    request: Request,
    vendor_id: str,
    name: str = Form(...),
    gl_account: str = Form(...),
    cost_center: str = Form(...),
    planner: ExpensePlanner = Depends(get_planner),
):
    """Edit a vendor's name, GL account and cost center."""
    try:
        planner.edit_vendor(vendor_id, name, gl_account, cost_center)
        add_flash_message(request, "success", f"Vendor {name.strip()} updated.")
    except PlannerError:
        add_notice(request, planner.notice)
        planner.clear_notice()
    return RedirectResponse(url="/", status_code=303)


@router.post("/{vendor_id}/delete")
async def delete_vendor(
    request: Request,
    vendor_id: str,
    planner: ExpensePlanner = Depends(get_planner),
):
    """Remove a vendor; the database row goes on the next save."""
    try:
        planner.delete_vendor(vendor_id)
        add_flash_message(request, "success", "Vendor deleted. Save to apply.")
    except PlannerError:
        add_notice(request, planner.notice)
        planner.clear_notice()
    return RedirectResponse(url="/", status_code=303)


@router.post("/delete-all")
async def delete_all_vendors(
    request: Request,
    planner: ExpensePlanner = Depends(get_planner),
):
    planner.delete_all_vendors()
    add_flash_message(request, "warning", "All vendors removed. Save to apply.")
    return RedirectResponse(url="/", status_code=303)


# JSON API


def vendor_payload(planner: ExpensePlanner, vendor_id: str) -> dict:
    vendor = planner.registry.get(vendor_id)
    if vendor is None:
        raise VendorNotFoundError(vendor_id)
    return asdict(vendor)


@api_router.get("")
async def list_vendors(planner: ExpensePlanner = Depends(get_planner)):
    """Every vendor in the session's registry, by name."""
    vendors = sorted(planner.registry.values(), key=lambda v: v.name.lower())
    return {"vendors": [asdict(vendor) for vendor in vendors]}


@api_router.post("", status_code=201)
async def create_vendor(
    body: VendorRequest,
    planner: ExpensePlanner = Depends(get_planner),
):
    try:
        vendor_id = planner.add_vendor(body.name, body.gl_account, body.cost_center)
    except PlannerError:
        planner.clear_notice()
        raise
    return vendor_payload(planner, vendor_id)


@api_router.get("/{vendor_id}")
async def get_vendor(vendor_id: str, planner: ExpensePlanner = Depends(get_planner)):
    return vendor_payload(planner, vendor_id)


@api_router.put("/{vendor_id}")
async def update_vendor(
    vendor_id: str,
    body: VendorRequest,
    planner: ExpensePlanner = Depends(get_planner),
):
    try:
        planner.edit_vendor(vendor_id, body.name, body.gl_account, body.cost_center)
    except PlannerError:
        planner.clear_notice()
        raise
    return vendor_payload(planner, vendor_id)


@api_router.delete("/{vendor_id}")
async def remove_vendor(vendor_id: str, planner: ExpensePlanner = Depends(get_planner)):
    try:
        planner.delete_vendor(vendor_id)
    except PlannerError:
        planner.clear_notice()
        raise
    return {"success": True, "vendor_id": vendor_id}


@api_router.get("/{vendor_id}/detail")
async def vendor_detail(vendor_id: str, planner: ExpensePlanner = Depends(get_planner)):
    """Totals and monthly/quarterly series for the vendor details panel."""
    return DashboardService(planner).vendor_detail(vendor_id)
