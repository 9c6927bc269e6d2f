"""Vendor to product tagging routes."""

from fastapi import APIRouter, Depends, Form, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from opex_planner.config import Config
from opex_planner.db import Database
from opex_planner.dimensions import ALL
from opex_planner.planner import ExpensePlanner, filter_vendors
from opex_planner.tagging import ProductTagger
from opex_planner.web.deps import (
    add_flash_message,
    get_config,
    get_db,
    get_flash_messages,
    get_planner,
    get_tagger,
)
from opex_planner.web.schemas import TagRequest

router = APIRouter(prefix="/vendor-tagging", tags=["tagging"])
api_router = APIRouter(prefix="/api/tags", tags=["tagging-api"])

# Checkbox values are "<vendor_id>|<product>"
TAG_SEPARATOR = "|"


@router.get("", response_class=HTMLResponse)
async def tagging_page(
    request: Request,
    gl_account: str = Query(ALL),
    cost_center: list[str] | None = Query(None),
    search: str | None = Query(None),
    planner: ExpensePlanner = Depends(get_planner),
    tagger: ProductTagger = Depends(get_tagger),
    config: Config = Depends(get_config),
):
    """Vendor x product checkbox matrix."""
    templates = request.app.state.templates
    vendors = filter_vendors(planner.expense_data, gl_account, cost_center or [ALL], search)

    return templates.TemplateResponse(
        request,
        "pages/vendor_tagging.html",
        {
            "flash_messages": get_flash_messages(request),
            "vendors": vendors,
            "view": planner.expense_data,
            "products": tagger.products,
            "tags": tagger.tags,
            "gl_accounts": config.planning.gl_accounts,
            "cost_centers": config.planning.cost_centers,
            "gl_account": gl_account,
            "selected_cost_centers": cost_center or [ALL],
            "search": search or "",
            "separator": TAG_SEPARATOR,
            "all_value": ALL,
            "page_title": "Vendor Tagging",
        },
    )


@router.post("")
async def save_tags_form(
    request: Request,
    vendor_ids: list[str] = Form([]),
    tag: list[str] = Form([]),
    tagger: ProductTagger = Depends(get_tagger),
    db: Database = Depends(get_db),
):
    """Replace the tags of the vendors shown on the page and store all tags."""
    checked = set(tag)
    try:
        for vendor_id in vendor_ids:
            for product in tagger.products:
                tagger.set_tag(vendor_id, product, f"{vendor_id}{TAG_SEPARATOR}{product}" in checked)
        stored = tagger.save(db)
    except ValueError as e:
        add_flash_message(request, "error", str(e))
        return RedirectResponse(url="/vendor-tagging", status_code=303)

    add_flash_message(request, "success", f"Saved {stored} product tags.")
    return RedirectResponse(url="/vendor-tagging", status_code=303)


# JSON API


@api_router.get("")
async def get_tags(tagger: ProductTagger = Depends(get_tagger)):
    return {"products": tagger.products, "tags": tagger.tags}


@api_router.post("")
async def set_tag(body: TagRequest, tagger: ProductTagger = Depends(get_tagger)):
    """Check or uncheck one vendor/product tag (not stored until saved)."""
    tagger.set_tag(body.vendor_id, body.product, body.checked)
    return {"success": True, "vendor_id": body.vendor_id, "tags": tagger.tags_for(body.vendor_id)}


@api_router.post("/save")
async def save_tags(
    tagger: ProductTagger = Depends(get_tagger),
    db: Database = Depends(get_db),
):
    stored = tagger.save(db)
    return {"success": True, "stored": stored}
