"""Pydantic models for JSON request bodies."""

from pydantic import BaseModel, Field


class VendorRequest(BaseModel):
    """Fields for adding or editing a vendor."""

    name: str
    gl_account: str
    cost_center: str


class ExpenseCellRequest(BaseModel):
    """One grid cell; quarterly and annual amounts are spread over their months."""

    vendor_id: str
    column: str
    amount: float


class FiltersRequest(BaseModel):
    """Planner filter changes; omitted fields are left as they are."""

    version: str | None = None
    time_granularity: str | None = None
    gl_account: str | None = None
    cost_centers: list[str] | None = None
    year: int | None = None


class SaveRequest(BaseModel):
    # Required to save once every vendor has been deleted
    confirm_empty: bool = False


class TagRequest(BaseModel):
    vendor_id: str
    product: str
    checked: bool = True


class AllocationRequest(BaseModel):
    vendor_id: str
    product: str
    column: str
    amount: float = Field(ge=0)


class AllocateRemainingRequest(BaseModel):
    vendor_id: str
    product: str
    column: str


class ApplyToAllRequest(BaseModel):
    vendor_id: str
    source_column: str
