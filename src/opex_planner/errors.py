"""Exception hierarchy for the planner."""


class PlannerError(Exception):
    """Base class for planner errors.

    ``code`` is a short machine-readable tag that the web layer passes through
    to clients alongside the message.
    """

    code = "ERROR"

    def __init__(self, message: str, details: object | None = None):
        super().__init__(message)
        self.message = message
        self.details = details


class VendorNotFoundError(PlannerError):
    """A vendor id does not exist in the registry or the store."""

    code = "VENDOR_NOT_FOUND"

    def __init__(self, vendor_id: str, where: str = "the registry"):
        super().__init__(f"Vendor with ID {vendor_id} not found in {where}")
        self.vendor_id = vendor_id


class InvalidVendorError(PlannerError):
    """Vendor fields failed validation (e.g. the 'All' cost center)."""

    code = "INVALID_VENDOR"


class DataAccessError(PlannerError):
    """A database operation failed."""

    code = "DATA_ACCESS"
