"""Vendor to product tagging."""

from collections.abc import Iterable, Mapping

from . import audit
from .db import Database
from .dimensions import PRODUCTS
from .logging import get_logger

logger = get_logger(__name__)


class ProductTagger:
    """Tracks which products each vendor is tagged with."""

    def __init__(
        self,
        products: Iterable[str] = PRODUCTS,
        tags: Mapping[str, Iterable[str]] | None = None,
    ):
        self.products = list(products)
        self._tags: dict[str, list[str]] = {}
        for vendor_id, vendor_tags in (tags or {}).items():
            for product in vendor_tags:
                self.set_tag(vendor_id, product, True)

    @property
    def tags(self) -> dict[str, list[str]]:
        """Copy of {vendor_id: [product, ...]} for vendors with at least one tag."""
        return {vendor_id: list(tags) for vendor_id, tags in self._tags.items() if tags}

    def set_tag(self, vendor_id: str, product: str, checked: bool) -> None:
        """Add or remove one product tag; adding twice keeps a single tag."""
        if product not in self.products:
            raise ValueError(f"Unknown product: {product!r}")
        vendor_tags = self._tags.setdefault(vendor_id, [])
        if checked:
            if product not in vendor_tags:
                vendor_tags.append(product)
        elif product in vendor_tags:
            vendor_tags.remove(product)

    def has_tag(self, vendor_id: str, product: str) -> bool:
        return product in self._tags.get(vendor_id, [])

    def tags_for(self, vendor_id: str) -> list[str]:
        return list(self._tags.get(vendor_id, []))

    def tagged_vendor_ids(self) -> set[str]:
        return {vendor_id for vendor_id, tags in self._tags.items() if tags}

    def load(self, db: Database) -> None:
        """Replace the in-memory tags with the stored ones."""
        self._tags = {}
        for vendor_id, products in db.get_product_tags().items():
            for product in products:
                if product in self.products:
                    self.set_tag(vendor_id, product, True)
                else:
                    logger.warning("unknown_product_tag_ignored", vendor_id=vendor_id, product=product)

    def save(self, db: Database) -> int:
        """Store every tag, replacing what the database holds.

        Returns:
            Number of tags stored.
        """
        tags = self.tags
        stored = db.save_product_tags(tags)
        audit.log_tags_saved(vendor_count=len(tags), tag_count=stored)
        return stored
