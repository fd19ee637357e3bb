"""
Primary -> secondary supplier lookup.

The primary (PromoStandards SOAP) client is tried first; any failure is kept and the secondary
(REST) client is tried. A successful secondary result carries the primary's failure as a warning.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Generic, TypeVar

from supplier_catalog.clients.base import SupplierClient
from supplier_catalog.exceptions import SupplierFallbackError
from supplier_catalog.records import DataSource, InventoryFilter, ParsedInventory, ProductRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class FallbackResult(Generic[T]):
    record: T
    source: DataSource
    warnings: list[str] = field(default_factory=list)
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class SupplierFallback:
    def __init__(self, primary: SupplierClient, secondary: SupplierClient) -> None:
        self.primary = primary
        self.secondary = secondary

    def _run(self, subject: str, call: Callable[[SupplierClient], T]) -> FallbackResult[T]:
        try:
            return FallbackResult(call(self.primary), "primary")
        except Exception as primary_error:
            logger.warning(
                f"[FALLBACK] primary source {self.primary.source_name} failed for {subject}: {primary_error}"
            )
            try:
                record = call(self.secondary)
            except Exception as secondary_error:
                logger.error(
                    f"[FALLBACK] secondary source {self.secondary.source_name} failed for {subject}: {secondary_error}"
                )
                raise SupplierFallbackError(
                    subject,
                    [("primary", primary_error), ("secondary", secondary_error)],
                ) from secondary_error
            logger.info(f"[FALLBACK] served {subject} from secondary source {self.secondary.source_name}")
            return FallbackResult(record, "secondary", [str(primary_error)])

    def fetch_product(self, product_id: str) -> FallbackResult[ProductRecord]:
        return self._run(f"product {product_id}", lambda client: client.fetch_product(product_id))

    def fetch_inventory(
        self, product_id: str, inventory_filter: InventoryFilter | None = None
    ) -> FallbackResult[ParsedInventory]:
        return self._run(
            f"inventory {product_id}",
            lambda client: client.fetch_inventory(product_id, inventory_filter),
        )


def fetch_with_fallback(primary: SupplierClient, secondary: SupplierClient, product_id: str) -> FallbackResult[ProductRecord]:
    return SupplierFallback(primary, secondary).fetch_product(product_id)


def fetch_inventory_with_fallback(
    primary: SupplierClient,
    secondary: SupplierClient,
    product_id: str,
    inventory_filter: InventoryFilter | None = None,
) -> FallbackResult[ParsedInventory]:
    return SupplierFallback(primary, secondary).fetch_inventory(product_id, inventory_filter)
