from __future__ import annotations

from typing import Protocol, runtime_checkable

from supplier_catalog.records import InventoryFilter, ParsedInventory, ProductRecord


@runtime_checkable
class SupplierClient(Protocol):
    """
    Capability set every supplier transport provides. Implementations raise
    SupplierTransportError / SupplierProtocolError and never retry internally.
    """

    source_name: str

    def fetch_product(self, product_id: str) -> ProductRecord:
        ...

    def fetch_inventory(self, product_id: str, inventory_filter: InventoryFilter | None = None) -> ParsedInventory:
        ...
