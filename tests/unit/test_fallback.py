import logging

import pytest

from supplier_catalog.exceptions import SupplierFallbackError, SupplierProtocolError, SupplierTransportError
from supplier_catalog.records import InventoryFilter, ParsedInventory, ProductRecord
from supplier_catalog.services.fallback import SupplierFallback, fetch_inventory_with_fallback, fetch_with_fallback


class StubClient:
    def __init__(self, source_name, product=None, inventory=None, error=None):
        self.source_name = source_name
        self.product = product
        self.inventory = inventory
        self.error = error
        self.calls = []

    def fetch_product(self, product_id):
        self.calls.append(("product", product_id))
        if self.error:
            raise self.error
        return self.product

    def fetch_inventory(self, product_id, inventory_filter=None):
        self.calls.append(("inventory", product_id, inventory_filter))
        if self.error:
            raise self.error
        return self.inventory


@pytest.mark.unit
class TestSupplierFallback:
    def test_primary_success_skips_secondary(self):
        record = ProductRecord("B00760", "Tee")
        primary = StubClient("promostandards", product=record)
        secondary = StubClient("ssactivewear_rest", product=ProductRecord("B00760", "Other"))

        result = fetch_with_fallback(primary, secondary, "B00760")

        assert result.record is record
        assert result.source == "primary"
        assert result.warnings == []
        assert result.fetched_at.tzinfo is not None
        assert secondary.calls == []

    def test_secondary_success_carries_primary_warning(self, caplog):
        record = ProductRecord("B00760", "Tee")
        primary = StubClient("promostandards", error=SupplierTransportError("PromoStandards request failed: 503"))
        secondary = StubClient("ssactivewear_rest", product=record)

        with caplog.at_level(logging.WARNING, logger="supplier_catalog.services.fallback"):
            result = fetch_with_fallback(primary, secondary, "B00760")

        assert result.record is record
        assert result.source == "secondary"
        assert result.warnings == ["PromoStandards request failed: 503"]
        assert "primary source promostandards failed for product B00760" in caplog.text

    def test_total_failure_mentions_both_causes(self):
        primary_error = SupplierProtocolError("GetProduct returned error code 130 - Product Id not found")
        secondary_error = SupplierTransportError("SSActivewear REST request failed: 500")
        fallback = SupplierFallback(
            StubClient("promostandards", error=primary_error),
            StubClient("ssactivewear_rest", error=secondary_error),
        )

        with pytest.raises(SupplierFallbackError) as excinfo:
            fallback.fetch_product("B00760")

        message = str(excinfo.value)
        assert "Product Id not found" in message
        assert "SSActivewear REST request failed: 500" in message
        assert excinfo.value.causes == [("primary", primary_error), ("secondary", secondary_error)]
        assert excinfo.value.__cause__ is secondary_error

    def test_unexpected_primary_exception_still_falls_back(self):
        inventory = ParsedInventory("B00760")
        primary = StubClient("promostandards", error=KeyError("Inventory"))
        secondary = StubClient("ssactivewear_rest", inventory=inventory)
        inventory_filter = InventoryFilter(color="Black")

        result = SupplierFallback(primary, secondary).fetch_inventory("B00760", inventory_filter)

        assert result.record is inventory
        assert result.source == "secondary"
        assert result.warnings == ["'Inventory'"]
        assert secondary.calls == [("inventory", "B00760", inventory_filter)]

    def test_inventory_primary_success(self):
        inventory = ParsedInventory("PC54")
        primary = StubClient("promostandards", inventory=inventory)
        secondary = StubClient("ssactivewear_rest", error=AssertionError("must not be called"))

        result = fetch_inventory_with_fallback(primary, secondary, "PC54")

        assert result.record is inventory
        assert result.source == "primary"
        assert primary.calls == [("inventory", "PC54", None)]
        assert secondary.calls == []
