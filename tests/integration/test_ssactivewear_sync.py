from datetime import datetime, timezone

import pytest

from supplier_catalog.exceptions import SupplierProtocolError, SupplierTransportError
from supplier_catalog.records import Colorway, ProductRecord, Size, SkuMapEntry
from supplier_catalog.services.fallback import SupplierFallback
from supplier_catalog.services.product_store import get_product, load_product_record
from supplier_catalog.services.ssactivewear_sync import sync_ssactivewear_sellable


class FakeSellableSource:
    def __init__(self, product_ids):
        self.product_ids = product_ids
        self.calls = []

    def fetch_sellable_product_ids(self, modified_since=None):
        self.calls.append(modified_since)
        return list(self.product_ids)


class FakeProductClient:
    """Serves products by id; ids mapped to an exception raise it."""

    def __init__(self, source_name, products):
        self.source_name = source_name
        self.products = products
        self.calls = []

    def fetch_product(self, product_id):
        self.calls.append(product_id)
        found = self.products.get(product_id)
        if isinstance(found, Exception):
            raise found
        if found is None:
            raise SupplierProtocolError(f"{self.source_name} has no product {product_id}")
        return found

    def fetch_inventory(self, product_id, inventory_filter=None):
        raise NotImplementedError


def _product(part_id, color="Black"):
    color_code = color.upper()
    return ProductRecord(
        part_id,
        f"Style {part_id}",
        brand="Gildan",
        colors=[Colorway(color_code, color)],
        sizes=[Size("S", "S", 3)],
        skus=[SkuMapEntry(color_code, "S", f"{part_id}003")],
    )


@pytest.fixture
def sources():
    primary = FakeProductClient("promostandards", {
        "B00760": _product("B00760"),
        "B18500": SupplierTransportError("PromoStandards request failed: 503"),
        "B99999": SupplierTransportError("PromoStandards request failed: 503"),
    })
    secondary = FakeProductClient("ssactivewear_rest", {"B18500": _product("B18500", color="Navy")})
    return primary, secondary


@pytest.mark.integration
class TestSsActivewearSync:
    def test_fetches_each_sellable_style_through_fallback(self, db_session, sources):
        primary, secondary = sources
        listing = FakeSellableSource(["B00760", "B18500", "B99999"])

        result = sync_ssactivewear_sellable(db_session, listing, SupplierFallback(primary, secondary))

        assert result.sellable == 3
        assert result.fetched == 2
        assert result.created == 2
        assert result.from_secondary == 1
        assert result.failed == 1
        assert [(issue.entity_id, issue.error_code) for issue in result.issues] == [("B99999", "FALLBACK_EXHAUSTED")]
        assert get_product(db_session, "B00760").supplier == "SSACTIVEWEAR"
        assert [c.color_code for c in load_product_record(db_session, "B18500").colors] == ["NAVY"]
        assert secondary.calls == ["B18500", "B99999"]

    def test_second_run_updates(self, db_session, sources):
        fallback = SupplierFallback(*sources)
        sync_ssactivewear_sellable(db_session, FakeSellableSource(["B00760"]), fallback)

        result = sync_ssactivewear_sellable(db_session, FakeSellableSource(["B00760"]), fallback)

        assert (result.created, result.updated) == (0, 1)

    def test_modified_since_and_limit(self, db_session, sources):
        primary, secondary = sources
        listing = FakeSellableSource(["B00760", "B18500"])
        since = datetime(2026, 10, 1, tzinfo=timezone.utc)

        result = sync_ssactivewear_sellable(
            db_session, listing, SupplierFallback(primary, secondary), modified_since=since, limit=1
        )

        assert listing.calls == [since]
        assert result.sellable == 2
        assert primary.calls == ["B00760"]
        assert get_product(db_session, "B18500") is None

    def test_dry_run_writes_nothing(self, db_session, sources):
        result = sync_ssactivewear_sellable(
            None, FakeSellableSource(["B00760", "B18500"]), SupplierFallback(*sources), dry_run=True
        )

        assert result.fetched == 2
        assert result.processed == 0
        assert get_product(db_session, "B00760") is None

    def test_commit_failure_is_recorded(self, db_session, sources, commit_fails_once):
        result = sync_ssactivewear_sellable(
            db_session, FakeSellableSource(["B00760", "B18500"]), SupplierFallback(*sources)
        )

        assert result.failed == 1
        assert result.created == 1
        assert [(issue.entity_id, issue.error_code) for issue in result.issues] == [("B00760", "PERSISTENCE_ERROR")]
        assert get_product(db_session, "B00760") is None

    def test_listing_failure_aborts(self, db_session, sources):
        class FailingListing:
            def fetch_sellable_product_ids(self, modified_since=None):
                raise SupplierTransportError("PromoStandards request to product failed: 500")

        with pytest.raises(SupplierTransportError):
            sync_ssactivewear_sellable(db_session, FailingListing(), SupplierFallback(*sources))

    def test_to_outcome(self, db_session, sources):
        outcome = sync_ssactivewear_sellable(
            db_session, FakeSellableSource(["B00760"]), SupplierFallback(*sources)
        ).to_outcome()

        assert outcome.read_count == 1
        assert outcome.write_count == 1
        assert outcome.result["sellable"] == 1
        assert outcome.issues == []
