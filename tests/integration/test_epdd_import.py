import pytest

from supplier_catalog.services.epdd_importer import import_sanmar_epdd, parse_epdd_row
from supplier_catalog.services.product_store import get_product, persist_product_record
from supplier_catalog.records import ProductRecord


@pytest.fixture
def stored_pc54(db_session):
    persist_product_record(
        db_session,
        ProductRecord("PC54", "Core Cotton Tee", attributes={"productStatus": "Active", "unitPrice": 1}),
        supplier="SANMAR",
    )
    db_session.commit()
    return get_product(db_session, "PC54")


@pytest.mark.unit
def test_parse_epdd_row_trims_headers_and_coerces_numbers():
    entry = parse_epdd_row({"STYLE#": "pc54", " CASE_WEIGHT": "22", "PRICE": "$1,250.00", "NOTE": " soft "})

    assert entry.supplier_part_id == "PC54"
    assert entry.pricing == {"unitPrice": 1250}
    assert entry.attributes == {"CASE_WEIGHT": 22, "NOTE": "soft"}
    assert parse_epdd_row({"STYLE#": "  "}) is None


@pytest.mark.integration
class TestEpddImport:
    def test_enriches_existing_and_reports_missing(self, db_session, fixtures_dir, stored_pc54):
        result = import_sanmar_epdd(db_session, fixtures_dir / "epdd_sample.csv")

        assert result.rows_read == 3
        assert result.processed == 2
        assert result.updated == 1
        assert result.matched_styles == ["PC54"]
        assert result.missing_styles == ["ZZ999"]
        assert get_product(db_session, "ZZ999") is None

        attributes = get_product(db_session, "PC54").attributes
        assert attributes["productStatus"] == "Active"
        assert attributes["mainCategory"] == "T-Shirts"
        assert attributes["subCategory"] == "Core Cotton"
        assert attributes["bulkInventory"] == 12500
        assert attributes["unitPrice"] == 3.18
        assert attributes["bulkPrice"] == 2.79
        assert attributes["FABRIC_WEIGHT"] == 5.4
        assert attributes["COUNTRY_OF_ORIGIN"] == "Honduras"
        assert attributes["CASE_WEIGHT"] == 22

    def test_style_filter(self, db_session, fixtures_dir, stored_pc54):
        result = import_sanmar_epdd(db_session, fixtures_dir / "epdd_sample.csv", style_filter=["pc54", "K500"])

        assert result.processed == 1
        assert result.matched_styles == ["PC54"]
        assert result.missing_styles == ["K500"]

    def test_dry_run_leaves_attributes(self, db_session, fixtures_dir, stored_pc54):
        result = import_sanmar_epdd(db_session, fixtures_dir / "epdd_sample.csv", dry_run=True)

        assert result.updated == 0
        assert result.matched_styles == ["PC54"]
        assert result.missing_styles == ["ZZ999"]
        db_session.expire_all()
        assert get_product(db_session, "PC54").attributes == {"productStatus": "Active", "unitPrice": 1}

    def test_without_session_counts_only(self, fixtures_dir):
        result = import_sanmar_epdd(None, fixtures_dir / "epdd_sample.csv", dry_run=True)

        assert result.processed == 2
        assert result.matched_styles == ["PC54", "ZZ999"]
        assert result.missing_styles == []
