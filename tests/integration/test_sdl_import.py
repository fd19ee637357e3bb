import pytest
from sqlalchemy import select

from supplier_catalog.models import Product, ProductSku
from supplier_catalog.services.product_store import get_product, load_product_record
from supplier_catalog.services.sdl_importer import import_sdl_catalog

HEADER = "STYLE#,PRODUCT_TITLE,MILL,COLOR_NAME,SIZE,SIZE_INDEX,GTIN,COLOR_PRODUCT_IMAGE\n"


@pytest.mark.integration
class TestSdlImport:
    def test_rows_fold_into_one_product(self, db_session, fixtures_dir):
        result = import_sdl_catalog(db_session, fixtures_dir / "sdl_pc54.csv")

        assert result.processed == 1
        assert result.created == 1
        assert result.rows_read == 2

        record = load_product_record(db_session, "pc54")
        assert record.name == "Port & Company Core Cotton Tee"
        assert record.brand == "Port & Company"
        assert record.default_color == "WHITE"
        assert record.description == ["5.4-ounce, 100% cotton", "Shoulder to shoulder taping"]
        assert {c.color_code for c in record.colors} == {"WHITE", "BLACK"}
        assert [s.size_code for s in record.sizes] == ["S", "M"]
        assert {(s.color_code, s.size_code): s.supplier_sku for s in record.skus} == {
            ("WHITE", "S"): "00191265845011",
            ("BLACK", "M"): "00191265845028",
        }
        assert record.attributes["productStatus"] == "Active"
        assert record.attributes["caseSize"] == 72
        assert record.attributes["piecePrice"] == 3.18
        assert record.attributes["pieceWeight"] == 0.45
        media = {group.color_code: group.urls for group in record.media}
        assert media[None] == ["https://cdnm.sanmar.com/pc54/main.jpg"]
        assert media["WHITE"] == ["https://cdnm.sanmar.com/pc54/white.jpg"]
        assert set(record.keywords) == {"t-shirts", "core", "port & company", "white", "black"}

    def test_orphan_rows_and_default_color(self, db_session, fixtures_dir):
        result = import_sdl_catalog(db_session, fixtures_dir / "sdl_catalog.csv")

        assert result.rows_read == 5
        assert result.rows_skipped == 1
        assert result.processed == 2
        assert [issue.entity_type for issue in result.issues] == ["row"]

        dt6000 = load_product_record(db_session, "DT6000")
        assert [(c.color_code, c.color_name) for c in dt6000.colors] == [("DT6000_DEFAULT", "Default")]
        assert [s.size_code for s in dt6000.sizes] == ["L"]
        assert dt6000.skus[0].supplier_sku == "DT6000_DT6000_DEFAULT_L"

    def test_reimport_replaces_children(self, db_session, tmp_path):
        first = tmp_path / "first.csv"
        first.write_text(HEADER + "K500,Pique Polo,Port Authority,White,M,3,111,https://x.test/white.jpg\n")
        second = tmp_path / "second.csv"
        second.write_text(HEADER + "K500,Pique Polo,Port Authority,Black,L,4,222,https://x.test/black.jpg\n")

        assert import_sdl_catalog(db_session, first).created == 1
        result = import_sdl_catalog(db_session, second)

        assert result.created == 0
        assert result.updated == 1
        record = load_product_record(db_session, "K500")
        assert [c.color_code for c in record.colors] == ["BLACK"]
        assert [s.size_code for s in record.sizes] == ["L"]
        assert [g.color_code for g in record.media] == ["BLACK"]
        assert "white" not in record.keywords
        skus = db_session.execute(select(ProductSku.supplier_sku)).scalars().all()
        assert skus == ["222"]

    def test_zero_limit_reads_nothing(self, db_session, fixtures_dir):
        result = import_sdl_catalog(db_session, fixtures_dir / "sdl_catalog.csv", limit=0)

        assert result.rows_read == 0
        assert result.processed == 0
        assert get_product(db_session, "PC54") is None

    def test_limit_caps_rows(self, db_session, fixtures_dir):
        result = import_sdl_catalog(db_session, fixtures_dir / "sdl_catalog.csv", limit=2)

        assert result.rows_read == 2
        record = load_product_record(db_session, "PC54")
        assert [s.size_code for s in record.sizes] == ["S", "M"]
        assert [c.color_code for c in record.colors] == ["JET_BLACK"]

    def test_dry_run_writes_nothing(self, db_session, fixtures_dir):
        result = import_sdl_catalog(None, fixtures_dir / "sdl_catalog.csv", dry_run=True)

        assert result.processed == 2
        assert result.created == result.updated == 0
        assert db_session.execute(select(Product)).first() is None

    def test_missing_file(self, db_session, tmp_path):
        with pytest.raises(FileNotFoundError):
            import_sdl_catalog(db_session, tmp_path / "nope.csv")

    def test_commit_failure_is_recorded_and_run_continues(self, db_session, fixtures_dir, commit_fails_once):
        result = import_sdl_catalog(db_session, fixtures_dir / "sdl_catalog.csv")

        assert result.processed == 2
        assert result.failed == 1
        assert result.created == 1
        failure = [issue for issue in result.issues if issue.entity_type == "product"]
        assert [(issue.entity_id, issue.error_code) for issue in failure] == [("PC54", "PERSISTENCE_ERROR")]
        assert "database is locked" in failure[0].message
        assert get_product(db_session, "PC54") is None
        assert get_product(db_session, "DT6000") is not None
