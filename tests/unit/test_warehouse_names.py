import pytest

from supplier_catalog.services.warehouse_names import get_warehouse_display_name, normalize_sanmar_warehouse_id


@pytest.mark.unit
class TestWarehouseNames:
    def test_supplier_name_wins(self):
        assert get_warehouse_display_name("1", "Main DC", "SANMAR") == "Main DC"

    def test_sanmar_table(self):
        assert get_warehouse_display_name("1", None, "SANMAR") == "Dallas, TX"
        assert get_warehouse_display_name("cin", "  ", "sanmar") == "Cincinnati, OH"

    def test_other_suppliers_keep_raw_id(self):
        assert get_warehouse_display_name("1", None, "SSACTIVEWEAR") == "1"
        assert get_warehouse_display_name("IL") == "IL"

    def test_normalize_sanmar_warehouse_id(self):
        assert normalize_sanmar_warehouse_id("1") == ("DAL", "Dallas, TX")
        assert normalize_sanmar_warehouse_id(" 12 ", "Seattle WA") == ("SEA", "Seattle WA")
        assert normalize_sanmar_warehouse_id("xyz") == ("XYZ", None)
        assert normalize_sanmar_warehouse_id(None, "Nowhere") == ("", "Nowhere")
