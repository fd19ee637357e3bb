import pytest

from supplier_catalog.exceptions import SupplierProtocolError
from supplier_catalog.parsers.promostandards import (
    check_service_messages,
    parse_inventory_response,
    parse_product_response,
    parse_product_sellable_response,
)
from supplier_catalog.records import WarehouseQuantity


@pytest.mark.unit
class TestParseProductResponse:
    def test_multi_part_product(self, fixtures_dir):
        record = parse_product_response((fixtures_dir / "ps_get_product.xml").read_bytes())

        assert record.supplier_part_id == "B00760"
        assert record.name == "Gildan Ultra Cotton T-Shirt"
        assert record.brand == "Gildan"
        assert record.default_color == "BLACK"
        assert record.description == ["6 oz. 100% cotton", "Taped neck", "Seamless collar"]

        assert [c.color_code for c in record.colors] == ["BLACK", "HEATHER_NAVY"]
        assert record.colors[0].supplier_variant_id == "Black"
        # sizes come back in display order, not payload order
        assert [s.size_code for s in record.sizes] == ["S", "M", "2XL"]
        assert {(s.color_code, s.size_code): s.supplier_sku for s in record.skus} == {
            ("BLACK", "M"): "B00760004",
            ("BLACK", "S"): "B00760003",
            ("HEATHER_NAVY", "2XL"): "B00760512",
        }

        media = {group.color_code: group.urls for group in record.media}
        assert media[None] == ["https://cdn.ssactivewear.com/Images/Style/760_fm.jpg"]
        assert media["BLACK"] == ["https://cdn.ssactivewear.com/Images/Color/17130_f_fm.jpg"]
        assert media["HEATHER_NAVY"] == ["https://cdn.ssactivewear.com/Images/Color/17140_b_fm.jpg"]

        assert record.keywords == ["gildan", "t-shirts", "short sleeve", "tee", "black", "heather navy"]

    def test_attributes_are_scalars(self, fixtures_dir):
        record = parse_product_response((fixtures_dir / "ps_get_product.xml").read_bytes())

        assert record.attributes == {
            "brandName": "Gildan",
            "priceExpiresDate": "2026-12-31T00:00:00",
            "complianceInfoAvailable": True,
            "marketingPoints": "Preshrunk jersey\nDouble-needle hems",
            "piecePrice": 2.98,
            "maxPiecePrice": 3.58,
            "priceCurrency": "USD",
            "fobPoints": "Dallas, TX; Reno, NV",
        }
        for value in record.attributes.values():
            assert isinstance(value, (str, int, float, bool))

    def test_single_part_without_color(self, fixtures_dir):
        record = parse_product_response((fixtures_dir / "ps_get_product_single_part.xml").read_text())

        assert record.supplier_part_id == "B18500"
        assert [(c.color_code, c.color_name) for c in record.colors] == [("DEFAULT", "Default")]
        assert [s.size_code for s in record.sizes] == ["XL"]
        assert [(s.color_code, s.size_code, s.supplier_sku) for s in record.skus] == [("DEFAULT", "XL", "B18500101")]
        assert record.media == []
        assert record.description == []

    def test_error_service_message(self, fixtures_dir):
        with pytest.raises(SupplierProtocolError) as excinfo:
            parse_product_response((fixtures_dir / "ps_service_error.xml").read_bytes())
        assert excinfo.value.message == "GetProduct returned error code 130 - Product Id not found"
        assert excinfo.value.fault_code == "130"

    def test_soap_fault(self, fixtures_dir):
        with pytest.raises(SupplierProtocolError, match="SOAP fault"):
            parse_product_response((fixtures_dir / "soap_fault.xml").read_bytes())

    def test_missing_product(self):
        xml = (
            "<Envelope><Body><GetProductResponse><Other>1</Other></GetProductResponse></Body></Envelope>"
        )
        with pytest.raises(SupplierProtocolError, match="unparseable payload"):
            parse_product_response(xml)


@pytest.mark.unit
class TestCheckServiceMessages:
    def test_informational_messages_do_not_raise(self):
        response = {
            "ServiceMessageArray": {
                "ServiceMessage": [
                    {"code": "100", "description": "Partial data", "severity": "Information"},
                    {"code": "110", "description": "Deprecated field", "severity": "Warning"},
                ]
            }
        }
        check_service_messages(response, "GetProduct")

    def test_legacy_error_message_without_severity(self):
        with pytest.raises(SupplierProtocolError, match="GetInventoryLevels returned error code 300 - Bad request"):
            check_service_messages({"errorMessage": {"code": "300", "description": "Bad request"}}, "GetInventoryLevels")


@pytest.mark.unit
class TestParseInventoryResponse:
    def test_breakdown_sum_wins_over_quantity_available(self, fixtures_dir):
        inventory = parse_inventory_response((fixtures_dir / "ps_get_inventory.xml").read_bytes())

        assert inventory.supplier_part_id == "PC54"
        assert len(inventory.records) == 2
        small, medium = inventory.records

        assert (small.color_code, small.size_code, small.supplier_sku) == ("ATHLETIC_HEATHER", "S", "1157")
        assert small.total_qty == 150
        assert small.warehouses == [
            WarehouseQuantity("1", 120, "Seattle, WA"),
            WarehouseQuantity("2", 30, "Cincinnati, OH"),
        ]

        assert (medium.size_code, medium.supplier_sku, medium.total_qty) == ("M", "1158", 42)
        assert medium.warehouses == []

    def test_single_part_single_location(self, fixtures_dir):
        inventory = parse_inventory_response((fixtures_dir / "ps_get_inventory_single.xml").read_bytes())

        assert inventory.supplier_part_id == "K500"
        assert len(inventory.records) == 1
        record = inventory.records[0]
        assert (record.color_code, record.size_code, record.supplier_sku, record.total_qty) == ("BLACK", "XL", "2201", 7)
        assert record.warehouses == [WarehouseQuantity("4", 7, "Dallas, TX")]

    def test_missing_inventory_with_known_product(self, fixtures_dir):
        inventory = parse_inventory_response(
            (fixtures_dir / "ps_get_inventory_empty.xml").read_bytes(), supplier_part_id="pc54"
        )
        assert inventory.supplier_part_id == "PC54"
        assert inventory.records == []

    def test_missing_inventory_without_product(self, fixtures_dir):
        with pytest.raises(SupplierProtocolError, match="unparseable payload"):
            parse_inventory_response((fixtures_dir / "ps_get_inventory_empty.xml").read_bytes())


@pytest.mark.unit
def test_parse_product_sellable_dedupes_ids(fixtures_dir):
    ids = parse_product_sellable_response((fixtures_dir / "ps_get_product_sellable.xml").read_bytes())
    assert ids == ["B00760", "B18500"]
