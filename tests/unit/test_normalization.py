import random
import re
import string

import pytest

from supplier_catalog.normalization import (
    compact_number,
    compute_size_sort,
    html_to_lines,
    normalize_image_url,
    parse_decimal,
    parse_number,
    read_field,
    read_int,
    read_text,
    sanitize_code,
    split_description,
    to_array,
    to_ssa_product_id,
    to_style_number,
)

CODE_RE = re.compile(r"^[A-Z0-9_]+$")


@pytest.mark.unit
class TestSanitizeCode:
    def test_examples(self):
        assert sanitize_code("Heather Gray / Navy", "X") == "HEATHER_GRAY_NAVY"
        assert sanitize_code("  Jet Black  ", "X") == "JET_BLACK"
        assert sanitize_code("Crème", "X") == "CREME"
        assert sanitize_code("2XL", "X") == "2XL"

    def test_fallback_when_nothing_survives(self):
        assert sanitize_code(None, "DEFAULT") == "DEFAULT"
        assert sanitize_code("", "DEFAULT") == "DEFAULT"
        assert sanitize_code(" / - ", "DEFAULT") == "DEFAULT"

    def test_idempotent_and_charset_on_random_input(self):
        rng = random.Random(20240611)
        alphabet = string.ascii_letters + string.digits + " -_/&.'()#éüñ\t"
        for _ in range(500):
            value = "".join(rng.choice(alphabet) for _ in range(rng.randint(0, 24)))
            code = sanitize_code(value, "FALLBACK")
            assert CODE_RE.match(code)
            assert sanitize_code(code, "FALLBACK") == code


@pytest.mark.unit
class TestComputeSizeSort:
    def test_reference_order(self):
        assert compute_size_sort("S") < compute_size_sort("M") < compute_size_sort("L") < compute_size_sort("XL")
        assert compute_size_sort("XS") < compute_size_sort("S")
        assert compute_size_sort("XL") < compute_size_sort("2XL") < compute_size_sort("3XL")

    def test_label_normalization(self):
        assert compute_size_sort("2 XL") == compute_size_sort("2XL")
        assert compute_size_sort("xl") == compute_size_sort("XL")

    def test_numeric_and_unknown_sizes_rank_after_table(self):
        assert compute_size_sort("6XL") < compute_size_sort("Size 30") < compute_size_sort("Size 32")
        assert compute_size_sort("32W") < compute_size_sort("Youth")
        assert compute_size_sort(None) == compute_size_sort("Youth")

    def test_large_numeric_size_still_ranks_before_unknown(self):
        assert compute_size_sort("Size 1200") < compute_size_sort("Jumbo")


@pytest.mark.unit
class TestFieldReaders:
    def test_to_array(self):
        assert to_array(None) == []
        assert to_array("") == []
        assert to_array({"a": 1}) == [{"a": 1}]
        assert to_array([1, 2]) == [1, 2]
        assert to_array((1, 2)) == [1, 2]

    def test_read_text_handles_xml_text_nodes(self):
        assert read_text("  hi ") == "hi"
        assert read_text({"_": " node ", "attr": "x"}) == "node"
        assert read_text({"child": "x"}) is None
        assert read_text(12) == "12"
        assert read_text("   ") is None
        assert read_text(True) is None

    def test_read_field_uses_alias_priority(self):
        record = {"SupplierPartId": "", "partId": "PC54", "PartId": "OTHER"}
        assert read_field(record, ("supplierPartId", "SupplierPartId", "partId", "PartId")) == "PC54"
        assert read_field(record, ("missing",)) is None
        assert read_field(None, ("partId",)) is None

    def test_read_int(self):
        assert read_int("42") == 42
        assert read_int("12 pcs") == 12
        assert read_int(None) == 0
        assert read_int("n/a", default=-1) == -1

    def test_numbers(self):
        assert parse_decimal("$1,234.50") == 1234.5
        assert parse_decimal("4.2 lbs") == 4.2
        assert parse_decimal("") is None
        assert parse_number("72 pcs") == 72.0
        assert parse_number("none") is None
        assert compact_number(72.0) == 72
        assert isinstance(compact_number(72.0), int)
        assert compact_number(3.5) == 3.5
        assert compact_number(None) is None


@pytest.mark.unit
class TestTextHelpers:
    def test_html_to_lines(self):
        raw = "&lt;p&gt;Soft cotton&lt;/p&gt;<ul><li>Taped neck</li><li>Tear away   label</li></ul>Line<br>break"
        assert html_to_lines(raw) == ["Soft cotton", "Taped neck", "Tear away label", "Line", "break"]
        assert html_to_lines(None) == []

    def test_split_description(self):
        assert split_description("5.4 oz |  Taped neck|\n|Side seamed ") == ["5.4 oz", "Taped neck", "Side seamed"]
        assert split_description(None) == []

    def test_normalize_image_url(self):
        assert normalize_image_url("Images/Color/1_f.jpg") == "https://cdn.ssactivewear.com/Images/Color/1_f.jpg"
        assert normalize_image_url("/Images/a.jpg", "https://cdn.example.com/") == "https://cdn.example.com/Images/a.jpg"
        assert normalize_image_url("https://x.test/a.jpg") == "https://x.test/a.jpg"
        assert normalize_image_url("  ") is None


@pytest.mark.unit
class TestProductIds:
    def test_to_ssa_product_id(self):
        assert to_ssa_product_id("b00760") == "B00760"
        assert to_ssa_product_id("760") == "B00760"
        assert to_ssa_product_id(" a230 ") == "A230"
        with pytest.raises(ValueError):
            to_ssa_product_id("  ")

    def test_to_style_number(self):
        assert to_style_number("B00760") == "00760"
        assert to_style_number("A230") == "A230"
