import random

import pytest

from supplier_catalog.records import Colorway, InventoryRecord, Size, WarehouseQuantity
from supplier_catalog.services.inventory_matrix import (
    MatrixConfigError,
    WarehouseOption,
    build_inventory_matrix,
)

SIZES = ["XS", "S", "M", "L", "XL", "2XL", "Size 30"]
COLORS = ["BLACK", "WHITE", "NAVY", "ATHLETIC_HEATHER"]
WAREHOUSES = ["1", "2", "DAL", "CIN", "PHX", "IL", "NV"]


def random_records(rng: random.Random) -> list[InventoryRecord]:
    records = []
    seen = set()
    for _ in range(rng.randint(0, 30)):
        color, size = rng.choice(COLORS), rng.choice(SIZES)
        if (color, size) in seen:
            continue
        seen.add((color, size))
        warehouses = [
            WarehouseQuantity(warehouse_id, rng.randint(0, 500), rng.choice([None, f"Warehouse {warehouse_id}"]))
            for warehouse_id in rng.sample(WAREHOUSES, rng.randint(0, 3))
        ]
        total = sum(w.quantity for w in warehouses) if warehouses else rng.randint(0, 500)
        records.append(InventoryRecord("PC54", f"PC54-{color}-{size}", color, size, total, warehouses))
    return records


def cell_sum(matrix) -> int:
    return sum(value for row in matrix.rows for value in row.cells.values())


@pytest.mark.unit
class TestMatrixTotals:
    @pytest.mark.parametrize("seed", range(40))
    def test_grand_total_equals_sum_of_cells(self, seed):
        rng = random.Random(seed)
        records = random_records(rng)
        colors = [Colorway(code, code.title()) for code in rng.sample(COLORS, rng.randint(0, len(COLORS)))]
        warehouse_filter = rng.choice(["ALL", "1", "DAL", "NV", "UNKNOWN"])
        selected = rng.choice([None, *COLORS])

        for view_mode in ("warehouse", "color"):
            for color_scope in ("single", "all"):
                matrix = build_inventory_matrix(
                    records,
                    colors=colors,
                    selected_color=selected,
                    color_scope=color_scope,
                    warehouse_filter=warehouse_filter,
                    view_mode=view_mode,
                    supplier="SANMAR",
                )
                assert matrix.grand_total == cell_sum(matrix)
                assert matrix.grand_total == sum(row.total for row in matrix.rows)
                assert matrix.grand_total == sum(matrix.column_totals.values())
                for row in matrix.rows:
                    assert row.total == sum(row.cells.values())
                    assert list(row.cells) == [size.size_code for size in matrix.sizes]


@pytest.fixture
def pc54_records():
    return [
        InventoryRecord(
            "PC54", "1157", "BLACK", "S", 150,
            [WarehouseQuantity("1", 120), WarehouseQuantity("CIN", 30, "Cincinnati, OH")],
        ),
        InventoryRecord("PC54", "1158", "BLACK", "M", 40, [WarehouseQuantity("DAL", 40)]),
        InventoryRecord("PC54", "1159", "WHITE", "S", 12, []),
    ]


@pytest.mark.unit
class TestMatrixViews:
    def test_warehouse_view_merges_aliases(self, pc54_records):
        matrix = build_inventory_matrix(
            pc54_records,
            sizes=[Size("M", "M", 5), Size("S", "S", 3), Size("XL", "XL", 9)],
            colors=[Colorway("BLACK", "Black"), Colorway("WHITE", "White")],
            selected_color="BLACK",
            supplier="SANMAR",
        )

        assert [s.size_code for s in matrix.sizes] == ["S", "M", "XL"]
        assert matrix.active_colors == ["BLACK"]
        # "1" and "DAL" both resolve to Dallas
        assert [(row.label, row.cells) for row in matrix.rows] == [
            ("Cincinnati, OH", {"S": 30, "M": 0, "XL": 0}),
            ("Dallas, TX", {"S": 120, "M": 40, "XL": 0}),
        ]
        assert matrix.column_totals == {"S": 150, "M": 40, "XL": 0}
        assert matrix.grand_total == 190

    def test_color_view_all_warehouses_uses_total_without_breakdown(self, pc54_records):
        matrix = build_inventory_matrix(pc54_records, color_scope="all", view_mode="color", supplier="SANMAR")

        rows = {row.key: row for row in matrix.rows}
        assert rows["BLACK"].cells == {"S": 150, "M": 40}
        assert rows["WHITE"].cells == {"S": 12, "M": 0}
        assert matrix.grand_total == 202

    def test_color_view_filtered_warehouse(self, pc54_records):
        matrix = build_inventory_matrix(
            pc54_records, color_scope="all", view_mode="color", warehouse_filter="DAL", supplier="SANMAR"
        )

        rows = {row.key: row for row in matrix.rows}
        assert rows["BLACK"].cells == {"S": 120, "M": 40}
        assert rows["WHITE"].total == 0
        assert matrix.warehouse_filter == "DAL"

    def test_unknown_selected_color_falls_back_to_first(self, pc54_records):
        matrix = build_inventory_matrix(pc54_records, selected_color="PURPLE")
        assert matrix.active_colors == ["BLACK"]

    def test_unknown_warehouse_filter_yields_zero_row(self, pc54_records):
        matrix = build_inventory_matrix(pc54_records, warehouse_filter="ZZZ")
        assert [(row.key, row.total) for row in matrix.rows] == [("ZZZ", 0)]
        assert matrix.grand_total == 0

    def test_known_warehouse_without_stock_gets_row(self):
        matrix = build_inventory_matrix([], warehouses=[WarehouseOption("PHX")], supplier="SANMAR")
        assert [row.label for row in matrix.rows] == ["Phoenix, AZ"]
        assert matrix.grand_total == 0

    def test_to_dict(self, pc54_records):
        data = build_inventory_matrix(pc54_records).to_dict()
        assert data["view_mode"] == "warehouse"
        assert data["grand_total"] == sum(row["total"] for row in data["rows"])

    def test_invalid_modes(self):
        with pytest.raises(MatrixConfigError):
            build_inventory_matrix([], view_mode="sku")
        with pytest.raises(MatrixConfigError):
            build_inventory_matrix([], color_scope="some")
