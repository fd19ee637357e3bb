"""
Inventory pivot for one product: warehouse x size or color x size, with totals.

Row, column and grand totals are always sums of the displayed cells, so the grand total can never
disagree with what the table shows.
"""
from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import asdict, dataclass, field
from typing import Literal

from supplier_catalog.normalization import compute_size_sort
from supplier_catalog.records import Colorway, InventoryRecord, Size
from supplier_catalog.services.warehouse_names import get_warehouse_display_name

ViewMode = Literal["warehouse", "color"]
ColorScope = Literal["single", "all"]
ALL_WAREHOUSES = "ALL"


class MatrixConfigError(ValueError):
    pass


@dataclass(frozen=True)
class WarehouseOption:
    warehouse_id: str
    warehouse_name: str | None = None


@dataclass
class MatrixRow:
    key: str
    label: str
    cells: dict[str, int] = field(default_factory=dict)
    total: int = 0


@dataclass
class InventoryMatrix:
    view_mode: str
    color_scope: str
    warehouse_filter: str
    sizes: list[Size]
    rows: list[MatrixRow]
    column_totals: dict[str, int]
    grand_total: int
    active_colors: list[str]
    warehouses: list[WarehouseOption]

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class _WarehouseGroup:
    option: WarehouseOption
    label: str
    member_ids: set[str] = field(default_factory=set)


def merge_sizes(sizes: Iterable[Size], records: Iterable[InventoryRecord]) -> list[Size]:
    """Product sizes plus any size only seen in inventory, in display order (missing sort last)."""
    merged: dict[str, Size] = {}
    for size in sizes:
        merged.setdefault(size.size_code, size)
    for record in records:
        if record.size_code not in merged:
            merged[record.size_code] = Size(record.size_code, record.size_code, compute_size_sort(record.size_code))
    return sorted(merged.values(), key=lambda size: (size.sort is None, size.sort or 0, size.size_code))


def merge_colors(colors: Iterable[Colorway], records: Iterable[InventoryRecord]) -> list[Colorway]:
    merged: dict[str, Colorway] = {}
    for color in colors:
        merged.setdefault(color.color_code, color)
    for record in records:
        merged.setdefault(record.color_code, Colorway(record.color_code, record.color_code))
    return list(merged.values())


def _warehouse_groups(
    warehouses: Iterable[WarehouseOption], records: Iterable[InventoryRecord], supplier: str | None
) -> list[_WarehouseGroup]:
    """
    Known warehouses plus every warehouse present in a breakdown. Ids that resolve to the same
    display name ("2" and "CIN") collapse into one row.
    """
    groups: dict[str, _WarehouseGroup] = {}

    def add(warehouse_id: str, warehouse_name: str | None) -> None:
        label = get_warehouse_display_name(warehouse_id, warehouse_name, supplier)
        group = groups.get(label)
        if group is None:
            group = groups[label] = _WarehouseGroup(WarehouseOption(warehouse_id, warehouse_name), label)
        group.member_ids.add(warehouse_id)

    for option in warehouses:
        add(option.warehouse_id, option.warehouse_name)
    for record in records:
        for warehouse in record.warehouses:
            add(warehouse.warehouse_id, warehouse.warehouse_name)
    return sorted(groups.values(), key=lambda group: group.label)


def _warehouse_qty(record: InventoryRecord, member_ids: set[str]) -> int:
    return sum(warehouse.quantity for warehouse in record.warehouses if warehouse.warehouse_id in member_ids)


def _color_qty(record: InventoryRecord, member_ids: set[str] | None) -> int:
    if member_ids is None:
        if record.warehouses:
            return sum(warehouse.quantity for warehouse in record.warehouses)
        return record.total_qty
    return _warehouse_qty(record, member_ids)


def _resolve_active_colors(colors: Sequence[Colorway], selected_color: str | None, color_scope: str) -> list[str]:
    codes = [color.color_code for color in colors]
    if color_scope == "all":
        return codes
    if selected_color and selected_color in codes:
        return [selected_color]
    return codes[:1]


def build_inventory_matrix(
    records: Sequence[InventoryRecord],
    sizes: Sequence[Size] = (),
    colors: Sequence[Colorway] = (),
    warehouses: Sequence[WarehouseOption] = (),
    selected_color: str | None = None,
    color_scope: ColorScope = "single",
    warehouse_filter: str = ALL_WAREHOUSES,
    view_mode: ViewMode = "warehouse",
    supplier: str | None = None,
) -> InventoryMatrix:
    """
    Pivot `records` for display.

    warehouse view: one row per (filtered) warehouse, summing that warehouse's quantity over the
    active colors. color view: one row per active color; with ALL warehouses a record contributes
    its breakdown sum (or total_qty when it has no breakdown), otherwise only the filtered
    warehouse's quantity.
    """
    if view_mode not in ("warehouse", "color"):
        raise MatrixConfigError(f"Unsupported view mode: {view_mode}")
    if color_scope not in ("single", "all"):
        raise MatrixConfigError(f"Unsupported color scope: {color_scope}")

    merged_sizes = merge_sizes(sizes, records)
    merged_colors = merge_colors(colors, records)
    active_colors = _resolve_active_colors(merged_colors, selected_color, color_scope)
    active_color_set = set(active_colors)
    size_codes = [size.size_code for size in merged_sizes]

    groups = _warehouse_groups(warehouses, records, supplier)
    filter_value = (warehouse_filter or ALL_WAREHOUSES).strip()
    if filter_value.upper() == ALL_WAREHOUSES:
        selected_group = None
        active_groups = groups
    else:
        selected_group = next(
            (group for group in groups if filter_value in group.member_ids or filter_value == group.label),
            None,
        )
        if selected_group is None:
            selected_group = _WarehouseGroup(WarehouseOption(filter_value), filter_value, {filter_value})
        active_groups = [selected_group]

    rows: list[MatrixRow] = []
    if view_mode == "warehouse":
        for group in active_groups:
            row = MatrixRow(key=group.option.warehouse_id, label=group.label, cells={code: 0 for code in size_codes})
            for record in records:
                if record.color_code in active_color_set:
                    row.cells[record.size_code] += _warehouse_qty(record, group.member_ids)
            rows.append(row)
    else:
        member_ids = selected_group.member_ids if selected_group is not None else None
        names = {color.color_code: color.color_name for color in merged_colors}
        for color_code in active_colors:
            row = MatrixRow(key=color_code, label=names.get(color_code) or color_code, cells={code: 0 for code in size_codes})
            for record in records:
                if record.color_code == color_code:
                    row.cells[record.size_code] += _color_qty(record, member_ids)
            rows.append(row)

    column_totals = {code: 0 for code in size_codes}
    for row in rows:
        row.total = sum(row.cells.values())
        for code, value in row.cells.items():
            column_totals[code] += value

    return InventoryMatrix(
        view_mode=view_mode,
        color_scope=color_scope,
        warehouse_filter=filter_value,
        sizes=merged_sizes,
        rows=rows,
        column_totals=column_totals,
        grand_total=sum(column_totals.values()),
        active_colors=active_colors,
        warehouses=[group.option for group in groups],
    )
