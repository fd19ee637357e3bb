"""
SSActivewear REST v2 JSON -> canonical records.

One `/products` row per SKU (color x size); the `/styles` record carries the style-level copy.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from supplier_catalog.exceptions import SupplierProtocolError
from supplier_catalog.normalization import (
    SSACTIVEWEAR_CDN_BASE,
    compact_number,
    compute_size_sort,
    html_to_lines,
    normalize_image_url,
    read_int,
    read_number,
    read_text,
    sanitize_code,
    to_array,
)
from supplier_catalog.records import (
    DEFAULT_COLOR_CODE,
    DEFAULT_COLOR_NAME,
    DEFAULT_SIZE_CODE,
    InventoryFilter,
    InventoryRecord,
    ParsedInventory,
    ProductAccumulator,
    ProductRecord,
    WarehouseQuantity,
)

logger = logging.getLogger(__name__)

SOURCE = "ssactivewear_rest"
COLOR_IMAGE_FIELDS = ("colorFrontImage", "colorBackImage", "colorSideImage", "colorDirectSideImage")
PRICE_FIELDS = ("customerPrice", "salePrice", "piecePrice", "mapPrice")
STYLE_ATTRIBUTE_FIELDS = ("baseCategory", "lineName", "styleID", "partNumber")


@dataclass
class RestBundle:
    products: list[dict[str, Any]] = field(default_factory=list)
    style: dict[str, Any] | None = None


def _color(row: dict[str, Any]) -> tuple[str, str]:
    color_name = read_text(row.get("colorName")) or DEFAULT_COLOR_NAME
    return sanitize_code(color_name, DEFAULT_COLOR_CODE), color_name


def _size(row: dict[str, Any]) -> tuple[str, str, int]:
    size_name = read_text(row.get("sizeName")) or DEFAULT_SIZE_CODE
    size_order = read_number(row.get("sizeOrder"))
    sort = int(size_order) if size_order is not None else compute_size_sort(size_name)
    return sanitize_code(size_name, DEFAULT_SIZE_CODE), size_name, sort


def _sku(product_id: str, row: dict[str, Any], color_code: str, size_code: str) -> str:
    return read_text(row.get("sku")) or read_text(row.get("gtin")) or f"{product_id}_{color_code}_{size_code}"


def build_product_from_rest(product_id: str, bundle: RestBundle) -> ProductRecord:
    products = [row for row in bundle.products if isinstance(row, dict)]
    if not products:
        raise SupplierProtocolError(f"SSActivewear REST returned no products for {product_id}", source=SOURCE)

    style = bundle.style or {}
    first = products[0]
    product_id = product_id.strip().upper()

    acc = ProductAccumulator(
        product_id,
        read_text(style.get("title")) or read_text(style.get("styleName")) or read_text(first.get("styleName")),
    )
    acc.brand = read_text(style.get("brandName")) or read_text(first.get("brandName"))
    acc.description = html_to_lines(read_text(style.get("description")))
    acc.add_keyword(acc.brand)
    acc.add_keyword(read_text(style.get("baseCategory")))
    for category in (read_text(style.get("categories")) or "").split(","):
        acc.add_keyword(category)

    prices: list[float] = []
    for row in products:
        color_code, color_name = _color(row)
        acc.add_color(
            color_code,
            color_name,
            read_text(row.get("colorCode")),
            normalize_image_url(row.get("colorSwatchImage"), SSACTIVEWEAR_CDN_BASE),
        )
        acc.add_keyword(color_name)

        size_code, size_name, sort = _size(row)
        acc.add_size(size_code, size_name, sort)
        acc.add_sku(color_code, size_code, _sku(product_id, row, color_code, size_code))

        for field_name in COLOR_IMAGE_FIELDS:
            acc.add_media(color_code, normalize_image_url(row.get(field_name), SSACTIVEWEAR_CDN_BASE))
        acc.add_media(None, normalize_image_url(style.get("styleImage"), SSACTIVEWEAR_CDN_BASE))

        for price_field in PRICE_FIELDS:
            price = read_number(row.get(price_field))
            if price is not None and price > 0:
                prices.append(price)

    if prices:
        acc.attributes["piecePrice"] = compact_number(min(prices))
        acc.attributes["maxPiecePrice"] = compact_number(max(prices))
    for attribute in STYLE_ATTRIBUTE_FIELDS:
        value = read_text(style.get(attribute))
        if value:
            acc.attributes[attribute] = value
    case_qty = read_number(first.get("caseQty"))
    if case_qty is not None:
        acc.attributes["caseQty"] = compact_number(case_qty)
    unit_weight = read_number(first.get("unitWeight"))
    if unit_weight is not None:
        acc.attributes["unitWeight"] = compact_number(unit_weight)

    record = acc.build(sort_sizes=True)
    logger.debug(f"[REST] parsed product {product_id}: {len(record.colors)} colors, {len(record.skus)} skus")
    return record


def _matches(
    inventory_filter: InventoryFilter | None, sku: str, color_code: str, size_code: str
) -> bool:
    if inventory_filter is None:
        return True
    if inventory_filter.part_id and inventory_filter.part_id.upper() != sku.upper():
        return False
    if inventory_filter.color and sanitize_code(inventory_filter.color, DEFAULT_COLOR_CODE) != color_code:
        return False
    if inventory_filter.size and sanitize_code(inventory_filter.size, DEFAULT_SIZE_CODE) != size_code:
        return False
    return True


def build_inventory_from_rest(
    product_id: str, products: list[dict[str, Any]], inventory_filter: InventoryFilter | None = None
) -> ParsedInventory:
    """
    `/products` rows -> per-SKU inventory. Each row's `warehouses` (a list or a lone object) becomes the breakdown; rows
    without one fall back to the row-level `qty`.
    """
    product_id = product_id.strip().upper()
    warehouse_filter = inventory_filter.warehouse_id.upper() if inventory_filter and inventory_filter.warehouse_id else None
    records: list[InventoryRecord] = []

    for row in products:
        if not isinstance(row, dict):
            continue
        color_code, _ = _color(row)
        size_code, _, _ = _size(row)
        sku = _sku(product_id, row, color_code, size_code)
        if not _matches(inventory_filter, sku, color_code, size_code):
            continue

        warehouses = []
        for warehouse in to_array(row.get("warehouses")):
            if not isinstance(warehouse, dict):
                continue
            warehouse_id = read_text(warehouse.get("warehouseAbbr")) or "UNKNOWN"
            if warehouse_filter and warehouse_id.upper() != warehouse_filter:
                continue
            warehouses.append(WarehouseQuantity(warehouse_id, read_int(warehouse.get("qty"))))

        if warehouses:
            total_qty = sum(warehouse.quantity for warehouse in warehouses)
        elif warehouse_filter:
            total_qty = 0
        else:
            total_qty = read_int(row.get("qty"))

        records.append(InventoryRecord(product_id, sku, color_code, size_code, total_qty, warehouses))

    return ParsedInventory(product_id, records)
