"""
PromoStandards Product Data / Inventory 2.0.0 response parsing.

Every repeated section (ProductPartArray, ColorArray, PartInventoryArray, ...) may arrive as a single
object or as a list depending on how many entries the supplier returned; all of them go through
`to_array` before iteration.
"""
from __future__ import annotations

import logging
from typing import Any

from supplier_catalog.exceptions import SupplierProtocolError
from supplier_catalog.normalization import (
    SSACTIVEWEAR_CDN_BASE,
    compact_number,
    compute_size_sort,
    html_to_lines,
    normalize_image_url,
    read_field,
    read_field_text,
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
    InventoryRecord,
    ParsedInventory,
    ProductAccumulator,
    ProductRecord,
    WarehouseQuantity,
)
from supplier_catalog.xml_payload import soap_body

logger = logging.getLogger(__name__)

SOURCE = "promostandards"
PRODUCT_ID_ALIASES = ("productId", "ProductId", "productID")
PART_ID_ALIASES = ("partId", "PartId", "partID")
PART_IMAGE_FIELDS = ("frontImage", "backImage", "additionalImage")


def _path(node: Any, *segments: str) -> Any:
    current = node
    for segment in segments:
        if not isinstance(current, dict):
            return None
        current = current.get(segment)
    return current


def check_service_messages(response: Any, operation: str) -> None:
    """
    Raise on any ServiceMessage with severity "Error". Informational / warning messages are logged.
    """
    if not isinstance(response, dict):
        return
    messages = list(to_array(_path(response, "ServiceMessageArray", "ServiceMessage")))
    messages += to_array(response.get("errorMessage"))
    for message in messages:
        if not isinstance(message, dict):
            continue
        code = read_field_text(message, ("code", "Code"))
        description = read_field_text(message, ("description", "Description")) or "no description"
        severity = (read_field_text(message, ("severity", "Severity")) or "error").lower()
        if severity == "error":
            raise SupplierProtocolError(
                f"{operation} returned error code {code or 'unknown'} - {description}",
                source=SOURCE,
                fault_code=code,
            )
        logger.info(f"[SOAP] {operation} service message {code}: {description}")


def _first_color(part: dict[str, Any]) -> dict[str, Any]:
    colors = to_array(_path(part, "ColorArray", "Color"))
    first = colors[0] if colors else None
    return first if isinstance(first, dict) else {}


def _price_summary(product: dict[str, Any]) -> dict[str, Any]:
    """Lowest / highest configured price across every price group."""
    prices: list[float] = []
    currency = None
    for group in to_array(_path(product, "ProductPriceGroupArray", "ProductPriceGroup")):
        if not isinstance(group, dict):
            continue
        currency = currency or read_text(group.get("currency"))
        for price in to_array(_path(group, "ProductPriceArray", "ProductPrice")) or [group]:
            if not isinstance(price, dict):
                continue
            value = read_number(price.get("price"))
            if value is not None and value > 0:
                prices.append(value)
            currency = currency or read_text(price.get("currency"))
    if not prices:
        return {}
    summary: dict[str, Any] = {
        "piecePrice": compact_number(min(prices)),
        "maxPiecePrice": compact_number(max(prices)),
    }
    if currency:
        summary["priceCurrency"] = currency
    return summary


def _fob_points(product: dict[str, Any]) -> str | None:
    """FOB points summarized as "Dallas, TX; Reno, NV"."""
    points = []
    for point in to_array(_path(product, "FobPointArray", "FobPoint")):
        if not isinstance(point, dict):
            continue
        label = ", ".join(
            part for part in (read_text(point.get("fobCity")), read_text(point.get("fobState"))) if part
        ) or read_text(point.get("fobId"))
        if label and label not in points:
            points.append(label)
    return "; ".join(points) or None


def _product_attributes(product: dict[str, Any], brand: str | None) -> dict[str, Any]:
    attributes: dict[str, Any] = {}
    if brand:
        attributes["brandName"] = brand
    price_expires = read_text(product.get("priceExpiresDate"))
    if price_expires:
        attributes["priceExpiresDate"] = price_expires
    compliance = read_text(product.get("complianceInfoAvailable"))
    if compliance is not None:
        attributes["complianceInfoAvailable"] = compliance.lower() == "true"
    line_name = read_text(product.get("lineName"))
    if line_name:
        attributes["lineName"] = line_name

    marketing_points = []
    for point in to_array(_path(product, "ProductMarketingPointArray", "ProductMarketingPoint")):
        text = read_field_text(point, ("pointCopy", "Text")) if isinstance(point, dict) else read_text(point)
        if text:
            marketing_points.append(text)
    if marketing_points:
        attributes["marketingPoints"] = "\n".join(marketing_points)

    attributes.update(_price_summary(product))
    fob_points = _fob_points(product)
    if fob_points:
        attributes["fobPoints"] = fob_points
    return attributes


def parse_product_response(xml: str | bytes) -> ProductRecord:
    """GetProductResponse envelope -> ProductRecord."""
    body = soap_body(xml, source=SOURCE)
    response = body.get("GetProductResponse")
    check_service_messages(response, "GetProduct")
    product = _path(response, "Product")
    if isinstance(product, list):
        product = product[0] if product else None

    product_id = read_field_text(product, PRODUCT_ID_ALIASES)
    if not isinstance(product, dict) or not product_id:
        raise SupplierProtocolError("PromoStandards GetProduct returned an unparseable payload", source=SOURCE)
    product_id = product_id.upper()

    acc = ProductAccumulator(product_id, read_text(product.get("productName")))
    acc.brand = read_text(_path(product, "productBrand", "brandName")) or read_text(product.get("productBrand"))
    acc.description = html_to_lines(read_text(product.get("description")))
    acc.attributes = _product_attributes(product, acc.brand)

    acc.add_keyword(acc.brand)
    for category in to_array(_path(product, "ProductCategoryArray", "ProductCategory")):
        acc.add_keyword(read_field_text(category, ("category",)) if isinstance(category, dict) else read_text(category))
        if isinstance(category, dict):
            acc.add_keyword(read_text(category.get("subCategory")))
    for keyword in to_array(_path(product, "ProductKeywordArray", "ProductKeyword")):
        acc.add_keyword(read_field_text(keyword, ("keyword",)) if isinstance(keyword, dict) else read_text(keyword))

    acc.add_media(None, normalize_image_url(product.get("primaryImageUrl"), SSACTIVEWEAR_CDN_BASE))

    for part in to_array(_path(product, "ProductPartArray", "ProductPart")):
        if not isinstance(part, dict):
            continue
        color = _first_color(part)
        color_name = read_text(color.get("colorName")) or read_text(color.get("standardColorName"))
        if color_name:
            color_code = sanitize_code(color_name, f"{product_id}_COLOR")
            acc.add_color(color_code, color_name, read_text(color.get("standardColorName")))
            acc.add_keyword(color_name)
        else:
            color_code = DEFAULT_COLOR_CODE
            acc.add_color(DEFAULT_COLOR_CODE, DEFAULT_COLOR_NAME)

        size_label = read_text(_path(part, "ApparelSize", "labelSize")) or DEFAULT_SIZE_CODE
        size_code = sanitize_code(size_label, DEFAULT_SIZE_CODE)
        acc.add_size(size_code, size_label, compute_size_sort(size_label))

        supplier_sku = (
            read_field_text(part, PART_ID_ALIASES)
            or read_text(part.get("gtin"))
            or f"{product_id}_{color_code}_{size_code}"
        )
        acc.add_sku(color_code, size_code, supplier_sku)

        for field_name in PART_IMAGE_FIELDS:
            acc.add_media(color_code, normalize_image_url(part.get(field_name), SSACTIVEWEAR_CDN_BASE))
        for image in to_array(_path(part, "ImageArray", "Image")):
            url = read_field(image, ("url", "imageUrl")) if isinstance(image, dict) else image
            acc.add_media(color_code, normalize_image_url(url, SSACTIVEWEAR_CDN_BASE))

    record = acc.build(sort_sizes=True)
    logger.debug(
        f"[SOAP] parsed product {product_id}: {len(record.colors)} colors, "
        f"{len(record.sizes)} sizes, {len(record.skus)} skus"
    )
    return record


def parse_inventory_response(xml: str | bytes, supplier_part_id: str | None = None) -> ParsedInventory:
    """
    GetInventoryLevelsResponse envelope -> ParsedInventory.

    A missing Inventory element is an empty result when the caller knows which product was requested,
    otherwise the payload is unusable.
    """
    body = soap_body(xml, source=SOURCE)
    response = body.get("GetInventoryLevelsResponse")
    check_service_messages(response, "GetInventoryLevels")
    inventory = _path(response, "Inventory")
    if isinstance(inventory, list):
        inventory = inventory[0] if inventory else None

    if not isinstance(inventory, dict):
        if supplier_part_id:
            return ParsedInventory(supplier_part_id.upper())
        raise SupplierProtocolError("PromoStandards GetInventoryLevels returned an unparseable payload", source=SOURCE)

    product_id = (read_field_text(inventory, PRODUCT_ID_ALIASES) or supplier_part_id or "").upper()
    if not product_id:
        raise SupplierProtocolError("Inventory payload carries no productId", source=SOURCE)

    records: list[InventoryRecord] = []
    for part in to_array(_path(inventory, "PartInventoryArray", "PartInventory")):
        if not isinstance(part, dict):
            continue
        color_name = read_text(part.get("partColor")) or DEFAULT_COLOR_NAME
        size_label = read_text(part.get("labelSize")) or DEFAULT_SIZE_CODE
        color_code = sanitize_code(color_name, DEFAULT_COLOR_CODE)
        size_code = sanitize_code(size_label, DEFAULT_SIZE_CODE)
        supplier_sku = read_field_text(part, PART_ID_ALIASES) or f"{product_id}_{color_code}_{size_code}"

        warehouses = []
        for location in to_array(_path(part, "InventoryLocationArray", "InventoryLocation")):
            if not isinstance(location, dict):
                continue
            warehouses.append(
                WarehouseQuantity(
                    warehouse_id=read_text(location.get("inventoryLocationId")) or "UNKNOWN",
                    quantity=read_int(_path(location, "inventoryLocationQuantity", "Quantity", "value")),
                    warehouse_name=read_text(location.get("inventoryLocationName")),
                )
            )

        if warehouses:
            total_qty = sum(warehouse.quantity for warehouse in warehouses)
        else:
            total_qty = read_int(_path(part, "quantityAvailable", "Quantity", "value"))

        records.append(
            InventoryRecord(
                supplier_part_id=product_id,
                supplier_sku=supplier_sku,
                color_code=color_code,
                size_code=size_code,
                total_qty=total_qty,
                warehouses=warehouses,
            )
        )

    logger.debug(f"[SOAP] parsed inventory {product_id}: {len(records)} records")
    return ParsedInventory(product_id, records)


def parse_product_sellable_response(xml: str | bytes) -> list[str]:
    """GetProductSellableResponse -> unique upper-cased product ids in payload order."""
    body = soap_body(xml, source=SOURCE)
    response = body.get("GetProductSellableResponse")
    check_service_messages(response, "GetProductSellable")
    product_ids: dict[str, None] = {}
    for entry in to_array(_path(response, "ProductSellableArray", "ProductSellable")):
        product_id = read_field_text(entry, PRODUCT_ID_ALIASES)
        if product_id:
            product_ids.setdefault(product_id.upper(), None)
    return list(product_ids)
