"""
SanMar paged catalog payloads.

The catalog service has shipped several casings and wrappers for the same fields, so every field is
read through an alias list and the product list is searched along several known paths.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from supplier_catalog.normalization import (
    compact_number,
    compute_size_sort,
    read_field,
    read_field_text,
    read_number,
    read_text,
    sanitize_code,
    split_description,
    to_array,
)
from supplier_catalog.records import DEFAULT_SIZE_CODE, ProductAccumulator, ProductRecord

logger = logging.getLogger(__name__)

PRODUCT_PATHS: tuple[tuple[str, ...], ...] = (
    ("GetProductsResult", "Products", "Product"),
    ("GetProductDataResult", "Products", "Product"),
    ("Products", "Product"),
    ("ProductData", "Products", "Product"),
    ("Product",),
)
NEXT_PAGE_PATHS: tuple[tuple[str, ...], ...] = (
    ("GetProductsResult", "NextPage"),
    ("Paging", "NextPage"),
    ("NextPage",),
    ("nextPage",),
)
TOTAL_PAGES_PATHS: tuple[tuple[str, ...], ...] = (
    ("GetProductsResult", "TotalPages"),
    ("Products", "TotalPages"),
    ("Paging", "TotalPages"),
    ("TotalPages",),
    ("totalPages",),
)

PART_ID_ALIASES = (
    "supplierPartId", "SupplierPartId", "SupplierPartID", "partId", "PartId", "PartID", "ProductId", "ProductID",
)
NAME_ALIASES = ("name", "Name", "productName", "ProductName")
BRAND_ALIASES = ("brand", "Brand", "BrandName")
DEFAULT_COLOR_ALIASES = ("defaultColor", "DefaultColor", "defaultColorCode", "DefaultColorCode")
DESCRIPTION_ALIASES = ("description", "Description", "descriptions", "Descriptions", "marketingCopy", "MarketingCopy")
ATTRIBUTE_ALIASES = ("attributes", "Attributes")
ATTRIBUTE_ENTRY_ALIASES = ("attribute", "Attribute")
ATTRIBUTE_NAME_ALIASES = ("name", "Name", "key", "Key", "attributeName")
ATTRIBUTE_VALUE_ALIASES = ("value", "Value", "attributeValue")
COLOR_ALIASES = ("colors", "Colors", "colorways", "Colorways")
COLOR_ENTRY_ALIASES = ("color", "Color", "colorway", "Colorway")
COLOR_CODE_ALIASES = ("colorCode", "ColorCode", "code", "Code", "id", "Id", "colorId", "ColorId")
COLOR_NAME_ALIASES = ("colorName", "ColorName", "name", "Name")
VARIANT_ALIASES = ("supplierVariantId", "SupplierVariantId", "variantId", "VariantId")
SWATCH_ALIASES = ("swatchUrl", "SwatchUrl", "swatch", "Swatch")
SIZE_ALIASES = ("sizes", "Sizes", "sizeChart", "SizeChart")
SIZE_ENTRY_ALIASES = ("size", "Size")
SIZE_CODE_ALIASES = ("sizeCode", "SizeCode", "code", "Code")
SIZE_DISPLAY_ALIASES = ("display", "Display", "label", "Label", "sizeName", "SizeName")
SIZE_SORT_ALIASES = ("sort", "Sort", "sequence", "Sequence")
MEDIA_ALIASES = ("media", "Media", "images", "Images")
MEDIA_ENTRY_ALIASES = ("image", "Image", "mediaItem", "MediaItem")
MEDIA_URL_ALIASES = ("url", "Url", "imageUrl", "ImageUrl", "href", "Href")
SKU_ALIASES = ("skuMap", "SkuMap", "skus", "Skus")
SKU_ENTRY_ALIASES = ("sku", "Sku")
SKU_VALUE_ALIASES = ("supplierSku", "SupplierSku", "sku", "Sku", "uniqueKey", "UniqueKey")
KEYWORD_ALIASES = ("keywords", "Keywords", "tags", "Tags", "searchTerms", "SearchTerms")
KEYWORD_ENTRY_ALIASES = ("keyword", "Keyword", "tag", "Tag")


@dataclass
class CatalogPage:
    page: int
    products: list[ProductRecord] = field(default_factory=list)
    raw_count: int = 0
    skipped: int = 0
    next_page: int | None = None


def _path(node: Any, path: tuple[str, ...]) -> Any:
    current = node
    for segment in path:
        if not isinstance(current, dict):
            return None
        current = current.get(segment)
    return current


def _entries(record: dict[str, Any], container_aliases: tuple[str, ...], entry_aliases: tuple[str, ...]) -> list[Any]:
    """
    Items of a repeated section. Handles both `{"colors": [...]}` and the XML shape
    `{"Colors": {"Color": [...]}}`, and a bare singular entry (`{"Colorway": {...}}`).
    """
    container = read_field(record, container_aliases)
    if isinstance(container, dict):
        inner = read_field(container, entry_aliases)
        if inner is not None:
            return to_array(inner)
        return [container]
    if container is not None:
        return to_array(container)
    return to_array(read_field(record, entry_aliases))


def _description(record: dict[str, Any]) -> list[str]:
    raw = read_field(record, DESCRIPTION_ALIASES)
    lines: list[str] = []
    for entry in to_array(raw):
        if isinstance(entry, dict):
            entry = read_field(entry, ("line", "Line", "text", "Text", "_"))
        for value in to_array(entry):
            text = read_text(value)
            if text:
                lines.extend(split_description(text))
    return lines


def _attribute_value(value: Any) -> Any:
    if isinstance(value, (bool, int, float)):
        return value
    text = read_text(value)
    if text is None:
        return None
    lowered = text.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    number = read_number(text)
    if number is not None:
        return compact_number(number)
    return text


def normalize_catalog_product(record: Any) -> ProductRecord | None:
    """
    One raw catalog entry -> ProductRecord. Returns None when no part id can be found.
    """
    if not isinstance(record, dict):
        return None
    part_id = read_field_text(record, PART_ID_ALIASES)
    if not part_id:
        return None
    part_id = part_id.upper()

    acc = ProductAccumulator(part_id, read_field_text(record, NAME_ALIASES))
    acc.brand = read_field_text(record, BRAND_ALIASES)
    acc.description = _description(record)
    acc.add_keyword(acc.brand)

    attributes_node = read_field(record, ATTRIBUTE_ALIASES)
    if isinstance(attributes_node, dict) and read_field(attributes_node, ATTRIBUTE_ENTRY_ALIASES) is None \
            and read_field(attributes_node, ATTRIBUTE_NAME_ALIASES) is None:
        # plain mapping form: {"attributes": {"fabric": "cotton"}}
        for name, value in attributes_node.items():
            converted = _attribute_value(value)
            if converted is not None:
                acc.attributes[str(name)] = converted
    else:
        for entry in _entries(record, ATTRIBUTE_ALIASES, ATTRIBUTE_ENTRY_ALIASES):
            name = read_field_text(entry, ATTRIBUTE_NAME_ALIASES)
            value = _attribute_value(read_field(entry, ATTRIBUTE_VALUE_ALIASES))
            if name and value is not None:
                acc.attributes[name] = value

    for entry in _entries(record, COLOR_ALIASES, COLOR_ENTRY_ALIASES):
        if isinstance(entry, dict):
            raw_code = read_field_text(entry, COLOR_CODE_ALIASES)
            color_name = read_field_text(entry, COLOR_NAME_ALIASES) or raw_code
        else:
            raw_code = color_name = read_text(entry)
        if not raw_code and not color_name:
            continue
        color_code = sanitize_code(raw_code or color_name, f"{part_id}_COLOR")
        acc.add_color(
            color_code,
            color_name or color_code,
            read_field_text(entry, VARIANT_ALIASES) if isinstance(entry, dict) else None,
            read_field_text(entry, SWATCH_ALIASES) if isinstance(entry, dict) else None,
        )
        acc.add_keyword(color_name)

    for entry in _entries(record, SIZE_ALIASES, SIZE_ENTRY_ALIASES):
        if isinstance(entry, dict):
            label = read_field_text(entry, SIZE_CODE_ALIASES) or read_field_text(entry, SIZE_DISPLAY_ALIASES)
            display = read_field_text(entry, SIZE_DISPLAY_ALIASES) or label
            sort_value = read_number(read_field(entry, SIZE_SORT_ALIASES))
        else:
            label = display = read_text(entry)
            sort_value = None
        if not label:
            continue
        sort = int(sort_value) if sort_value is not None else compute_size_sort(label)
        acc.add_size(sanitize_code(label, DEFAULT_SIZE_CODE), display or label, sort)

    for entry in _entries(record, MEDIA_ALIASES, MEDIA_ENTRY_ALIASES):
        if isinstance(entry, dict):
            url = read_field_text(entry, MEDIA_URL_ALIASES)
            color = read_field_text(entry, ("colorCode", "ColorCode", "color", "Color"))
        else:
            url, color = read_text(entry), None
        acc.add_media(sanitize_code(color, f"{part_id}_COLOR") if color else None, url)

    for entry in _entries(record, SKU_ALIASES, SKU_ENTRY_ALIASES):
        if not isinstance(entry, dict):
            continue
        color = read_field_text(entry, COLOR_CODE_ALIASES)
        size = read_field_text(entry, SIZE_CODE_ALIASES)
        sku = read_field_text(entry, SKU_VALUE_ALIASES)
        if color and size and sku:
            acc.add_sku(sanitize_code(color, f"{part_id}_COLOR"), sanitize_code(size, DEFAULT_SIZE_CODE), sku)

    for entry in _entries(record, KEYWORD_ALIASES, KEYWORD_ENTRY_ALIASES):
        if isinstance(entry, str) and "," in entry:
            for keyword in entry.split(","):
                acc.add_keyword(keyword)
        else:
            acc.add_keyword(read_text(entry))

    default_color = read_field_text(record, DEFAULT_COLOR_ALIASES)
    if default_color:
        acc.default_color = sanitize_code(default_color, f"{part_id}_COLOR")

    return acc.build(synthesize_defaults=False, sort_sizes=True)


def find_catalog_products(payload: Any) -> list[Any]:
    for path in PRODUCT_PATHS:
        found = _path(payload, path)
        if found is not None:
            return to_array(found)
    return []


def _first_number(payload: Any, paths: tuple[tuple[str, ...], ...]) -> int | None:
    for path in paths:
        value = read_number(_path(payload, path))
        if value is not None:
            return int(value)
    return None


def next_page_number(payload: Any, page: int, page_size: int, raw_count: int) -> int | None:
    """
    Cursor for the following page. An explicit NextPage wins, then TotalPages, then a full page is
    taken to mean more data may follow.
    """
    explicit = _first_number(payload, NEXT_PAGE_PATHS)
    if explicit is not None:
        return explicit if explicit > page else None

    total_pages = _first_number(payload, TOTAL_PAGES_PATHS)
    if total_pages is not None:
        return page + 1 if page < total_pages else None

    if raw_count > 0 and raw_count >= page_size:
        return page + 1
    return None


def extract_catalog_page(payload: Any, page: int, page_size: int) -> CatalogPage:
    raw_products = find_catalog_products(payload)
    result = CatalogPage(page=page, raw_count=len(raw_products))
    for raw in raw_products:
        product = normalize_catalog_product(raw)
        if product is None:
            result.skipped += 1
            continue
        result.products.append(product)
    if result.skipped:
        logger.warning(f"[CATALOG] page {page}: skipped {result.skipped} entries without a part id")
    result.next_page = next_page_number(payload, page, page_size, result.raw_count)
    return result
