"""
SanMar SDL catalog import.

SDL is a denormalized CSV with one row per style/color/size. Rows are folded per STYLE# into a
ProductAccumulator, then each product is written with a full replace of its child rows.
"""
from __future__ import annotations

import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from sqlalchemy.orm import Session

from supplier_catalog.exceptions import PersistenceError, RowValidationError
from supplier_catalog.normalization import compact_number, parse_decimal, parse_number, sanitize_code, split_description
from supplier_catalog.records import DEFAULT_COLOR_NAME, DEFAULT_SIZE_CODE, ProductAccumulator
from supplier_catalog.services.import_runner import ImportIssue, ImportOutcome
from supplier_catalog.services.product_store import commit_product, persist_product_record

logger = logging.getLogger(__name__)

SUPPLIER = "SANMAR"

# (column, colorSpecific)
MEDIA_COLUMNS: tuple[tuple[str, bool], ...] = (
    ("COLOR_PRODUCT_IMAGE", True),
    ("COLOR_PRODUCT_IMAGE_THUMBNAIL", True),
    ("PRODUCT_IMAGE", False),
    ("FRONT_MODEL_IMAGE_URL", True),
    ("BACK_MODEL_IMAGE_URL", True),
    ("FRONT_FLAT_IMAGE_URL", True),
    ("BACK_FLAT_IMAGE_URL", True),
)

# attribute name -> column, stored as trimmed text
TEXT_ATTRIBUTE_COLUMNS: tuple[tuple[str, str], ...] = (
    ("priceText", "PRICE_TEXT"),
    ("suggestedPrice", "SUGGESTED_PRICE"),
    ("priceGroup", "PRICE_GROUP"),
    ("productStatus", "PRODUCT_STATUS"),
    ("msrp", "MSRP"),
    ("mapPricing", "MAP_PRICING"),
    ("companionStyles", "COMPANION_STYLE"),
    ("availableSizes", "AVAILABLE_SIZES"),
    ("productMeasurements", "PRODUCT_MEASUREMENTS"),
    ("pmsColor", "PMS_COLOR"),
)
DECIMAL_ATTRIBUTE_COLUMNS: tuple[tuple[str, str], ...] = (
    ("piecePrice", "PIECE_PRICE"),
    ("dozensPrice", "DOZENS_PRICE"),
    ("casePrice", "CASE_PRICE"),
)


@dataclass
class SdlImportResult:
    processed: int = 0
    created: int = 0
    updated: int = 0
    rows_read: int = 0
    rows_skipped: int = 0
    failed: int = 0
    issues: list[ImportIssue] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "processed": self.processed,
            "created": self.created,
            "updated": self.updated,
            "rowsRead": self.rows_read,
            "rowsSkipped": self.rows_skipped,
            "failed": self.failed,
        }

    def to_outcome(self) -> ImportOutcome:
        return ImportOutcome(
            read_count=self.rows_read,
            write_count=self.created + self.updated,
            result=self.to_dict(),
            issues=list(self.issues),
        )


def _cell(row: dict[str, Any], column: str) -> str | None:
    value = row.get(column)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def build_row_attributes(row: dict[str, Any]) -> dict[str, Any]:
    attributes: dict[str, Any] = {}
    for name, column in TEXT_ATTRIBUTE_COLUMNS:
        value = _cell(row, column)
        if value:
            attributes[name] = value

    case_size = _cell(row, "CASE_SIZE")
    if case_size:
        number = parse_number(case_size)
        attributes["caseSize"] = compact_number(number) if number is not None else case_size
    piece_weight = _cell(row, "PIECE_WEIGHT")
    if piece_weight:
        weight = parse_decimal(piece_weight)
        attributes["pieceWeight"] = weight if weight is not None else piece_weight

    for name, column in DECIMAL_ATTRIBUTE_COLUMNS:
        value = parse_decimal(_cell(row, column))
        if value is not None:
            attributes[name] = value
    inventory_qty = parse_number(_cell(row, "QTY"))
    if inventory_qty is not None:
        attributes["inventoryQty"] = compact_number(inventory_qty)
    return attributes


def accumulate_sdl_row(accumulators: dict[str, ProductAccumulator], row: dict[str, Any], row_number: int) -> str:
    """Fold one SDL row into its product accumulator. Returns the supplier part id."""
    style = _cell(row, "STYLE#")
    if not style:
        raise RowValidationError("SDL row has no STYLE#", row_number=row_number, field="STYLE#")
    supplier_part_id = style.upper()

    color_name = _cell(row, "COLOR_NAME")
    size_raw = _cell(row, "SIZE")
    color_code = sanitize_code(color_name, f"{supplier_part_id}_DEFAULT") if color_name else f"{supplier_part_id}_DEFAULT"
    size_code = sanitize_code(size_raw, DEFAULT_SIZE_CODE) if size_raw else DEFAULT_SIZE_CODE
    size_index = parse_number(_cell(row, "SIZE_INDEX"))

    acc = accumulators.get(supplier_part_id)
    if acc is None:
        acc = ProductAccumulator(supplier_part_id, _cell(row, "PRODUCT_TITLE"))
        acc.brand = _cell(row, "MILL")
        acc.default_color = color_code
        accumulators[supplier_part_id] = acc

    if not acc.description:
        acc.description = split_description(_cell(row, "PRODUCT_DESCRIPTION"))
    acc.attributes.update(build_row_attributes(row))

    acc.add_color(
        color_code,
        color_name or DEFAULT_COLOR_NAME,
        _cell(row, "SANMAR_MAINFRAME_COLOR"),
        _cell(row, "COLOR_SQUARE_IMAGE"),
    )
    acc.add_size(size_code, size_raw or DEFAULT_SIZE_CODE, int(size_index) if size_index is not None else None)

    for column, color_specific in MEDIA_COLUMNS:
        acc.add_media(color_code if color_specific else None, _cell(row, column))

    acc.add_sku(color_code, size_code, _cell(row, "GTIN") or f"{supplier_part_id}_{color_code}_{size_code}")

    acc.add_keyword(_cell(row, "CATEGORY_NAME"))
    acc.add_keyword(_cell(row, "SUBCATEGORY_NAME"))
    acc.add_keyword(acc.brand)
    acc.add_keyword(color_name)
    return supplier_part_id


def read_sdl_file(path: str | Path, limit: int | None = None) -> tuple[dict[str, ProductAccumulator], SdlImportResult]:
    """Stream the file into per-product accumulators. Missing files raise FileNotFoundError."""
    resolved = Path(path).resolve()
    accumulators: dict[str, ProductAccumulator] = {}
    result = SdlImportResult()

    with resolved.open("r", encoding="utf-8-sig", newline="") as handle:
        reader = csv.DictReader(handle)
        for row_number, row in enumerate(reader, start=2):
            if limit is not None and result.rows_read >= limit:
                break
            result.rows_read += 1
            try:
                accumulate_sdl_row(accumulators, row, row_number)
            except RowValidationError as e:
                result.rows_skipped += 1
                logger.debug(f"[SDL] {e.message} (row {row_number})")
    return accumulators, result


def import_sdl_catalog(
    session: Session | None,
    sdl_path: str | Path,
    limit: int | None = None,
    dry_run: bool = False,
    supplier: str = SUPPLIER,
) -> SdlImportResult:
    """
    Import an SDL file. With dry_run the file is parsed and counted but nothing is written and
    `session` may be None.
    """
    accumulators, result = read_sdl_file(sdl_path, limit=limit)
    logger.info(
        f"[SDL] {sdl_path}: {result.rows_read} rows read, {len(accumulators)} products, "
        f"{result.rows_skipped} rows skipped"
    )
    if result.rows_skipped:
        result.issues.append(
            ImportIssue("row", f"{result.rows_skipped} rows without STYLE# skipped", error_code="VALIDATION_ERROR")
        )

    for supplier_part_id, acc in accumulators.items():
        result.processed += 1
        if dry_run:
            continue
        record = acc.build()
        try:
            created = persist_product_record(session, record, supplier=supplier)
            commit_product(session, supplier_part_id)
        except PersistenceError as e:
            session.rollback()
            result.failed += 1
            result.issues.append(ImportIssue("product", e.message, entity_id=supplier_part_id, error_code=e.error_code))
            logger.error(f"[SDL] failed to persist {supplier_part_id}: {e.message}")
            continue
        if created:
            result.created += 1
        else:
            result.updated += 1

    logger.info(
        f"[SDL] done: processed={result.processed} created={result.created} "
        f"updated={result.updated} failed={result.failed} dry_run={dry_run}"
    )
    return result
