"""
SanMar EPDD (extended product data) enrichment import.

Merges category, bulk inventory, pricing and any extra columns into the attribute map of products
that the SDL import already created. EPDD never creates products: a style that is not in the store
is reported in `missing_styles` and left alone, so SDL must run first.
"""
from __future__ import annotations

import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from supplier_catalog.exceptions import PersistenceError
from supplier_catalog.normalization import compact_number, parse_decimal, read_field_text, read_number
from supplier_catalog.services.import_runner import ImportIssue, ImportOutcome
from supplier_catalog.services.product_store import get_product

logger = logging.getLogger(__name__)

STYLE_COLUMNS = ("STYLE#", "STYLE", "STYLE_NUMBER", "PART_ID")
MAIN_CATEGORY_COLUMNS = ("MAIN_CATEGORY", "CATEGORY", "MAIN_CAT")
SUB_CATEGORY_COLUMNS = ("SUB_CATEGORY", "SUB_CAT", "SUB_CATEGORY_NAME")
BULK_INVENTORY_COLUMNS = ("BULK_INVENTORY", "BULK_QTY", "BULK_STOCK")
UNIT_PRICE_COLUMNS = ("PRICE", "UNIT_PRICE")
BULK_PRICE_COLUMNS = ("BULK_PRICE",)
KNOWN_COLUMNS = frozenset(
    STYLE_COLUMNS + MAIN_CATEGORY_COLUMNS + SUB_CATEGORY_COLUMNS + BULK_INVENTORY_COLUMNS
    + UNIT_PRICE_COLUMNS + BULK_PRICE_COLUMNS
)


@dataclass
class EpddEntry:
    supplier_part_id: str
    main_category: str | None = None
    sub_category: str | None = None
    bulk_inventory: float | None = None
    pricing: dict[str, Any] = field(default_factory=dict)
    attributes: dict[str, Any] = field(default_factory=dict)

    def merge(self, other: "EpddEntry") -> None:
        """Later rows for the same style: categories keep the first value, the rest is overlaid."""
        self.main_category = self.main_category or other.main_category
        self.sub_category = self.sub_category or other.sub_category
        if self.bulk_inventory is None:
            self.bulk_inventory = other.bulk_inventory
        self.pricing.update(other.pricing)
        self.attributes.update(other.attributes)

    def attribute_patch(self) -> dict[str, Any]:
        patch: dict[str, Any] = {}
        if self.main_category:
            patch["mainCategory"] = self.main_category
        if self.sub_category:
            patch["subCategory"] = self.sub_category
        if self.bulk_inventory is not None:
            patch["bulkInventory"] = compact_number(self.bulk_inventory)
        patch.update(self.attributes)
        patch.update(self.pricing)
        return patch


@dataclass
class EpddImportResult:
    processed: int = 0
    updated: int = 0
    matched_styles: list[str] = field(default_factory=list)
    missing_styles: list[str] = field(default_factory=list)
    rows_read: int = 0
    failed: int = 0
    issues: list[ImportIssue] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "processed": self.processed,
            "updated": self.updated,
            "matchedStyles": self.matched_styles,
            "missingStyles": self.missing_styles,
            "rowsRead": self.rows_read,
            "failed": self.failed,
        }

    def to_outcome(self) -> ImportOutcome:
        return ImportOutcome(
            read_count=self.rows_read,
            write_count=self.updated,
            result=self.to_dict(),
            issues=list(self.issues),
        )


def coerce_value(raw: str) -> Any:
    """Numbers stay numbers ("$1,250.00" -> 1250, "12" -> 12); everything else is trimmed text."""
    text = raw.strip()
    number = read_number(text.replace("$", "").replace(",", ""))
    if number is not None:
        return compact_number(number)
    return text


def parse_epdd_row(row: dict[str, Any]) -> EpddEntry | None:
    # DictReader keys can carry stray whitespace; match on the trimmed upper-case name
    normalized = {str(key).strip().upper(): value for key, value in row.items() if key is not None}
    style = read_field_text(normalized, STYLE_COLUMNS)
    if not style:
        return None

    entry = EpddEntry(
        supplier_part_id=style.upper(),
        main_category=read_field_text(normalized, MAIN_CATEGORY_COLUMNS),
        sub_category=read_field_text(normalized, SUB_CATEGORY_COLUMNS),
        bulk_inventory=parse_decimal(read_field_text(normalized, BULK_INVENTORY_COLUMNS)),
    )
    unit_price = parse_decimal(read_field_text(normalized, UNIT_PRICE_COLUMNS))
    if unit_price is not None:
        entry.pricing["unitPrice"] = compact_number(unit_price)
    bulk_price = parse_decimal(read_field_text(normalized, BULK_PRICE_COLUMNS))
    if bulk_price is not None:
        entry.pricing["bulkPrice"] = compact_number(bulk_price)

    for key, value in row.items():
        if key is None or str(key).strip().upper() in KNOWN_COLUMNS:
            continue
        if isinstance(value, str) and value.strip():
            entry.attributes[str(key).strip()] = coerce_value(value)
    return entry


def read_epdd_file(
    path: str | Path, style_filter: Iterable[str] | None = None
) -> tuple[dict[str, EpddEntry], int]:
    resolved = Path(path).resolve()
    filter_set = {style.strip().upper() for style in style_filter or [] if style.strip()}
    entries: dict[str, EpddEntry] = {}
    rows_read = 0

    with resolved.open("r", encoding="utf-8-sig", newline="") as handle:
        for row in csv.DictReader(handle):
            rows_read += 1
            entry = parse_epdd_row(row)
            if entry is None:
                continue
            if filter_set and entry.supplier_part_id not in filter_set:
                continue
            existing = entries.get(entry.supplier_part_id)
            if existing is None:
                entries[entry.supplier_part_id] = entry
            else:
                existing.merge(entry)
    return entries, rows_read


def import_sanmar_epdd(
    session: Session | None,
    epdd_path: str | Path,
    style_filter: Iterable[str] | None = None,
    dry_run: bool = False,
) -> EpddImportResult:
    style_filter = [style.strip().upper() for style in style_filter or [] if style.strip()]
    entries, rows_read = read_epdd_file(epdd_path, style_filter)
    result = EpddImportResult(rows_read=rows_read)

    missing = [style for style in style_filter if style not in entries]
    matched: list[str] = []

    for supplier_part_id, entry in entries.items():
        result.processed += 1
        product = get_product(session, supplier_part_id) if session is not None else None
        if session is not None and product is None:
            missing.append(supplier_part_id)
            logger.info(f"[EPDD] {supplier_part_id} not in catalog yet, skipped")
            continue
        matched.append(supplier_part_id)
        if dry_run:
            continue

        try:
            product.attributes = {**(product.attributes or {}), **entry.attribute_patch()}
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            error = PersistenceError(
                f"Failed to enrich {supplier_part_id}: {exc}",
                supplier_part_id=supplier_part_id,
                operation="update",
            )
            result.failed += 1
            result.issues.append(
                ImportIssue("product", error.message, entity_id=supplier_part_id, error_code=error.error_code)
            )
            logger.error(f"[EPDD] {error.message}")
            continue
        result.updated += 1

    result.matched_styles = matched
    result.missing_styles = missing
    logger.info(
        f"[EPDD] done: processed={result.processed} updated={result.updated} "
        f"matched={len(matched)} missing={len(missing)} dry_run={dry_run}"
    )
    return result
