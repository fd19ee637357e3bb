"""
SanMar DIP (daily inventory) import.

Pipe-delimited file, one row per style/color/size/warehouse. Rows are summed per SKU with a
warehouse breakdown and upserted into product_inventory. DIP color names are free text that often
differs from the SDL spelling ("Athletic Hthr" vs "Athletic Heather"), so they are matched against the
product's stored color names through a few loose key variants before falling back to the sanitized name.
"""
from __future__ import annotations

import csv
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from supplier_catalog.exceptions import PersistenceError
from supplier_catalog.models import Product, ProductColor
from supplier_catalog.normalization import parse_decimal, sanitize_code
from supplier_catalog.records import InventoryRecord, WarehouseQuantity
from supplier_catalog.services.import_runner import ImportIssue, ImportOutcome
from supplier_catalog.services.inventory_store import upsert_inventory_records
from supplier_catalog.services.product_store import commit_product
from supplier_catalog.services.warehouse_names import normalize_sanmar_warehouse_id

logger = logging.getLogger(__name__)

PIPE_DELIMITER = "|"
_NON_ALNUM_RE = re.compile(r"[^A-Z0-9]")
_VOWEL_RE = re.compile(r"[AEIOU]")


@dataclass
class DipAggregate:
    supplier_part_id: str
    color_name: str
    color_code: str
    size_code: str
    total_qty: int = 0
    warehouses: dict[str, WarehouseQuantity] = field(default_factory=dict)
    piece_weight: float | None = None

    def add(self, warehouse_id: str, warehouse_name: str | None, quantity: int) -> None:
        self.total_qty += quantity
        existing = self.warehouses.get(warehouse_id)
        if existing is None:
            self.warehouses[warehouse_id] = WarehouseQuantity(warehouse_id, quantity, warehouse_name)
        else:
            self.warehouses[warehouse_id] = WarehouseQuantity(
                warehouse_id, existing.quantity + quantity, warehouse_name or existing.warehouse_name
            )


@dataclass
class DipImportResult:
    processed: int = 0
    created: int = 0
    matched_styles: list[str] = field(default_factory=list)
    missing_styles: list[str] = field(default_factory=list)
    rows_read: int = 0
    rows_skipped: int = 0
    issues: list[ImportIssue] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "processed": self.processed,
            "created": self.created,
            "matchedStyles": self.matched_styles,
            "missingStyles": self.missing_styles,
            "rowsRead": self.rows_read,
            "rowsSkipped": self.rows_skipped,
        }

    def to_outcome(self) -> ImportOutcome:
        return ImportOutcome(
            read_count=self.rows_read,
            write_count=self.created,
            result=self.to_dict(),
            issues=list(self.issues),
        )


def _dedupe(value: str) -> str:
    result = []
    for char in value:
        if not result or result[-1] != char:
            result.append(char)
    return "".join(result)


def color_key_variants(name: str) -> list[str]:
    """Loose match keys for a color name: alphanumerics, minus vowels, minus doubled letters."""
    alnum = _NON_ALNUM_RE.sub("", name.strip().upper())
    no_vowels = _VOWEL_RE.sub("", alnum)
    return [key for key in (alnum, no_vowels, _dedupe(no_vowels)) if key]


def build_color_lookup(session: Session, supplier_part_ids: Iterable[str]) -> dict[str, dict[str, str]]:
    rows = session.execute(
        select(Product.supplier_part_id, ProductColor.color_code, ProductColor.color_name)
        .join(ProductColor, ProductColor.product_id == Product.id)
        .where(Product.supplier_part_id.in_(list(supplier_part_ids)))
    ).all()
    lookup: dict[str, dict[str, str]] = {}
    for supplier_part_id, color_code, color_name in rows:
        keys = lookup.setdefault(supplier_part_id, {})
        if not color_name:
            continue
        for key in color_key_variants(color_name):
            keys.setdefault(key, color_code)
    return lookup


def resolve_color_code(aggregate: DipAggregate, lookup: dict[str, str] | None) -> str:
    if lookup:
        for key in color_key_variants(aggregate.color_name):
            match = lookup.get(key)
            if match:
                return match
    return aggregate.color_code


def read_dip_file(
    path: str | Path, style_filter: Iterable[str] | None = None
) -> tuple[dict[tuple[str, str, str], DipAggregate], int, int]:
    resolved = Path(path).resolve()
    filter_set = {style.strip().upper() for style in style_filter or [] if style.strip()}
    aggregates: dict[tuple[str, str, str], DipAggregate] = {}
    rows_read = rows_skipped = 0

    with resolved.open("r", encoding="utf-8-sig", newline="") as handle:
        reader = csv.DictReader(handle, delimiter=PIPE_DELIMITER)
        for row in reader:
            rows_read += 1
            values = {str(key).strip(): (value or "").strip() for key, value in row.items() if key is not None}
            style = values.get("catalog_no")
            color_name = values.get("catalog_color")
            size = values.get("size")
            warehouse_raw = values.get("whse_no")
            quantity_raw = values.get("quantity")
            if not (style and color_name and size and warehouse_raw and quantity_raw):
                rows_skipped += 1
                continue

            supplier_part_id = style.upper()
            if filter_set and supplier_part_id not in filter_set:
                continue
            try:
                quantity = int(float(quantity_raw))
            except ValueError:
                rows_skipped += 1
                continue

            color_code = sanitize_code(color_name, color_name.upper())
            size_code = sanitize_code(size, size.upper())
            warehouse_id, warehouse_name = normalize_sanmar_warehouse_id(warehouse_raw, values.get("whse_name"))

            key = (supplier_part_id, color_code, size_code)
            aggregate = aggregates.get(key)
            if aggregate is None:
                aggregate = aggregates[key] = DipAggregate(
                    supplier_part_id,
                    color_name,
                    color_code,
                    size_code,
                    piece_weight=parse_decimal(values.get("piece_weight")),
                )
            aggregate.add(warehouse_id, warehouse_name, quantity)
    return aggregates, rows_read, rows_skipped


def import_sanmar_dip(
    session: Session | None,
    dip_path: str | Path,
    style_filter: Iterable[str] | None = None,
    dry_run: bool = False,
) -> DipImportResult:
    style_filter = [style.strip().upper() for style in style_filter or [] if style.strip()]
    aggregates, rows_read, rows_skipped = read_dip_file(dip_path, style_filter)

    matched = list(dict.fromkeys(aggregate.supplier_part_id for aggregate in aggregates.values()))
    result = DipImportResult(
        processed=len(aggregates),
        matched_styles=matched,
        missing_styles=[style for style in style_filter if style not in matched],
        rows_read=rows_read,
        rows_skipped=rows_skipped,
    )
    if dry_run:
        logger.info(f"[DIP] dry run: {result.processed} inventory rows from {rows_read} lines")
        return result

    color_lookup = build_color_lookup(session, matched)
    fetched_at = datetime.now(timezone.utc)

    # colors that resolve to the same stored code merge into one record
    records: dict[tuple[str, str, str], InventoryRecord] = {}
    for aggregate in aggregates.values():
        color_code = resolve_color_code(aggregate, color_lookup.get(aggregate.supplier_part_id))
        key = (aggregate.supplier_part_id, color_code, aggregate.size_code)
        record = records.get(key)
        if record is None:
            record = records[key] = InventoryRecord(
                supplier_part_id=aggregate.supplier_part_id,
                supplier_sku=f"{aggregate.supplier_part_id}_{color_code}_{aggregate.size_code}",
                color_code=color_code,
                size_code=aggregate.size_code,
                total_qty=0,
            )
        record.total_qty += aggregate.total_qty
        merged = {warehouse.warehouse_id: warehouse for warehouse in record.warehouses}
        for warehouse in aggregate.warehouses.values():
            existing = merged.get(warehouse.warehouse_id)
            if existing is None:
                merged[warehouse.warehouse_id] = warehouse
            else:
                merged[warehouse.warehouse_id] = WarehouseQuantity(
                    warehouse.warehouse_id,
                    existing.quantity + warehouse.quantity,
                    warehouse.warehouse_name or existing.warehouse_name,
                )
        record.warehouses = list(merged.values())

    by_style: dict[str, list[InventoryRecord]] = {}
    for record in records.values():
        by_style.setdefault(record.supplier_part_id, []).append(record)

    for supplier_part_id, style_records in by_style.items():
        try:
            written = upsert_inventory_records(session, style_records, fetched_at=fetched_at)
            commit_product(session, supplier_part_id)
        except PersistenceError as e:
            session.rollback()
            result.issues.append(ImportIssue("product", e.message, entity_id=supplier_part_id, error_code=e.error_code))
            logger.error(f"[DIP] failed to write inventory for {supplier_part_id}: {e.message}")
            continue
        result.created += written

    logger.info(
        f"[DIP] done: {result.processed} aggregates, {result.created} inventory rows written, "
        f"{len(result.missing_styles)} requested styles missing"
    )
    return result
