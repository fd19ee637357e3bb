from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from supplier_catalog.exceptions import PersistenceError
from supplier_catalog.models import Product, ProductInventory
from supplier_catalog.records import InventoryRecord, WarehouseQuantity

logger = logging.getLogger(__name__)


def _insert_for(session: Session):
    if session.get_bind().dialect.name == "sqlite":
        return sqlite_insert
    return pg_insert


def warehouses_to_json(warehouses: Iterable[WarehouseQuantity]) -> list[dict[str, Any]]:
    return [
        {"warehouseId": w.warehouse_id, "warehouseName": w.warehouse_name, "quantity": w.quantity}
        for w in warehouses
    ]


def warehouses_from_json(raw: Any) -> list[WarehouseQuantity]:
    result = []
    for entry in raw or []:
        if not isinstance(entry, dict) or not entry.get("warehouseId"):
            continue
        result.append(
            WarehouseQuantity(
                warehouse_id=str(entry["warehouseId"]),
                quantity=int(entry.get("quantity") or 0),
                warehouse_name=entry.get("warehouseName"),
            )
        )
    return result


def upsert_inventory_records(
    session: Session,
    records: Iterable[InventoryRecord],
    fetched_at: datetime | None = None,
) -> int:
    """
    Upsert one product_inventory row per (supplier_part_id, color_code, size_code).
    Rows are linked to the product when it exists. Returns the number of rows written.
    """
    records = list(records)
    if not records:
        return 0
    fetched_at = fetched_at or datetime.now(timezone.utc)
    insert = _insert_for(session)

    part_ids = {record.supplier_part_id for record in records}
    product_ids = dict(
        session.execute(
            select(Product.supplier_part_id, Product.id).where(Product.supplier_part_id.in_(part_ids))
        ).all()
    )

    written = 0
    for record in records:
        values = {
            "product_id": product_ids.get(record.supplier_part_id),
            "supplier_part_id": record.supplier_part_id,
            "color_code": record.color_code,
            "size_code": record.size_code,
            "supplier_sku": record.supplier_sku,
            "total_qty": record.total_qty,
            "warehouses": warehouses_to_json(record.warehouses),
            "fetched_at": fetched_at,
        }
        stmt = insert(ProductInventory).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["supplier_part_id", "color_code", "size_code"],
            set_={
                "product_id": stmt.excluded.product_id,
                "supplier_sku": stmt.excluded.supplier_sku,
                "total_qty": stmt.excluded.total_qty,
                "warehouses": stmt.excluded.warehouses,
                "fetched_at": stmt.excluded.fetched_at,
            },
        )
        try:
            session.execute(stmt)
        except SQLAlchemyError as exc:
            raise PersistenceError(
                f"Failed to upsert inventory {record.supplier_part_id}/{record.color_code}/{record.size_code}: {exc}",
                supplier_part_id=record.supplier_part_id,
                operation="upsert_inventory",
            ) from exc
        written += 1

    session.flush()
    return written


def load_inventory_records(session: Session, supplier_part_id: str) -> list[InventoryRecord]:
    rows = session.execute(
        select(ProductInventory)
        .where(ProductInventory.supplier_part_id == supplier_part_id.strip().upper())
        .order_by(ProductInventory.color_code, ProductInventory.size_code)
    ).scalars()
    return [
        InventoryRecord(
            supplier_part_id=row.supplier_part_id,
            supplier_sku=row.supplier_sku or "",
            color_code=row.color_code,
            size_code=row.size_code,
            total_qty=row.total_qty,
            warehouses=warehouses_from_json(row.warehouses),
        )
        for row in rows
    ]
