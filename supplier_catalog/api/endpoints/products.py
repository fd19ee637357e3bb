import logging
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from supplier_catalog.clients.promostandards import PromoStandardsClient
from supplier_catalog.clients.ssactivewear_rest import SsActivewearRestClient
from supplier_catalog.db import get_session
from supplier_catalog.exceptions import ConfigurationError, PersistenceError, SupplierFallbackError
from supplier_catalog.records import InventoryFilter
from supplier_catalog.services.fallback import SupplierFallback
from supplier_catalog.services.inventory_matrix import (
    ALL_WAREHOUSES,
    MatrixConfigError,
    build_inventory_matrix,
)
from supplier_catalog.services.inventory_store import load_inventory_records, upsert_inventory_records
from supplier_catalog.services.product_store import get_product, load_product_record, persist_product_record

router = APIRouter()
logger = logging.getLogger(__name__)


class LiveProductOut(BaseModel):
    source: str
    warnings: list[str] = Field(default_factory=list)
    fetchedAt: str
    persisted: bool = False
    product: dict


class LiveInventoryOut(BaseModel):
    source: str
    warnings: list[str] = Field(default_factory=list)
    fetchedAt: str
    written: int = 0
    inventory: dict


def get_supplier_fallback() -> SupplierFallback:
    try:
        return SupplierFallback(PromoStandardsClient.for_ssactivewear(), SsActivewearRestClient.from_settings())
    except ConfigurationError as e:
        raise HTTPException(status_code=503, detail=e.message)


@router.get("/{product_id}")
def get_stored_product(product_id: str, session: Session = Depends(get_session)):
    record = load_product_record(session, product_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Product {product_id.upper()} not found")
    return record.to_dict()


@router.get("/{product_id}/live", response_model=LiveProductOut)
def fetch_live_product(
    product_id: str,
    persist: bool = Query(default=False),
    session: Session = Depends(get_session),
    fallback: SupplierFallback = Depends(get_supplier_fallback),
):
    """
    Fetch from SSActivewear, PromoStandards first and REST on failure. `warnings` lists the
    primary failure when the REST fallback served the request.
    """
    try:
        result = fallback.fetch_product(product_id)
    except SupplierFallbackError as e:
        raise HTTPException(status_code=502, detail=e.message)

    persisted = False
    if persist:
        try:
            persist_product_record(session, result.record, supplier="SSACTIVEWEAR")
            persisted = True
        except PersistenceError as e:
            raise HTTPException(status_code=500, detail=e.message)

    return LiveProductOut(
        source=result.source,
        warnings=result.warnings,
        fetchedAt=result.fetched_at.isoformat(),
        persisted=persisted,
        product=result.record.to_dict(),
    )


@router.get("/{product_id}/inventory/live", response_model=LiveInventoryOut)
def fetch_live_inventory(
    product_id: str,
    part_id: str | None = Query(default=None, alias="partId"),
    color: str | None = Query(default=None),
    size: str | None = Query(default=None),
    warehouse_id: str | None = Query(default=None, alias="warehouseId"),
    persist: bool = Query(default=True),
    session: Session = Depends(get_session),
    fallback: SupplierFallback = Depends(get_supplier_fallback),
):
    inventory_filter = InventoryFilter(part_id=part_id, color=color, size=size, warehouse_id=warehouse_id)
    try:
        result = fallback.fetch_inventory(product_id, inventory_filter)
    except SupplierFallbackError as e:
        raise HTTPException(status_code=502, detail=e.message)

    written = 0
    if persist:
        try:
            written = upsert_inventory_records(session, result.record.records, fetched_at=result.fetched_at)
        except PersistenceError as e:
            raise HTTPException(status_code=500, detail=e.message)

    return LiveInventoryOut(
        source=result.source,
        warnings=result.warnings,
        fetchedAt=result.fetched_at.isoformat(),
        written=written,
        inventory=result.record.to_dict(),
    )


@router.get("/{product_id}/inventory-matrix")
def get_inventory_matrix(
    product_id: str,
    view_mode: Literal["warehouse", "color"] = Query(default="warehouse", alias="viewMode"),
    color_scope: Literal["single", "all"] = Query(default="single", alias="colorScope"),
    warehouse_filter: str = Query(default=ALL_WAREHOUSES, alias="warehouseFilter"),
    color: str | None = Query(default=None),
    session: Session = Depends(get_session),
):
    """
    Stored inventory pivoted by warehouse or color. Sizes and colors come from the stored product
    so that empty sizes still get a column.
    """
    product = get_product(session, product_id)
    record = load_product_record(session, product_id)
    records = load_inventory_records(session, product_id)
    if record is None and not records:
        raise HTTPException(status_code=404, detail=f"Product {product_id.upper()} not found")

    try:
        matrix = build_inventory_matrix(
            records,
            sizes=record.sizes if record else [],
            colors=record.colors if record else [],
            warehouses=[],
            selected_color=color or (record.default_color if record else None),
            color_scope=color_scope,
            warehouse_filter=warehouse_filter,
            view_mode=view_mode,
            supplier=product.supplier if product else None,
        )
    except MatrixConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return matrix.to_dict()
