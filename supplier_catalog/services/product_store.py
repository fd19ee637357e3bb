"""
Product persistence: replace-on-write upsert of a ProductRecord and the reverse load.
"""
from __future__ import annotations

import logging
from collections import OrderedDict

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from supplier_catalog.exceptions import PersistenceError
from supplier_catalog.models import Product, ProductColor, ProductKeyword, ProductMedia, ProductSize, ProductSku
from supplier_catalog.records import Colorway, MediaGroup, ProductRecord, Size, SkuMapEntry

logger = logging.getLogger(__name__)

CHILD_MODELS = (ProductColor, ProductSize, ProductMedia, ProductSku, ProductKeyword)
CHILD_RELATIONSHIPS = ["colors", "sizes", "media", "skus", "keywords"]


def get_product(session: Session, supplier_part_id: str) -> Product | None:
    return session.execute(
        select(Product).where(Product.supplier_part_id == supplier_part_id.strip().upper())
    ).scalar_one_or_none()


def persist_product_record(session: Session, record: ProductRecord, supplier: str | None = None) -> bool:
    """
    Write `record` so that the stored child collections equal exactly the record's.

    Scalars are updated in place; colors, sizes, media, skus and keywords are deleted and re-inserted.
    Runs inside the caller's transaction: the caller commits (or rolls back on PersistenceError).
    Returns True when the product row was created.
    """
    supplier_part_id = record.supplier_part_id.strip().upper()
    try:
        product = get_product(session, supplier_part_id)
        created = product is None
        if product is None:
            product = Product(supplier_part_id=supplier_part_id)
            session.add(product)

        product.supplier = supplier or product.supplier
        product.name = record.name or supplier_part_id
        product.brand = record.brand
        product.default_color = record.default_color
        product.description = list(record.description)
        product.attributes = dict(record.attributes)
        session.flush()

        for model in CHILD_MODELS:
            session.execute(delete(model).where(model.product_id == product.id))
        session.expire(product, CHILD_RELATIONSHIPS)

        rows: list = []
        for color in record.colors:
            rows.append(
                ProductColor(
                    product_id=product.id,
                    color_code=color.color_code,
                    color_name=color.color_name,
                    supplier_variant_id=color.supplier_variant_id,
                    swatch_url=color.swatch_url,
                )
            )
        for size in record.sizes:
            rows.append(ProductSize(product_id=product.id, size_code=size.size_code, display=size.display, sort=size.sort))
        for group in record.media:
            for position, url in enumerate(group.urls):
                rows.append(ProductMedia(product_id=product.id, color_code=group.color_code, url=url, position=position))
        for sku in record.skus:
            rows.append(
                ProductSku(
                    product_id=product.id,
                    color_code=sku.color_code,
                    size_code=sku.size_code,
                    supplier_sku=sku.supplier_sku,
                )
            )
        for keyword in dict.fromkeys(record.keywords):
            rows.append(ProductKeyword(product_id=product.id, keyword=keyword))
        session.add_all(rows)
        session.flush()
        session.expire(product, CHILD_RELATIONSHIPS)
    except SQLAlchemyError as exc:
        raise PersistenceError(
            f"Failed to persist product {supplier_part_id}: {exc}",
            supplier_part_id=supplier_part_id,
            operation="replace_children",
        ) from exc

    logger.debug(f"[IMPORT] {'created' if created else 'updated'} product {supplier_part_id} ({len(rows)} child rows)")
    return created


def commit_product(session: Session, supplier_part_id: str) -> None:
    """Commit one product's writes. Failures at commit time (serialization, deferred constraints) become PersistenceError."""
    try:
        session.commit()
    except SQLAlchemyError as exc:
        raise PersistenceError(
            f"Failed to commit {supplier_part_id}: {exc}",
            supplier_part_id=supplier_part_id,
            operation="commit",
        ) from exc


def load_product_record(session: Session, supplier_part_id: str) -> ProductRecord | None:
    """Rebuild the canonical record from storage."""
    product = session.execute(
        select(Product)
        .where(Product.supplier_part_id == supplier_part_id.strip().upper())
        .options(*(selectinload(getattr(Product, name)) for name in CHILD_RELATIONSHIPS))
    ).scalar_one_or_none()
    if product is None:
        return None

    media: OrderedDict[str | None, list[ProductMedia]] = OrderedDict()
    for row in sorted(product.media, key=lambda item: item.position):
        media.setdefault(row.color_code, []).append(row)

    sizes = sorted(product.sizes, key=lambda size: (size.sort is None, size.sort or 0, size.size_code))
    return ProductRecord(
        supplier_part_id=product.supplier_part_id,
        name=product.name,
        brand=product.brand,
        default_color=product.default_color,
        description=list(product.description or []),
        attributes=dict(product.attributes or {}),
        colors=[Colorway(c.color_code, c.color_name or c.color_code, c.supplier_variant_id, c.swatch_url) for c in product.colors],
        sizes=[Size(s.size_code, s.display or s.size_code, s.sort) for s in sizes],
        media=[MediaGroup(code, [row.url for row in rows]) for code, rows in media.items()],
        skus=[SkuMapEntry(s.color_code, s.size_code, s.supplier_sku) for s in product.skus],
        keywords=[k.keyword for k in product.keywords],
    )
