from typing import Any
from datetime import datetime
import uuid

from sqlalchemy import DateTime, ForeignKey, Integer, Text, UniqueConstraint, Uuid, Index
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func


class CatalogBase(DeclarativeBase):
    pass


class Product(CatalogBase):
    """
    Canonical product keyed by the supplier's part id (upper-cased).
    Child collections are replaced wholesale on every sync.
    """
    __tablename__ = "products"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    supplier: Mapped[str | None] = mapped_column(Text, nullable=True)  # SANMAR, SSACTIVEWEAR
    supplier_part_id: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    brand: Mapped[str | None] = mapped_column(Text, nullable=True)
    default_color: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
    attributes: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    colors: Mapped[list["ProductColor"]] = relationship(
        back_populates="product", cascade="all, delete-orphan", order_by="ProductColor.color_name"
    )
    sizes: Mapped[list["ProductSize"]] = relationship(back_populates="product", cascade="all, delete-orphan")
    media: Mapped[list["ProductMedia"]] = relationship(
        back_populates="product", cascade="all, delete-orphan", order_by="ProductMedia.position"
    )
    skus: Mapped[list["ProductSku"]] = relationship(back_populates="product", cascade="all, delete-orphan")
    keywords: Mapped[list["ProductKeyword"]] = relationship(back_populates="product", cascade="all, delete-orphan")


class ProductColor(CatalogBase):
    __tablename__ = "product_colors"
    __table_args__ = (UniqueConstraint("product_id", "color_code", name="uq_product_colors_product_color"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    color_code: Mapped[str] = mapped_column(Text, nullable=False)
    color_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    supplier_variant_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    swatch_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    product: Mapped[Product] = relationship(back_populates="colors")


class ProductSize(CatalogBase):
    __tablename__ = "product_sizes"
    __table_args__ = (UniqueConstraint("product_id", "size_code", name="uq_product_sizes_product_size"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    size_code: Mapped[str] = mapped_column(Text, nullable=False)
    display: Mapped[str | None] = mapped_column(Text, nullable=True)
    sort: Mapped[int | None] = mapped_column(Integer, nullable=True)  # NULL sorts last

    product: Mapped[Product] = relationship(back_populates="sizes")


class ProductMedia(CatalogBase):
    __tablename__ = "product_media"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    color_code: Mapped[str | None] = mapped_column(Text, nullable=True)  # NULL = global image
    url: Mapped[str] = mapped_column(Text, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    product: Mapped[Product] = relationship(back_populates="media")


class ProductSku(CatalogBase):
    __tablename__ = "product_skus"
    __table_args__ = (
        UniqueConstraint("product_id", "color_code", "size_code", name="uq_product_skus_product_color_size"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    color_code: Mapped[str] = mapped_column(Text, nullable=False)
    size_code: Mapped[str] = mapped_column(Text, nullable=False)
    supplier_sku: Mapped[str] = mapped_column(Text, nullable=False)

    product: Mapped[Product] = relationship(back_populates="skus")


class ProductKeyword(CatalogBase):
    __tablename__ = "product_keywords"
    __table_args__ = (UniqueConstraint("product_id", "keyword", name="uq_product_keywords_product_keyword"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    keyword: Mapped[str] = mapped_column(Text, nullable=False)

    product: Mapped[Product] = relationship(back_populates="keywords")


class ProductInventory(CatalogBase):
    """
    Latest stock per SKU. `warehouses` holds [{warehouseId, warehouseName, quantity}];
    an empty list means total_qty is authoritative.
    """
    __tablename__ = "product_inventory"
    __table_args__ = (
        UniqueConstraint("supplier_part_id", "color_code", "size_code", name="uq_product_inventory_part_color_size"),
        Index("ix_product_inventory_supplier_part_id", "supplier_part_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("products.id", ondelete="SET NULL"), nullable=True
    )
    supplier_part_id: Mapped[str] = mapped_column(Text, nullable=False)
    color_code: Mapped[str] = mapped_column(Text, nullable=False)
    size_code: Mapped[str] = mapped_column(Text, nullable=False)
    supplier_sku: Mapped[str | None] = mapped_column(Text, nullable=True)
    total_qty: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    warehouses: Mapped[list[dict[str, Any]]] = mapped_column(JSONB, nullable=False, default=list)
    fetched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class ImportRun(CatalogBase):
    __tablename__ = "import_runs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    job: Mapped[str] = mapped_column(Text, nullable=False)  # sanmar_sdl, sanmar_epdd, sanmar_dip, sanmar_catalog
    supplier: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="running")  # running, success, partial, fail

    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    finished_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    duration_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)

    read_count: Mapped[int] = mapped_column(Integer, default=0)
    write_count: Mapped[int] = mapped_column(Integer, default=0)
    error_count: Mapped[int] = mapped_column(Integer, default=0)

    meta: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    result: Mapped[dict | None] = mapped_column(JSONB, nullable=True)


class ImportRunError(CatalogBase):
    __tablename__ = "import_run_errors"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    run_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("import_runs.id"), nullable=False)

    entity_type: Mapped[str] = mapped_column(Text, nullable=False)  # product, row, system
    entity_id: Mapped[str | None] = mapped_column(Text, nullable=True)

    error_code: Mapped[str | None] = mapped_column(Text, nullable=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    stack: Mapped[str | None] = mapped_column(Text, nullable=True)
    raw: Mapped[dict | None] = mapped_column(JSONB, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
