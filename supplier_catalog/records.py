from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Literal

DataSource = Literal["primary", "secondary"]
AttributeValue = str | int | float | bool | None

DEFAULT_COLOR_CODE = "DEFAULT"
DEFAULT_COLOR_NAME = "Default"
DEFAULT_SIZE_CODE = "OSFA"
DEFAULT_SIZE_DISPLAY = "One Size"


@dataclass
class Colorway:
    color_code: str
    color_name: str
    supplier_variant_id: str | None = None
    swatch_url: str | None = None


@dataclass
class Size:
    size_code: str
    display: str
    sort: int | None = None


@dataclass
class SkuMapEntry:
    color_code: str
    size_code: str
    supplier_sku: str


@dataclass
class MediaGroup:
    """Ordered image URLs for one color; color_code None means color-agnostic."""
    color_code: str | None
    urls: list[str] = field(default_factory=list)


@dataclass
class ProductRecord:
    supplier_part_id: str
    name: str
    brand: str | None = None
    default_color: str | None = None
    description: list[str] = field(default_factory=list)
    attributes: dict[str, AttributeValue] = field(default_factory=dict)
    colors: list[Colorway] = field(default_factory=list)
    sizes: list[Size] = field(default_factory=list)
    media: list[MediaGroup] = field(default_factory=list)
    skus: list[SkuMapEntry] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class WarehouseQuantity:
    warehouse_id: str
    quantity: int
    warehouse_name: str | None = None


@dataclass
class InventoryRecord:
    """
    Stock for one SKU. When `warehouses` is non-empty, total_qty should equal its sum;
    when empty, total_qty is authoritative.
    """
    supplier_part_id: str
    supplier_sku: str
    color_code: str
    size_code: str
    total_qty: int
    warehouses: list[WarehouseQuantity] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ParsedInventory:
    supplier_part_id: str
    records: list[InventoryRecord] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class InventoryFilter:
    """Optional narrowing of an inventory request. Empty filter = whole style."""
    part_id: str | None = None
    color: str | None = None
    size: str | None = None
    warehouse_id: str | None = None

    def is_empty(self) -> bool:
        return not (self.part_id or self.color or self.size or self.warehouse_id)


class ProductAccumulator:
    """
    Collects one product's colors, sizes, media, skus and keywords with first-seen-wins adds.

    Shared by every parser and by the bulk importers so the same dedup rules apply everywhere.
    """

    def __init__(self, supplier_part_id: str, name: str | None = None) -> None:
        self.supplier_part_id = supplier_part_id
        self.name = name or supplier_part_id
        self.brand: str | None = None
        self.default_color: str | None = None
        self.description: list[str] = []
        self.attributes: dict[str, AttributeValue] = {}
        self.colors: dict[str, Colorway] = {}
        self.sizes: dict[str, Size] = {}
        self.media: dict[str | None, list[str]] = {}
        self.skus: dict[tuple[str, str], SkuMapEntry] = {}
        self.keywords: dict[str, None] = {}

    def add_color(
        self,
        color_code: str,
        color_name: str,
        supplier_variant_id: str | None = None,
        swatch_url: str | None = None,
    ) -> None:
        if color_code in self.colors:
            return
        self.colors[color_code] = Colorway(color_code, color_name, supplier_variant_id, swatch_url)
        if self.default_color is None:
            self.default_color = color_code

    def add_size(self, size_code: str, display: str, sort: int | None = None) -> None:
        if size_code not in self.sizes:
            self.sizes[size_code] = Size(size_code, display, sort)

    def add_sku(self, color_code: str, size_code: str, supplier_sku: str) -> None:
        key = (color_code, size_code)
        if key not in self.skus:
            self.skus[key] = SkuMapEntry(color_code, size_code, supplier_sku)

    def add_media(self, color_code: str | None, url: str | None) -> None:
        if not url:
            return
        urls = self.media.setdefault(color_code, [])
        if url not in urls:
            urls.append(url)

    def add_keyword(self, value: str | None) -> None:
        if not value:
            return
        keyword = value.strip().lower()
        if keyword:
            self.keywords.setdefault(keyword, None)

    def build(self, synthesize_defaults: bool = True, sort_sizes: bool = False) -> ProductRecord:
        colors = list(self.colors.values())
        sizes = list(self.sizes.values())
        if synthesize_defaults and not colors:
            colors = [Colorway(DEFAULT_COLOR_CODE, DEFAULT_COLOR_NAME)]
        if synthesize_defaults and not sizes:
            sizes = [Size(DEFAULT_SIZE_CODE, DEFAULT_SIZE_DISPLAY, 0)]
        if sort_sizes:
            sizes.sort(key=lambda size: (size.sort is None, size.sort or 0, size.size_code))

        default_color = self.default_color
        if default_color is None and colors:
            default_color = colors[0].color_code

        return ProductRecord(
            supplier_part_id=self.supplier_part_id,
            name=self.name,
            brand=self.brand,
            default_color=default_color,
            description=list(self.description),
            attributes=dict(self.attributes),
            colors=colors,
            sizes=sizes,
            media=[MediaGroup(code, list(urls)) for code, urls in self.media.items() if urls],
            skus=list(self.skus.values()),
            keywords=list(self.keywords),
        )
