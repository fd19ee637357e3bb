from __future__ import annotations

# canonical id -> (display name, aliases used in SanMar feeds)
SANMAR_WAREHOUSES: dict[str, tuple[str, tuple[str, ...]]] = {
    "DAL": ("Dallas, TX", ("1", "DAL")),
    "CIN": ("Cincinnati, OH", ("2", "CIN")),
    "PHX": ("Phoenix, AZ", ("3", "PHX")),
    "RNO": ("Reno, NV", ("4", "RNO")),
    "ATL": ("Atlanta, GA", ("5", "ATL")),
    "CHI": ("Chicago, IL", ("6", "CHI")),
    "LAX": ("Los Angeles, CA", ("7", "LAX")),
    "SEA": ("Seattle, WA", ("12", "SEA")),
    "JAX": ("Jacksonville, FL", ("31", "JAX")),
}

_SANMAR_ALIAS_LOOKUP: dict[str, tuple[str, str]] = {
    alias.upper(): (canonical_id, display_name)
    for canonical_id, (display_name, aliases) in SANMAR_WAREHOUSES.items()
    for alias in aliases
}


def get_warehouse_display_name(warehouse_id: str, warehouse_name: str | None = None, supplier: str | None = None) -> str:
    """Name to show for a warehouse: the supplier-provided name, the SanMar table, or the raw id."""
    if warehouse_name and warehouse_name.strip():
        return warehouse_name
    if str(supplier or "").strip().upper() == "SANMAR":
        mapping = _SANMAR_ALIAS_LOOKUP.get(str(warehouse_id or "").strip().upper())
        if mapping:
            return mapping[1]
    return warehouse_id


def normalize_sanmar_warehouse_id(warehouse_id: str | None, warehouse_name: str | None = None) -> tuple[str, str | None]:
    """
    Map numeric or abbreviated SanMar warehouse ids onto the canonical abbreviation ("1" -> "DAL").
    Unknown ids are upper-cased and keep whatever name was supplied.
    """
    trimmed_id = str(warehouse_id or "").strip()
    trimmed_name = (warehouse_name or "").strip() or None
    if not trimmed_id:
        return "", trimmed_name

    mapping = _SANMAR_ALIAS_LOOKUP.get(trimmed_id.upper())
    if mapping:
        canonical_id, display_name = mapping
        return canonical_id, trimmed_name or display_name
    return trimmed_id.upper(), trimmed_name
