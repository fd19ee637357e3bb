import html
import re
import unicodedata
from collections.abc import Iterable, Mapping
from typing import Any

from bs4 import BeautifulSoup

SIZE_ORDER: tuple[str, ...] = (
    "XXXS",
    "XXS",
    "XS",
    "S",
    "SM",
    "M",
    "MED",
    "L",
    "LG",
    "XL",
    "2XL",
    "XXL",
    "3XL",
    "XXXL",
    "4XL",
    "5XL",
    "6XL",
    "OSFA",
    "OS",
)
UNKNOWN_SIZE_OFFSET = 999

SSACTIVEWEAR_CDN_BASE = "https://cdn.ssactivewear.com/"

_NON_ALNUM_RUN_RE = re.compile(r"[^A-Za-z0-9]+")
_NON_ALNUM_RE = re.compile(r"[^A-Za-z0-9]")
_TRAILING_NUMBER_RE = re.compile(r"(\d+)[^0-9]*$")
_NUMBER_RE = re.compile(r"-?[0-9]+(?:\.[0-9]+)?")
_DECIMAL_NOISE_RE = re.compile(r"[^0-9.,-]")
_WHITESPACE_RE = re.compile(r"\s+")
_B_PREFIX_STYLE_RE = re.compile(r"^B\d{5}$")
_DIGITS_ONLY_RE = re.compile(r"^\d+$")
_LINE_BREAK_TAGS = ["p", "li", "div", "tr", "h1", "h2", "h3", "h4", "h5", "h6"]


def sanitize_code(value: str | None, fallback: str) -> str:
    """
    Convert free supplier text (color/size names) into a stable ASCII code.

    "Heather Gray / Navy" -> "HEATHER_GRAY_NAVY", "Crème" -> "CREME".
    Returns `fallback` when nothing alphanumeric survives.
    """
    if value is None:
        return fallback
    decomposed = unicodedata.normalize("NFKD", str(value))
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    code = _NON_ALNUM_RUN_RE.sub("_", stripped).strip("_").upper()
    return code or fallback


def compute_size_sort(size_label: str | None) -> int:
    """
    Display rank of a size label.

    Known labels get their index in SIZE_ORDER. Otherwise a trailing number ("Size 42", "32W")
    ranks after the table by its value, capped so it stays ahead of unrecognised labels, which rank last.
    """
    label = str(size_label or "")
    normalized = _NON_ALNUM_RE.sub("", label).upper()
    if normalized in SIZE_ORDER:
        return SIZE_ORDER.index(normalized)

    match = _TRAILING_NUMBER_RE.search(label)
    if match:
        return len(SIZE_ORDER) + min(int(match.group(1)), UNKNOWN_SIZE_OFFSET - 1)

    return len(SIZE_ORDER) + UNKNOWN_SIZE_OFFSET


def to_array(value: Any) -> list[Any]:
    """Wrap a value that may be a single object, a list or missing into a list."""
    if value is None or value == "":
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, tuple):
        return list(value)
    return [value]


def read_text(value: Any) -> str | None:
    """Trimmed text of a scalar or an XML text node ({"_": text, ...}); None when blank."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Mapping):
        value = value.get("_")
        if value is None:
            return None
    if isinstance(value, (int, float)):
        value = str(value)
    if not isinstance(value, str):
        return None
    text = value.strip()
    return text or None


def read_field(record: Mapping[str, Any] | None, aliases: Iterable[str]) -> Any:
    """
    First non-empty value among `aliases`, tried in order.

    Suppliers spell the same logical field differently (supplierPartId, SupplierPartID, PartId, ...);
    callers list the spellings once instead of branching per payload.
    """
    if not isinstance(record, Mapping):
        return None
    for alias in aliases:
        value = record.get(alias)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def read_field_text(record: Mapping[str, Any] | None, aliases: Iterable[str]) -> str | None:
    return read_text(read_field(record, aliases))


def read_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    text = read_text(value)
    if text is None:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def read_int(value: Any, default: int = 0) -> int:
    """Leading integer of a quantity field; `default` when it does not parse."""
    number = read_number(value)
    if number is None:
        text = read_text(value)
        match = _NUMBER_RE.search(text) if text else None
        if not match:
            return default
        number = float(match.group(0))
    return int(number)


def parse_decimal(raw: str | None) -> float | None:
    """
    Best-effort number from price/weight text: "$1,234.50" -> 1234.5, "4.2 lbs" -> 4.2.
    """
    if not raw:
        return None
    cleaned = _DECIMAL_NOISE_RE.sub("", str(raw)).replace(",", "")
    match = _NUMBER_RE.search(cleaned)
    if not match:
        return None
    return float(match.group(0))


def parse_number(raw: str | None) -> float | None:
    """First number in the text, ignoring thousands separators ("72 pcs" -> 72.0)."""
    if not raw:
        return None
    match = _NUMBER_RE.search(str(raw).replace(",", ""))
    if not match:
        return None
    return float(match.group(0))


def compact_number(value: float | None) -> int | float | None:
    """Store integral numbers as int so attribute maps read naturally (72 not 72.0)."""
    if value is None:
        return None
    if float(value).is_integer():
        return int(value)
    return value


def html_to_lines(raw: str | None) -> list[str]:
    """Split an HTML description into trimmed, non-empty text lines."""
    if not raw:
        return []
    soup = BeautifulSoup(html.unescape(str(raw)), "html.parser")
    for br in soup.find_all("br"):
        br.replace_with("\n")
    for tag in soup.find_all(_LINE_BREAK_TAGS):
        tag.append("\n")

    lines = []
    for line in soup.get_text(separator=" ").split("\n"):
        cleaned = _WHITESPACE_RE.sub(" ", line).strip()
        if cleaned:
            lines.append(cleaned)
    return lines


def split_description(raw: str | None) -> list[str]:
    """Pipe-delimited bulk file description -> lines."""
    if not raw:
        return []
    cleaned = _WHITESPACE_RE.sub(" ", str(raw).replace("\r", " ").replace("\n", " ")).strip()
    return [entry.strip() for entry in cleaned.split("|") if entry.strip()]


def normalize_keyword(value: str | None) -> str | None:
    if not value:
        return None
    keyword = str(value).strip().lower()
    return keyword or None


def normalize_image_url(raw: str | None, base_url: str = SSACTIVEWEAR_CDN_BASE) -> str | None:
    """Absolute image URL; relative paths are resolved against the supplier CDN."""
    text = read_text(raw)
    if not text:
        return None
    if text.lower().startswith(("http://", "https://")):
        return text
    return f"{base_url.rstrip('/')}/{text.lstrip('/')}"


def to_ssa_product_id(product_id: str) -> str:
    """
    SSActivewear part id: "B00060" stays, "60" -> "B00060", letter styles ("A230") stay literal.
    """
    normalized = str(product_id or "").strip().upper()
    if not normalized:
        raise ValueError("Product ID is required")
    if _B_PREFIX_STYLE_RE.match(normalized):
        return normalized
    if _DIGITS_ONLY_RE.match(normalized):
        return f"B{normalized.zfill(5)}"
    return normalized


def to_style_number(product_id: str) -> str:
    """Style key for the REST endpoints ("B00060" -> "00060")."""
    normalized = str(product_id or "").strip().upper()
    if _B_PREFIX_STYLE_RE.match(normalized):
        return normalized[1:]
    return normalized
