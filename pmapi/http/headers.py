import json
import re
from typing import Any, Optional

_TEXT_CT_RE = re.compile(
    r"^(?:text/|application/(?:json|xml|x-www-form-urlencoded))(?:[;].*)?$",
    re.I,
)

_CONTENT_RANGE_RE = re.compile(r"^\s*(?:items\s+)?(\*|\d+-\d+)/(\*|\d+)\s*$", re.I)


def detect_charset(content_type: str | None) -> str | None:
    """
    Best-effort charset detection from Content-Type header.
    Returns codec name (e.g., 'utf-8') or None if not clearly text.
    """
    if not content_type:
        return None
    m = re.search(r"charset=([^\s;]+)", content_type, flags=re.I)
    if m:
        return m.group(1).strip('"').strip("'")
    if _TEXT_CT_RE.match(content_type):
        return "utf-8"
    return None


def get_ci(headers: dict, name: str):
    ln = name.lower()
    for k, v in headers.items():
        if k.lower() == ln:
            return v
    return None


def decode_text(raw: bytes, headers: dict) -> str:
    cs = detect_charset(get_ci(headers, "Content-Type")) or "utf-8"
    try:
        return raw.decode(cs, errors="replace")
    except LookupError:
        return raw.decode("utf-8", errors="replace")


def parse_json_body(raw: bytes, headers: dict) -> Any:
    """
    Empty body (204, zero-length, whitespace) -> None instead of a parse error.
    Raises ValueError on a non-empty body that is not JSON.
    """
    if not raw or not raw.strip():
        return None
    return json.loads(decode_text(raw, headers))


def parse_content_range_total(value: Optional[str]) -> Optional[int]:
    """'0-9/57' -> 57; '*/0' -> 0; unknown total '0-9/*' -> None."""
    if not value:
        return None
    m = _CONTENT_RANGE_RE.match(value)
    if not m or m.group(2) == "*":
        return None
    return int(m.group(2))
