# pmapi/query/filters.py
"""
Filter grammar shared by every table builder.

Each operator maps (column, value) to one query pair keyed
"<operator>.<column>", e.g. eq("status", "done") -> ("eq.status", "done").
Negation keys the pair as "not.<operator>.<column>".
"""
from __future__ import annotations

from datetime import date, time
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple
from urllib.parse import quote, urlencode

FilterPair = Tuple[str, str]

# accepted spellings -> wire operator
_OP_ALIASES = {
    "eq": "eq",
    "=": "eq",
    "neq": "neq",
    "ne": "neq",
    "!=": "neq",
    "gt": "gt",
    "gte": "gte",
    "lt": "lt",
    "lte": "lte",
    "like": "like",
    "ilike": "ilike",
    "in": "in",
    "is": "is",
}

# what encodeURIComponent leaves alone
_URI_COMPONENT_SAFE = "-_.!~*'()"


def encode_value(val: Any) -> str:
    """Render a value the way the backend reads it back out of a query string."""
    if val is None:
        return "null"
    if isinstance(val, bool):
        return "true" if val else "false"
    if isinstance(val, (list, tuple, set, frozenset)):
        return ",".join(encode_value(v) for v in val)
    if isinstance(val, (date, time)):
        return val.isoformat()
    return str(val)


def normalize_op(op: str) -> str:
    iop = (op or "").strip().lower()
    if iop not in _OP_ALIASES:
        raise ValueError(f"Unsupported filter operator: {op}")
    return _OP_ALIASES[iop]


def _require_column(column: str) -> str:
    if not column or not isinstance(column, str):
        raise ValueError("filter column (str) is required")
    return column


def _in_value(values: Any) -> str:
    if isinstance(values, (str, bytes)) or not isinstance(values, Iterable):
        raise ValueError("in expects a list of values")
    return ",".join(encode_value(v) for v in values)


def _is_value(value: Any) -> str:
    if value is None or isinstance(value, bool):
        return encode_value(value)
    if isinstance(value, str) and value.lower() in ("null", "true", "false"):
        return value.lower()
    raise ValueError("is expects None, True or False")


def filter_pair(operator: str, column: str, value: Any) -> FilterPair:
    op = normalize_op(operator)
    column = _require_column(column)
    if op == "in":
        return f"in.{column}", _in_value(value)
    if op == "is":
        return f"is.{column}", _is_value(value)
    return f"{op}.{column}", encode_value(value)


def eq(column: str, value: Any) -> FilterPair:
    return filter_pair("eq", column, value)


def neq(column: str, value: Any) -> FilterPair:
    return filter_pair("neq", column, value)


def gt(column: str, value: Any) -> FilterPair:
    return filter_pair("gt", column, value)


def gte(column: str, value: Any) -> FilterPair:
    return filter_pair("gte", column, value)


def lt(column: str, value: Any) -> FilterPair:
    return filter_pair("lt", column, value)


def lte(column: str, value: Any) -> FilterPair:
    return filter_pair("lte", column, value)


def like(column: str, pattern: str) -> FilterPair:
    return filter_pair("like", column, pattern)


def ilike(column: str, pattern: str) -> FilterPair:
    return filter_pair("ilike", column, pattern)


def in_(column: str, values: Iterable[Any]) -> FilterPair:
    return filter_pair("in", column, values)


def is_(column: str, value: Optional[bool]) -> FilterPair:
    return filter_pair("is", column, value)


def not_(column: str, operator: str, value: Any) -> FilterPair:
    key, encoded = filter_pair(operator, column, value)
    return f"not.{key}", encoded


class FilterMixin:
    """
    Chainable filter methods. Every call writes into self._filters and
    returns self; re-applying an operator to the same column overwrites
    the earlier value.
    """

    _filters: Dict[str, str]

    def _add(self, pair: FilterPair):
        key, value = pair
        self._filters[key] = value
        return self

    def eq(self, column: str, value: Any):
        return self._add(eq(column, value))

    def neq(self, column: str, value: Any):
        return self._add(neq(column, value))

    def gt(self, column: str, value: Any):
        return self._add(gt(column, value))

    def gte(self, column: str, value: Any):
        return self._add(gte(column, value))

    def lt(self, column: str, value: Any):
        return self._add(lt(column, value))

    def lte(self, column: str, value: Any):
        return self._add(lte(column, value))

    def like(self, column: str, pattern: str):
        return self._add(like(column, pattern))

    def ilike(self, column: str, pattern: str):
        return self._add(ilike(column, pattern))

    def in_(self, column: str, values: Iterable[Any]):
        return self._add(in_(column, values))

    def is_(self, column: str, value: Optional[bool]):
        return self._add(is_(column, value))

    def not_(self, column: str, operator: str, value: Any):
        return self._add(not_(column, operator, value))

    def filter(self, column: str, operator: str, value: Any):
        op = (operator or "").strip().lower()
        if op.startswith("not."):
            return self.not_(column, op[4:], value)
        return self._add(filter_pair(op, column, value))

    def match(self, query: Mapping[str, Any]):
        for column, value in query.items():
            self.eq(column, value)
        return self


# ---- query-string encoders ----


def build_read_query(
    columns: str,
    filters: Mapping[str, str],
    order: Optional[Tuple[str, bool]] = None,
    limit: Optional[int] = None,
) -> str:
    """select=...&<filters>&order=col.asc|desc&limit=n, form-encoded."""
    params = [("select", columns)]
    params.extend(filters.items())
    if order:
        column, ascending = order
        params.append(("order", f"{column}.{'asc' if ascending else 'desc'}"))
    if limit is not None:
        params.append(("limit", str(limit)))
    return urlencode(params, safe="*")


def build_write_query(filters: Mapping[str, str]) -> str:
    """Bare key=urlencoded(value) pairs for PATCH/DELETE scoping."""
    return "&".join(
        f"{key}={quote(value, safe=_URI_COMPONENT_SAFE)}" for key, value in filters.items()
    )
