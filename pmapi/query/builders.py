# pmapi/query/builders.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Generator, List, Optional, Tuple, Union

from pmapi.http.envelope import send_enveloped
from pmapi.http.errors import ApiResult
from pmapi.http.transport import Transport
from pmapi.query.filters import FilterMixin, build_read_query, build_write_query

logger = logging.getLogger("api.db")

Row = Dict[str, Any]


def _table_endpoint(table: str) -> str:
    if not table or not isinstance(table, str):
        raise ValueError("table (str) is required")
    return f"/rest/v1/{table}"


def _as_rows(payload: Any) -> List[Row]:
    if payload is None:
        return []
    if isinstance(payload, list):
        return payload
    return [payload]


@dataclass
class QueryDescriptor:
    """State one chain accumulates before its single request fires."""

    table: str
    columns: str = "*"
    filters: Dict[str, str] = field(default_factory=dict)
    order: Optional[Tuple[str, bool]] = None
    executed: bool = False


class _Builder:
    """
    Awaitable request-in-waiting. Chained calls mutate this instance and
    return it; the request fires once, on execute() / await. A builder is
    single-use and must not be shared between concurrent tasks.
    """

    operation = "select"

    def __init__(self, transport: Transport, descriptor: QueryDescriptor) -> None:
        self._transport = transport
        self._desc = descriptor

    @property
    def _filters(self) -> Dict[str, str]:
        return self._desc.filters

    @property
    def table(self) -> str:
        return self._desc.table

    def _claim(self) -> None:
        if self._desc.executed:
            raise RuntimeError(
                f"{self.operation} builder for '{self._desc.table}' was already executed"
            )
        self._desc.executed = True

    async def _send(
        self,
        method: str,
        endpoint: str,
        headers: Optional[Dict[str, str]] = None,
        body: Any = None,
    ) -> ApiResult:
        self._claim()
        return await send_enveloped(
            self._transport,
            method,
            endpoint,
            logger=logger,
            operation=self.operation,
            target=self._desc.table,
            headers=headers,
            body=body,
        )

    async def execute(self) -> ApiResult:
        raise NotImplementedError

    def __await__(self) -> Generator[Any, None, ApiResult]:
        return self.execute().__await__()


# ---- read ----


class _ReadStage(FilterMixin, _Builder):
    operation = "select"

    def _endpoint(self, limit: Optional[int] = None) -> str:
        d = self._desc
        qs = build_read_query(d.columns, d.filters, d.order, limit)
        return f"{_table_endpoint(d.table)}?{qs}"

    async def _fetch(
        self, limit: Optional[int] = None, headers: Optional[Dict[str, str]] = None
    ) -> ApiResult:
        result = await self._send("GET", self._endpoint(limit), headers=headers)
        if result.ok:
            result.data = _as_rows(result.data)
            if result.count is None:
                result.count = len(result.data)
        return result

    async def execute(self) -> ApiResult:
        return await self._fetch()

    async def limit(self, count: int) -> ApiResult:
        if not isinstance(count, int) or isinstance(count, bool) or count < 0:
            raise ValueError("limit must be a non-negative integer")
        return await self._fetch(limit=count)

    async def range(self, start: int, end: int) -> ApiResult:
        """Rows start..end inclusive via the Range header; no limit param."""
        for v in (start, end):
            if not isinstance(v, int) or isinstance(v, bool) or v < 0:
                raise ValueError("range bounds must be non-negative integers")
        if end < start:
            raise ValueError("range end must be >= start")
        return await self._fetch(
            headers={"Range": f"{start}-{end}", "Prefer": "count=exact"}
        )

    async def single(self) -> ApiResult:
        """First row of the unlimited query, or None when nothing matched."""
        result = await self._fetch()
        if result.ok:
            rows = result.data or []
            result.data = rows[0] if rows else None
        return result


class SelectBuilder(_ReadStage):
    """Filtering stage of a read: filters, then order() or a terminal."""

    def order(self, column: str, ascending: bool = True) -> "OrderedBuilder":
        if not column or not isinstance(column, str):
            raise ValueError("order column (str) is required")
        self._desc.order = (column, bool(ascending))
        return OrderedBuilder(self._transport, self._desc)


class OrderedBuilder(_ReadStage):
    """Read after order(): filters and terminals only, no second order()."""


# ---- writes ----


class InsertBuilder(_Builder):
    operation = "insert"

    def __init__(self, transport: Transport, descriptor: QueryDescriptor, rows: Union[Row, List[Row]]) -> None:
        super().__init__(transport, descriptor)
        if isinstance(rows, dict):
            pass
        elif isinstance(rows, list) and rows and all(isinstance(r, dict) for r in rows):
            pass
        else:
            raise ValueError("insert expects an object or a non-empty list of objects")
        self._rows = rows

    async def _post(self, columns: Optional[str]) -> ApiResult:
        endpoint = _table_endpoint(self._desc.table)
        if columns:
            endpoint += "?" + build_read_query(columns, {})
        result = await self._send("POST", endpoint, body=self._rows)
        if result.ok:
            result.data = _as_rows(result.data)
            result.count = len(result.data)
        return result

    async def select(self, columns: str = "*") -> ApiResult:
        return await self._post(columns)

    async def execute(self) -> ApiResult:
        return await self._post(None)


class _ScopedWrite(FilterMixin, _Builder):
    method = "PATCH"

    def _endpoint(self) -> str:
        endpoint = _table_endpoint(self._desc.table)
        qs = build_write_query(self._desc.filters)
        return f"{endpoint}?{qs}" if qs else endpoint

    def _body(self) -> Any:
        return None

    async def execute(self) -> ApiResult:
        result = await self._send(self.method, self._endpoint(), body=self._body())
        if result.ok and result.data is None:
            result.data = []
        return result


class UpdateBuilder(_ScopedWrite):
    operation = "update"
    method = "PATCH"

    def __init__(self, transport: Transport, descriptor: QueryDescriptor, values: Row) -> None:
        super().__init__(transport, descriptor)
        if not isinstance(values, dict) or not values:
            raise ValueError("update expects a non-empty object of column values")
        self._values = values

    def _body(self) -> Any:
        return self._values


class DeleteBuilder(_ScopedWrite):
    operation = "delete"
    method = "DELETE"


# ---- entry point ----


class TableQuery:
    """What db.from_(table) hands out; each call starts a fresh chain."""

    def __init__(self, transport: Transport, table: str) -> None:
        _table_endpoint(table)
        self._transport = transport
        self.table = table

    def select(self, columns: str = "*") -> SelectBuilder:
        return SelectBuilder(self._transport, QueryDescriptor(self.table, columns or "*"))

    def insert(self, rows: Union[Row, List[Row]]) -> InsertBuilder:
        return InsertBuilder(self._transport, QueryDescriptor(self.table), rows)

    def update(self, values: Row) -> UpdateBuilder:
        return UpdateBuilder(self._transport, QueryDescriptor(self.table), values)

    def delete(self) -> DeleteBuilder:
        return DeleteBuilder(self._transport, QueryDescriptor(self.table))


class Database:
    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    def from_(self, table: str) -> TableQuery:
        return TableQuery(self._transport, table)

    table = from_
