# pmapi/http/errors.py
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Generic, Optional, TypeVar

if TYPE_CHECKING:
    from pmapi.http.transport import HttpResponse

T = TypeVar("T")


class ApiError(Exception):
    """
    Normalized backend/network failure.

    Raised by the throwing entry points (auth, request, rest client) and
    carried as ApiResult.error by the envelope entry points (table builders,
    rpc, storage).
    """

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        code: Optional[str] = None,
        details: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code or (f"HTTP_{status}" if status else "UNKNOWN_ERROR")
        self.details = details

    def __repr__(self) -> str:
        return f"ApiError(message={self.message!r}, status={self.status!r}, code={self.code!r})"

    def to_dict(self) -> Dict[str, Any]:
        details = self.details
        if isinstance(details, BaseException):
            details = f"{type(details).__name__}: {details}"
        return {
            "message": self.message,
            "code": self.code,
            "status": self.status,
            "details": details,
        }

    @classmethod
    def from_response(cls, resp: "HttpResponse") -> "ApiError":
        """
        Backend error bodies look like {"error","code","message","statusCode"}.
        Anything unparsable becomes a generic "HTTP <status>".
        """
        status = resp.status
        try:
            body = resp.json()
        except ValueError:
            body = None

        message = None
        code = None
        if isinstance(body, dict):
            message = body.get("message") or body.get("error")
            code = body.get("code")
        if not message or not isinstance(message, str):
            message = f"HTTP {status}"
        return cls(message, status=status, code=code, details=body)

    @classmethod
    def from_exception(cls, exc: BaseException, code: str = "NETWORK_ERROR") -> "ApiError":
        if isinstance(exc, ApiError):
            return exc
        return cls(str(exc) or type(exc).__name__, status=None, code=code, details=exc)


@dataclass
class ApiResult(Generic[T]):
    """{data, error} envelope; exactly one side is set on resolution."""

    data: Optional[T] = None
    error: Optional[ApiError] = None
    count: Optional[int] = None
    status: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: Any, status: Optional[int] = None, count: Optional[int] = None) -> "ApiResult":
        if count is None and isinstance(data, list):
            count = len(data)
        return cls(data=data, error=None, count=count, status=status)

    @classmethod
    def failure(cls, error: ApiError) -> "ApiResult":
        return cls(data=None, error=error, count=None, status=error.status)
