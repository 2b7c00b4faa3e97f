"""
Outcome value returned by every public payment operation.

Expected failures (validation, declines, transient gateway errors) are carried
as data; only programming errors propagate as exceptions.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Generic, Optional, TypeVar


T = TypeVar("T")


@dataclass(frozen=True)
class AttemptResult(Generic[T]):
    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    retryable: bool = False

    @classmethod
    def ok(cls, data: T) -> "AttemptResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(
        cls,
        error: str,
        *,
        error_code: Optional[str] = None,
        retryable: bool = False,
    ) -> "AttemptResult[T]":
        return cls(success=False, error=error, error_code=error_code, retryable=retryable)

    def with_retryable(self, retryable: bool) -> "AttemptResult[T]":
        return replace(self, retryable=retryable)

    def to_dict(self) -> dict[str, Any]:
        """Discriminated dict view: success carries only data, failure only error fields."""
        if self.success:
            return {"success": True, "data": self.data}
        out: dict[str, Any] = {"success": False, "error": self.error, "retryable": self.retryable}
        if self.error_code:
            out["error_code"] = self.error_code
        return out
