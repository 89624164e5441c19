"""
Structured outcomes for distribution engine operations.

Expected failures (missing records, a full target, an empty candidate pool)
are returned to callers as failed results instead of being raised.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar


class ErrorCode(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    NO_CANDIDATE_AVAILABLE = "NO_CANDIDATE_AVAILABLE"
    INVALID_STATE = "INVALID_STATE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


TData = TypeVar("TData")


@dataclass
class ServiceResult(Generic[TData]):
    success: bool
    data: Optional[TData] = None
    error: Optional[str] = None
    error_code: Optional[ErrorCode] = None

    @classmethod
    def ok(cls, data: Optional[TData] = None) -> "ServiceResult[TData]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, code: ErrorCode, message: str) -> "ServiceResult[TData]":
        return cls(success=False, error=message, error_code=code)

    @classmethod
    def from_exception(cls, exception: Exception, operation: str) -> "ServiceResult[TData]":
        return cls.fail(ErrorCode.INTERNAL_ERROR, f"Failed to {operation}: {exception}")


@dataclass
class BatchAssignmentReport:
    total: int = 0
    assigned: int = 0
    failed: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)
