from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# Highest first, used by the urgency sort
PRIORITY_RANK: dict["TaskPriority", int] = {
    TaskPriority.HIGH: 0,
    TaskPriority.MEDIUM: 1,
    TaskPriority.LOW: 2,
}


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class ErrorCode(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    UNAUTHORIZED = "UNAUTHORIZED"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    ORDER_INDEX_OUT_OF_BOUNDS = "ORDER_INDEX_OUT_OF_BOUNDS"
    ORDER_MISMATCH = "ORDER_MISMATCH"
    CATEGORY_NOT_FOUND = "CATEGORY_NOT_FOUND"
    DUPLICATE_CATEGORY_NAME = "DUPLICATE_CATEGORY_NAME"
    EMAIL_EXISTS = "EMAIL_EXISTS"
    CONSTRAINT_VIOLATION = "CONSTRAINT_VIOLATION"
    TRANSACTION_FAILED = "TRANSACTION_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorBody(BaseModel):
    code: ErrorCode
    message: str
    status: int
    details: Optional[Any] = None


class ErrorResponse(BaseModel):
    error: ErrorBody


class MessageResponse(BaseModel):
    message: str
