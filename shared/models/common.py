"""
Common Models
=============

Response envelopes shared by the HTTP services.

Version: 0.1.0
"""

from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class PaginatedResponse(BaseModel, Generic[T]):
    """One page of a result list."""

    items: list[T]
    total: int
    page: int = 1
    page_size: int = 20

    @classmethod
    def paginate(cls, items: Sequence[T], page: int, page_size: int) -> "PaginatedResponse[T]":
        start = (page - 1) * page_size
        return cls(
            items=list(items[start : start + page_size]),
            total=len(items),
            page=page,
            page_size=page_size,
        )

    @property
    def has_next(self) -> bool:
        return self.page * self.page_size < self.total


class ErrorResponse(BaseModel):
    """Error body returned by the exception handlers."""

    success: bool = False
    error: str
    error_code: str | None = None
    status_code: int
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class HealthResponse(BaseModel):
    """Service health check response."""

    status: str = "healthy"
    service: str
    version: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    # Component health
    components: dict[str, dict[str, Any]] = Field(default_factory=dict)

    @property
    def is_healthy(self) -> bool:
        """Check if all components are healthy."""
        if self.status != "healthy":
            return False
        return all(c.get("status") == "healthy" for c in self.components.values())
