"""Shared schemas: response envelope, pagination and wire formats."""

import math
import re
from datetime import date, time
from typing import Annotated, Any, Generic, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_PATTERN = re.compile(r"^\d{2}:\d{2}:\d{2}$")


def _parse_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        raise ValueError("Invalid date format (YYYY-MM-DD)")
    return date.fromisoformat(value)


def _parse_time(value: Any) -> time:
    if isinstance(value, time):
        return value
    if not isinstance(value, str) or not TIME_PATTERN.match(value):
        raise ValueError("Invalid time format (HH:MM:SS)")
    return time.fromisoformat(value)


# Dates travel as YYYY-MM-DD strings, times as HH:MM:SS strings
DateStr = Annotated[date, BeforeValidator(_parse_date)]
TimeStr = Annotated[time, BeforeValidator(_parse_time)]


class CamelModel(BaseModel):
    """Request body base: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ApiResponse(BaseModel, Generic[T]):
    """Standard response envelope."""

    success: bool = True
    message: str | None = None
    data: T | None = None


class PaginationMeta(BaseModel):
    """Pagination block of a list response."""

    model_config = ConfigDict(populate_by_name=True)

    page: int
    limit: int
    total: int
    total_pages: int = Field(alias="totalPages")


class PaginatedResponse(BaseModel, Generic[T]):
    """Envelope for paginated list endpoints."""

    success: bool = True
    data: list[T] = Field(default_factory=list)
    pagination: PaginationMeta


class Page(BaseModel):
    """Resolved page/limit pair."""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)

    @property
    def offset(self) -> int:
        """Row offset of the first item on this page."""
        return (self.page - 1) * self.limit


def paginate(items: list[Any], page: Page, total: int) -> dict[str, Any]:
    """Build the keyword arguments of a ``PaginatedResponse``."""
    return {
        "data": items,
        "pagination": PaginationMeta(
            page=page.page,
            limit=page.limit,
            total=total,
            total_pages=math.ceil(total / page.limit) if total else 0,
        ),
    }
