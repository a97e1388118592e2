from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    status: bool = True
    message: str = ""
    data: T | None = None


class ErrorItem(BaseModel):
    path: str
    message: str


class ErrorResponse(BaseModel):
    status: bool = False
    message: str
    errors: list[ErrorItem] | None = None
