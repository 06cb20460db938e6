from typing import Any, Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")

class ErrorOut(BaseModel):
    code: str
    message: str
    fields: dict[str, str] | None = None

class Envelope(BaseModel, Generic[T]):
    data: T | None = None
    error: ErrorOut | None = None

class DeletedOut(BaseModel):
    id: Any
    deleted: bool = True

def ok(data: Any) -> dict:
    return {"data": data, "error": None}
