from typing import Generic, TypeVar, Optional
from pydantic import BaseModel

T = TypeVar("T")

class Meta(BaseModel):
    limit: Optional[int] = None
    next_cursor: Optional[int] = None
    total: Optional[int] = None
    latency_ms: Optional[int] = None
    cached: Optional[bool] = None

class ApiResponse(BaseModel, Generic[T]):
    success: bool
    data: Optional[T]
    meta: Optional[Meta] = None
    message: Optional[str] = None
    errors: Optional[list] = None
    trace_id: str
