# catalog_proxy/api/responses.py
from typing import Any, Optional
from fastapi import Request
from catalog_proxy.schemas.base_schema import ApiResponse, Meta


def ok(
    data: Any,
    message: str,
    request: Optional[Request] = None,
    meta: Optional[dict] = None,
) -> ApiResponse:
    """Wrap a successful response in the standard ApiResponse envelope."""
    return ApiResponse(
        success=True,
        data=data,
        meta=Meta(**meta) if meta else None,
        message=message,
        errors=None,
        trace_id=getattr(request.state, "trace_id", "") if request else "",
    )


def fail(
    message: str,
    request: Optional[Request] = None,
    errors: Optional[list] = None,
    meta: Optional[dict] = None,
) -> dict:
    """Build the JSON body of an error envelope."""
    return ApiResponse(
        success=False,
        data=None,
        meta=Meta(**meta) if meta else None,
        message=message,
        errors=errors or [message],
        trace_id=(getattr(request.state, "trace_id", None) or "") if request else "",
    ).model_dump()
