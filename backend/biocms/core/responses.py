"""
Result envelope builder.

Every response body follows one of two shapes:

    success: {"status": "success", "results"?, "total"?, "pagination"?, "data": {...}}
    error:   {"status": "fail" | "error", "message": ..., "code": ...}

``fail`` marks expected client errors (4xx), ``error`` marks faults (5xx).
"""
import math
from typing import Any, Dict, List, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, Response

GENERIC_FAULT_MESSAGE = "Something went wrong. Please try again later."


def pagination_meta(total: int, page: int, limit: int) -> Dict[str, int]:
    """Pagination block computed from the unpaginated total"""
    return {
        "total": total,
        "page": page,
        "pages": math.ceil(total / limit) if limit else 0,
        "limit": limit,
    }


def success_envelope(
    data: Dict[str, Any],
    results: Optional[int] = None,
    total: Optional[int] = None,
    pagination: Optional[Dict[str, int]] = None,
    **extra: Any
) -> Dict[str, Any]:
    body: Dict[str, Any] = {"status": "success"}
    if results is not None:
        body["results"] = results
    if total is not None:
        body["total"] = total
    if pagination is not None:
        body["pagination"] = pagination
    body.update(extra)
    body["data"] = data
    return jsonable_encoder(body)


def list_envelope(resource_name: str, items: List[Dict[str, Any]], page) -> Dict[str, Any]:
    """Envelope for a page produced by the query executor"""
    return success_envelope(
        {resource_name: items},
        results=len(items),
        total=page.total,
        pagination=pagination_meta(page.total, page.page, page.limit),
    )


def error_envelope(
    status_code: int,
    message: str,
    code: Optional[str] = None,
    errors: Optional[List[Dict[str, Any]]] = None
) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "status": "fail" if status_code < 500 else "error",
        "message": message,
    }
    if code:
        body["code"] = code
    if errors:
        body["errors"] = errors
    return body


def success_response(data: Dict[str, Any], status_code: int = 200, **kwargs: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=success_envelope(data, **kwargs))


def error_response(
    status_code: int,
    message: str,
    code: Optional[str] = None,
    errors: Optional[List[Dict[str, Any]]] = None,
    headers: Optional[Dict[str, str]] = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error_envelope(status_code, message, code, errors),
        headers=headers,
    )


def no_content() -> Response:
    """204 response for deletions"""
    return Response(status_code=204)
