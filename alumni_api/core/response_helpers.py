"""Helpers for building the ``{success, data, error}`` response envelope."""
from typing import Any, Dict, Optional

from fastapi.encoders import jsonable_encoder

from alumni_api.core.exceptions import ContentServiceException, ValidationError


def success_response(data: Any) -> Dict[str, Any]:
    return {"success": True, "data": jsonable_encoder(data)}


def error_body(
    code: str,
    message: str,
    field: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    return {
        "success": False,
        "data": None,
        "error": {
            "code": code,
            "message": message,
            "field": field,
            "details": details,
        },
    }


def error_response_for(exc: ContentServiceException, include_details: bool = False) -> Dict[str, Any]:
    """Render an application exception. Details are only exposed in debug mode."""
    field = exc.field if isinstance(exc, ValidationError) else None
    return error_body(
        code=exc.error_code or type(exc).__name__.upper(),
        message=exc.message,
        field=field,
        details=jsonable_encoder(exc.details) if include_details and exc.details else None,
    )
