"""
Headshots API Response Utilities
Standardized response format and error handling
"""
from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
import math

from .logging_config import api_logger


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


# ============================================================
# SUCCESS RESPONSES
# ============================================================

def success(data: Any = None, message: str = None, meta: Dict = None) -> Dict:
    """Create success response"""
    response = {
        "ok": True,
        "timestamp": _timestamp(),
    }

    if data is not None:
        response["data"] = data

    if message:
        response["message"] = message

    if meta:
        response["meta"] = meta

    return response


def created(data: Any, message: str = "Created successfully") -> Dict:
    """201 Created response"""
    return success(data, message)


def pagination(total: int, page: int = 1, limit: int = 20) -> Dict[str, Any]:
    """Pagination block for list responses; `limit` must be positive."""
    total_pages = math.ceil(total / limit) if total else 0
    return {
        "page": page,
        "limit": limit,
        "total_count": total,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_prev": page > 1,
    }


def paginated(key: str, items: List, total: int, page: int = 1, limit: int = 20, filters: Dict = None) -> Dict:
    """Paginated list response, items nested under `data[key]`"""
    data = {
        key: items,
        "pagination": pagination(total, page, limit),
    }
    if filters is not None:
        data["filters"] = filters
    return success(data)


# ============================================================
# ERROR RESPONSES
# ============================================================

class ApiException(HTTPException):
    """Custom API exception with error codes"""

    def __init__(
        self,
        status_code: int,
        message: str,
        error_code: str = None,
        details: Dict = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.error_code = error_code or f"ERR_{status_code}"
        self.details = details
        super().__init__(status_code=status_code, detail=message, headers=headers)


def unauthorized(message: str = "Authentication required"):
    raise ApiException(401, message, "UNAUTHORIZED", headers={"WWW-Authenticate": "Bearer"})

def forbidden(message: str = "Access denied"):
    raise ApiException(403, message, "FORBIDDEN")

def not_found(resource: str = "Resource", id: str = None):
    message = f"{resource} not found" if not id else f"{resource} '{id}' not found"
    raise ApiException(404, message, "NOT_FOUND")

def conflict(message: str = "Resource conflict"):
    raise ApiException(409, message, "CONFLICT")

def validation_error(message: str, details: Dict = None):
    raise ApiException(422, message, "VALIDATION_ERROR", details)

def upstream_failure(message: str = "Image provider request failed", details: Dict = None):
    raise ApiException(502, message, "UPSTREAM_FAILURE", details)


# ============================================================
# EXCEPTION HANDLERS
# ============================================================

def error_response(
    status_code: int,
    message: str,
    error_code: str,
    details: Optional[Dict] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Error body shared by every failure the API returns"""
    return JSONResponse(
        status_code=status_code,
        content={
            "ok": False,
            "error": message,
            "error_code": error_code,
            "details": details,
            "timestamp": _timestamp(),
        },
        headers=headers,
    )


async def api_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler for API errors"""
    if isinstance(exc, ApiException):
        api_logger.warning(
            "api_error",
            status_code=exc.status_code,
            error_code=exc.error_code,
            message=exc.detail,
            path=request.url.path,
        )
        return error_response(exc.status_code, exc.detail, exc.error_code, exc.details, exc.headers)

    if isinstance(exc, StarletteHTTPException):
        api_logger.warning("http_error", status_code=exc.status_code, message=exc.detail, path=request.url.path)
        return error_response(
            exc.status_code,
            exc.detail,
            f"HTTP_{exc.status_code}",
            headers=getattr(exc, "headers", None),
        )

    api_logger.error("unhandled_error", error=exc, path=request.url.path)
    return error_response(500, "An unexpected error occurred", "INTERNAL_ERROR")


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Request body/query validation failures, in the standard error format"""
    errors = [
        {"loc": list(error["loc"]), "msg": error["msg"], "type": error["type"]}
        for error in exc.errors()
    ]
    api_logger.warning("request_validation_failed", path=request.url.path, errors=errors)
    return error_response(422, "Invalid request", "VALIDATION_ERROR", {"errors": errors})
