"""OpenAPI ``responses=`` blocks for the workflow routers.

Each status lists the error codes a caller can actually meet on it, so the
generated docs show ``segregation_of_duties`` next to plain ``forbidden`` and
``insufficient_stock`` next to ordinary bad input.
"""

from fnb_erp.core.errors import (
    ForbiddenError,
    InsufficientStockError,
    InvalidStateError,
    NotFoundError,
    SegregationOfDutiesError,
    UnauthorizedError,
    ValidationError,
)
from fnb_erp.schemas.common import ErrorOut

_SAMPLES: dict[int, list[tuple[str, str]]] = {
    ValidationError.status_code: [
        (ValidationError.code, "Received qty (4) cannot exceed shipped qty (3)"),
        (InsufficientStockError.code, "Insufficient stock at location for item. Available: 2, requested: 3"),
    ],
    UnauthorizedError.status_code: [(UnauthorizedError.code, "Not authenticated")],
    ForbiddenError.status_code: [
        (ForbiddenError.code, "Insufficient permission for this action"),
        (SegregationOfDutiesError.code, "You cannot approve your own purchase order"),
    ],
    NotFoundError.status_code: [(NotFoundError.code, "Purchase order not found")],
    InvalidStateError.status_code: [(InvalidStateError.code, "Only draft POs can be edited")],
    422: [("validation_error", "Validation failed")],
    500: [("internal_error", "Internal server error")],
}

_DESCRIPTIONS = {
    400: "Business rule violated",
    401: "Missing or invalid bearer token",
    403: "Role or segregation-of-duties check failed",
    404: "Referenced record does not exist in this tenant",
    409: "Document is not in a status that allows this action",
    422: "Request failed schema validation",
    500: "Internal server error",
}


def _envelope(code: str, message: str) -> dict:
    return {
        "error": {
            "code": code,
            "message": message,
            "request_id": "0f6c9d6e-31c2-4e57-9a55-2f1b0f0f1c11",
            "path": "/purchase-orders/{id}",
            "details": None,
        }
    }


def error_responses(*status_codes: int) -> dict[int, dict]:
    responses: dict[int, dict] = {}
    for status_code in status_codes:
        samples = _SAMPLES.get(status_code, [("http_error", "HTTP error")])
        examples = {code: {"summary": code, "value": _envelope(code, message)} for code, message in samples}
        responses[status_code] = {
            "model": ErrorOut,
            "description": _DESCRIPTIONS.get(status_code, "HTTP error"),
            "content": {"application/json": {"examples": examples}},
        }
    return responses
