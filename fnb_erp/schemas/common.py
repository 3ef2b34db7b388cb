from pydantic import BaseModel, ConfigDict


class PaginationMeta(BaseModel):
    total: int
    limit: int
    offset: int
    count: int
    has_next: bool

    model_config = ConfigDict(
        json_schema_extra={"example": {"total": 23, "limit": 10, "offset": 10, "count": 10, "has_next": True}}
    )

    @classmethod
    def for_page(cls, *, total: int, limit: int, offset: int, count: int) -> "PaginationMeta":
        return cls(total=total, limit=limit, offset=offset, count=count, has_next=(offset + count) < total)


class ValidationIssueOut(BaseModel):
    """One failing field of a rejected request body or query string."""

    field: str
    message: str
    type: str | None = None


class ErrorDetailOut(BaseModel):
    code: str
    message: str
    request_id: str
    path: str
    details: list[ValidationIssueOut] | None = None


class ErrorOut(BaseModel):
    """Envelope returned for every non-2xx response."""

    error: ErrorDetailOut

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": {
                    "code": "insufficient_stock",
                    "message": "Insufficient stock for Flour: requested 12, available 8",
                    "request_id": "0f6c9d6e-31c2-4e57-9a55-2f1b0f0f1c11",
                    "path": "/internal-requests",
                    "details": None,
                }
            }
        }
    )
