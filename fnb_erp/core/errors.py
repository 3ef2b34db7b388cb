"""
Business-rule errors raised by the workflow services.

Every error carries a machine-readable ``code`` and the HTTP status the API
layer answers with. Services raise these; ``fnb_erp.core.observability``
renders them in the standard error envelope.
"""


class WorkflowError(Exception):
    code: str = "workflow_error"
    status_code: int = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnauthorizedError(WorkflowError):
    code = "unauthorized"
    status_code = 401


class ForbiddenError(WorkflowError):
    code = "forbidden"
    status_code = 403


class SegregationOfDutiesError(ForbiddenError):
    code = "segregation_of_duties"


class NotFoundError(WorkflowError):
    code = "not_found"
    status_code = 404


class InvalidStateError(WorkflowError):
    code = "invalid_state"
    status_code = 409


class ValidationError(WorkflowError):
    code = "validation_error"
    status_code = 400


class InsufficientStockError(ValidationError):
    code = "insufficient_stock"

    def __init__(self, message: str, *, item_id: str | None = None, location_id: str | None = None):
        super().__init__(message)
        self.item_id = item_id
        self.location_id = location_id
