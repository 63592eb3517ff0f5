"""
Error taxonomy shared by every domain service.

Services raise these; the HTTP layer maps them to status codes in
``shared.responses``.
"""

from typing import Any, Dict, Optional


class AppError(Exception):
    """Base exception for application errors."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(AppError):
    """Raised when caller-supplied input fails a precondition."""

    status_code = 400


class NotFoundError(AppError):
    """Raised when a referenced record does not exist."""

    status_code = 404

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} {entity_id} not found", {"id": entity_id})
        self.entity = entity
        self.entity_id = entity_id


class StoreError(AppError):
    """Raised when the underlying data store call fails."""

    status_code = 500

    def __init__(self, operation: str, message: str, entity_id: Any = None):
        super().__init__(message, {"operation": operation, "id": entity_id})
        self.operation = operation
        self.entity_id = entity_id


class PartialArchivalFailure(StoreError):
    """
    Raised when archiving a loan fails after the active record was fetched.

    The archival transaction is rolled back, so the loan is still active and
    absent from history. ``stage`` names the step that failed.
    """

    def __init__(self, loan_id: str, stage: str, cause: str):
        super().__init__(
            "complete_loan",
            f"Archival of loan {loan_id} failed at '{stage}': {cause}",
            entity_id=loan_id,
        )
        self.loan_id = loan_id
        self.stage = stage
