"""Service layer exception classes for Factory Ledger.

This module defines all custom exceptions used by the service layer to provide
consistent error handling across the application.

Exception Hierarchy:
    ServiceError (base)
    ├── ValidationError
    ├── GuardViolation
    ├── LedgerWriteFailure
    ├── NotBatchSubmitter
    ├── DatabaseError
    └── NotFound
        ├── BatchNotFound
        ├── LineItemNotFound
        └── ProductNotFound
"""

from typing import Optional


class ServiceError(Exception):
    """Base exception for all service layer errors.

    All service-specific exceptions should inherit from this class.
    """

    pass


class ValidationError(ServiceError):
    """Raised when submitted data fails validation.

    Args:
        errors: List of human-readable validation messages

    Example:
        >>> raise ValidationError(["At least one line item with quantity > 0 is required"])
        ValidationError: Validation failed: At least one line item with quantity > 0 is required
    """

    def __init__(self, errors: list):
        self.errors = errors
        error_msg = "; ".join(errors)
        super().__init__(f"Validation failed: {error_msg}")


class GuardViolation(ServiceError):
    """Raised when a batch is not in the state a transition requires.

    Reported to users as "already processed". Never retried automatically.

    Args:
        batch_id: The batch whose transition was refused
        current_status: Status observed when the transition was attempted
        attempted_status: Status the caller tried to move the batch to
    """

    def __init__(self, batch_id: int, current_status: str, attempted_status: str):
        self.batch_id = batch_id
        self.current_status = current_status
        self.attempted_status = attempted_status
        super().__init__(
            f"Production batch {batch_id} already processed: "
            f"cannot move from '{current_status}' to '{attempted_status}'"
        )


class LedgerWriteFailure(ServiceError):
    """Raised when derived ledger entries could not be written.

    Nothing from the failed attempt is committed, so the whole confirm
    operation is safe to retry.

    Args:
        message: Description of the failure
        original_error: The underlying exception, if any
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        super().__init__(f"Ledger write failed: {message}")


class NotBatchSubmitter(ServiceError):
    """Raised when someone other than the submitter tries to resubmit a batch."""

    def __init__(self, batch_id: int, actor: str):
        self.batch_id = batch_id
        self.actor = actor
        super().__init__(
            f"Only the original submitter may resubmit production batch {batch_id} "
            f"(attempted by '{actor}')"
        )


class DatabaseError(ServiceError):
    """Raised when a database operation fails."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        super().__init__(f"Database error: {message}")


class NotFound(ServiceError):
    """Base class for referenced records that do not exist."""

    pass


class BatchNotFound(NotFound):
    """Raised when a production batch cannot be found by ID.

    Example:
        >>> raise BatchNotFound(42)
        BatchNotFound: Production batch with ID 42 not found
    """

    def __init__(self, batch_id: int):
        self.batch_id = batch_id
        super().__init__(f"Production batch with ID {batch_id} not found")


class LineItemNotFound(NotFound):
    """Raised when a line item does not belong to the given batch."""

    def __init__(self, item_id: int, batch_id: int):
        self.item_id = item_id
        self.batch_id = batch_id
        super().__init__(f"Line item {item_id} not found in production batch {batch_id}")


class ProductNotFound(NotFound):
    """Raised when a product cannot be found by ID.

    Example:
        >>> raise ProductNotFound(123)
        ProductNotFound: Product with ID 123 not found
    """

    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__(f"Product with ID {product_id} not found")
