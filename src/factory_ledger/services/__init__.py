"""Services package - Business logic layer for Factory Ledger.

Architecture:
- Services: Stateless functions organized by concern
- Transactions: Managed via session_scope() context manager
- Exceptions: Consistent error handling via ServiceError hierarchy
- Validation: Input validation before database operations

Service Modules:
- product_catalog_service: Product catalog and remark label lookup
- batch_store: Production batch persistence and guarded status updates
- ledger_writer: All-or-nothing append to the stock ledger
- pairing_resolver: Relabel out/in pairing for audit remarks (pure)
- ledger_entry_deriver: Line items to ledger entry drafts (pure)
- approval_rules: Batch approval state machine
- production_intake_service: Production submission intake
- reconciliation_service: Confirm / reject / resubmit workflow
- batch_query_service: Read-side queries for batches and the ledger

Infrastructure:
- exceptions: Custom exception classes for service layer errors
- database: Session management and database utilities
- logging_utils: Structured service logging
"""

from . import (
    database,
    exceptions,
    logging_utils,
    product_catalog_service,
    batch_store,
    ledger_writer,
    pairing_resolver,
    ledger_entry_deriver,
    approval_rules,
    batch_query_service,
    production_intake_service,
    reconciliation_service,
)

from .exceptions import (
    ServiceError,
    ValidationError,
    GuardViolation,
    LedgerWriteFailure,
    NotBatchSubmitter,
    DatabaseError,
    NotFound,
    BatchNotFound,
    LineItemNotFound,
    ProductNotFound,
)

__all__ = [
    # Modules
    "database",
    "exceptions",
    "logging_utils",
    "product_catalog_service",
    "batch_store",
    "ledger_writer",
    "pairing_resolver",
    "ledger_entry_deriver",
    "approval_rules",
    "batch_query_service",
    "production_intake_service",
    "reconciliation_service",
    # Exceptions
    "ServiceError",
    "ValidationError",
    "GuardViolation",
    "LedgerWriteFailure",
    "NotBatchSubmitter",
    "DatabaseError",
    "NotFound",
    "BatchNotFound",
    "LineItemNotFound",
    "ProductNotFound",
]
