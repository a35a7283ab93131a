"""
Constants for the Factory Ledger application.

This module defines system-wide constants including:
- Application metadata
- Database file naming
- Ledger remark templates
- Query limits used by the confirmation screens
"""

# ============================================================================
# Application Metadata
# ============================================================================

APP_NAME = "Factory Ledger"
APP_VERSION = "0.1.0"
DATABASE_VERSION = "1.0"

# ============================================================================
# Database
# ============================================================================

DATABASE_FILENAME = "factory_ledger.db"

# Environment variables
ENV_VAR_ENVIRONMENT = "FACTORY_LEDGER_ENV"
ENV_VAR_DATABASE_URL = "FACTORY_LEDGER_DATABASE_URL"

# ============================================================================
# Ledger Remarks
# ============================================================================

# Every derived remark ends with the batch reference; the ledger carries no
# foreign key back to the batch.
BATCH_REFERENCE_TEMPLATE = "batch #{batch_id}"

REMARK_PRODUCTION_INBOUND = "production inbound"
REMARK_RELABEL_OUT_PAIRED = "relabeled to {label}"
REMARK_RELABEL_OUT_GENERIC = "relabeled to finished product"
REMARK_RELABEL_IN_PAIRED = "produced from {label}"
REMARK_RELABEL_IN_GENERIC = "produced from semi-finished product"

# Label used when the product catalog cannot resolve a product
UNKNOWN_PRODUCT_LABEL = "product #{product_id}"

# ============================================================================
# Query Limits
# ============================================================================

PROCESSED_HISTORY_LIMIT = 50
SUBMITTER_HISTORY_LIMIT = 20
