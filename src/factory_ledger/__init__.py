"""Factory Ledger - production confirmation and inventory ledger bookkeeping."""

__version__ = "0.1.0"
