"""Utilities package for factory-ledger."""
