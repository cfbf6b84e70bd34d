"""Shared trip wallet bot: multi-currency expense ledger and debt settlement."""

__version__ = "0.1.0"
