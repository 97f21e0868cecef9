"""Repayment sheet synchronisation: read, normalise and summarise repayment records."""

__version__ = "0.3.0"
