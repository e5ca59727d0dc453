"""Shared utilities: logging, formatting, land units, receipts."""
