"""Slabstock - batch inventory, reservation and sale ledger engine."""

__version__ = "1.0.0"
