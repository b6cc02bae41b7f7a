"""Infrastructure layer implementations."""

from slabstock.infrastructure import storage

__all__ = ["storage"]
