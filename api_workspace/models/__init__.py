"""
Models package for the API Workspace.

Exports all SQLAlchemy models for database operations.
"""

from .storage import StorageEntry

__all__ = [
    "StorageEntry",
]
