"""Persistence boundary: repository and row/record mapping."""

from src.store.repository import PortalStore, is_placeholder_id

__all__ = ["PortalStore", "is_placeholder_id"]
