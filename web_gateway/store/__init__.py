"""Persistent store adapter (shared Redis connection)."""

from web_gateway.store.connection import StoreConnection

__all__ = ["StoreConnection"]
