# src/tablerank/middleware/__init__.py

"""HTTP middleware for the TableRank API."""

from .logging import RequestLoggingMiddleware

__all__ = ["RequestLoggingMiddleware"]
