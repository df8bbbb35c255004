"""
Online Subscriptions - record tracking service.

Tracks user subscription records (service, price, owner, validity window)
over HTTP, backed by SQLite or PostgreSQL.
"""

__version__ = "1.0.0"
