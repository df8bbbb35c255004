"""
Subscription Records - API Module

FastAPI transport layer over the record service:
- Record CRUD
- Filtered listing
- Period totals
"""

from .server import app, create_app

__all__ = ["app", "create_app"]
