"""
asgi.py -- ASGI entry point for SalesDesk.

Page rendering lives in the surrounding application; this module only exposes
the auth API so a process manager has one stable import path.

Run with:  uvicorn asgi:app --reload
"""

from api.main import app

__all__ = ["app"]
