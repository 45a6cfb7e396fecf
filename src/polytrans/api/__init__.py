"""
HTTP API for polytrans.
"""

from .routes import router

__all__ = ["router"]
