"""
Utilities for polytrans.
"""

from .http_client import HTTPClient, create_http_client

__all__ = [
    "HTTPClient",
    "create_http_client",
]
