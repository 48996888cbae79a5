"""
HTTP Adapter - FastAPI Application

This package exposes the exchange service over HTTP/JSON.
"""

from swappoints.adapters.http.api import create_app

__all__ = ["create_app"]
