"""
Domain lease marketplace API package.

Provides the FastAPI application for the domain lease marketplace.
"""

from .app import app, create_app

__all__ = ["app", "create_app"]
