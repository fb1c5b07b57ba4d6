"""
API v1 package.

Contains versioned API routes for member signup and email verification.
"""

from src.api.v1.routes import router

__all__ = ["router"]
