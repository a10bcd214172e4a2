"""Middleware and dependencies for the FastAPI application"""
from .auth import require_auth, get_session_token

__all__ = ["require_auth", "get_session_token"]
