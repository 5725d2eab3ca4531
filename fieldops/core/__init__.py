"""
Core application utilities.

This package provides:
- Application-level settings (separate from DB settings)
- Structured logging with request context
- Domain error types
- Token verification and FastAPI dependency helpers
"""
