"""
Public Pydantic schemas used by FastAPI routes, services, and tests.

Schemas are grouped by area (visits, customers, inventory) plus common
envelopes for messages and errors.
"""

from .common import MessageResponse  # noqa: F401
