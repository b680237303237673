"""
Public Pydantic schemas used by FastAPI routes, services, and tests.

Schemas are grouped by domain module (production, quality, materials) and
also include the standard error envelope and real-time event payloads.
"""

from .common import MessageResponse  # noqa: F401
