"""
Core application utilities for settings and FastAPI dependencies.

This package provides:
- Application-level settings (separate from DB settings)
- Logging configuration with correlation/actor context
- Dependency helpers (actor extraction, session, service factories)
"""
