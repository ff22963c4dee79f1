"""
Authentication modules for the auth service.

This package contains:
- identity.py: per-request identity attached after session token verification
"""
from auth_service.auth.identity import Identity

__all__ = ["Identity"]
