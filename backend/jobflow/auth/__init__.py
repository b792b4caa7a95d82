# jobflow/auth/__init__.py
"""
Identity handling for JobFlow.

This package contains:
- identity.py: the opaque "who is this" value handed over by the identity provider
"""
from jobflow.auth.identity import Identity

__all__ = ["Identity"]
