"""
Perch Auth - request authentication middlewares.
"""

from .bearer import create_bearer_auth_middleware

__all__ = ["create_bearer_auth_middleware"]
