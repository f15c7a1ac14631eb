"""Visitrack - authentication and access control for the visitor-management backend.

Feature packages:
- ``features.auth``: credentials, tokens, lockout and the login/session flows
- ``features.permissions``: role/permission resolution, the permission cache and gates
- ``features.audit``: fire-and-forget audit trail

``api.app.create_app`` wires them into a FastAPI application.
"""

from .__version__ import __version__

__all__ = ["__version__"]
