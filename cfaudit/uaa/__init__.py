"""UAA client-credentials authentication."""

from __future__ import annotations

from .client import ADMIN_READ_ONLY_SCOPE, UAAAuthenticator, UAAConfig
from .errors import AuthError

__all__ = ["ADMIN_READ_ONLY_SCOPE", "AuthError", "UAAAuthenticator", "UAAConfig"]
