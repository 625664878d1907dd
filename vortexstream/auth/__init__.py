"""Authentication: tokens, password hashing and request dependencies."""

from vortexstream.auth.dependencies import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    optional_user,
    require_user,
)

__all__ = ["ACCESS_COOKIE", "REFRESH_COOKIE", "optional_user", "require_user"]
