"""
Client Spaces Portal
Identity & Authorization Middleware.

Authentication itself is delegated to the upstream identity provider, which
forwards the signed-in user as request headers:

    X-User-Id       — user identifier (string)
    X-User-Email    — email address (used to match the project's client)
    X-User-Role     — "admin" | "user"
    X-User-Title    — "Admin" | "Project Manager" | "Team Member" | "Client"

Provides:
    - current_user(): the User for this request
    - require_admin / require_manager decorators for route protection

Configuration:
    IDENTITY_ENFORCED — "true" rejects /api/v1/* calls without X-User-Id (401).
                        When disabled (development/testing default) a request
                        without identity headers acts as a local administrator.
"""

import functools
import logging
import os
from dataclasses import dataclass

from flask import current_app, g, request

from portal.utils.errors import E, api_error

logger = logging.getLogger(__name__)

# ── Roles & titles ───────────────────────────────────────────────────────────

ROLE_ADMIN = "admin"

TITLE_ADMIN = "Admin"
TITLE_PROJECT_MANAGER = "Project Manager"
TITLE_TEAM_MEMBER = "Team Member"
TITLE_CLIENT = "Client"

TITLES = {TITLE_ADMIN, TITLE_PROJECT_MANAGER, TITLE_TEAM_MEMBER, TITLE_CLIENT}

# Paths that never require identity
_PUBLIC_PREFIXES = ("/api/v1/health",)


@dataclass(frozen=True)
class User:
    id: str
    email: str | None = None
    role: str = "user"
    title: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN or self.title == TITLE_ADMIN

    @property
    def is_manager(self) -> bool:
        """Admins and project managers may create and manage spaces."""
        return self.is_admin or self.title == TITLE_PROJECT_MANAGER

    def to_dict(self):
        return {"id": self.id, "email": self.email, "role": self.role, "title": self.title}


LOCAL_ADMIN = User(id="local-admin", email="admin@localhost", role=ROLE_ADMIN, title=TITLE_ADMIN)


def _is_identity_enforced() -> bool:
    """Check whether identity headers are mandatory (env var or app config)."""
    env_val = os.getenv("IDENTITY_ENFORCED", "")
    if env_val:
        return env_val.lower() not in ("false", "0", "no", "off")
    try:
        return str(current_app.config.get("IDENTITY_ENFORCED", "true")).lower() not in (
            "false", "0", "no", "off",
        )
    except RuntimeError:
        # Outside app context
        return True


def _user_from_headers() -> User | None:
    user_id = request.headers.get("X-User-Id", "").strip()
    if not user_id:
        return None
    title = request.headers.get("X-User-Title", "").strip() or None
    if title and title not in TITLES:
        logger.warning("Unknown user title '%s' for user %s", title, user_id)
    return User(
        id=user_id,
        email=request.headers.get("X-User-Email", "").strip().lower() or None,
        role=request.headers.get("X-User-Role", "user").strip().lower() or "user",
        title=title,
    )


def current_user() -> User:
    """Return the user resolved for the current request."""
    user = getattr(g, "current_user", None)
    if user is None:
        user = _user_from_headers() or LOCAL_ADMIN
        g.current_user = user
    return user


def init_auth(app):
    """Register the before_request hook resolving identity for API calls."""

    @app.before_request
    def _resolve_identity():
        if not request.path.startswith("/api/"):
            return None
        if request.path.startswith(_PUBLIC_PREFIXES):
            return None

        user = _user_from_headers()
        if user is None:
            if _is_identity_enforced():
                logger.info("Rejected unauthenticated request %s %s", request.method, request.path)
                return api_error(E.UNAUTHENTICATED, "Authentication required")
            user = LOCAL_ADMIN
        g.current_user = user
        return None


# ── Decorators ───────────────────────────────────────────────────────────────

def _guard(predicate, description):
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            user = current_user()
            if not predicate(user):
                logger.warning(
                    "User %s (%s/%s) denied: %s required on %s",
                    user.id, user.role, user.title, description, f.__name__,
                )
                return api_error(E.FORBIDDEN, "Permission denied", details={"required": description})
            return f(*args, **kwargs)
        return decorated
    return decorator


def require_admin(f):
    """Decorator: only administrators (role admin or title Admin)."""
    return _guard(lambda u: u.is_admin, "admin")(f)


def require_manager(f):
    """Decorator: administrators and project managers."""
    return _guard(lambda u: u.is_manager, "project manager")(f)
