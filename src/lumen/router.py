"""Router/Gate: which view a browser session may see.

``resolve_route`` is a pure function of the controller state, the resolved
user and the requested path. It never renders and never calls the Identity
Store.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .models import Role, User
from .session_controller import SessionState

ROOT_PATH = "/"
REGISTER_PATH = "/register"


class View(Enum):
    LOADING = "loading"
    LOGIN = "login"
    REGISTER = "register"
    DASHBOARD = "dashboard"
    REDIRECT_ROOT = "redirect_root"


@dataclass(frozen=True)
class Route:
    """Routing decision. ``role`` is set only for DASHBOARD."""

    view: View
    role: Optional[Role] = None


LOADING = Route(View.LOADING)
LOGIN = Route(View.LOGIN)
REGISTER = Route(View.REGISTER)
REDIRECT_ROOT = Route(View.REDIRECT_ROOT)

_DASHBOARDS = {role: Route(View.DASHBOARD, role) for role in Role}


def normalize_path(path: Optional[str]) -> str:
    """Normalize a requested path: ``"register/"`` -> ``"/register"``."""
    cleaned = (path or "").strip().strip("/").lower()
    return f"/{cleaned}" if cleaned else ROOT_PATH


def resolve_route(state: SessionState, user: Optional[User], path: Optional[str] = ROOT_PATH) -> Route:
    """Map session state and requested path to a route.

    Args:
        state: Current SessionController state.
        user: Resolved user, or None.
        path: Requested path; anything unknown redirects to root.

    Returns:
        The Route to render.
    """
    if state is SessionState.INITIALIZING:
        return LOADING

    path = normalize_path(path)

    # AUTHENTICATED_NO_PROFILE has no user and falls through to the public routes
    if user is None or state is not SessionState.AUTHENTICATED:
        if path == ROOT_PATH:
            return LOGIN
        if path == REGISTER_PATH:
            return REGISTER
        return REDIRECT_ROOT

    if path != ROOT_PATH:
        return REDIRECT_ROOT

    # Unreachable for validated profiles; guards users built without validation
    return _DASHBOARDS.get(user.role, REDIRECT_ROOT)
