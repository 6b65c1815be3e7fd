"""Lumen: role-based educational portal on Supabase with a bilingual assistant."""

from .config import PortalConfig
from .identity_store import IdentityStore
from .models import Material, Profile, Role, User
from .router import Route, View, resolve_route
from .session_controller import SessionController, SessionState

__version__ = "0.1.0"

__all__ = [
    "IdentityStore",
    "Material",
    "PortalConfig",
    "Profile",
    "Role",
    "Route",
    "SessionController",
    "SessionState",
    "User",
    "View",
    "resolve_route",
]
