"""Per-browser-session context passed explicitly to every view."""

from dataclasses import dataclass, field
from typing import Dict, Optional, Union

from .config import PortalConfig
from .dashboards import AdminDashboard, StudentDashboard, TeacherDashboard
from .identity_store import IdentityStore
from .logutils import get_logger
from .models import Role, User
from .session_controller import SessionController, SessionState

logger = get_logger(__name__)

Dashboard = Union[StudentDashboard, TeacherDashboard, AdminDashboard]


@dataclass
class PortalContext:
    """Config, Identity Store and Session Controller of one browser session.

    Dashboards are cached per (user id, role) so that a dashboard's list state
    survives Streamlit reruns and is dropped when another identity signs in.
    """

    config: PortalConfig
    store: IdentityStore
    controller: SessionController
    _dashboards: Dict[tuple, Dashboard] = field(default_factory=dict)

    @classmethod
    def create(cls, config: PortalConfig, store: Optional[IdentityStore] = None) -> "PortalContext":
        """Build the context and start the controller's subscription."""
        store = store or IdentityStore.from_config(config)
        controller = SessionController(store)
        portal = cls(config=config, store=store, controller=controller)
        controller.add_listener(portal._on_state_change)
        controller.start()
        return portal

    def _on_state_change(self, state: SessionState) -> None:
        """Drop dashboard state once no user is signed in."""
        if state is not SessionState.AUTHENTICATED and self._dashboards:
            logger.debug(f"Session {state.value}, dropping dashboards")
            self._dashboards.clear()

    def dashboard_for(self, user: User) -> Dashboard:
        """Return the dashboard for ``user``, creating and mounting it once.

        Mounting performs the dashboard's initial read (teacher materials).
        """
        key = (user.id, user.role)
        dashboard = self._dashboards.get(key)
        if dashboard is not None:
            return dashboard

        # Only one identity is signed in per browser session
        self._dashboards.clear()

        if user.role == Role.TEACHER:
            dashboard = TeacherDashboard(self.store, user)
            dashboard.load()
        elif user.role == Role.ADMIN:
            dashboard = AdminDashboard(self.store, user)
        elif user.role == Role.STUDENT:
            dashboard = StudentDashboard(self.config, user)
        else:
            raise ValueError(f"No dashboard for role {user.role!r}")

        logger.debug(f"Mounted {type(dashboard).__name__} for {user.id}")
        self._dashboards[key] = dashboard
        return dashboard

    def logout(self) -> None:
        """Sign out and drop every dashboard's local state."""
        self.controller.logout()
        self._dashboards.clear()

    def dispose(self) -> None:
        self.controller.dispose()
        self._dashboards.clear()
