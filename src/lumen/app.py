"""Lumen - bilingual educational portal.

Run with ``streamlit run src/lumen/app.py``.

- Configuration comes from st.secrets first, then the environment (.env)
- One PortalContext per browser session, kept in st.session_state
- The page is emulated with the ``page`` query parameter
"""

from typing import Optional

import streamlit as st

from lumen.config import PortalConfig
from lumen.errors import ConfigurationError
from lumen.logutils import configure_root_logger, get_logger, with_context
from lumen.models import Role
from lumen.pages import (
    current_path,
    render_admin_dashboard,
    render_loading,
    render_login_page,
    render_register_page,
    render_student_dashboard,
    render_teacher_dashboard,
)
from lumen.portal import PortalContext
from lumen.router import ROOT_PATH, View, normalize_path, resolve_route

logger = get_logger(__name__)

DASHBOARD_RENDERERS = {
    Role.STUDENT: render_student_dashboard,
    Role.TEACHER: render_teacher_dashboard,
    Role.ADMIN: render_admin_dashboard,
}


def _read_secrets() -> Optional[dict]:
    """Return Streamlit secrets as a dict, or None when none are configured."""
    try:
        return dict(st.secrets)
    except Exception:
        # st.secrets raises when no secrets.toml exists
        return None


def get_portal() -> PortalContext:
    """Return this browser session's PortalContext, creating it on first run.

    A configuration error stops the script with a visible message.
    """
    if "portal" not in st.session_state:
        try:
            config = PortalConfig.from_env(secrets=_read_secrets())
        except ConfigurationError as e:
            logger.error(f"Invalid configuration: {e}")
            st.error(f"⚠️ {e}")
            st.stop()
        st.session_state.portal = PortalContext.create(config)
        logger.info("Portal session created")
    return st.session_state.portal


def render(portal: PortalContext, path: str) -> None:
    """Resolve the route for this run and render it."""
    controller = portal.controller
    route = resolve_route(controller.state, controller.user, path)

    with with_context(
        view=route.view.value,
        user_id=controller.user.id if controller.user else None,
        role=route.role.value if route.role else None,
    ):
        logger.debug(f"Rendering {route.view.value} for {path}")

        if route.view is View.LOADING:
            render_loading()
        elif route.view is View.LOGIN:
            render_login_page(portal)
        elif route.view is View.REGISTER:
            render_register_page(portal)
        elif route.view is View.DASHBOARD:
            DASHBOARD_RENDERERS[route.role](controller.user, portal)
        elif path != ROOT_PATH:
            st.query_params.clear()
            st.rerun()
        else:
            # Signed in with a role that has no dashboard
            render_login_page(portal)


def main() -> None:
    st.set_page_config(
        page_title="Lumen",
        page_icon="📘",
        layout="centered",
        initial_sidebar_state="collapsed",
    )
    configure_root_logger()

    portal = get_portal()
    render(portal, normalize_path(current_path()))


if __name__ == "__main__":
    main()
