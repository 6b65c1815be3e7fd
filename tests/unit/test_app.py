"""Tests for per-run view dispatch in the Streamlit entry point."""

from unittest.mock import MagicMock, patch

import pytest
from conftest import FakeIdentityStore, make_session

from lumen import app
from lumen.models import Role
from lumen.portal import PortalContext
from lumen.session_controller import SessionState

pytestmark = pytest.mark.unit


@pytest.fixture
def store() -> FakeIdentityStore:
    store = FakeIdentityStore()
    store.add_account("admin@example.com", "secret1", {"id": "a1", "name": "Aya", "role": "admin"})
    return store


@pytest.fixture
def mock_st():
    with patch("lumen.app.st") as st:
        yield st


class TestRender:
    """Route resolution drives which view is rendered."""

    @patch("lumen.app.render_loading")
    def test_loading_before_first_notification(self, mock_loading, portal_config, store, mock_st):
        portal = PortalContext(config=portal_config, store=store, controller=MagicMock())
        portal.controller.state = SessionState.INITIALIZING
        portal.controller.user = None

        app.render(portal, "/")

        mock_loading.assert_called_once()

    @patch("lumen.app.render_login_page")
    def test_login_when_signed_out(self, mock_login, portal_config, store, mock_st):
        portal = PortalContext.create(portal_config, store)

        app.render(portal, "/")

        mock_login.assert_called_once_with(portal)

    @patch("lumen.app.render_register_page")
    def test_register_path(self, mock_register, portal_config, store, mock_st):
        portal = PortalContext.create(portal_config, store)

        app.render(portal, "/register")

        mock_register.assert_called_once_with(portal)

    def test_dashboard_for_role(self, portal_config, store, mock_st):
        store.session = make_session("a1", "admin@example.com")
        portal = PortalContext.create(portal_config, store)
        renderer = MagicMock()

        with patch.dict(app.DASHBOARD_RENDERERS, {Role.ADMIN: renderer}):
            app.render(portal, "/")

        renderer.assert_called_once_with(portal.controller.user, portal)

    def test_unknown_path_redirects_to_root(self, portal_config, store, mock_st):
        portal = PortalContext.create(portal_config, store)

        app.render(portal, "/admin")

        mock_st.query_params.clear.assert_called_once()
        mock_st.rerun.assert_called_once()

    def test_every_role_has_a_renderer(self):
        assert set(app.DASHBOARD_RENDERERS) == set(Role)
