"""Tests for the Session Controller state machine."""

import threading
from unittest.mock import MagicMock

import pytest
from conftest import FakeIdentityStore, make_session

from lumen.errors import AuthError, ProfileFetchError, RegistrationValidationError
from lumen.models import Role, StudentData
from lumen.router import Route, View, resolve_route
from lumen.session_controller import SessionController, SessionState

pytestmark = pytest.mark.unit


@pytest.fixture
def store() -> FakeIdentityStore:
    store = FakeIdentityStore()
    store.add_account("teacher@example.com", "secret1", {"id": "t1", "name": "Omar", "role": "teacher"})
    store.add_account("student@example.com", "secret1", {
        "id": "s1", "name": "Sara", "role": "student",
        "student_id": "2021001", "major": "cs", "academic_year": "third",
    })
    return store


class TestStart:
    """Subscription and the initial notification."""

    def test_initializing_before_start(self, store):
        controller = SessionController(store)
        assert controller.state is SessionState.INITIALIZING
        assert not controller.initialized
        assert controller.user is None

    def test_no_session_resolves_unauthenticated(self, store):
        controller = SessionController(store)
        controller.start()

        assert controller.state is SessionState.UNAUTHENTICATED
        assert controller.user is None
        assert controller.initialized

    def test_restored_session_resolves_user(self, store):
        store.session = make_session("t1", "teacher@example.com")
        controller = SessionController(store)
        controller.start()

        assert controller.state is SessionState.AUTHENTICATED
        assert controller.user.id == "t1"
        assert controller.user.role is Role.TEACHER
        assert controller.user.email == "teacher@example.com"

    def test_start_subscribes_once(self, store):
        controller = SessionController(store)
        controller.start()
        controller.start()

        assert store.calls.count("subscribe") == 1
        assert len(store.callbacks) == 1
        assert controller.subscribed

    def test_dispose_unsubscribes(self, store):
        controller = SessionController(store)
        controller.start()
        controller.dispose()
        controller.dispose()

        assert store.callbacks == []
        assert not controller.subscribed


class TestSessionChange:
    """Resolution of session-change notifications."""

    def test_profile_fetch_failure_fails_open(self, store):
        store.fail_profile_fetch = True
        store.session = make_session("t1")
        controller = SessionController(store)
        controller.start()

        assert controller.state is SessionState.AUTHENTICATED_NO_PROFILE
        assert controller.user is None
        assert controller.session is store.session

    def test_missing_profile_fails_open(self, store):
        store.session = make_session("ghost")
        controller = SessionController(store)
        controller.start()

        assert controller.state is SessionState.AUTHENTICATED_NO_PROFILE
        assert controller.user is None

    def test_unknown_role_fails_open(self, store):
        store.profiles["t1"]["role"] = "superuser"
        store.session = make_session("t1")
        controller = SessionController(store)
        controller.start()

        assert controller.state is SessionState.AUTHENTICATED_NO_PROFILE
        assert controller.user is None

    def test_callback_swallows_profile_errors(self):
        failing = MagicMock()
        failing.fetch_profile.side_effect = ProfileFetchError("u1", "boom")
        controller = SessionController(failing)

        controller._on_session_change("TOKEN_REFRESHED", make_session("u1"))

        assert controller.state is SessionState.AUTHENTICATED_NO_PROFILE

    def test_sign_out_notification_clears_user(self, store):
        store.session = make_session("t1")
        controller = SessionController(store)
        controller.start()

        controller._on_session_change("SIGNED_OUT", None)

        assert controller.state is SessionState.UNAUTHENTICATED
        assert controller.user is None
        assert controller.session is None

    def test_refresh_keeps_user_visible_during_profile_read(self, store):
        controller = SessionController(store)
        controller.start()
        controller.login("teacher@example.com", "secret1")
        routes = []
        fetch_profile = store.fetch_profile

        def observing_fetch(user_id):
            routes.append(resolve_route(controller.state, controller.user, "/"))
            return fetch_profile(user_id)

        store.fetch_profile = observing_fetch
        # TOKEN_REFRESHED comes from the client's refresh timer thread
        refresh = threading.Thread(target=store._notify, args=("TOKEN_REFRESHED", store.session))
        refresh.start()
        refresh.join()

        assert routes == [Route(View.DASHBOARD, Role.TEACHER)]
        assert controller.state is SessionState.AUTHENTICATED
        assert controller.user.id == "t1"

    def test_superseded_profile_read_is_dropped(self, store):
        controller = SessionController(store)
        controller.start()
        controller.login("teacher@example.com", "secret1")
        fetch_profile = store.fetch_profile

        def fetch_then_sign_out(user_id):
            profile = fetch_profile(user_id)
            controller._on_session_change("SIGNED_OUT", None)
            return profile

        store.fetch_profile = fetch_then_sign_out
        controller._on_session_change("TOKEN_REFRESHED", store.session)

        assert controller.state is SessionState.UNAUTHENTICATED
        assert controller.user is None
        assert controller.session is None

    def test_listeners_receive_each_state(self, store):
        controller = SessionController(store)
        states = []
        controller.add_listener(states.append)
        controller.start()

        controller.login("teacher@example.com", "secret1")
        controller._on_session_change("SIGNED_OUT", None)

        assert states == [
            SessionState.UNAUTHENTICATED,
            SessionState.AUTHENTICATED,
            SessionState.UNAUTHENTICATED,
        ]

    def test_counts_notifications(self, store):
        controller = SessionController(store)
        controller.start()
        controller.login("teacher@example.com", "secret1")

        assert controller.notifications == 2


class TestLogin:
    """Login goes through the notification, never sets the user directly."""

    def test_login_resolves_user_via_notification(self, store):
        controller = SessionController(store)
        controller.start()

        controller.login("student@example.com", "secret1")

        assert controller.state is SessionState.AUTHENTICATED
        assert controller.user.name == "Sara"
        assert controller.user.major == "cs"

    def test_login_does_not_write_user_itself(self):
        mock_store = MagicMock()
        controller = SessionController(mock_store)
        controller.state = SessionState.UNAUTHENTICATED

        controller.login("teacher@example.com", "secret1")

        mock_store.sign_in.assert_called_once_with("teacher@example.com", "secret1")
        mock_store.fetch_profile.assert_not_called()
        assert controller.user is None

    def test_login_strips_email(self):
        mock_store = MagicMock()
        controller = SessionController(mock_store)

        controller.login("  teacher@example.com ", "secret1")

        mock_store.sign_in.assert_called_once_with("teacher@example.com", "secret1")

    def test_invalid_credentials_raise(self, store):
        controller = SessionController(store)
        controller.start()

        with pytest.raises(AuthError, match="Invalid login credentials"):
            controller.login("teacher@example.com", "wrong")

        assert controller.state is SessionState.UNAUTHENTICATED

    def test_unconfirmed_email_flagged(self, store):
        store.add_account("new@example.com", "secret1", {"name": "New", "role": "teacher"}, confirmed=False)
        controller = SessionController(store)
        controller.start()

        with pytest.raises(AuthError) as exc_info:
            controller.login("new@example.com", "secret1")

        assert exc_info.value.email_not_confirmed


class TestRegister:
    """Registration validation and sign-up."""

    def test_mismatched_passwords_make_no_remote_call(self, store):
        controller = SessionController(store)

        with pytest.raises(RegistrationValidationError) as exc_info:
            controller.register("New", "new@example.com", "secret1", "secret2", Role.TEACHER)

        assert exc_info.value.reason == RegistrationValidationError.PASSWORD_MISMATCH
        assert "do not match" in exc_info.value.message
        assert "sign_up" not in store.calls

    def test_short_password_rejected(self, store):
        controller = SessionController(store)

        with pytest.raises(RegistrationValidationError) as exc_info:
            controller.register("New", "new@example.com", "abc", "abc", Role.TEACHER)

        assert exc_info.value.reason == RegistrationValidationError.PASSWORD_TOO_SHORT
        assert "sign_up" not in store.calls

    def test_student_without_student_data_rejected(self, store):
        controller = SessionController(store)

        with pytest.raises(RegistrationValidationError) as exc_info:
            controller.register("New", "new@example.com", "secret1", "secret1", Role.STUDENT)

        assert exc_info.value.reason == RegistrationValidationError.STUDENT_FIELDS_REQUIRED

    def test_student_registration_seeds_profile(self, store):
        controller = SessionController(store)
        controller.start()
        data = StudentData(student_id="2022007", major="it", academic_year="first")

        created = controller.register("Lina", "lina@example.com", "secret1", "secret1", Role.STUDENT, data)

        assert created.user_metadata == {
            "name": "Lina",
            "role": "student",
            "student_id": "2022007",
            "major": "it",
            "academic_year": "first",
        }

    def test_registration_does_not_sign_in(self, store):
        controller = SessionController(store)
        controller.start()

        controller.register("New", "new@example.com", "secret1", "secret1", Role.TEACHER)

        assert controller.state is SessionState.UNAUTHENTICATED
        assert controller.user is None

    def test_teacher_metadata_has_no_student_fields(self, store):
        controller = SessionController(store)
        data = StudentData(student_id="x", major="cs", academic_year="first")

        created = controller.register("New", "new@example.com", "secret1", "secret1", Role.TEACHER, data)

        assert created.user_metadata == {"name": "New", "role": "teacher"}

    def test_duplicate_email_surfaces_store_message(self, store):
        controller = SessionController(store)

        with pytest.raises(AuthError, match="already registered"):
            controller.register("Omar", "teacher@example.com", "secret1", "secret1", Role.TEACHER)


class TestLogout:
    """Logout clears the local user whatever the remote outcome."""

    def test_logout_clears_user(self, store):
        controller = SessionController(store)
        controller.start()
        controller.login("teacher@example.com", "secret1")

        controller.logout()

        assert controller.user is None
        assert controller.state is SessionState.UNAUTHENTICATED

    def test_logout_clears_user_when_sign_out_fails(self, store):
        controller = SessionController(store)
        controller.start()
        controller.login("teacher@example.com", "secret1")
        store.fail_sign_out = True

        controller.logout()

        assert controller.user is None
        assert controller.session is None
        assert controller.state is SessionState.UNAUTHENTICATED

        # The client kept its session and later refreshes it
        assert store.session is not None
        store._notify("TOKEN_REFRESHED", store.session)

        assert controller.state is SessionState.UNAUTHENTICATED
        assert controller.user is None
        assert controller.session is None

    def test_sign_in_after_failed_logout_authenticates(self, store):
        controller = SessionController(store)
        controller.start()
        controller.login("teacher@example.com", "secret1")
        store.fail_sign_out = True
        controller.logout()

        controller.login("student@example.com", "secret1")

        assert controller.state is SessionState.AUTHENTICATED
        assert controller.user.id == "s1"

        store._notify("TOKEN_REFRESHED", store.session)

        assert controller.user.id == "s1"

    def test_logout_keeps_no_profile_state(self, store):
        store.fail_profile_fetch = True
        store.session = make_session("t1")
        controller = SessionController(store)
        controller.start()
        store.fail_sign_out = True

        controller.logout()

        assert controller.user is None
        assert controller.state is SessionState.AUTHENTICATED_NO_PROFILE
