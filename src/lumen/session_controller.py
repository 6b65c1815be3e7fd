"""Session Controller: authentication state for one browser session.

Lifecycle: ``SessionController(store)`` -> ``start()`` (subscribe once) ->
notifications resolve the state -> ``dispose()``.

The Identity Store's session-change notifications set ``state``, ``session``
and ``user``; ``logout`` only clears them. ``login`` does not set the user
itself; the ``SIGNED_IN`` notification it triggers does.

States:
    INITIALIZING: no notification received yet; nothing but a loading view.
    UNAUTHENTICATED: no session.
    AUTHENTICATED_NO_PROFILE: session present, profile unavailable. Treated
        like UNAUTHENTICATED by the router.
    AUTHENTICATED: session and profile resolved into ``user``.
"""

import threading
from enum import Enum
from typing import Any, Callable, List, Optional

from .auth import build_signup_metadata, validate_registration
from .errors import AuthError, ProfileFetchError
from .identity_store import SIGNED_IN_EVENT, IdentityStore, Subscription
from .logutils import get_logger, with_context
from .models import Role, StudentData, User

logger = get_logger(__name__)


class SessionState(Enum):
    INITIALIZING = "initializing"
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED_NO_PROFILE = "authenticated_no_profile"
    AUTHENTICATED = "authenticated"


class SessionController:
    """Owns the authentication state of one browser session.

    Attributes:
        state: Current SessionState.
        session: Last session delivered by the Identity Store, or None.
        user: Resolved User; set only in the AUTHENTICATED state.
        notifications: Number of session-change notifications handled.
    """

    def __init__(self, store: IdentityStore):
        self._store = store
        self._subscription: Optional[Subscription] = None
        self._lock = threading.Lock()
        self._sequence = 0
        self._signed_out_locally = False
        self._listeners: List[Callable[[SessionState], None]] = []
        self.state = SessionState.INITIALIZING
        self.session: Optional[Any] = None
        self.user: Optional[User] = None
        self.notifications = 0

    @property
    def initialized(self) -> bool:
        return self.state is not SessionState.INITIALIZING

    @property
    def subscribed(self) -> bool:
        return self._subscription is not None and self._subscription.active

    def add_listener(self, callback: Callable[[SessionState], None]) -> None:
        """Call ``callback(state)`` after every change of ``state`` or ``user``."""
        self._listeners.append(callback)

    def start(self) -> None:
        """Subscribe to session changes. Later calls are no-ops."""
        if self._subscription is not None:
            return
        self._subscription = self._store.subscribe(self._on_session_change)

    def dispose(self) -> None:
        """Release the subscription. Safe to call more than once."""
        if self._subscription is not None:
            self._subscription.unsubscribe()

    def _emit(self, state: SessionState) -> None:
        for listener in list(self._listeners):
            listener(state)

    # ==================== NOTIFICATIONS ====================

    def _on_session_change(self, event: str, session: Optional[Any]) -> None:
        """Resolve a session-change notification into state.

        Runs inside Supabase client calls, and on the client's refresh timer
        thread for ``TOKEN_REFRESHED``, so it must never raise. The previous
        ``user`` and ``state`` stay visible while the profile is read; a
        result overtaken by a later notification or a logout is dropped.
        """
        identity = getattr(session, "user", None) if session is not None else None

        with self._lock:
            self.notifications += 1
            if identity is not None and self._signed_out_locally and event != SIGNED_IN_EVENT:
                logger.debug(f"Session change {event}: ignored after local sign-out")
                return
            if event == SIGNED_IN_EVENT:
                self._signed_out_locally = False
            self._sequence += 1
            sequence = self._sequence

            if identity is None:
                logger.debug(f"Session change {event}: no session")
                self.session = None
                self.user = None
                self.state = SessionState.UNAUTHENTICATED

        if identity is None:
            self._emit(SessionState.UNAUTHENTICATED)
            return

        user: Optional[User] = None
        with with_context(operation="resolve_profile", user_id=identity.id):
            try:
                profile = self._store.fetch_profile(identity.id)
                user = User.from_session_and_profile(
                    identity.id, getattr(identity, "email", None), profile
                )
            except ProfileFetchError as e:
                # Fail open: the session stays but no user is exposed. An
                # admin-deleted profile lands here on the owner's next change.
                logger.warning(f"Session change {event}: {e}; continuing without a user")

            with self._lock:
                if sequence != self._sequence:
                    logger.debug(f"Session change {event}: superseded, result dropped")
                    return
                self.session = session
                self.user = user
                if user is None:
                    self.state = SessionState.AUTHENTICATED_NO_PROFILE
                else:
                    self.state = SessionState.AUTHENTICATED
                    logger.info(f"Session change {event}: resolved {user.role.value} user")
                state = self.state

        self._emit(state)

    # ==================== OPERATIONS ====================

    def login(self, email: str, password: str) -> None:
        """Sign in. The resulting notification updates ``user``.

        Raises:
            AuthError: With the Identity Store's message.
        """
        with with_context(operation="login"):
            self._store.sign_in(email.strip(), password)

    def register(
        self,
        name: str,
        email: str,
        password: str,
        confirm_password: str,
        role: Role,
        student_data: Optional[StudentData] = None,
    ) -> Any:
        """Validate and create an account. Does not sign in.

        Returns:
            The created identity as returned by the Identity Store.

        Raises:
            RegistrationValidationError: Before any remote call.
            AuthError: If the Identity Store rejects the sign-up.
        """
        validate_registration(name, email, password, confirm_password, role, student_data)

        with with_context(operation="register", role=role.value):
            return self._store.sign_up(
                email.strip(), password, build_signup_metadata(name, role, student_data)
            )

    def logout(self) -> None:
        """Sign out and clear the local session and user whatever the outcome.

        Until the next ``SIGNED_IN``, notifications that still carry a
        session (a refresh of a session the server kept) are ignored.
        """
        with with_context(operation="logout", user_id=self.user.id if self.user else None):
            try:
                self._store.sign_out()
            except AuthError as e:
                logger.warning(f"Sign-out failed, clearing local user anyway: {e}")
            finally:
                with self._lock:
                    self._sequence += 1
                    self._signed_out_locally = True
                    self.session = None
                    self.user = None
                    if self.state is SessionState.AUTHENTICATED:
                        self.state = SessionState.UNAUTHENTICATED
                    state = self.state
                self._emit(state)
