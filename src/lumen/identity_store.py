"""Identity Store adapter over the Supabase client.

All persistence and authentication of the portal goes through this class:
sign-in, sign-up, sign-out, session-change notifications, and the
``profiles`` and ``materials`` tables. Supabase and PostgREST exceptions are
translated into the portal's error taxonomy at this boundary.

Example:
    from lumen.identity_store import IdentityStore

    store = IdentityStore.from_config(config)
    subscription = store.subscribe(on_change)
    profile = store.fetch_profile(user_id)
"""

from typing import Any, Callable, Dict, List, Optional

import httpx
from pydantic import ValidationError
from supabase import AuthError as SupabaseAuthError
from supabase import Client, PostgrestAPIError, create_client

from .config import PortalConfig
from .errors import AuthError, DataError, ProfileFetchError
from .logutils import SensitiveValue, get_logger, with_extra
from .models import Material, Profile

logger = get_logger(__name__)

PROFILES_TABLE = "profiles"
MATERIALS_TABLE = "materials"

# Event name delivered once, right after subscribing
INITIAL_SESSION_EVENT = "INITIAL_SESSION"
SIGNED_IN_EVENT = "SIGNED_IN"

EMAIL_NOT_CONFIRMED_MARKER = "Email not confirmed"

SessionCallback = Callable[[str, Optional[Any]], None]


class Subscription:
    """Handle for one session-change listener."""

    def __init__(self, unsubscribe: Callable[[], None]) -> None:
        self._unsubscribe = unsubscribe
        self.active = True

    def unsubscribe(self) -> None:
        """Stop delivering notifications. Safe to call more than once."""
        if not self.active:
            return
        self.active = False
        self._unsubscribe()


class IdentityStore:
    """Supabase-backed authentication and row storage.

    Attributes:
        client: The Supabase client. One client per browser session, since the
            client holds that session's auth state.
    """

    def __init__(self, client: Client, email_redirect_url: Optional[str] = None):
        self.client = client
        self.email_redirect_url = email_redirect_url

    @classmethod
    def from_config(cls, config: PortalConfig) -> "IdentityStore":
        logger.debug(
            f"Creating Supabase client for {config.supabase_url} "
            f"with anon key {SensitiveValue(config.supabase_anon_key)}"
        )
        return cls(
            create_client(config.supabase_url, config.supabase_anon_key),
            email_redirect_url=config.email_redirect_url,
        )

    # ==================== AUTH ====================

    def sign_in(self, email: str, password: str) -> Any:
        """Sign in with e-mail and password.

        The Supabase client emits a ``SIGNED_IN`` notification to subscribers
        before this returns.

        Returns:
            The issued Supabase session.

        Raises:
            AuthError: With the backend's message, e.g. "Invalid login credentials"
                or "Email not confirmed".
        """
        try:
            response = self.client.auth.sign_in_with_password({"email": email, "password": password})
        except SupabaseAuthError as e:
            message = e.message or str(e)
            logger.warning(f"Sign-in rejected for {email}: {message}")
            raise AuthError(
                message, email_not_confirmed=EMAIL_NOT_CONFIRMED_MARKER.lower() in message.lower()
            ) from e

        return response.session

    def sign_up(self, email: str, password: str, metadata: Dict[str, str]) -> Any:
        """Create an account; the profile row is seeded from ``metadata``.

        No session is issued: the account must be confirmed by e-mail first.

        Args:
            email: Account e-mail.
            password: Account password.
            metadata: ``name``, ``role`` and, for students, ``student_id``,
                ``major`` and ``academic_year``.

        Returns:
            The created Supabase user.

        Raises:
            AuthError: If the backend rejects the sign-up or returns no user.
        """
        options: Dict[str, Any] = {"data": metadata}
        if self.email_redirect_url:
            options["email_redirect_to"] = self.email_redirect_url

        try:
            response = self.client.auth.sign_up(
                {"email": email, "password": password, "options": options}
            )
        except SupabaseAuthError as e:
            message = e.message or str(e)
            logger.warning(f"Sign-up rejected for {email}: {message}")
            raise AuthError(message) from e

        if response.user is None:
            raise AuthError("Registration failed: No user returned")

        logger.info(f"Account created for {email} with role {metadata.get('role')}")
        return response.user

    def sign_out(self) -> None:
        """Invalidate the current session.

        Raises:
            AuthError: If the backend call fails.
        """
        try:
            self.client.auth.sign_out()
        except SupabaseAuthError as e:
            raise AuthError(str(e)) from e

    def subscribe(self, callback: SessionCallback) -> Subscription:
        """Register ``callback(event, session)`` for session changes.

        The Supabase client only notifies on later changes, so the session the
        client already holds (restored or None) is delivered right away as an
        ``INITIAL_SESSION`` notification. That first notification is the only
        place the current session is read.
        """
        supabase_subscription = self.client.auth.on_auth_state_change(callback)
        subscription = Subscription(supabase_subscription.unsubscribe)

        callback(INITIAL_SESSION_EVENT, self.client.auth.get_session())
        return subscription

    # ==================== PROFILES ====================

    def fetch_profile(self, user_id: str) -> Profile:
        """Read the profile row for an identity.

        Raises:
            ProfileFetchError: If the row is missing, unreadable or has an
                unknown role.
        """
        try:
            response = (
                self.client.table(PROFILES_TABLE)
                .select("*")
                .eq("id", user_id)
                .maybe_single()
                .execute()
            )
        except (PostgrestAPIError, httpx.HTTPError) as e:
            raise ProfileFetchError(user_id, _describe(e)) from e

        row = response.data if response is not None else None
        if not row:
            raise ProfileFetchError(user_id, "no profile row")

        try:
            return Profile.model_validate(row)
        except ValidationError as e:
            raise ProfileFetchError(user_id, f"invalid profile row: {e.error_count()} error(s)") from e

    def list_profiles(self) -> List[Profile]:
        """List all profiles ordered by name.

        Rows that do not validate (e.g. an unknown role) are skipped.

        Raises:
            DataError: If the table cannot be read.
        """
        log = with_extra(logger, table=PROFILES_TABLE)
        rows = self._execute(
            "list_profiles",
            lambda: self.client.table(PROFILES_TABLE).select("*").order("name").execute(),
        )

        profiles = []
        for row in rows:
            try:
                profiles.append(Profile.model_validate(row))
            except ValidationError:
                log.warning(f"Skipping invalid profile row {row.get('id')!r}")
        return profiles

    def delete_profile(self, user_id: str) -> None:
        """Delete a profile row.

        The auth identity itself is left in place; deleting it needs the
        service-role key, which the portal does not hold.

        Raises:
            DataError: If the delete fails.
        """
        self._execute(
            "delete_profile",
            lambda: self.client.table(PROFILES_TABLE).delete().eq("id", user_id).execute(),
        )
        logger.info(f"Deleted profile {user_id}")

    # ==================== MATERIALS ====================

    def list_materials(self, teacher_id: str) -> List[Material]:
        """List a teacher's materials, newest first.

        Raises:
            DataError: If the table cannot be read.
        """
        rows = self._execute(
            "list_materials",
            lambda: self.client.table(MATERIALS_TABLE)
            .select("*")
            .eq("teacher_id", teacher_id)
            .order("created_at", desc=True)
            .execute(),
        )
        return [self._to_material("list_materials", row) for row in rows]

    def add_material(self, teacher_id: str, content: str) -> Material:
        """Insert a material and return the row the backend stored.

        Raises:
            DataError: If the insert fails or returns no row.
        """
        rows = self._execute(
            "add_material",
            lambda: self.client.table(MATERIALS_TABLE)
            .insert({"teacher_id": teacher_id, "content": content})
            .execute(),
        )
        if not rows:
            raise DataError("add_material", "no row returned")

        material = self._to_material("add_material", rows[0])
        logger.info(f"Material {material.id} added by {teacher_id}")
        return material

    # ==================== HELPERS ====================

    @staticmethod
    def _execute(operation: str, query: Callable[[], Any]) -> List[Dict[str, Any]]:
        try:
            response = query()
        except (PostgrestAPIError, httpx.HTTPError) as e:
            logger.error(f"{operation} failed: {_describe(e)}")
            raise DataError(operation, _describe(e)) from e
        return list(response.data or [])

    @staticmethod
    def _to_material(operation: str, row: Dict[str, Any]) -> Material:
        try:
            return Material.model_validate(row)
        except ValidationError as e:
            raise DataError(operation, f"invalid material row {row.get('id')!r}") from e


def _describe(error: Exception) -> str:
    return getattr(error, "message", None) or str(error) or type(error).__name__
