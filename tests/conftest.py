"""Pytest configuration and fixtures for Lumen portal tests.

Provides:
- An in-memory Identity Store that behaves like the Supabase-backed one
  (notifications on sign-in/sign-out, profile and material rows)
- A MagicMock Supabase client for testing the adapter itself
- Ready-made users and profiles for each role
"""

from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional
from unittest.mock import MagicMock

import pytest

from lumen.config import PortalConfig
from lumen.errors import AuthError, DataError, ProfileFetchError
from lumen.identity_store import INITIAL_SESSION_EVENT, Subscription
from lumen.logutils import clear_context, reset_config, reset_logging
from lumen.models import Material, Profile, Role, User


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (several components together)")
    config.addinivalue_line("markers", "slow: Slow running tests")


# =============================================================================
# Fakes
# =============================================================================


def make_session(user_id: str, email: Optional[str] = None) -> SimpleNamespace:
    """Build an object shaped like a Supabase session."""
    return SimpleNamespace(
        access_token=f"token-{user_id}",
        user=SimpleNamespace(id=user_id, email=email or f"{user_id}@example.com"),
    )


class FakeIdentityStore:
    """In-memory stand-in for IdentityStore.

    Accounts are keyed by e-mail. ``sign_in`` notifies subscribers with
    ``SIGNED_IN`` before returning, as the Supabase client does.
    """

    def __init__(self, restored_session: Any = None):
        self.accounts: Dict[str, Dict[str, Any]] = {}
        self.profiles: Dict[str, Dict[str, Any]] = {}
        self.materials: List[Dict[str, Any]] = []
        self.callbacks: List[Callable] = []
        self.session = restored_session
        self.calls: List[str] = []
        self.fail_profile_fetch = False
        self.fail_sign_out = False
        self.fail_data = False
        self._next_id = 0

    # auth

    def add_account(self, email: str, password: str, profile: Optional[Dict[str, Any]] = None,
                    confirmed: bool = True) -> str:
        user_id = (profile or {}).get("id") or f"user-{len(self.accounts) + 1}"
        self.accounts[email] = {"id": user_id, "password": password, "confirmed": confirmed}
        if profile is not None:
            self.profiles[user_id] = {"id": user_id, "email": email, **profile}
        return user_id

    def sign_in(self, email: str, password: str) -> Any:
        self.calls.append("sign_in")
        account = self.accounts.get(email)
        if account is None or account["password"] != password:
            raise AuthError("Invalid login credentials")
        if not account["confirmed"]:
            raise AuthError("Email not confirmed", email_not_confirmed=True)
        self.session = make_session(account["id"], email)
        self._notify("SIGNED_IN", self.session)
        return self.session

    def sign_up(self, email: str, password: str, metadata: Dict[str, str]) -> Any:
        self.calls.append("sign_up")
        if email in self.accounts:
            raise AuthError("User already registered")
        user_id = self.add_account(email, password, confirmed=False)
        self.profiles[user_id] = {"id": user_id, "email": email, **metadata}
        return SimpleNamespace(id=user_id, email=email, user_metadata=metadata)

    def sign_out(self) -> None:
        self.calls.append("sign_out")
        if self.fail_sign_out:
            raise AuthError("network down")
        self.session = None
        self._notify("SIGNED_OUT", None)

    def subscribe(self, callback: Callable) -> Subscription:
        self.calls.append("subscribe")
        self.callbacks.append(callback)
        subscription = Subscription(lambda: self.callbacks.remove(callback))
        callback(INITIAL_SESSION_EVENT, self.session)
        return subscription

    def _notify(self, event: str, session: Any) -> None:
        for callback in list(self.callbacks):
            callback(event, session)

    # profiles

    def fetch_profile(self, user_id: str) -> Profile:
        self.calls.append("fetch_profile")
        if self.fail_profile_fetch:
            raise ProfileFetchError(user_id, "network down")
        row = self.profiles.get(user_id)
        if row is None:
            raise ProfileFetchError(user_id, "no profile row")
        try:
            return Profile.model_validate(row)
        except ValueError as e:
            raise ProfileFetchError(user_id, "invalid profile row") from e

    def list_profiles(self) -> List[Profile]:
        self.calls.append("list_profiles")
        if self.fail_data:
            raise DataError("list_profiles", "network down")
        rows = sorted(self.profiles.values(), key=lambda row: row["name"])
        return [Profile.model_validate(row) for row in rows]

    def delete_profile(self, user_id: str) -> None:
        self.calls.append("delete_profile")
        if self.fail_data:
            raise DataError("delete_profile", "permission denied")
        self.profiles.pop(user_id, None)

    # materials

    def list_materials(self, teacher_id: str) -> List[Material]:
        self.calls.append("list_materials")
        if self.fail_data:
            raise DataError("list_materials", "network down")
        rows = [row for row in self.materials if row["teacher_id"] == teacher_id]
        rows.sort(key=lambda row: row["created_at"], reverse=True)
        return [Material.model_validate(row) for row in rows]

    def add_material(self, teacher_id: str, content: str) -> Material:
        self.calls.append("add_material")
        if self.fail_data:
            raise DataError("add_material", "permission denied")
        self._next_id += 1
        row = {
            "id": f"m{self._next_id}",
            "teacher_id": teacher_id,
            "content": content,
            "created_at": datetime(2024, 3, 1, 12, self._next_id, tzinfo=timezone.utc).isoformat(),
        }
        self.materials.append(row)
        return Material.model_validate(row)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_log_state():
    """Reset logging configuration and context around each test."""
    reset_logging()
    reset_config()
    clear_context()
    yield
    reset_logging()
    reset_config()
    clear_context()


@pytest.fixture
def fake_store() -> FakeIdentityStore:
    return FakeIdentityStore()


@pytest.fixture
def supabase_client() -> MagicMock:
    """MagicMock shaped like a supabase.Client."""
    client = MagicMock()
    client.auth.get_session.return_value = None
    return client


@pytest.fixture
def portal_config() -> PortalConfig:
    return PortalConfig(
        supabase_url="https://project.supabase.co",
        supabase_anon_key="anon-key",
        openai_api_key="sk-test-key-123456",
    )


@pytest.fixture
def student_user() -> User:
    return User(
        id="s1",
        email="student@example.com",
        name="Sara",
        role=Role.STUDENT,
        student_id="2021001",
        major="cs",
        academic_year="third",
    )


@pytest.fixture
def teacher_user() -> User:
    return User(id="t1", email="teacher@example.com", name="Omar", role=Role.TEACHER)


@pytest.fixture
def admin_user() -> User:
    return User(id="a1", email="admin@example.com", name="Aya", role=Role.ADMIN)
