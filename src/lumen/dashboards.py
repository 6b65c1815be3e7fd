"""Per-role dashboard state.

Each dashboard owns its list exclusively and is created for one resolved
user. Writes update the local list from the row the Identity Store returns;
lists are never re-fetched after a write.
"""

from typing import List, Optional

from .assistant import ask_agent
from .config import PortalConfig
from .errors import DataError, SelfDeletionError
from .identity_store import IdentityStore
from .logutils import get_logger, with_context
from .models import ChatMessage, Material, Profile, User

logger = get_logger(__name__)


class TeacherDashboard:
    """A teacher's published materials, newest first."""

    def __init__(self, store: IdentityStore, user: User):
        self._store = store
        self.user = user
        self.materials: List[Material] = []
        self.loaded = False
        self.load_error: Optional[str] = None

    def load(self) -> None:
        """Read the teacher's materials.

        A failed read is logged and leaves an empty list with ``load_error``
        set; it is not raised.
        """
        with with_context(operation="list_materials", user_id=self.user.id):
            try:
                self.materials = self._store.list_materials(self.user.id)
                self.load_error = None
            except DataError as e:
                logger.error(f"Could not load materials: {e}")
                self.materials = []
                self.load_error = str(e)
            finally:
                self.loaded = True

    def add_material(self, content: str) -> Optional[Material]:
        """Publish a material and put the stored row at the head of the list.

        Blank content is ignored.

        Returns:
            The stored Material, or None for blank content.

        Raises:
            DataError: If the insert fails; the list is left unchanged.
        """
        text = content.strip()
        if not text:
            return None

        with with_context(operation="add_material", user_id=self.user.id):
            material = self._store.add_material(self.user.id, text)

        self.materials.insert(0, material)
        return material


class AdminDashboard:
    """User management for admins."""

    def __init__(self, store: IdentityStore, user: User):
        self._store = store
        self.user = user
        self.users: List[Profile] = []
        self.show_users = False

    def open_users(self) -> None:
        """Show the user list, loading it ordered by name.

        Raises:
            DataError: If the profiles cannot be read.
        """
        self.show_users = True
        with with_context(operation="list_profiles", user_id=self.user.id):
            self.users = self._store.list_profiles()

    def hide_users(self) -> None:
        self.show_users = False

    def can_delete(self, target_id: str) -> bool:
        """Admins may delete any profile except their own."""
        return target_id != self.user.id

    def delete_user(self, target_id: str) -> None:
        """Delete a profile and drop it from the local list.

        Raises:
            SelfDeletionError: For the admin's own id, before any remote call.
            DataError: If the delete fails; the list is left unchanged.
        """
        if not self.can_delete(target_id):
            logger.warning(f"Admin {self.user.id} attempted to delete their own profile")
            raise SelfDeletionError(target_id)

        with with_context(operation="delete_profile", user_id=self.user.id, target_id=target_id):
            self._store.delete_profile(target_id)

        self.users = [profile for profile in self.users if profile.id != target_id]


class StudentDashboard:
    """The student's conversation with the assistant."""

    def __init__(self, config: PortalConfig, user: User):
        self._config = config
        self.user = user
        self.messages: List[ChatMessage] = []

    @property
    def assistant_enabled(self) -> bool:
        return self._config.assistant_enabled

    def send(self, text: str) -> Optional[ChatMessage]:
        """Ask the assistant and append both sides of the exchange.

        Blank input is ignored.

        Returns:
            The assistant's reply message, or None for blank input.
        """
        if not text.strip():
            return None

        self.messages.append(ChatMessage(role="user", content=text))

        with with_context(user_id=self.user.id):
            reply = ask_agent(
                text,
                self._config.openai_api_key,
                model=self._config.openai_model,
                base_url=self._config.openai_base_url,
                timeout=self._config.completion_timeout,
            )

        message = ChatMessage(role="assistant", content=reply)
        self.messages.append(message)
        return message

    def clear(self) -> None:
        self.messages = []
