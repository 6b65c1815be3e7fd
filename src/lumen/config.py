"""Configuration for the Lumen portal."""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

from .errors import ConfigurationError

DEFAULT_COMPLETION_MODEL = "gpt-3.5-turbo"
DEFAULT_COMPLETION_BASE_URL = "https://api.openai.com/v1"
DEFAULT_COMPLETION_TIMEOUT = 30.0

# The redacted key shipped in example .env files
PLACEHOLDER_API_KEY_MARKER = "sk-p***"


@dataclass(frozen=True)
class PortalConfig:
    """Settings for the Identity Store and the Completion Service."""

    supabase_url: str
    supabase_anon_key: str
    openai_api_key: Optional[str] = None
    openai_model: str = DEFAULT_COMPLETION_MODEL
    openai_base_url: str = DEFAULT_COMPLETION_BASE_URL
    completion_timeout: float = DEFAULT_COMPLETION_TIMEOUT
    email_redirect_url: Optional[str] = None

    @classmethod
    def from_env(cls, secrets: Optional[Mapping[str, str]] = None) -> "PortalConfig":
        """Create configuration from Streamlit secrets and the environment.

        A ``.env`` file in the working directory is loaded first. Each value is
        looked up in ``secrets`` and then in ``os.environ``.

        Args:
            secrets: Mapping such as ``st.secrets``; None to use the environment only

        Raises:
            ConfigurationError: If SUPABASE_URL or SUPABASE_ANON_KEY is missing
        """
        load_dotenv()

        def lookup(name: str) -> Optional[str]:
            value = secrets.get(name) if secrets is not None else None
            if not value:
                value = os.environ.get(name)
            return value.strip() if isinstance(value, str) and value.strip() else None

        supabase_url = lookup("SUPABASE_URL")
        supabase_anon_key = lookup("SUPABASE_ANON_KEY")

        if not supabase_url:
            raise ConfigurationError("SUPABASE_URL environment variable is required")
        if not supabase_anon_key:
            raise ConfigurationError("SUPABASE_ANON_KEY environment variable is required")

        timeout = DEFAULT_COMPLETION_TIMEOUT
        if raw_timeout := lookup("COMPLETION_TIMEOUT"):
            try:
                timeout = float(raw_timeout)
            except ValueError as e:
                raise ConfigurationError(
                    f"COMPLETION_TIMEOUT must be a number of seconds, got {raw_timeout!r}"
                ) from e

        return cls(
            supabase_url=supabase_url.rstrip("/"),
            supabase_anon_key=supabase_anon_key,
            openai_api_key=lookup("OPENAI_API_KEY"),
            openai_model=lookup("OPENAI_MODEL") or DEFAULT_COMPLETION_MODEL,
            openai_base_url=(lookup("OPENAI_BASE_URL") or DEFAULT_COMPLETION_BASE_URL).rstrip("/"),
            completion_timeout=timeout,
            email_redirect_url=lookup("EMAIL_REDIRECT_URL"),
        )

    @property
    def assistant_enabled(self) -> bool:
        """True when a usable completion API key is configured."""
        return has_usable_api_key(self.openai_api_key)


def has_usable_api_key(api_key: Optional[str]) -> bool:
    return bool(api_key) and PLACEHOLDER_API_KEY_MARKER not in api_key
