"""Completion Service integration for the student assistant."""

import re
from typing import Optional

from openai import OpenAI, OpenAIError, RateLimitError

from .config import (
    DEFAULT_COMPLETION_BASE_URL,
    DEFAULT_COMPLETION_MODEL,
    DEFAULT_COMPLETION_TIMEOUT,
    has_usable_api_key,
)
from .errors import CompletionRequestError, CompletionServiceError, QuotaExceededError
from .logutils import get_logger, with_context

logger = get_logger(__name__)

MAX_TOKENS = 500
TEMPERATURE = 0.7

QUOTA_ERROR_CODE = "insufficient_quota"

# Arabic Unicode block
ARABIC_PATTERN = re.compile(r"[\u0600-\u06FF]")

SYSTEM_PROMPTS = {
    "ar": (
        "You are a helpful educational assistant. "
        "The user is asking in Arabic, so respond only in Arabic."
    ),
    "en": (
        "You are a helpful educational assistant. "
        "The user is asking in English, so respond only in English."
    ),
}

MISSING_KEY_MESSAGE = (
    "Please configure your OpenAI API key in the .env file to use this feature.\n\n"
    "يرجى تكوين مفتاح OpenAI API في ملف .env لاستخدام هذه الميزة."
)

QUOTA_MESSAGES = {
    "en": "You have exceeded your OpenAI API quota. Please check your plan and billing details.",
    "ar": "لقد تجاوزت حصتك من OpenAI API. يرجى التحقق من خطتك وتفاصيل الفوترة.",
}

GENERIC_ERROR_MESSAGES = {
    "en": "Sorry, I encountered an error processing your question.",
    "ar": "عذراً، واجهت خطأ في معالجة سؤالك.",
}


def is_arabic(text: str) -> bool:
    """Return True if ``text`` contains any code point in the Arabic block.

    Script presence only: mixed input with a single Arabic letter counts as
    Arabic.
    """
    return bool(ARABIC_PATTERN.search(text or ""))


def detect_language(text: str) -> str:
    """Return ``"ar"`` or ``"en"`` for the reply language."""
    return "ar" if is_arabic(text) else "en"


def build_messages(question: str) -> list:
    """Build the system + user message pair for a question."""
    return [
        {"role": "system", "content": SYSTEM_PROMPTS[detect_language(question)]},
        {"role": "user", "content": question},
    ]


def _get_status_code(error: Exception) -> Optional[int]:
    """Extract the HTTP status code from an SDK error, if it carries one."""
    return getattr(error, "status_code", None)


def categorize_error(error: Exception, language: str = "en") -> CompletionServiceError:
    """Map a failed completion request to a CompletionServiceError.

    Args:
        error: The exception raised by the SDK call or while reading the reply
        language: ``"en"`` or ``"ar"``, the language of the question

    Returns:
        QuotaExceededError for a rate-limit error with ``insufficient_quota``,
        CompletionRequestError for everything else.
    """
    status_code = _get_status_code(error)

    if isinstance(error, RateLimitError) and error.code == QUOTA_ERROR_CODE:
        return QuotaExceededError(
            message="Completion quota exceeded",
            user_message=QUOTA_MESSAGES[language],
            status_code=status_code,
        )

    return CompletionRequestError(
        message=f"Completion request failed: {error}",
        user_message=GENERIC_ERROR_MESSAGES[language],
        status_code=status_code,
    )


def _make_api_call(client: OpenAI, model: str, question: str) -> str:
    response = client.chat.completions.create(
        model=model,
        messages=build_messages(question),
        max_tokens=MAX_TOKENS,
        temperature=TEMPERATURE,
    )
    return response.choices[0].message.content or ""


def ask_agent(
    question: str,
    api_key: Optional[str],
    model: str = DEFAULT_COMPLETION_MODEL,
    base_url: str = DEFAULT_COMPLETION_BASE_URL,
    timeout: float = DEFAULT_COMPLETION_TIMEOUT,
) -> str:
    """Answer a student's question in the question's language.

    Never raises: configuration problems and failures are returned as
    displayable text. Nothing is retried.

    Args:
        question: Free text typed by the student
        api_key: Completion API key; None or a placeholder disables the call
        model: Model identifier
        base_url: API base URL, e.g. ``https://api.openai.com/v1``
        timeout: Request timeout in seconds

    Returns:
        The model's reply, or a fixed/localized message on failure.
    """
    if not has_usable_api_key(api_key):
        return MISSING_KEY_MESSAGE

    language = detect_language(question)
    client = OpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)

    with with_context(operation="ask_agent", language=language):
        try:
            return _make_api_call(client, model, question)
        except (OpenAIError, IndexError) as e:
            categorized = categorize_error(e, language)
            logger.error(
                f"Completion failed ({type(categorized).__name__}, "
                f"status={categorized.status_code}): {e}"
            )
            return categorized.user_message
