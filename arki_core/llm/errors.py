"""Categorized chat-completion failures.

Each category carries the sentence shown to Discord users. Upstream error
bodies are logged but never placed in ``user_message``.
"""

from __future__ import annotations

import openai


class ChatCompletionError(Exception):
    """A chat completion could not be obtained."""

    category = "generic"
    user_message = "Sorry, I encountered an error while processing your request."

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class QuotaExceededError(ChatCompletionError):
    category = "quota"
    user_message = "Sorry, I'm currently experiencing credit limitations. Please try again later."


class RateLimitedError(ChatCompletionError):
    category = "rate_limited"
    user_message = "Sorry, I'm being rate limited. Please wait a moment and try again."


class AuthenticationFailedError(ChatCompletionError):
    category = "auth"
    user_message = "Sorry, there's a configuration issue with my AI service. Please contact the administrator."


class UpstreamUnavailableError(ChatCompletionError):
    category = "unavailable"
    user_message = "Sorry, the AI service is temporarily unavailable. Please try again later."


_STATUS_ERRORS: dict[int, type[ChatCompletionError]] = {
    401: AuthenticationFailedError,
    402: QuotaExceededError,
    429: RateLimitedError,
}


def error_for_status(status_code: int, message: str) -> ChatCompletionError:
    """Pick the error category for an HTTP status code."""
    if status_code >= 500:
        return UpstreamUnavailableError(message, status_code)
    cls = _STATUS_ERRORS.get(status_code, ChatCompletionError)
    return cls(message, status_code)


def categorize(exc: Exception) -> ChatCompletionError:
    """Translate an exception raised by the OpenAI SDK into a ChatCompletionError."""
    if isinstance(exc, ChatCompletionError):
        return exc
    if isinstance(exc, openai.APIStatusError):
        return error_for_status(exc.status_code, str(exc))
    if isinstance(exc, openai.APIConnectionError):
        return UpstreamUnavailableError(str(exc))
    return ChatCompletionError(str(exc))
