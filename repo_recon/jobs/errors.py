from __future__ import annotations

import httpx
import openai

from repo_recon.clients.github import GitHubRateLimitError

RATE_LIMIT_MESSAGE = "GitHub rate limit reached. Please try again in a few minutes."
TIMEOUT_MESSAGE = "Request timed out. Please try again."
GENERIC_MESSAGE = "Something went wrong. Please try again."


def user_message_for(error: BaseException) -> str:
    """User-facing message for a job that failed after all retries."""

    if isinstance(error, GitHubRateLimitError):
        return RATE_LIMIT_MESSAGE
    if isinstance(error, (httpx.TimeoutException, openai.APITimeoutError, TimeoutError)):
        return TIMEOUT_MESSAGE
    return GENERIC_MESSAGE
