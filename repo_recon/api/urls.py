from __future__ import annotations

from repo_recon.config import settings


def websocket_url(channel: str, session_id: str) -> str:
    return f"{settings.websocket_url}/{channel}?session_id={session_id}"


def comparison_url(comparison_id: int) -> str:
    return f"{settings.public_api_url}/comparisons/{comparison_id}"


def comparison_status_url(session_id: str) -> str:
    return f"{settings.public_api_url}/comparisons/status/{session_id}"


def repository_url(repository_id: int) -> str:
    return f"{settings.public_api_url}/repositories/{repository_id}"


def repository_status_url(session_id: str) -> str:
    return f"{settings.public_api_url}/repositories/status/{session_id}"
