from __future__ import annotations

from repo_recon.config import settings

API_VERSION = "v1"


async def api_root():
    """Public directory of the API; no key required."""

    base = settings.public_api_url
    return {
        "name": "RepoRecon API",
        "version": API_VERSION,
        "endpoints": {
            "auth_exchange": f"{base}/auth/exchange",
            "comparisons": f"{base}/comparisons",
            "comparison_status": f"{base}/comparisons/status/{{session_id}}",
            "repositories": f"{base}/repositories",
            "analyze_repository": f"{base}/repositories/{{id}}/analyze",
            "analyze_by_url": f"{base}/repositories/analyze_by_url",
            "repository_status": f"{base}/repositories/status/{{session_id}}",
            "profile": f"{base}/profile",
            "admin_stats": f"{base}/admin/stats",
            "websocket": settings.websocket_url,
        },
        "authentication": {
            "api_key": "Send 'Authorization: Bearer <api key>' on every request except this one.",
            "user_token": "Send 'X-User-Token: <jwt>' (from POST /auth/exchange) to create comparisons or analyses.",
        },
    }
