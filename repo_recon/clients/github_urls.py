from __future__ import annotations

from urllib.parse import urlparse


class InvalidUrlError(ValueError):
    pass


_GITHUB_HOSTS = {"github.com", "www.github.com"}


def parse_github_url(url: str | None) -> dict[str, str | None]:
    """Extract owner/repo from a GitHub repository URL.

    Accepts scheme-less URLs, ``www.``, a trailing ``.git`` and any extra path
    segments (``/tree/main``, ``/issues``...). ``full_name`` is None when the URL
    points at GitHub but not at a repository.
    """

    raw = (url or "").strip()
    if not raw:
        raise InvalidUrlError("Not a GitHub URL: (blank)")

    candidate = raw if "://" in raw else f"https://{raw}"
    try:
        parsed = urlparse(candidate)
        hostname = (parsed.hostname or "").lower()
    except ValueError as e:
        raise InvalidUrlError(f"Not a GitHub URL: {raw}") from e

    if parsed.scheme not in ("http", "https") or hostname not in _GITHUB_HOSTS:
        raise InvalidUrlError(f"Not a GitHub URL: {raw}")

    parts = [p for p in parsed.path.split("/") if p]
    owner = parts[0] if parts else None
    repo = parts[1] if len(parts) > 1 else None
    if repo and repo.endswith(".git"):
        repo = repo[: -len(".git")] or None

    full_name = f"{owner}/{repo}" if owner and repo else None
    return {"owner": owner, "repo": repo, "full_name": full_name}
