"""GitHub repository URL parsing."""

from __future__ import annotations

from urllib.parse import urlparse

from gtree.models import RepoInfo


class URLParseError(Exception):
    """Raised when a URL cannot be parsed."""


def parse_repo_url(url: str) -> RepoInfo:
    """Parse a GitHub repository URL and return RepoInfo.

    Supported formats:
      - https://github.com/owner/repo
      - https://github.com/owner/repo.git
      - https://github.com/owner/repo/tree/branch
      - https://github.com/owner/repo/tree/branch/with/slashes
      - owner/repo (shorthand)
    """
    url = url.strip()
    if not url:
        raise URLParseError("URL is empty.")

    # GitHub owner names never contain dots, so "owner/repo" is unambiguous
    if "://" not in url and "." not in url.split("/", 1)[0]:
        return _parse_path(url.strip("/"), url)

    parsed = urlparse(url)
    if not parsed.scheme:
        raise URLParseError(f"Invalid URL (no scheme): {url}")
    if parsed.scheme not in ("http", "https"):
        raise URLParseError(f"Unsupported scheme: {parsed.scheme}")

    host = parsed.hostname or ""
    if host not in ("github.com", "www.github.com"):
        raise URLParseError(f"Unsupported host: {host}")
    return _parse_path(parsed.path.strip("/"), url)


def _parse_path(path: str, raw_url: str) -> RepoInfo:
    # path: owner/repo[/tree/branch[/...]]
    parts = path.split("/")
    if len(parts) < 2 or not parts[0] or not parts[1]:
        raise URLParseError(f"GitHub URL must include owner/repo: {raw_url}")

    owner, repo = parts[0], parts[1].removesuffix(".git")
    branch = None

    if len(parts) >= 4 and parts[2] == "tree":
        # Everything after /tree/ is the branch name (may contain slashes)
        branch = "/".join(parts[3:])

    return RepoInfo(owner=owner, repo=repo, branch=branch)
