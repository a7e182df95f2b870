"""GitHub REST API provider."""

from __future__ import annotations

import logging
import time

import requests

from gtree.models import EntryKind, ListingEntry
from gtree.providers.base import RepoProvider

logger = logging.getLogger(__name__)


class GitHubError(Exception):
    """Raised for GitHub API errors."""


class UpstreamRateLimitError(GitHubError):
    """Raised when the GitHub API rate limit is exhausted."""

    def __init__(self, reset_at: int):
        self.reset_at = reset_at
        wait = max(0, reset_at - int(time.time()))
        super().__init__(
            f"GitHub API rate limit exceeded. Resets in {wait} seconds."
        )


class GitHubProvider(RepoProvider):
    """Provider for GitHub repositories using the REST API."""

    API_BASE = "https://api.github.com"

    def __init__(
        self,
        token: str | None = None,
        api_base: str | None = None,
        timeout: float = 30,
    ):
        self.api_base = (api_base or self.API_BASE).rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers["Accept"] = "application/vnd.github+json"
        self.session.headers["User-Agent"] = "gtree/1.0"
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    def _check_rate_limit(self, response: requests.Response) -> None:
        remaining = response.headers.get("X-RateLimit-Remaining")
        if remaining is None:
            return
        try:
            exhausted = int(remaining) == 0
            reset_at = int(response.headers.get("X-RateLimit-Reset", 0))
        except ValueError as exc:
            raise GitHubError("GitHub returned malformed rate limit headers.") from exc
        if exhausted:
            raise UpstreamRateLimitError(reset_at)

    def _api_get(self, path: str, params: dict | None = None) -> dict:
        url = f"{self.api_base}{path}"
        logger.debug("GET %s", url)
        try:
            resp = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise GitHubError(f"Request to GitHub failed: {exc}") from exc

        # A successful response may carry Remaining: 0 when it used the last request
        if resp.status_code in (403, 429):
            self._check_rate_limit(resp)

        if resp.status_code == 404:
            raise GitHubError(
                "Repository or branch not found. Check the owner, repo and branch names."
            )
        if resp.status_code == 401:
            raise GitHubError("Authentication failed. Check your GitHub token.")
        if resp.status_code == 403:
            raise GitHubError(
                "Access denied. The token may lack permissions, or rate limit exceeded."
            )
        if resp.status_code != 200:
            raise GitHubError(f"Request failed with status {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise GitHubError("GitHub returned a response that is not valid JSON.") from exc
        if not isinstance(data, dict):
            raise GitHubError("GitHub returned an unexpected response shape.")
        return data

    def get_default_branch(self, owner: str, repo: str) -> str:
        data = self._api_get(f"/repos/{owner}/{repo}")
        return data.get("default_branch") or "main"

    def list_entries(self, owner: str, repo: str, branch: str) -> list[ListingEntry]:
        data = self._api_get(
            f"/repos/{owner}/{repo}/git/trees/{branch}",
            params={"recursive": "1"},
        )

        if data.get("truncated"):
            # For very large repos, fall back to per-directory traversal
            return self._list_entries_non_recursive(owner, repo, data)

        return [_to_entry(item) for item in _tree_items(data)]

    def _list_entries_non_recursive(
        self, owner: str, repo: str, initial_data: dict
    ) -> list[ListingEntry]:
        """Handle a truncated tree by fetching each top-level directory on its own."""
        entries: dict[str, ListingEntry] = {}
        dirs_to_visit: list[tuple[str, str]] = []

        for item in _tree_items(initial_data):
            entry = _to_entry(item)
            entries[entry.path] = entry
            if entry.kind == EntryKind.TREE and "/" not in entry.path and item.get("sha"):
                dirs_to_visit.append((entry.path, item["sha"]))

        for dir_path, sha in dirs_to_visit:
            try:
                sub_data = self._api_get(
                    f"/repos/{owner}/{repo}/git/trees/{sha}",
                    params={"recursive": "1"},
                )
            except UpstreamRateLimitError:
                raise
            except GitHubError as exc:
                logger.warning("Skipping %s in truncated listing: %s", dir_path, exc)
                continue
            for item in _tree_items(sub_data):
                sub = _to_entry(item)
                path = f"{dir_path}/{sub.path}"
                entries[path] = ListingEntry(path=path, kind=sub.kind)

        return list(entries.values())


def _tree_items(data: dict) -> list[dict]:
    items = data.get("tree", [])
    if not isinstance(items, list):
        raise GitHubError("GitHub tree response is missing the 'tree' list.")
    return items


def _to_entry(item: dict) -> ListingEntry:
    try:
        path = item["path"]
    except (KeyError, TypeError) as exc:
        raise GitHubError("GitHub tree entry is missing its path.") from exc
    kind = EntryKind.TREE if item.get("type") == "tree" else EntryKind.BLOB
    return ListingEntry(path=path, kind=kind)
