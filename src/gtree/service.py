"""End-to-end tree pipeline: branch resolution, caching, fetch, build, render."""

from __future__ import annotations

import logging

from gtree.cache import TTLCache, branch_cache_key, tree_cache_key
from gtree.models import TreeResult
from gtree.providers.base import RepoProvider
from gtree.tree_builder import build_tree

logger = logging.getLogger(__name__)


class InvalidRepoError(ValueError):
    """Raised when the owner or repository name is missing."""


def root_label(owner: str, repo: str, branch: str) -> str:
    return f"{owner}/{repo}:{branch}"


class TreeService:
    """Renders repository trees, memoizing results per (owner, repo, branch).

    The service holds no lock of its own. Provider calls happen outside the
    caches' locks, so a slow upstream never blocks unrelated lookups.
    """

    def __init__(
        self,
        provider: RepoProvider,
        tree_cache: TTLCache[str],
        branch_cache: TTLCache[str] | None = None,
    ):
        self.provider = provider
        self.tree_cache = tree_cache
        self.branch_cache = branch_cache

    def resolve_branch(
        self,
        owner: str,
        repo: str,
        branch: str | None = None,
        use_cache: bool = True,
    ) -> str:
        """Return *branch*, or the repository's default branch when it is empty."""
        if branch:
            return branch

        key = branch_cache_key(owner, repo)
        if use_cache and self.branch_cache is not None:
            cached = self.branch_cache.get(key)
            if cached is not None:
                return cached

        resolved = self.provider.get_default_branch(owner, repo)
        if self.branch_cache is not None:
            self.branch_cache.set(key, resolved)
        return resolved

    def get_tree(
        self,
        owner: str,
        repo: str,
        branch: str | None = None,
        use_cache: bool = True,
    ) -> TreeResult:
        """Return the rendered tree for a repository.

        Args:
            owner: Repository owner (user or organization).
            repo: Repository name.
            branch: Branch to render. The default branch is used when empty.
            use_cache: When False, skip cache reads. Fresh results are still stored.

        Raises:
            InvalidRepoError: owner or repo is empty.
            GitHubError: the upstream listing could not be retrieved.
        """
        owner = (owner or "").strip()
        repo = (repo or "").strip()
        if not owner or not repo:
            raise InvalidRepoError("owner and repo are required")

        resolved = self.resolve_branch(owner, repo, branch, use_cache=use_cache)
        key = tree_cache_key(owner, repo, resolved)

        if use_cache:
            cached = self.tree_cache.get(key)
            if cached is not None:
                logger.debug("Cache hit: %s", key)
                return TreeResult(text=cached, branch=resolved, cache_hit=True)

        logger.debug("Cache miss: %s", key)
        entries = self.provider.list_entries(owner, repo, resolved)
        text = build_tree(entries, root_label(owner, repo, resolved))
        # Only fully rendered output is stored
        self.tree_cache.set(key, text)
        return TreeResult(text=text, branch=resolved, cache_hit=False)
