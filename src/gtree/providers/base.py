"""Abstract base class for repository listing providers."""

from __future__ import annotations

from abc import ABC, abstractmethod

from gtree.models import ListingEntry


class RepoProvider(ABC):
    """Base class for Git hosting services that can list a repository tree."""

    @abstractmethod
    def get_default_branch(self, owner: str, repo: str) -> str:
        """Return the default branch name for the repository."""

    @abstractmethod
    def list_entries(self, owner: str, repo: str, branch: str) -> list[ListingEntry]:
        """Return the flat listing of every path in the repository at *branch*."""
