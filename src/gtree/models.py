"""Data classes for gtree."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class EntryKind(Enum):
    BLOB = "blob"
    TREE = "tree"


@dataclass(frozen=True)
class ListingEntry:
    path: str
    kind: EntryKind = EntryKind.BLOB


@dataclass
class RepoInfo:
    owner: str
    repo: str
    branch: str | None = None


@dataclass(frozen=True)
class TreeResult:
    text: str
    branch: str
    cache_hit: bool = False
