"""Tests for service module."""

import pytest

from fakes import SAMPLE, FakeProvider
from gtree.cache import TTLCache
from gtree.providers.github import GitHubError
from gtree.service import InvalidRepoError, TreeService, root_label


def _service(provider, clock, ttl=60):
    return TreeService(
        provider,
        tree_cache=TTLCache(ttl, clock=clock),
        branch_cache=TTLCache(ttl, clock=clock),
    )


class TestGetTree:
    def test_renders_with_root_label(self, clock):
        service = _service(FakeProvider({"main": SAMPLE}), clock)
        result = service.get_tree("o", "r", "main")
        assert result.text.startswith("o/r:main\n└── a/\n")
        assert result.text.endswith("2 directories, 2 files")
        assert result.branch == "main"
        assert result.cache_hit is False

    def test_second_call_is_cache_hit(self, clock):
        provider = FakeProvider({"main": SAMPLE})
        service = _service(provider, clock)
        first = service.get_tree("o", "r", "main")
        second = service.get_tree("o", "r", "main")
        assert second.cache_hit is True
        assert second.text == first.text
        assert len(provider.listing_calls) == 1

    def test_cache_expires(self, clock):
        provider = FakeProvider({"main": SAMPLE})
        service = _service(provider, clock)
        service.get_tree("o", "r", "main")
        clock.advance(59.9)
        assert service.get_tree("o", "r", "main").cache_hit is True
        clock.advance(0.2)
        assert service.get_tree("o", "r", "main").cache_hit is False
        assert len(provider.listing_calls) == 2

    def test_default_branch_resolved_and_cached(self, clock):
        provider = FakeProvider({"develop": SAMPLE}, default_branch="develop")
        service = _service(provider, clock)
        result = service.get_tree("o", "r")
        assert result.branch == "develop"
        assert result.text.startswith("o/r:develop\n")
        service.get_tree("o", "r")
        assert provider.branch_calls == [("o", "r")]

    def test_explicit_branch_skips_lookup(self, clock):
        provider = FakeProvider({"feature/x": SAMPLE})
        service = _service(provider, clock)
        service.get_tree("o", "r", "feature/x")
        assert provider.branch_calls == []
        assert provider.listing_calls == [("o", "r", "feature/x")]

    def test_bypass_cache_refetches_and_stores(self, clock):
        provider = FakeProvider({"main": SAMPLE})
        service = _service(provider, clock)
        service.get_tree("o", "r")
        result = service.get_tree("o", "r", use_cache=False)
        assert result.cache_hit is False
        assert len(provider.branch_calls) == 2
        assert len(provider.listing_calls) == 2
        assert service.get_tree("o", "r").cache_hit is True

    def test_failure_leaves_no_cache_entry(self, clock):
        provider = FakeProvider(error=GitHubError("boom"))
        service = _service(provider, clock)
        with pytest.raises(GitHubError):
            service.get_tree("o", "r", "main")
        assert len(service.tree_cache) == 0

    @pytest.mark.parametrize("owner, repo", [("", "r"), ("o", ""), ("  ", "r")])
    def test_missing_owner_or_repo(self, clock, owner, repo):
        service = _service(FakeProvider(), clock)
        with pytest.raises(InvalidRepoError):
            service.get_tree(owner, repo)

    def test_works_without_branch_cache(self, clock):
        provider = FakeProvider({"main": SAMPLE})
        service = TreeService(provider, tree_cache=TTLCache(60, clock=clock))
        service.get_tree("o", "r")
        service.get_tree("o", "r")
        assert len(provider.branch_calls) == 2


def test_root_label():
    assert root_label("o", "r", "main") == "o/r:main"
