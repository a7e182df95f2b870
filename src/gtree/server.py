"""Tornado HTTP service exposing rendered repository trees as plain text."""

from __future__ import annotations

import asyncio
import functools
import logging
import sys

import tornado.web
from tornado.ioloop import IOLoop, PeriodicCallback

from gtree.cache import TTLCache
from gtree.config import ConfigError, Settings
from gtree.providers.github import GitHubError, GitHubProvider
from gtree.rate_limiter import TakeResult, TokenBucketLimiter
from gtree.service import InvalidRepoError, TreeService

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests, we are detecting abuse."
CACHE_CONTROL = "s-maxage=600, stale-while-revalidate=60"

USAGE = """
Git Tree (gtree)
----------------

Shows the directory structure of a GitHub repository in the style of the
Unix 'tree' command, built from the repository's recursive tree listing.

Usage:
  GET /:owner/:repo
  GET /:owner/:repo/:branch

Parameters:
  owner    GitHub user or organization (required)
  repo     Repository name (required)
  branch   Branch name (optional, defaults to the repository's default branch)

Query:
  nocache=true   Skip cached results and fetch a fresh listing

Examples:
  /psf/requests
  /psf/requests/main
""".strip()


class BaseHandler(tornado.web.RequestHandler):
    """Applies per-client rate limiting before any handler work."""

    def initialize(
        self,
        service: TreeService,
        limiter: TokenBucketLimiter,
        trust_forwarded: bool = False,
    ) -> None:
        self.service = service
        self.limiter = limiter
        self.trust_forwarded = trust_forwarded
        self.rate: TakeResult | None = None

    def set_default_headers(self) -> None:
        self.set_header("Content-Type", "text/plain; charset=utf-8")

    def client_identity(self) -> str:
        """Return the rate limit identity for this request.

        Forwarding headers are client-controlled, so they are only honoured
        when the service runs behind a proxy that overwrites them.
        """
        ip = ""
        if self.trust_forwarded:
            forwarded = self.request.headers.get("X-Forwarded-For", "")
            ip = forwarded.split(",")[0].strip()
            if not ip:
                ip = self.request.headers.get("X-Real-IP", "").strip()
        return ip or self.request.remote_ip or "unknown"

    def prepare(self) -> None:
        self.rate = self.limiter.take(self.client_identity())
        self._set_rate_headers()
        if not self.rate.admitted:
            self.set_status(429)
            self.finish(RATE_LIMIT_MESSAGE)

    def write_error(self, status_code: int, **kwargs) -> None:
        # send_error() resets headers to their defaults
        self._set_rate_headers()
        exc_info = kwargs.get("exc_info")
        message = str(exc_info[1]) if exc_info else self._reason
        self.finish(f"Error: {message}")

    def _set_rate_headers(self) -> None:
        if self.rate is None:
            return
        self.set_header("X-RateLimit-Limit", f"{self.limiter.capacity:g}")
        self.set_header("X-RateLimit-Remaining", str(self.rate.remaining))
        self.set_header("X-RateLimit-Reset", str(self.rate.reset_seconds))


class IndexHandler(BaseHandler):
    def get(self) -> None:
        self.finish(USAGE)


class TreeHandler(BaseHandler):
    async def get(self, path: str) -> None:
        parts = [p for p in path.split("/") if p]
        if len(parts) < 2:
            self.set_status(400)
            self.finish("Invalid path. Use /owner/repo or /owner/repo/branch")
            return

        owner, repo = parts[0], parts[1]
        # Branch names may contain slashes
        branch = "/".join(parts[2:]) or None
        use_cache = self.get_query_argument("nocache", "").lower() != "true"

        # Upstream calls block, so keep them off the event loop
        try:
            result = await IOLoop.current().run_in_executor(
                None,
                functools.partial(
                    self.service.get_tree, owner, repo, branch, use_cache=use_cache
                ),
            )
        except InvalidRepoError as exc:
            self.set_status(400)
            self.finish(str(exc))
            return
        except GitHubError as exc:
            logger.warning("Failed to build tree for %s/%s: %s", owner, repo, exc)
            self.set_status(500)
            self.finish(f"Error: {exc}")
            return

        self.set_header("X-Cache", "HIT" if result.cache_hit else "MISS")
        self.set_header("Cache-Control", CACHE_CONTROL)
        self.finish(result.text)


def make_app(
    service: TreeService,
    limiter: TokenBucketLimiter,
    trust_forwarded: bool = False,
) -> tornado.web.Application:
    deps = {"service": service, "limiter": limiter, "trust_forwarded": trust_forwarded}
    return tornado.web.Application(
        [
            (r"/", IndexHandler, deps),
            (r"/(.+)", TreeHandler, deps),
        ]
    )


def build_service(settings: Settings) -> TreeService:
    provider = GitHubProvider(
        token=settings.github_token, api_base=settings.github_api_base
    )
    return TreeService(
        provider,
        tree_cache=TTLCache(settings.cache_ttl),
        branch_cache=TTLCache(settings.cache_ttl),
    )


def sweep(service: TreeService, limiter: TokenBucketLimiter) -> None:
    """Reclaim idle rate limit buckets and expired cache entries."""
    limiter.prune()
    service.tree_cache.purge_expired()
    if service.branch_cache is not None:
        service.branch_cache.purge_expired()


async def serve(settings: Settings) -> None:
    service = build_service(settings)
    limiter = TokenBucketLimiter(settings.rate_capacity, settings.rate_refill_per_second)

    app = make_app(service, limiter, trust_forwarded=settings.trust_forwarded)
    app.listen(settings.port)

    maintenance = PeriodicCallback(
        functools.partial(sweep, service, limiter),
        settings.rate_prune_interval * 1000,
    )
    maintenance.start()

    logger.info("gtree listening on port %d", settings.port)
    await asyncio.Event().wait()


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        settings = Settings.from_env()
    except ConfigError as exc:
        logger.error("%s", exc)
        sys.exit(2)
    logging.getLogger().setLevel(settings.log_level)

    try:
        asyncio.run(serve(settings))
    except KeyboardInterrupt:
        logger.info("Shutting down")


if __name__ == "__main__":
    main()
