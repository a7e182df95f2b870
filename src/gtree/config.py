"""Runtime settings loaded from environment variables."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping

from gtree import token_store
from gtree.providers.github import GitHubProvider

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Raised when an environment variable holds an invalid value."""


@dataclass(frozen=True)
class Settings:
    port: int = 8000
    github_token: str | None = None
    github_api_base: str = GitHubProvider.API_BASE
    cache_ttl: float = 60.0
    rate_capacity: float = 50.0
    rate_refill_per_second: float = 100 / 60
    rate_prune_interval: float = 300.0
    log_level: str = "INFO"
    trust_forwarded: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from *environ* (defaults to ``os.environ``).

        The GitHub token falls back to the OS keychain when ``GITHUB_TOKEN``
        is not set.
        """
        env = os.environ if environ is None else environ

        token = env.get("GITHUB_TOKEN", "").strip() or token_store.load()

        settings = cls(
            port=_int(env, "PORT", cls.port),
            github_token=token or None,
            github_api_base=env.get("GITHUB_API_BASE", "").strip() or cls.github_api_base,
            cache_ttl=_positive(env, "CACHE_TTL", cls.cache_ttl),
            rate_capacity=_positive(env, "RATE_CAPACITY", cls.rate_capacity),
            rate_refill_per_second=_positive(
                env, "RATE_REFILL_PER_SECOND", cls.rate_refill_per_second
            ),
            rate_prune_interval=_positive(
                env, "RATE_PRUNE_INTERVAL", cls.rate_prune_interval
            ),
            log_level=env.get("LOG_LEVEL", "").strip().upper() or cls.log_level,
            trust_forwarded=_bool(env, "TRUST_FORWARDED", cls.trust_forwarded),
        )
        if settings.github_token is None:
            logger.warning("No GitHub token configured; using anonymous API access")
        return settings


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"Invalid {name}: {raw!r} is not an integer") from None


def _positive(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"Invalid {name}: {raw!r} is not a number") from None
    if value <= 0:
        raise ConfigError(f"Invalid {name}: must be positive")
    return value


def _bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name, "").strip().lower()
    if not raw:
        return default
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off"):
        return False
    raise ConfigError(f"Invalid {name}: {raw!r} is not a boolean")
