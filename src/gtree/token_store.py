"""GitHub token storage in the OS keychain (macOS Keychain / Windows Credential Manager / Secret Service)."""

from __future__ import annotations

import logging

import keyring
import keyring.errors

logger = logging.getLogger(__name__)

SERVICE_NAME = "gtree"
GITHUB_TOKEN_KEY = "github_token"


def load(key: str = GITHUB_TOKEN_KEY) -> str | None:
    """Return the stored token, or None when absent or the keychain is unusable."""
    try:
        return keyring.get_password(SERVICE_NAME, key)
    except keyring.errors.KeyringError as exc:
        logger.warning("Failed to read %s from keyring: %s", key, exc)
        return None


def save(value: str, key: str = GITHUB_TOKEN_KEY) -> bool:
    """Store *value* under *key*. Empty values are not stored."""
    if not value:
        return False
    try:
        keyring.set_password(SERVICE_NAME, key, value)
    except keyring.errors.KeyringError as exc:
        logger.warning("Failed to save %s to keyring: %s", key, exc)
        return False
    return True


def delete(key: str = GITHUB_TOKEN_KEY) -> bool:
    try:
        keyring.delete_password(SERVICE_NAME, key)
    except keyring.errors.KeyringError:
        return False
    return True
