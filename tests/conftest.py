"""Shared pytest fixtures for envelope crypto tests.

This module provides keyrings, codec instances and environment isolation
for the config loader. Every test starts with the CRYPTO_* variables cleared
and the cached keyring reset.
"""

import json
import os
from pathlib import Path

import pytest

from envelope_crypto.config import load_key_registry
from envelope_crypto.keyring import KeyEntry, KeyRegistry
from envelope_crypto.services.record_crypto import RecordCryptoService
from envelope_crypto.utils.encryption import EnvelopeCryptoService
from tests.support.factories import b64

CRYPTO_ENV_VARS = (
    "CRYPTO_KEYS_FILE",
    "CRYPTO_KEY_BASE64",
    "CRYPTO_KID",
    "CRYPTO_VERSION",
    "CRYPTO_REQUIRE_AAD",
    "CRYPTO_API_KEY",
)


@pytest.fixture(autouse=True)
def clean_crypto_env(monkeypatch: pytest.MonkeyPatch):
    """Clear crypto environment variables and the cached keyring.

    Ensures tests don't affect each other through os.environ or the
    lru_cache on load_key_registry.
    """
    for name in CRYPTO_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    load_key_registry.cache_clear()
    yield
    load_key_registry.cache_clear()


@pytest.fixture
def zero_key() -> bytes:
    """32 zero bytes, the key from the reference scenario."""
    return bytes(32)


@pytest.fixture
def zero_key_b64(zero_key: bytes) -> str:
    return b64(zero_key)


@pytest.fixture
def random_key() -> bytes:
    """A fresh random 32-byte key."""
    return os.urandom(32)


@pytest.fixture
def registry(zero_key: bytes) -> KeyRegistry:
    """Single-key registry: kid k1, version v1, AAD optional."""
    return KeyRegistry.from_single_key(key=zero_key)


@pytest.fixture
def crypto_service(registry: KeyRegistry) -> EnvelopeCryptoService:
    return EnvelopeCryptoService(registry)


@pytest.fixture
def record_service(crypto_service: EnvelopeCryptoService) -> RecordCryptoService:
    return RecordCryptoService(crypto_service)


@pytest.fixture
def aad_required_service(zero_key: bytes) -> EnvelopeCryptoService:
    """Codec whose keyring requires AAD on encrypt."""
    return EnvelopeCryptoService(KeyRegistry.from_single_key(key=zero_key, require_aad=True))


@pytest.fixture
def rotated_registry(zero_key: bytes, random_key: bytes) -> KeyRegistry:
    """Registry after rotation: k2 current, the zero key retired as k1."""
    return KeyRegistry(
        version="v1",
        require_aad=False,
        current=KeyEntry(kid="k2", key=random_key),
        retired=(KeyEntry(kid="k1", key=zero_key),),
    )


@pytest.fixture
def write_keyset(tmp_path: Path):
    """Factory writing a keyset document to a temp file and returning its path."""

    def _write(document: dict | str, name: str = "crypto-keys.json") -> Path:
        path = tmp_path / name
        text = document if isinstance(document, str) else json.dumps(document)
        path.write_text(text, encoding="utf-8")
        return path

    return _write
