"""Configuration management for the envelope crypto service.

This module provides centralized configuration loading from environment variables.
The keyring is loaded once per process and cached.

Environment Variables:
    CRYPTO_KEYS_FILE: Path to a JSON keyset file (file mode, takes precedence)
    CRYPTO_KEY_BASE64: Base64 AES-256 key (single-key mode, required without a file)
    CRYPTO_KID: Key id for single-key mode (default: "k1")
    CRYPTO_VERSION: Envelope version tag for single-key mode (default: "v1")
    CRYPTO_REQUIRE_AAD: "true" to require AAD on encrypt (default: "false")
    CRYPTO_API_KEY: Shared secret for the HTTP crypto routes (optional)
    LOG_LEVEL: Logging level (default: "INFO")
    LOG_FORMAT: "json" or "console" (default: "json")

Usage:
    from envelope_crypto.config import load_key_registry

    registry = load_key_registry()  # Raises ConfigurationError if invalid
"""

import json
import os
from functools import lru_cache
from pathlib import Path

import structlog
from pydantic import ValidationError

from envelope_crypto.exceptions import ConfigurationError
from envelope_crypto.keyring import DEFAULT_KID, DEFAULT_VERSION, KeyEntry, KeyRegistry
from envelope_crypto.schemas.keyset import KeysetFile, decode_key_base64

log = structlog.get_logger(__name__)


def get_keys_file() -> str | None:
    """Get keyset file path from environment.

    Environment Variable:
        CRYPTO_KEYS_FILE: Path to the JSON keyset file

    Returns:
        Stripped path string, or None if not set or blank.
    """
    path = os.getenv("CRYPTO_KEYS_FILE", "").strip()
    return path or None


def get_key_base64() -> str:
    """Get the single-key mode AES-256 key from environment.

    Environment Variable:
        CRYPTO_KEY_BASE64: Base64-encoded 32-byte key

    Returns:
        Base64 key string (empty string if not set).
    """
    return os.getenv("CRYPTO_KEY_BASE64", "")


def get_kid() -> str:
    """Get the single-key mode key id (default: "k1")."""
    return os.getenv("CRYPTO_KID") or DEFAULT_KID


def get_crypto_version() -> str:
    """Get the single-key mode envelope version tag (default: "v1")."""
    return os.getenv("CRYPTO_VERSION") or DEFAULT_VERSION


def get_require_aad() -> bool:
    """Get the AAD policy flag from environment.

    Environment Variable:
        CRYPTO_REQUIRE_AAD: "true" (case-insensitive) enables the policy

    Returns:
        True only for "true"; any other value, or unset, is False.
    """
    return os.getenv("CRYPTO_REQUIRE_AAD", "false").strip().lower() == "true"


def get_api_key() -> str | None:
    """Get the shared API key guarding the crypto routes.

    Environment Variable:
        CRYPTO_API_KEY: Expected value of the x-api-key header

    Returns:
        API key string, or None if not set (routes are left open).
    """
    return os.getenv("CRYPTO_API_KEY") or None


def get_log_level() -> str:
    """Get logging level name (default: "INFO")."""
    return os.getenv("LOG_LEVEL", "INFO").upper()


def get_log_format() -> str:
    """Get log renderer name, "json" or "console" (default: "json")."""
    return os.getenv("LOG_FORMAT", "json").lower()


def load_keyset_file(file_path: Path) -> KeyRegistry:
    """Load and validate a JSON keyset file.

    Args:
        file_path: Path to the keyset document.

    Returns:
        Immutable KeyRegistry built from the file.

    Raises:
        ConfigurationError: If the file is unreadable, not UTF-8 JSON, or fails
            schema validation (including key length and duplicate kids).
    """
    try:
        with file_path.open("r", encoding="utf-8") as f:
            raw = json.load(f)
    except OSError as e:
        raise ConfigurationError(
            f"CRYPTO_KEYS_FILE: cannot read {file_path}: {e.strerror or e}"
        ) from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(
            f"CRYPTO_KEYS_FILE: malformed JSON in {file_path} (line {e.lineno})"
        ) from e
    except UnicodeDecodeError as e:
        raise ConfigurationError(
            f"CRYPTO_KEYS_FILE: {file_path} is not valid UTF-8"
        ) from e

    try:
        keyset = KeysetFile.model_validate(raw)
    except ValidationError as e:
        # Report locations and messages only; input values may hold key material
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'keyset'}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigurationError(f"CRYPTO_KEYS_FILE: invalid keyset: {problems}") from e

    return keyset.to_registry()


def load_single_key() -> KeyRegistry:
    """Build a one-key registry from the single-key environment variables.

    Raises:
        ConfigurationError: If CRYPTO_KEY_BASE64 is missing or does not
            decode to 32 bytes.
    """
    kid = get_kid()
    try:
        key = decode_key_base64(get_key_base64(), kid)
    except ValueError as e:
        raise ConfigurationError(
            "CRYPTO_KEY_BASE64 must decode to 32 bytes (AES-256 key)"
        ) from e

    return KeyRegistry(
        version=get_crypto_version(),
        require_aad=get_require_aad(),
        current=KeyEntry(kid=kid, key=key),
    )


@lru_cache
def load_key_registry() -> KeyRegistry:
    """Load the process keyring from CRYPTO_KEYS_FILE or single-key variables.

    File mode is used whenever CRYPTO_KEYS_FILE is set; the single-key
    variables are ignored in that case.

    Returns:
        Immutable KeyRegistry, cached for the life of the process.

    Raises:
        ConfigurationError: If the configuration is missing or invalid. This
            is fatal; the service must not start without a valid keyring.
    """
    file_path = get_keys_file()
    mode = "file" if file_path else "single_key"
    try:
        registry = load_keyset_file(Path(file_path)) if file_path else load_single_key()
    except ConfigurationError as e:
        log.error("crypto_config_invalid", mode=mode, error=str(e))
        raise

    log.info(
        "crypto_config_loaded",
        mode=mode,
        version=registry.version,
        current_kid=registry.current.kid,
        retired_kids=[entry.kid for entry in registry.retired],
        require_aad=registry.require_aad,
    )
    return registry
