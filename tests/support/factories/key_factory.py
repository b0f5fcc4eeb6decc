"""Key and keyset factories for crypto tests."""

import base64
import os


def b64(data: bytes) -> str:
    """Standard base64 text for test keys."""
    return base64.b64encode(data).decode("ascii")


def create_key(fill: int | None = None) -> bytes:
    """Create a 32-byte key, random unless a fill byte is given."""
    return bytes([fill]) * 32 if fill is not None else os.urandom(32)


def create_keyset_document(
    current_kid: str = "k1",
    retired_kids: tuple[str, ...] = (),
    version: str = "v1",
    require_aad: bool = False,
) -> dict:
    """Create a CRYPTO_KEYS_FILE document with random keys."""
    return {
        "version": version,
        "requireAad": require_aad,
        "current": {"kid": current_kid, "keyBase64": b64(create_key())},
        "retired": [{"kid": kid, "keyBase64": b64(create_key())} for kid in retired_kids],
    }
