#!/usr/bin/env python3
"""Generate an AES-256 key for envelope encryption.

This script generates a cryptographically secure 32-byte key for the
envelope crypto service, either as a single-key environment variable or as
a keyset file for CRYPTO_KEYS_FILE.

Usage:
    python scripts/generate_crypto_key.py
    python scripts/generate_crypto_key.py --keyset --kid k2 > secrets/crypto-keys.json

Output:
    Default: CRYPTO_KEY_BASE64=... and CRYPTO_KID=... lines.
    --keyset: a keyset JSON document with the new key as ``current``.

Security Notes:
    - Generate a unique key per environment (staging, production)
    - Never commit keys or keyset files to version control
    - When rotating, move the previous current entry to ``retired`` by hand;
      envelopes under the old kid stay decryptable until re-encrypted
"""

import argparse
import base64
import json

from cryptography.hazmat.primitives.ciphers.aead import AESGCM


def generate_key_base64() -> str:
    """Return a fresh base64-encoded 256-bit AES key."""
    return base64.b64encode(AESGCM.generate_key(bit_length=256)).decode("ascii")


def build_keyset(kid: str, version: str, require_aad: bool) -> dict:
    """Build a keyset document with a fresh current key and no retired keys."""
    return {
        "version": version,
        "requireAad": require_aad,
        "current": {"kid": kid, "keyBase64": generate_key_base64()},
        "retired": [],
    }


def main(argv: list[str] | None = None) -> None:
    """Generate and display a new envelope encryption key."""
    parser = argparse.ArgumentParser(description="Generate an AES-256 envelope encryption key")
    parser.add_argument("--kid", default="k1", help="Key id to embed in envelopes (default: k1)")
    parser.add_argument("--version", default="v1", help="Envelope version tag (default: v1)")
    parser.add_argument(
        "--require-aad", action="store_true", help="Require AAD on every encrypt call"
    )
    parser.add_argument(
        "--keyset", action="store_true", help="Print a CRYPTO_KEYS_FILE JSON document"
    )
    args = parser.parse_args(argv)

    if args.keyset:
        print(json.dumps(build_keyset(args.kid, args.version, args.require_aad), indent=2))
        return

    print(f"CRYPTO_KEY_BASE64={generate_key_base64()}")
    print(f"CRYPTO_KID={args.kid}")
    print(f"CRYPTO_VERSION={args.version}")
    print(f"CRYPTO_REQUIRE_AAD={'true' if args.require_aad else 'false'}")


if __name__ == "__main__":
    main()
