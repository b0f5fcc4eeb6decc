"""Envelope Crypto Service.

Versioned AES-256-GCM envelope encryption for PII fields stored by the
website backend (ride requests, contact forms), with key-rotation support
through a small static keyring.
"""

from envelope_crypto.keyring import KeyEntry, KeyRegistry
from envelope_crypto.services.record_crypto import RecordCryptoService
from envelope_crypto.utils.encryption import EnvelopeCryptoService

__all__ = [
    "EnvelopeCryptoService",
    "KeyEntry",
    "KeyRegistry",
    "RecordCryptoService",
]
