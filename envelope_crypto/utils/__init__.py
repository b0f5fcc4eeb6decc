"""Cross-cutting utilities for the envelope crypto service.

Modules:
    encryption: AES-256-GCM envelope codec.
    logging: structlog configuration.
"""

from envelope_crypto.utils.encryption import Envelope, EnvelopeCryptoService

__all__ = [
    "Envelope",
    "EnvelopeCryptoService",
]
