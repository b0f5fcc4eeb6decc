"""Business logic services built on the envelope codec."""

from envelope_crypto.services.record_crypto import (
    BatchDecryptResult,
    RecordCryptoService,
    RecordDecryptFailure,
)

__all__ = [
    "BatchDecryptResult",
    "RecordCryptoService",
    "RecordDecryptFailure",
]
