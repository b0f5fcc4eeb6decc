"""Pydantic schemas for validation and serialization."""

from envelope_crypto.schemas.crypto import (
    CryptoErrorResponse,
    DecryptRequest,
    DecryptResponse,
    EncryptRequest,
    EncryptResponse,
)
from envelope_crypto.schemas.keyset import KeysetFile, KeysetKey
from envelope_crypto.schemas.records import (
    CONTACT_ENCRYPTED_FIELDS,
    RIDE_REQUEST_ENCRYPTED_FIELDS,
    ContactFormData,
    ContactFormDocument,
    RideRequestData,
    RideRequestDocument,
)

__all__ = [
    "CONTACT_ENCRYPTED_FIELDS",
    "RIDE_REQUEST_ENCRYPTED_FIELDS",
    "ContactFormData",
    "ContactFormDocument",
    "CryptoErrorResponse",
    "DecryptRequest",
    "DecryptResponse",
    "EncryptRequest",
    "EncryptResponse",
    "KeysetFile",
    "KeysetKey",
    "RideRequestData",
    "RideRequestDocument",
]
