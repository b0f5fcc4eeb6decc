"""AES-256-GCM envelope encryption for PII fields.

This module provides authenticated encryption of individual string fields
using keys from a :class:`~envelope_crypto.keyring.KeyRegistry`. Every
ciphertext is serialized as a self-describing envelope:

    <version>:<kid>:<iv_b64>.<tag_b64>.<ciphertext_b64>

The version tag gates decoding (no cross-version reads), the kid selects
the key (current or retired), and the 16-byte GCM tag authenticates the
ciphertext together with the optional AAD.

Usage:
    from envelope_crypto.config import load_key_registry
    from envelope_crypto.utils.encryption import EnvelopeCryptoService

    service = EnvelopeCryptoService(load_key_registry())
    envelope = service.encrypt("Jane Doe", aad="ride_requests")
    plaintext = service.decrypt(envelope, aad="ride_requests")

Security Notes:
    - A fresh random 12-byte nonce is generated for every call
    - NEVER log plaintext, AAD values or envelope contents
    - Authentication failures never release partial plaintext
"""

import base64
import os
from dataclasses import dataclass

import structlog
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from envelope_crypto.exceptions import (
    AadRequiredError,
    AuthenticationFailedError,
    EnvelopeCryptoError,
    InvalidInputError,
    MalformedEnvelopeError,
    UnknownKeyError,
    UnsupportedVersionError,
)
from envelope_crypto.keyring import CRYPTO_KEY_LENGTH, KeyRegistry

log = structlog.get_logger(__name__)

CRYPTO_ALGORITHM = "AES-256-GCM"
CRYPTO_IV_LENGTH = 12  # 96-bit nonce, recommended for GCM
CRYPTO_TAG_LENGTH = 16  # 128-bit tag

__all__ = [
    "CRYPTO_ALGORITHM",
    "CRYPTO_IV_LENGTH",
    "CRYPTO_KEY_LENGTH",
    "CRYPTO_TAG_LENGTH",
    "Envelope",
    "EnvelopeCryptoService",
]


def _b64decode(segment: str, name: str) -> bytes:
    try:
        return base64.b64decode(segment, validate=True)
    except ValueError as e:  # binascii.Error or non-ASCII input
        raise MalformedEnvelopeError(f"Malformed envelope: {name} is not valid base64") from e


def _b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _encode_text(text: str, name: str, error: type[EnvelopeCryptoError]) -> bytes:
    try:
        return text.encode("utf-8")
    except UnicodeEncodeError as e:
        # Lone surrogates survive JSON decoding but have no UTF-8 form
        raise error(f"{name} is not valid UTF-8 text") from e


@dataclass(frozen=True)
class Envelope:
    """Parsed form of an envelope string.

    Attributes:
        version: Envelope format tag.
        kid: Id of the key that produced the ciphertext.
        iv: 12-byte GCM nonce.
        tag: 16-byte GCM authentication tag.
        ciphertext: Encrypted payload (empty for an empty plaintext).
    """

    version: str
    kid: str
    iv: bytes
    tag: bytes
    ciphertext: bytes

    @classmethod
    def parse(cls, envelope: str) -> "Envelope":
        """Parse an envelope string into its components.

        Args:
            envelope: String of the form ``version:kid:iv.tag.ciphertext``.

        Returns:
            The parsed Envelope.

        Raises:
            MalformedEnvelopeError: If the structure, base64 content or
                IV/tag lengths do not match the wire format.
        """
        if not isinstance(envelope, str):
            raise MalformedEnvelopeError("Malformed envelope: expected a string")

        parts = envelope.split(":")
        if len(parts) != 3:
            raise MalformedEnvelopeError("Malformed envelope: expected version:kid:payload")
        version, kid, payload = parts
        if not version or not kid:
            raise MalformedEnvelopeError("Malformed envelope: empty version or kid")

        segments = payload.split(".")
        if len(segments) != 3:
            raise MalformedEnvelopeError("Malformed envelope: expected iv.tag.ciphertext")
        iv_b64, tag_b64, ct_b64 = segments
        if not iv_b64 or not tag_b64:
            raise MalformedEnvelopeError("Malformed envelope: empty iv or tag")

        iv = _b64decode(iv_b64, "iv")
        tag = _b64decode(tag_b64, "tag")
        ciphertext = _b64decode(ct_b64, "ciphertext")

        if len(iv) != CRYPTO_IV_LENGTH:
            raise MalformedEnvelopeError(
                f"Malformed envelope: iv must be {CRYPTO_IV_LENGTH} bytes"
            )
        if len(tag) != CRYPTO_TAG_LENGTH:
            raise MalformedEnvelopeError(
                f"Malformed envelope: tag must be {CRYPTO_TAG_LENGTH} bytes"
            )

        return cls(version=version, kid=kid, iv=iv, tag=tag, ciphertext=ciphertext)

    def __str__(self) -> str:
        return (
            f"{self.version}:{self.kid}:"
            f"{_b64encode(self.iv)}.{_b64encode(self.tag)}.{_b64encode(self.ciphertext)}"
        )


class EnvelopeCryptoService:
    """AES-256-GCM envelope codec bound to an immutable key registry.

    The service holds no mutable state after construction, so a single
    instance is shared by every request handler without locking.

    Attributes:
        registry: The keyring used for encryption and kid resolution.

    Example:
        >>> service = EnvelopeCryptoService(KeyRegistry.from_single_key(bytes(32)))
        >>> envelope = service.encrypt("hello")
        >>> envelope.startswith("v1:k1:")
        True
        >>> service.decrypt(envelope)
        'hello'
    """

    def __init__(self, registry: KeyRegistry) -> None:
        """Initialize the codec and one AESGCM cipher per key.

        Args:
            registry: Immutable keyring loaded at startup.
        """
        self.registry = registry
        self._ciphers: dict[str, AESGCM] = {
            entry.kid: AESGCM(entry.key)
            for entry in (registry.current, *registry.retired)
        }

    def encrypt(self, plaintext: str | bytes, aad: str | None = None) -> str:
        """Encrypt plaintext under the current key.

        Args:
            plaintext: Text (UTF-8 encoded before encryption) or raw bytes.
            aad: Optional context string bound to the ciphertext. Empty
                string is treated as absent.

        Returns:
            Envelope string ``version:kid:iv.tag.ciphertext``.

        Raises:
            AadRequiredError: If the registry requires AAD and none was given.
            InvalidInputError: If the plaintext or AAD text is not encodable as UTF-8.
        """
        if self.registry.require_aad and not aad:
            raise AadRequiredError()

        data = (
            _encode_text(plaintext, "plaintext", InvalidInputError)
            if isinstance(plaintext, str)
            else bytes(plaintext)
        )
        aad_bytes = self._aad_bytes(aad, InvalidInputError)
        iv = os.urandom(CRYPTO_IV_LENGTH)
        current = self.registry.current

        # AESGCM appends the tag to the ciphertext
        sealed = self._ciphers[current.kid].encrypt(iv, data, aad_bytes)
        ciphertext, tag = sealed[:-CRYPTO_TAG_LENGTH], sealed[-CRYPTO_TAG_LENGTH:]

        return str(
            Envelope(
                version=self.registry.version,
                kid=current.kid,
                iv=iv,
                tag=tag,
                ciphertext=ciphertext,
            )
        )

    def decrypt_bytes(self, envelope: str, aad: str | None = None) -> bytes:
        """Decrypt an envelope and return the raw plaintext bytes.

        Args:
            envelope: Envelope string produced by :meth:`encrypt`.
            aad: The AAD supplied at encryption time, if any.

        Returns:
            Decrypted bytes.

        Raises:
            MalformedEnvelopeError: If the envelope does not parse
                or the AAD text is not encodable as UTF-8.
            UnsupportedVersionError: If the version tag differs from the registry's.
            UnknownKeyError: If the kid is not in the keyring.
            AuthenticationFailedError: If GCM verification fails.
        """
        try:
            parsed = Envelope.parse(envelope)

            if parsed.version != self.registry.version:
                raise UnsupportedVersionError(parsed.version, self.registry.version)

            cipher = self._ciphers.get(parsed.kid)
            if cipher is None:
                raise UnknownKeyError(parsed.kid)

            try:
                return cipher.decrypt(
                    parsed.iv,
                    parsed.ciphertext + parsed.tag,
                    self._aad_bytes(aad, MalformedEnvelopeError),
                )
            except InvalidTag as e:
                raise AuthenticationFailedError() from e
        except (
            MalformedEnvelopeError,
            UnsupportedVersionError,
            UnknownKeyError,
            AuthenticationFailedError,
        ) as e:
            log.warning("crypto_decrypt_failed", error_type=type(e).__name__)
            raise

    def decrypt(self, envelope: str, aad: str | None = None) -> str:
        """Decrypt an envelope to a UTF-8 string.

        Args:
            envelope: Envelope string produced by :meth:`encrypt`.
            aad: The AAD supplied at encryption time, if any.

        Returns:
            Decrypted plaintext string.

        Raises:
            MalformedEnvelopeError: If the envelope does not parse or the
                authenticated plaintext is not valid UTF-8.
            UnsupportedVersionError: If the version tag differs from the registry's.
            UnknownKeyError: If the kid is not in the keyring.
            AuthenticationFailedError: If GCM verification fails.
        """
        data = self.decrypt_bytes(envelope, aad)
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedEnvelopeError("Decrypted payload is not valid UTF-8") from e

    def needs_rotation(self, envelope: str) -> bool:
        """Return True if the envelope was produced under a non-current key.

        Envelopes of another version are not rotation candidates: ``reencrypt``
        cannot read them, so they are rejected here as well.

        Raises:
            MalformedEnvelopeError: If the envelope does not parse.
            UnsupportedVersionError: If the version tag differs from the registry's.
        """
        parsed = Envelope.parse(envelope)
        if parsed.version != self.registry.version:
            raise UnsupportedVersionError(parsed.version, self.registry.version)
        return parsed.kid != self.registry.current.kid

    def reencrypt(self, envelope: str, aad: str | None = None) -> str:
        """Decrypt with the originating key and encrypt under the current key.

        Used by out-of-band migration jobs after a rotation; the service never
        calls it on its own.
        """
        return self.encrypt(self.decrypt_bytes(envelope, aad), aad)

    @staticmethod
    def _aad_bytes(aad: str | None, error: type[EnvelopeCryptoError]) -> bytes | None:
        return _encode_text(aad, "aad", error) if aad else None
