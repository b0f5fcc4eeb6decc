"""Shared exceptions for the envelope crypto service.

This module contains the error taxonomy used by the key registry, the
envelope codec and the record transformers. Consumers (HTTP routes, batch
jobs) catch these to turn them into client-facing responses.

Taxonomy:
    ConfigurationError: fatal, raised only while loading the keyring at startup.
    EnvelopeCryptoError: base class for per-request failures, all recoverable.

Security Notes:
    - Messages never contain key material, plaintext or AAD values
    - Envelope contents are not echoed back in error messages
"""


class ConfigurationError(Exception):
    """Raised when the crypto keyring configuration is missing or invalid.

    This error indicates a configuration problem that prevents the process
    from serving requests (e.g., a key that does not decode to 32 bytes, an
    unreadable CRYPTO_KEYS_FILE, or malformed keyset JSON). It is raised once
    during startup and must not be caught and downgraded.
    """

    pass


class EnvelopeCryptoError(Exception):
    """Base class for recoverable encrypt/decrypt failures.

    Every subclass is a request-level error: the caller reports it and keeps
    serving other requests.
    """

    pass


class AadRequiredError(EnvelopeCryptoError):
    """Raised when the keyring policy requires AAD and none was supplied.

    Raised before any cryptographic work is performed, so no partial
    ciphertext is ever produced.
    """

    def __init__(self, message: str = "AAD required by policy") -> None:
        super().__init__(message)


class InvalidInputError(EnvelopeCryptoError):
    """Raised when plaintext or AAD cannot be encoded as UTF-8 for encryption.

    Typically a lone surrogate in text decoded from JSON. The offending value
    is never included in the message.
    """

    pass


class MalformedEnvelopeError(EnvelopeCryptoError):
    """Raised when an envelope string does not match the wire format.

    Covers wrong segment counts, empty segments, invalid base64 and
    IV/tag segments of the wrong length.
    """

    pass


class UnsupportedVersionError(EnvelopeCryptoError):
    """Raised when an envelope's version tag differs from the keyring's.

    Signals that an operational migration is needed; envelopes are never
    decoded across versions.

    Attributes:
        version: Version tag found in the envelope.
        expected: Version tag configured for the running keyring.
    """

    def __init__(self, version: str, expected: str) -> None:
        """Initialize UnsupportedVersionError with both version tags.

        Args:
            version: Version tag parsed from the envelope.
            expected: Version tag of the running keyring.
        """
        self.version = version
        self.expected = expected
        super().__init__(f"Unsupported envelope version: {version!r}")

    def __str__(self) -> str:
        """Return error message with the expected version for debugging."""
        return f"{super().__str__()} (expected={self.expected!r})"


class UnknownKeyError(EnvelopeCryptoError):
    """Raised when an envelope references a kid absent from the keyring.

    Either key material was removed before all data was migrated off it,
    or the envelope was produced by a foreign keyring.

    Attributes:
        kid: The key id found in the envelope.
    """

    def __init__(self, kid: str) -> None:
        self.kid = kid
        super().__init__(f"Unknown KID: {kid!r}")


class AuthenticationFailedError(EnvelopeCryptoError):
    """Raised when AES-GCM tag verification fails.

    Causes include a wrong key, a tampered IV/tag/ciphertext, or AAD that
    does not match the value bound at encryption time. No plaintext is
    released when this is raised.
    """

    def __init__(
        self, message: str = "Decryption failed: authentication tag mismatch"
    ) -> None:
        super().__init__(message)
