"""Key registry holding the current and retired AES-256 keys.

The registry is built once at process start (see
:func:`envelope_crypto.config.load_key_registry`) and never mutated
afterwards. Encryption always uses ``current``; decryption resolves the kid
embedded in an envelope against ``current`` and every ``retired`` entry.

Rotation:
    Introduce a new ``current`` key, move the previous one to ``retired``
    and restart. Envelopes produced under the old kid stay decryptable until
    they are re-encrypted out-of-band.

Security Notes:
    - NEVER log or expose key bytes; ``repr`` of both types masks them
    - Every key must be exactly 32 bytes (AES-256)
"""

from dataclasses import dataclass, field

from envelope_crypto.exceptions import ConfigurationError

#: AES-256 key length in bytes.
CRYPTO_KEY_LENGTH = 32

DEFAULT_KID = "k1"
DEFAULT_VERSION = "v1"


@dataclass(frozen=True)
class KeyEntry:
    """A single keyring entry.

    Attributes:
        kid: Non-empty key identifier embedded in every envelope.
        key: 32-byte AES-256 secret.

    Note:
        NEVER log or expose the key bytes. ``__repr__`` masks them.
    """

    kid: str
    key: bytes = field(repr=False)

    def __post_init__(self) -> None:
        if not self.kid:
            raise ConfigurationError("Key id (kid) must be a non-empty string")
        if ":" in self.kid:
            raise ConfigurationError(f"Key id {self.kid!r} must not contain ':'")
        if len(self.key) != CRYPTO_KEY_LENGTH:
            raise ConfigurationError(
                f"Key {self.kid!r} must be {CRYPTO_KEY_LENGTH} bytes (AES-256), "
                f"got {len(self.key)}"
            )

    def __repr__(self) -> str:
        return f"KeyEntry(kid={self.kid!r}, key=*****)"


@dataclass(frozen=True)
class KeyRegistry:
    """Immutable keyring plus the envelope policy flags.

    Attributes:
        version: Envelope format tag (e.g. ``"v1"``). Envelopes carrying any
            other tag are rejected at decrypt time.
        require_aad: When True, :meth:`EnvelopeCryptoService.encrypt` refuses
            to run without associated data.
        current: Key used for all new encryption.
        retired: Keys kept only to decrypt older envelopes.

    Raises:
        ConfigurationError: If the version tag is unusable or kids collide.

    Example:
        >>> registry = KeyRegistry.from_single_key(key=bytes(32))
        >>> registry.find_key("k1").kid
        'k1'
    """

    version: str
    require_aad: bool
    current: KeyEntry
    retired: tuple[KeyEntry, ...] = ()

    def __post_init__(self) -> None:
        if not self.version:
            raise ConfigurationError("Envelope version must be a non-empty string")
        if ":" in self.version or "." in self.version:
            raise ConfigurationError(
                f"Envelope version {self.version!r} must not contain ':' or '.'"
            )
        # Accept lists from callers but store a tuple so the registry stays immutable
        object.__setattr__(self, "retired", tuple(self.retired))

        seen: set[str] = set()
        for entry in (self.current, *self.retired):
            if entry.kid in seen:
                raise ConfigurationError(f"Duplicate key id in keyring: {entry.kid!r}")
            seen.add(entry.kid)

    @classmethod
    def from_single_key(
        cls,
        key: bytes,
        kid: str = DEFAULT_KID,
        version: str = DEFAULT_VERSION,
        require_aad: bool = False,
    ) -> "KeyRegistry":
        """Build a registry with one current key and no retired keys."""
        return cls(
            version=version,
            require_aad=require_aad,
            current=KeyEntry(kid=kid, key=key),
        )

    @property
    def kids(self) -> tuple[str, ...]:
        """All key ids, current first."""
        return (self.current.kid, *(entry.kid for entry in self.retired))

    def find_key(self, kid: str) -> KeyEntry | None:
        """Resolve a kid against the current and retired keys.

        Args:
            kid: Key id parsed from an envelope.

        Returns:
            The matching KeyEntry, or None if the kid is unknown.
        """
        for entry in (self.current, *self.retired):
            if entry.kid == kid:
                return entry
        return None

    def __repr__(self) -> str:
        return (
            f"KeyRegistry(version={self.version!r}, require_aad={self.require_aad!r}, "
            f"current={self.current.kid!r}, retired={[e.kid for e in self.retired]!r})"
        )
