"""Keyset file schema for CRYPTO_KEYS_FILE.

This module defines the Pydantic v2 schema for validating the JSON keyset
document loaded in file mode.

File format:
    {
      "version": "v1",
      "requireAad": false,
      "current": { "kid": "k2", "keyBase64": "..." },
      "retired": [{ "kid": "k1", "keyBase64": "..." }]
    }

Only ``current`` is required. ``version`` defaults to "v1", ``requireAad``
to false and ``retired`` to an empty list. Every ``keyBase64`` value must
decode to exactly 32 bytes.
"""

import base64

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from envelope_crypto.keyring import CRYPTO_KEY_LENGTH, DEFAULT_VERSION, KeyEntry, KeyRegistry


def decode_key_base64(value: str, kid: str | None = None) -> bytes:
    """Decode a base64 AES-256 key and check its length.

    Args:
        value: Standard base64 text.
        kid: Optional key id, used only to make the error message useful.

    Returns:
        The 32 key bytes.

    Raises:
        ValueError: If the value is not base64 or does not decode to 32 bytes.
    """
    label = f"key {kid!r}" if kid else "key"
    try:
        key = base64.b64decode(value.strip(), validate=True)
    except ValueError as e:  # binascii.Error or non-ASCII input
        raise ValueError(f"{label} is not valid base64") from e
    if len(key) != CRYPTO_KEY_LENGTH:
        raise ValueError(f"{label} must decode to {CRYPTO_KEY_LENGTH} bytes (AES-256)")
    return key


class KeysetKey(BaseModel):
    """One ``{kid, keyBase64}`` entry of a keyset file.

    Attributes:
        kid: Key identifier embedded in envelopes.
        key_base64: Base64 AES-256 key (alias ``keyBase64``).
    """

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    kid: str = Field(..., min_length=1, pattern=r"^[^:]+$")
    key_base64: str = Field(..., alias="keyBase64", repr=False)

    @model_validator(mode="after")
    def validate_key_length(self) -> "KeysetKey":
        """Validate that the key decodes to exactly 32 bytes.

        Raises:
            ValueError: Naming the kid, never the key value.
        """
        decode_key_base64(self.key_base64, self.kid)
        return self

    def to_entry(self) -> KeyEntry:
        """Convert to an immutable KeyEntry."""
        return KeyEntry(kid=self.kid, key=decode_key_base64(self.key_base64, self.kid))


class KeysetFile(BaseModel):
    """Top-level keyset document.

    Attributes:
        version: Envelope format tag.
        require_aad: AAD policy flag (alias ``requireAad``).
        current: Key used for new encryption.
        retired: Keys kept for decryption only.
    """

    model_config = ConfigDict(populate_by_name=True)

    version: str = Field(default=DEFAULT_VERSION, min_length=1)
    require_aad: bool = Field(default=False, alias="requireAad")
    current: KeysetKey
    retired: list[KeysetKey] = Field(default_factory=list)

    @field_validator("version", "require_aad", mode="before")
    @classmethod
    def default_when_null(cls, v, info):
        """Treat explicit ``null`` values as the field default."""
        if v is None:
            return DEFAULT_VERSION if info.field_name == "version" else False
        return v

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        """Reject version tags that would break the envelope separators."""
        if ":" in v or "." in v:
            raise ValueError(f"version must not contain ':' or '.': {v!r}")
        return v

    @field_validator("retired", mode="before")
    @classmethod
    def default_retired(cls, v: list | None) -> list:
        """Treat an explicit ``null`` as no retired keys."""
        return [] if v is None else v

    @model_validator(mode="after")
    def validate_unique_kids(self) -> "KeysetFile":
        """Validate that no kid appears twice across current and retired."""
        kids = [self.current.kid, *(k.kid for k in self.retired)]
        duplicates = sorted({kid for kid in kids if kids.count(kid) > 1})
        if duplicates:
            raise ValueError(f"Duplicate key ids in keyset: {', '.join(duplicates)}")
        return self

    def to_registry(self) -> KeyRegistry:
        """Build the immutable KeyRegistry described by this keyset."""
        return KeyRegistry(
            version=self.version,
            require_aad=self.require_aad,
            current=self.current.to_entry(),
            retired=tuple(k.to_entry() for k in self.retired),
        )
