"""Request and response bodies for the crypto HTTP routes.

Pydantic v2 models for POST /api/v1/crypto/encrypt and /decrypt. ``aad`` is
optional on both; an empty string means no associated data.
"""

from pydantic import BaseModel, ConfigDict


class EncryptRequest(BaseModel):
    """Body of POST /encrypt.

    Attributes:
        plaintext: Text to encrypt under the current key.
        aad: Optional context bound to the envelope.
    """

    model_config = ConfigDict(strict=True)

    plaintext: str
    aad: str | None = None


class EncryptResponse(BaseModel):
    """Successful encrypt result."""

    success: bool = True
    envelope: str
    message: str = "Successfully encrypted plaintext."


class DecryptRequest(BaseModel):
    """Body of POST /decrypt.

    Attributes:
        envelope: Envelope string produced by /encrypt.
        aad: The AAD supplied at encryption time, if any.
    """

    model_config = ConfigDict(strict=True)

    envelope: str
    aad: str | None = None


class DecryptResponse(BaseModel):
    """Successful decrypt result."""

    success: bool = True
    plaintext: str
    message: str = "Successfully decrypted envelope."


class CryptoErrorResponse(BaseModel):
    """Error body for 400/500 crypto failures."""

    success: bool = False
    error: str
