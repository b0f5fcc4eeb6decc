"""Crypto routes.

This module provides FastAPI routes exposing the envelope codec as a generic
service endpoint:
- POST /api/v1/crypto/encrypt - Encrypt plaintext under the current key
- POST /api/v1/crypto/decrypt - Decrypt an envelope
- GET  /api/v1/crypto/route/health - Router liveness

Status mapping:
- 400: client or data errors (tampered/malformed envelope, wrong AAD,
  unknown kid, unsupported version, missing required AAD, text with no
  UTF-8 form)
- 500: anything else (server fault)
"""

import structlog
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from envelope_crypto.dependencies import get_crypto_service, verify_api_key
from envelope_crypto.exceptions import AadRequiredError, EnvelopeCryptoError, InvalidInputError
from envelope_crypto.schemas.crypto import (
    CryptoErrorResponse,
    DecryptRequest,
    DecryptResponse,
    EncryptRequest,
    EncryptResponse,
)
from envelope_crypto.utils.encryption import EnvelopeCryptoService

log = structlog.get_logger(__name__)
router = APIRouter(prefix="/api/v1/crypto", tags=["crypto"])


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=CryptoErrorResponse(error=message).model_dump(),
    )


@router.post(
    "/encrypt",
    response_model=EncryptResponse,
    responses={400: {"model": CryptoErrorResponse}, 500: {"model": CryptoErrorResponse}},
    dependencies=[Depends(verify_api_key)],
)
def encrypt(
    body: EncryptRequest,
    crypto: EnvelopeCryptoService = Depends(get_crypto_service),
) -> EncryptResponse | JSONResponse:
    """Encrypt plaintext and return the envelope.

    Returns:
        200 OK: Envelope string
        400 Bad Request: AAD required by policy but not supplied, or text
            that cannot be encoded as UTF-8
        500 Internal Server Error: Unexpected encryption failure
    """
    try:
        envelope = crypto.encrypt(body.plaintext, body.aad)
    except (AadRequiredError, InvalidInputError) as e:
        log.warning("crypto_encrypt_rejected", error_type=type(e).__name__)
        return _error(status.HTTP_400_BAD_REQUEST, str(e))
    except Exception as e:
        log.error("crypto_encrypt_failed", error_type=type(e).__name__)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "encryption failed")

    return EncryptResponse(envelope=envelope)


@router.post(
    "/decrypt",
    response_model=DecryptResponse,
    responses={400: {"model": CryptoErrorResponse}, 500: {"model": CryptoErrorResponse}},
    dependencies=[Depends(verify_api_key)],
)
def decrypt(
    body: DecryptRequest,
    crypto: EnvelopeCryptoService = Depends(get_crypto_service),
) -> DecryptResponse | JSONResponse:
    """Decrypt an envelope and return the plaintext.

    Tampering, wrong AAD and foreign envelopes are data errors, not server
    faults, so every EnvelopeCryptoError maps to 400.

    Returns:
        200 OK: Plaintext string
        400 Bad Request: Malformed, unsupported, unknown-key or unauthenticated envelope
        500 Internal Server Error: Unexpected decryption failure
    """
    try:
        plaintext = crypto.decrypt(body.envelope, body.aad)
    except EnvelopeCryptoError as e:
        return _error(status.HTTP_400_BAD_REQUEST, str(e))
    except Exception as e:
        log.error("crypto_decrypt_unexpected_error", error_type=type(e).__name__)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "decryption failed")

    return DecryptResponse(plaintext=plaintext)


@router.get("/route/health", status_code=status.HTTP_200_OK)
def route_health() -> JSONResponse:
    """Liveness check for the crypto router."""
    return JSONResponse(content={"status": "OK", "message": "Crypto routes are working."})
