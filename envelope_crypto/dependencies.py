"""FastAPI dependencies for the crypto services.

The services are built once in the application lifespan and stored on
``app.state``. Routes receive them through these dependencies instead of a
module-level singleton, so tests can install a service built from any
keyring.
"""

import hmac

import structlog
from fastapi import Header, HTTPException, Request, status

from envelope_crypto.config import get_api_key
from envelope_crypto.utils.encryption import EnvelopeCryptoService

log = structlog.get_logger(__name__)


def get_crypto_service(request: Request) -> EnvelopeCryptoService:
    """Return the envelope codec built at startup.

    Raises:
        RuntimeError: If the lifespan did not install a service.
    """
    service = getattr(request.app.state, "crypto_service", None)
    if service is None:
        raise RuntimeError("Crypto service not initialized; application lifespan did not run")
    return service


def verify_api_key(x_api_key: str | None = Header(default=None)) -> None:
    """Require a matching x-api-key header when CRYPTO_API_KEY is configured.

    Raises:
        HTTPException: 403 if the key is configured and the header is
            missing or wrong.
    """
    expected = get_api_key()
    if expected is None:
        return

    if not x_api_key or not hmac.compare_digest(x_api_key.encode(), expected.encode()):
        log.warning("crypto_api_key_rejected", has_header=x_api_key is not None)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden: Invalid API key"
        )
