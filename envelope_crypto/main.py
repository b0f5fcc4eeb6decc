"""FastAPI application exposing the envelope crypto service.

Startup loads the keyring from CRYPTO_KEYS_FILE or the single-key variables
and builds the shared services. A ConfigurationError is not caught: the
process must not serve requests without a valid keyring.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from envelope_crypto.config import load_key_registry
from envelope_crypto.routes import crypto
from envelope_crypto.services.record_crypto import RecordCryptoService
from envelope_crypto.utils.encryption import EnvelopeCryptoService
from envelope_crypto.utils.logging import configure_logging

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the crypto services once before the first request.

    Startup:
    - Load .env and configure logging
    - Load the keyring (fatal on ConfigurationError)
    - Store EnvelopeCryptoService and RecordCryptoService on app.state

    Tests may pre-populate app.state.crypto_service to skip keyring loading.
    """
    load_dotenv()
    configure_logging()

    if getattr(app.state, "crypto_service", None) is None:
        registry = load_key_registry()
        app.state.crypto_service = EnvelopeCryptoService(registry)
    app.state.record_crypto_service = RecordCryptoService(app.state.crypto_service)

    log.info(
        "crypto_service_ready",
        version=app.state.crypto_service.registry.version,
        current_kid=app.state.crypto_service.registry.current.kid,
    )

    yield

    log.info("crypto_service_shutdown")


app = FastAPI(
    title="Envelope Crypto Service",
    description="Versioned AES-256-GCM envelope encryption for PII fields",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(crypto.router)


@app.get("/health", status_code=status.HTTP_200_OK)
async def health_check(request: Request) -> JSONResponse:
    """Health check reporting the loaded keyring shape (never key material).

    Returns:
        JSONResponse: Status, envelope version, current kid and key count
    """
    registry = request.app.state.crypto_service.registry
    return JSONResponse(
        content={
            "status": "healthy",
            "service": "envelope-crypto",
            "key_version": registry.version,
            "current_kid": registry.current.kid,
            "key_count": len(registry.kids),
        }
    )


if __name__ == "__main__":
    import uvicorn

    # For local development
    uvicorn.run(
        "envelope_crypto.main:app",
        host="0.0.0.0",  # noqa: S104
        port=8000,
        reload=True,
    )
