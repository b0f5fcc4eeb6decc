"""Tests for crypto route endpoints.

Tests FastAPI crypto endpoint integration:
- Encrypt/decrypt round-trip over HTTP
- 400 for tampered, malformed, foreign or unauthenticated envelopes
- 400 for missing AAD under the require-AAD policy
- 500 for unexpected failures
- Optional x-api-key guard
"""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from envelope_crypto.dependencies import get_crypto_service
from envelope_crypto.main import app
from envelope_crypto.utils.encryption import Envelope, EnvelopeCryptoService


@pytest.fixture
def client(crypto_service: EnvelopeCryptoService):
    """FastAPI test client with the zero-key codec injected."""
    app.dependency_overrides[get_crypto_service] = lambda: crypto_service
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def strict_client(aad_required_service: EnvelopeCryptoService):
    """Test client whose keyring requires AAD."""
    app.dependency_overrides[get_crypto_service] = lambda: aad_required_service
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_encrypt_returns_envelope(client):
    """Encrypt returns success with a v1:k1 envelope."""
    response = client.post("/api/v1/crypto/encrypt", json={"plaintext": "hello"})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["envelope"].startswith("v1:k1:")
    assert data["message"] == "Successfully encrypted plaintext."


def test_encrypt_decrypt_roundtrip_with_aad(client):
    """Envelope from /encrypt decrypts via /decrypt with the same AAD."""
    envelope = client.post(
        "/api/v1/crypto/encrypt", json={"plaintext": "Jane Doe", "aad": "ride_requests"}
    ).json()["envelope"]

    response = client.post(
        "/api/v1/crypto/decrypt", json={"envelope": envelope, "aad": "ride_requests"}
    )

    assert response.status_code == 200
    assert response.json()["plaintext"] == "Jane Doe"
    assert response.json()["message"] == "Successfully decrypted envelope."


def test_decrypt_wrong_aad_returns_400(client, crypto_service):
    """AAD mismatch is a client/data error, not a server fault."""
    envelope = crypto_service.encrypt("secret", aad="ride_requests")

    response = client.post(
        "/api/v1/crypto/decrypt", json={"envelope": envelope, "aad": "contact_forms"}
    )

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert "secret" not in response.text


def test_decrypt_tampered_envelope_returns_400(client, crypto_service):
    """Tampered ciphertext is rejected with 400."""
    parsed = Envelope.parse(crypto_service.encrypt("hello"))
    tampered = Envelope(
        version=parsed.version,
        kid=parsed.kid,
        iv=parsed.iv,
        tag=bytes(16),
        ciphertext=parsed.ciphertext,
    )

    response = client.post("/api/v1/crypto/decrypt", json={"envelope": str(tampered)})

    assert response.status_code == 400


@pytest.mark.parametrize("envelope", ["", "garbage", "v1:k1:a.b.c"])
def test_decrypt_malformed_envelope_returns_400(client, envelope):
    """Malformed envelopes are rejected with 400."""
    response = client.post("/api/v1/crypto/decrypt", json={"envelope": envelope})

    assert response.status_code == 400
    assert "Malformed envelope" in response.json()["error"]


def test_decrypt_unsupported_version_returns_400(client, crypto_service):
    """Envelopes from another version are rejected with 400."""
    envelope = "v2" + crypto_service.encrypt("hello")[2:]

    response = client.post("/api/v1/crypto/decrypt", json={"envelope": envelope})

    assert response.status_code == 400
    assert "Unsupported envelope version" in response.json()["error"]


def test_decrypt_unknown_kid_returns_400(client, crypto_service):
    """Envelopes under a kid outside the keyring are rejected with 400."""
    envelope = crypto_service.encrypt("hello").replace("v1:k1:", "v1:k9:", 1)

    response = client.post("/api/v1/crypto/decrypt", json={"envelope": envelope})

    assert response.status_code == 400
    assert "Unknown KID" in response.json()["error"]


def test_encrypt_without_required_aad_returns_400(strict_client):
    """Policy violations on encrypt are rejected with 400."""
    response = strict_client.post("/api/v1/crypto/encrypt", json={"plaintext": "x"})

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "AAD required by policy"}


def test_encrypt_unencodable_plaintext_returns_400(client):
    """A lone surrogate in plaintext is bad client data, not a server fault."""
    response = client.post(
        "/api/v1/crypto/encrypt",
        content=b'{"plaintext": "\\ud800"}',
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "plaintext is not valid UTF-8 text"}


def test_decrypt_unencodable_aad_returns_400(client, crypto_service):
    """A lone surrogate in the AAD on decrypt is rejected with 400."""
    envelope = crypto_service.encrypt("hello", aad="ride_requests")
    body = '{"envelope": "%s", "aad": "\\ud800"}' % envelope

    response = client.post(
        "/api/v1/crypto/decrypt",
        content=body.encode("ascii"),
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert "hello" not in response.text


def test_non_string_plaintext_returns_422(client):
    """Bodies with a non-string plaintext fail validation."""
    response = client.post("/api/v1/crypto/encrypt", json={"plaintext": 123})

    assert response.status_code == 422


def test_unexpected_encrypt_error_returns_500():
    """Errors outside the crypto taxonomy map to 500 without details."""
    broken = MagicMock(spec=EnvelopeCryptoService)
    broken.encrypt.side_effect = RuntimeError("RNG unavailable")
    app.dependency_overrides[get_crypto_service] = lambda: broken
    try:
        response = TestClient(app).post("/api/v1/crypto/encrypt", json={"plaintext": "x"})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "encryption failed"}


def test_unexpected_decrypt_error_returns_500():
    """Non-crypto decrypt failures map to 500."""
    broken = MagicMock(spec=EnvelopeCryptoService)
    broken.decrypt.side_effect = RuntimeError("boom")
    app.dependency_overrides[get_crypto_service] = lambda: broken
    try:
        response = TestClient(app).post("/api/v1/crypto/decrypt", json={"envelope": "x"})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json()["error"] == "decryption failed"


def test_route_health(client):
    """Router health check responds OK."""
    response = client.get("/api/v1/crypto/route/health")

    assert response.status_code == 200
    assert response.json()["status"] == "OK"


class TestApiKeyGuard:
    """Tests for the optional CRYPTO_API_KEY guard."""

    def test_missing_header_returns_403(self, client, monkeypatch: pytest.MonkeyPatch):
        """With CRYPTO_API_KEY set, requests without x-api-key are forbidden."""
        monkeypatch.setenv("CRYPTO_API_KEY", "test-api-key-123")

        response = client.post("/api/v1/crypto/encrypt", json={"plaintext": "x"})

        assert response.status_code == 403
        assert response.json()["detail"] == "Forbidden: Invalid API key"

    def test_wrong_header_returns_403(self, client, monkeypatch: pytest.MonkeyPatch):
        """A wrong x-api-key is forbidden."""
        monkeypatch.setenv("CRYPTO_API_KEY", "test-api-key-123")

        response = client.post(
            "/api/v1/crypto/decrypt",
            json={"envelope": "x"},
            headers={"x-api-key": "wrong"},
        )

        assert response.status_code == 403

    def test_matching_header_is_accepted(self, client, monkeypatch: pytest.MonkeyPatch):
        """The matching x-api-key passes the guard."""
        monkeypatch.setenv("CRYPTO_API_KEY", "test-api-key-123")

        response = client.post(
            "/api/v1/crypto/encrypt",
            json={"plaintext": "x"},
            headers={"x-api-key": "test-api-key-123"},
        )

        assert response.status_code == 200

    def test_route_health_is_open(self, client, monkeypatch: pytest.MonkeyPatch):
        """The router health check does not require the key."""
        monkeypatch.setenv("CRYPTO_API_KEY", "test-api-key-123")

        assert client.get("/api/v1/crypto/route/health").status_code == 200
