"""
Tests for the HTTP service.

Runs the FastAPI app in-process with TestClient over a MemoryStore.
"""

import pytest
from eth_account import Account
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from handlebook.api import caller_identity, create_app
from handlebook.client import build_claim_request
from handlebook.config import HandlebookConfig
from handlebook.store import MemoryStore

from .helpers import ALICE_KEY, BOB_KEY, BrokenClaimWriteStore, BrokenStore, break_checksum


def _client(store=None, **config_overrides) -> TestClient:
    config = HandlebookConfig(store="memory", **config_overrides)
    return TestClient(create_app(config=config, store=store or MemoryStore()))


@pytest.fixture
def client():
    return _client()


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_health_reports_unreachable_store():
    response = _client(store=BrokenStore()).get("/health")

    assert response.status_code == 503
    assert response.json()["status"] == "degraded"


def test_claim_and_lookup(client):
    alice = Account.from_key(ALICE_KEY)

    response = client.post("/api/v1/handles/claim", json=build_claim_request("Alice", ALICE_KEY))

    assert response.status_code == 200
    assert response.json() == {"success": True, "handle": "alice", "ownerAddress": alice.address}

    lookup = client.get("/api/v1/handles/@ALICE")
    assert lookup.status_code == 200
    assert lookup.headers["cache-control"] == "public, max-age=300"
    body = lookup.json()
    assert set(body) == {"handle", "ownerAddress", "claimedAt"}
    assert body["handle"] == "alice"
    assert body["ownerAddress"] == alice.address
    assert body["claimedAt"].endswith("Z")


def test_claim_accepts_legacy_field_names(client):
    body = build_claim_request("alice", ALICE_KEY)
    legacy = {
        "username": body["handle"],
        "walletAddress": body["ownerAddress"],
        "message": body["message"],
        "signature": body["signature"],
    }

    assert client.post("/api/v1/handles/claim", json=legacy).status_code == 200


def test_claim_conflict(client):
    client.post("/api/v1/handles/claim", json=build_claim_request("alice", ALICE_KEY))

    response = client.post("/api/v1/handles/claim", json=build_claim_request("alice", BOB_KEY))

    assert response.status_code == 409
    assert response.json() == {"error": "This username is unavailable", "code": "USERNAME_TAKEN"}


def test_claim_with_wrong_signer_is_unauthorized(client):
    body = build_claim_request("alice", ALICE_KEY)
    body["signature"] = build_claim_request("alice", BOB_KEY)["signature"]

    response = client.post("/api/v1/handles/claim", json=body)

    assert response.status_code == 401
    assert response.json()["code"] == "INVALID_SIGNATURE"


@pytest.mark.parametrize("field,value", [
    ("handle", "ab"),
    ("handle", "not valid!"),
    ("ownerAddress", "0x1234"),
    ("signature", "deadbeef"),
])
def test_claim_validation_errors(client, field, value):
    body = build_claim_request("alice", ALICE_KEY)
    body[field] = value

    response = client.post("/api/v1/handles/claim", json=body)

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"
    assert response.json()["details"]


def test_claim_missing_fields(client):
    response = client.post("/api/v1/handles/claim", json={"handle": "alice"})

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_claim_rate_limited_per_socket_peer_by_default():
    """Test that X-Forwarded-For is ignored unless proxies are trusted."""
    client = _client(claim_rate_limit=2)
    body = build_claim_request("alice", ALICE_KEY)
    body["signature"] = "0x1234"

    codes = [
        client.post("/api/v1/handles/claim", json=body, headers={"X-Forwarded-For": f"10.9.{i}.1"}).status_code
        for i in range(5)
    ]

    assert codes == [401, 401, 429, 429, 429]


def test_rotating_forwarded_prefix_does_not_reset_limit():
    """Test that only the entry appended by the trusted proxy identifies the caller."""
    client = _client(claim_rate_limit=2, trusted_proxies=1)
    body = build_claim_request("alice", ALICE_KEY)
    body["signature"] = "0x1234"

    codes = [
        client.post(
            "/api/v1/handles/claim", json=body,
            headers={"X-Forwarded-For": f"10.9.{i}.1, 203.0.113.7"}
        ).status_code
        for i in range(10)
    ]

    assert codes[:2] == [401, 401]
    assert set(codes[2:]) == {429}

    limited = client.post("/api/v1/handles/claim", json=body, headers={"X-Forwarded-For": "203.0.113.7"})
    assert limited.json()["code"] == "RATE_LIMIT_EXCEEDED"

    other = client.post("/api/v1/handles/claim", json=body, headers={"X-Forwarded-For": "10.9.0.1, 198.51.100.1"})
    assert other.status_code == 401


def test_malformed_claim_bodies_count_against_limit():
    client = _client(claim_rate_limit=2)

    for _ in range(2):
        assert client.post("/api/v1/handles/claim", json={"handle": "alice"}).status_code == 400

    response = client.post("/api/v1/handles/claim", json=build_claim_request("alice", ALICE_KEY))

    assert response.status_code == 429
    assert response.json()["code"] == "RATE_LIMIT_EXCEEDED"


def test_claim_with_bad_checksum_address_is_unauthorized(client):
    body = build_claim_request("alice", ALICE_KEY)
    body["ownerAddress"] = break_checksum(body["ownerAddress"])

    response = client.post("/api/v1/handles/claim", json=body)

    assert response.status_code == 401
    assert response.json()["code"] == "INVALID_SIGNATURE"
    assert client.get("/api/v1/handles/alice").status_code == 404


def test_claim_internal_error_is_opaque():
    response = _client(store=BrokenClaimWriteStore()).post(
        "/api/v1/handles/claim", json=build_claim_request("alice", ALICE_KEY)
    )

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error", "code": "INTERNAL_ERROR"}


def test_claim_with_store_down_fails_closed():
    response = _client(store=BrokenStore()).post(
        "/api/v1/handles/claim", json=build_claim_request("alice", ALICE_KEY)
    )

    assert response.status_code == 429


def test_lookup_not_found(client):
    response = client.get("/api/v1/handles/nobody")

    assert response.status_code == 404
    assert response.json()["code"] == "USERNAME_NOT_FOUND"


def test_lookup_query_form(client):
    client.post("/api/v1/handles/claim", json=build_claim_request("alice", ALICE_KEY))

    assert client.get("/api/v1/handles", params={"username": "@alice"}).status_code == 200
    missing = client.get("/api/v1/handles")
    assert missing.status_code == 400
    assert missing.json()["code"] == "MISSING_USERNAME"


def test_lookup_store_failure_is_500():
    response = _client(store=BrokenStore()).get("/api/v1/handles/alice")

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error", "code": "INTERNAL_ERROR"}


def test_availability(client):
    assert client.get("/api/v1/handles/alice/availability").json() == {
        "handle": "alice", "available": True, "suggestions": []
    }

    client.post("/api/v1/handles/claim", json=build_claim_request("alice", ALICE_KEY))

    taken = client.get("/api/v1/handles/@Alice/availability").json()
    assert taken["available"] is False
    assert taken["suggestions"] == ["alice2", "alice_creator", "alicewrites"]

    assert client.get("/api/v1/handles/ab/availability").status_code == 400


def test_address_handles(client):
    alice = Account.from_key(ALICE_KEY)
    client.post("/api/v1/handles/claim", json=build_claim_request("alice", ALICE_KEY))
    client.post("/api/v1/handles/claim", json=build_claim_request("alice_tips", ALICE_KEY))

    response = client.get(f"/api/v1/addresses/{alice.address.lower()}/handles")

    assert response.status_code == 200
    assert response.json() == {"ownerAddress": alice.address, "handles": ["alice", "alice_tips"]}

    assert client.get("/api/v1/addresses/0x1234/handles").status_code == 400
    assert client.get(f"/api/v1/addresses/{break_checksum(alice.address)}/handles").status_code == 400


def test_lifespan_creates_store_from_config():
    app = create_app(config=HandlebookConfig(store="memory"))

    with TestClient(app) as client:
        assert client.get("/health").status_code == 200
        assert isinstance(app.state.service.store, MemoryStore)


@pytest.mark.parametrize("trusted_proxies,forwarded,expected", [
    (0, "198.51.100.1", "testclient"),
    (1, "198.51.100.1", "198.51.100.1"),
    (1, "10.9.0.1, 198.51.100.1", "198.51.100.1"),
    (2, "10.9.0.1, 198.51.100.1, 10.0.0.2", "198.51.100.1"),
    (2, "198.51.100.1", "testclient"),
    (1, None, "testclient"),
])
def test_caller_identity(trusted_proxies, forwarded, expected):
    seen = []
    app = FastAPI()

    @app.get("/whoami")
    def whoami(request: Request):
        seen.append(caller_identity(request, trusted_proxies))
        return {}

    headers = {"X-Forwarded-For": forwarded} if forwarded else {}
    TestClient(app).get("/whoami", headers=headers)

    assert seen == [expected]
