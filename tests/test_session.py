import json

import pytest

from opschat.session import create_session, extract_token, get_session, session_layer
from opschat.session.session_layer import session_key


@pytest.mark.parametrize(
    "header, expected",
    [
        ("Bearer abc123", "abc123"),
        ("bearer abc123", "abc123"),
        ("Basic abc123", None),
        ("Bearer", None),
        ("Bearer ", None),
        ("Bearer a b", None),
        ("", None),
        (None, None),
    ],
)
def test_extract_token(header, expected):
    assert extract_token(header) == expected


def test_session_round_trip(redis_store):
    create_session("tok", {"operator_id": "42", "username": "alice", "role": "Super Admin"})
    assert get_session("tok")["role"] == "Super Admin"
    assert get_session("other") is None
    assert session_key("tok") in redis_store.store


def test_create_session_requires_operator_id(redis_store):
    with pytest.raises(ValueError):
        create_session("tok", {"username": "alice"})


@pytest.mark.parametrize("raw", ["not json", json.dumps(["a"]), json.dumps({"username": "alice"})])
def test_malformed_payloads_read_as_no_session(redis_store, raw):
    redis_store.store[session_key("tok")] = raw
    assert get_session("tok") is None


def test_malformed_payload_is_401(client, redis_store):
    redis_store.store[session_key("tok")] = "not json"
    resp = client.get("/api/v1/chat/rooms", headers={"Authorization": "Bearer tok"})
    assert resp.status_code == 401
    assert resp.json()["detail"]["code"] == "SESSION_EXPIRED"


def test_health_does_not_touch_session_store(client, monkeypatch):
    monkeypatch.setattr(session_layer, "_redis_client", None)
    resp = client.get("/health", headers={"Authorization": "Bearer whatever"})
    assert resp.status_code == 200
