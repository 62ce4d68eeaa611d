"""Tests for the audit ledger and requester fingerprint helpers."""

import uuid

import jwt
import pytest
from starlette.requests import Request

from carecircle.core.config import settings
from carecircle.core.security import create_session_token, decode_session_token, hash_value
from carecircle.db.enums import AuditEventType, AuditObjectType
from carecircle.services import audit_service


def _request(headers: dict[str, str] | None = None, client=("198.51.100.7", 5000)) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


# =============================================================================
# Unit Tests (no DB required)
# =============================================================================

def test_canonical_json_sorted():
    assert audit_service.canonical_json({"b": 2, "a": 1}) == '{"a":1,"b":2}'


def test_canonical_json_handles_none():
    assert audit_service.canonical_json(None) == "{}"


def test_json_document_stringifies_uuids():
    value = uuid.uuid4()
    assert audit_service.json_document({"id": value}) == {"id": str(value)}


def test_hash_value():
    digest = hash_value("203.0.113.9")
    assert len(digest) == 64
    assert digest != "203.0.113.9"
    assert hash_value("") is None
    assert hash_value(None) is None


def test_client_ip_ignores_forwarded_header_by_default(monkeypatch):
    monkeypatch.setattr(settings, "TRUST_PROXY_HEADERS", False)
    request = _request({"X-Forwarded-For": "203.0.113.9, 10.0.0.1"})
    assert audit_service.get_client_ip(request) == "198.51.100.7"


def test_client_ip_uses_first_forwarded_hop_behind_proxy(monkeypatch):
    monkeypatch.setattr(settings, "TRUST_PROXY_HEADERS", True)
    request = _request({"X-Forwarded-For": "203.0.113.9, 10.0.0.1"})
    assert audit_service.get_client_ip(request) == "203.0.113.9"


def test_user_agent_truncated():
    request = _request({"User-Agent": "x" * 900})
    assert len(audit_service.get_user_agent(request)) == 500
    assert audit_service.get_user_agent(None) is None


def test_session_token_round_trip():
    user_id = uuid.uuid4()
    payload = decode_session_token(create_session_token(user_id))
    assert payload["sub"] == str(user_id)


def test_session_token_accepts_previous_secret(monkeypatch):
    user_id = uuid.uuid4()
    old_token = create_session_token(user_id)

    monkeypatch.setattr(settings, "JWT_SECRET_PREVIOUS", settings.JWT_SECRET)
    monkeypatch.setattr(settings, "JWT_SECRET", "rotated-secret")

    assert decode_session_token(old_token)["sub"] == str(user_id)


def test_session_token_rejects_unknown_secret():
    token = jwt.encode({"sub": str(uuid.uuid4())}, "someone-else", algorithm="HS256")
    with pytest.raises(jwt.InvalidTokenError):
        decode_session_token(token)


# =============================================================================
# Ledger
# =============================================================================

def test_record_appends_event(db, ctx):
    object_id = uuid.uuid4()

    event = audit_service.record(
        db,
        circle_id=ctx.circle_id,
        actor_user_id=ctx.owner_id,
        event_type=AuditEventType.HANDOFF_REVISED,
        object_type=AuditObjectType.HANDOFF,
        object_id=object_id,
        metadata={"revision": 3},
    )
    db.commit()

    assert event.event_type == "HANDOFF_REVISED"
    assert event.object_type == "handoff"
    assert event.metadata_json == {"revision": 3}
    assert event.created_at is not None


def test_record_accepts_open_event_types(db, ctx):
    event = audit_service.record(
        db, ctx.circle_id, ctx.owner_id, "EXPORT_DOWNLOADED", "export"
    )
    assert event.event_type == "EXPORT_DOWNLOADED"
    assert event.metadata_json == {}


def test_list_events_filters(db, ctx):
    target = uuid.uuid4()
    audit_service.record(db, ctx.circle_id, ctx.owner_id, AuditEventType.HANDOFF_PUBLISHED, AuditObjectType.HANDOFF, target)
    audit_service.record(db, ctx.circle_id, ctx.owner_id, AuditEventType.HANDOFF_REVISED, AuditObjectType.HANDOFF, target)
    audit_service.record(db, ctx.circle_id, ctx.owner_id, AuditEventType.HANDOFF_REVISED, AuditObjectType.HANDOFF, uuid.uuid4())
    db.commit()

    assert len(audit_service.list_events(db, ctx.circle_id, object_id=target)) == 2
    assert len(audit_service.list_events(db, ctx.circle_id, event_type=AuditEventType.HANDOFF_REVISED)) == 2
    assert len(audit_service.list_events(db, ctx.circle_id, limit=1)) == 1
