from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

import pytest

from school_platform.common.clock import FixedClock
from school_platform.core.exceptions import CodecFailure, IssuanceFailure, ValidationError
from school_platform.qrcodes.service import SessionTokenService

FIFTEEN_MINUTES = 15 * 60 * 1000


class StubRenderer:
    def __init__(self):
        self.payloads: list[str] = []

    def render(self, payload: str) -> bytes:
        self.payloads.append(payload)
        return b"\x89PNG-stub"


class BrokenRenderer:
    def render(self, payload: str) -> bytes:
        raise RuntimeError("rendering backend down")


class BrokenTokenSource:
    def new_token(self) -> str:
        raise OSError("no entropy")


def make_service(clock: FixedClock | None = None, renderer=None) -> SessionTokenService:
    return SessionTokenService(clock=clock or FixedClock(0), renderer=renderer or StubRenderer())


def test_issue_then_verify_round_trip():
    svc = make_service()
    issued = svc.issue("S1", "SCH1")

    claims = svc.verify(issued.encoded_payload, "SCH1")

    assert claims is not None
    assert claims.session_id == "S1"
    assert claims.school_id == "SCH1"
    assert claims.token == issued.token
    assert claims.issued_at_millis == 0
    assert claims.kind == "attendance_session"


def test_issue_payload_and_expiry():
    renderer = StubRenderer()
    clock = FixedClock(1_700_000_000_000)
    svc = make_service(clock, renderer)

    issued = svc.issue("S1", "SCH1")

    data = json.loads(issued.encoded_payload)
    assert data == {
        "token": issued.token,
        "sessionId": "S1",
        "schoolId": "SCH1",
        "timestamp": 1_700_000_000_000,
        "type": "attendance_session",
    }
    assert renderer.payloads == [issued.encoded_payload]
    assert issued.rendered_image == b"\x89PNG-stub"
    assert issued.expires_at == datetime.fromtimestamp((1_700_000_000_000 + FIFTEEN_MINUTES) / 1000, tz=timezone.utc)
    assert issued.image_data_url.startswith("data:image/png;base64,")


def test_tenant_isolation():
    svc = make_service()
    issued = svc.issue("S1", "A")

    assert svc.verify(issued.encoded_payload, "B") is None
    assert svc.verify(issued.encoded_payload, "a") is None
    assert svc.verify(issued.encoded_payload, None) is None


def test_expiry_boundary():
    clock = FixedClock(0)
    svc = make_service(clock)
    issued = svc.issue("S1", "SCH1")

    clock.millis = FIFTEEN_MINUTES - 1
    assert svc.verify(issued.encoded_payload, "SCH1") is not None

    clock.millis = FIFTEEN_MINUTES
    assert svc.verify(issued.encoded_payload, "SCH1") is not None

    clock.millis = FIFTEEN_MINUTES + 1
    assert svc.verify(issued.encoded_payload, "SCH1") is None


def test_scenario_accept_then_expire_then_wrong_school():
    clock = FixedClock(0)
    svc = make_service(clock)
    issued = svc.issue("S1", "SCH1")

    clock.millis = 600_000
    claims = svc.verify(issued.encoded_payload, "SCH1")
    assert claims is not None
    assert claims.session_id == "S1"

    assert svc.verify(issued.encoded_payload, "SCH2") is None

    clock.millis = 1_000_000
    assert svc.verify(issued.encoded_payload, "SCH1") is None


@pytest.mark.parametrize(
    "payload",
    [
        "not json garbage",
        "",
        "[1, 2, 3]",
        "null",
        '{"schoolId": "SCH1", "timestamp": 0}',
        '{"token": "t", "timestamp": 0}',
        '{"token": "t", "schoolId": "SCH1"}',
        '{"token": "t", "schoolId": "SCH1", "timestamp": "0"}',
        '{"token": "t", "schoolId": "SCH1", "timestamp": true}',
        '{"token": "", "schoolId": "SCH1", "timestamp": 0}',
        '{"token": "t", "schoolId": "SCH1", "timestamp": 0, "type": "library_card"}',
        "[" * 2900,
        "[" * 100_000,
        '{"a":' * 5000,
    ],
)
def test_malformed_payloads_are_rejected_without_raising(payload):
    svc = make_service()
    assert svc.verify(payload, "SCH1") is None


def test_rejections_are_logged_as_warnings(caplog):
    svc = make_service()
    with caplog.at_level(logging.WARNING, logger="school_platform.qrcodes.service"):
        assert svc.verify("not json garbage", "SCH1") is None

    assert any(r.levelno == logging.WARNING for r in caplog.records)


def test_non_text_payload_is_a_codec_failure():
    svc = make_service()
    with pytest.raises(CodecFailure):
        svc.verify(12345, "SCH1")


def test_tokens_are_unique():
    svc = make_service()
    tokens = {svc.issue("S1", "SCH1").token for _ in range(10_000)}
    assert len(tokens) == 10_000


def test_issue_requires_identifiers():
    svc = make_service()
    with pytest.raises(ValidationError):
        svc.issue("", "SCH1")
    with pytest.raises(ValidationError):
        svc.issue("S1", "   ")


def test_rendering_failure_raises_issuance_failure():
    svc = make_service(renderer=BrokenRenderer())
    with pytest.raises(IssuanceFailure) as exc_info:
        svc.issue("S1", "SCH1")
    assert isinstance(exc_info.value.__cause__, RuntimeError)


def test_random_source_failure_raises_issuance_failure():
    svc = SessionTokenService(clock=FixedClock(0), token_source=BrokenTokenSource(), renderer=StubRenderer())
    with pytest.raises(IssuanceFailure):
        svc.issue("S1", "SCH1")


def test_custom_ttl():
    clock = FixedClock(0)
    svc = SessionTokenService(clock=clock, renderer=StubRenderer(), ttl_minutes=1)
    issued = svc.issue("S1", "SCH1")

    clock.millis = 60_001
    assert svc.verify(issued.encoded_payload, "SCH1") is None


@pytest.mark.parametrize("session_id, school_id", [(" S1 ", "SCH1 "), ("S1\t", "  SCH1"), ("s-1", "école-7")])
def test_round_trip_keeps_identifiers_verbatim(session_id, school_id):
    svc = make_service()
    issued = svc.issue(session_id, school_id)

    claims = svc.verify(issued.encoded_payload, school_id)

    assert claims is not None
    assert claims.session_id == session_id
    assert claims.school_id == school_id
    assert issued.session_id == session_id
