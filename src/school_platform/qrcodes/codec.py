"""Wire format for attendance-session QR payloads.

The payload is a compact JSON object with sorted keys::

    {"schoolId":"...","sessionId":"...","timestamp":1700000000000,"token":"...","type":"attendance_session"}

``decode_claims`` treats the payload as untrusted scanner input: anything that
is not a well-formed object of the expected shape decodes to ``None``.
"""

from __future__ import annotations

import json
from typing import Any, Optional

from ..core.constants import SESSION_TOKEN_KIND
from ..core.exceptions import CodecFailure
from .model import SessionClaims


def encode_claims(claims: SessionClaims) -> str:
    try:
        return json.dumps(claims.to_dict(), sort_keys=True, separators=(",", ":"), allow_nan=False)
    except (TypeError, ValueError) as e:
        raise CodecFailure(f"Cannot serialize session claims: {e}") from e


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value)


def decode_claims(payload: str) -> Optional[SessionClaims]:
    """Parse and shape-check a scanned payload.

    Raises ``CodecFailure`` only when the payload is not text at all.
    """
    if isinstance(payload, (bytes, bytearray)):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError:
            return None
    if not isinstance(payload, str):
        raise CodecFailure(f"Cannot parse payload of type {type(payload).__name__}")

    try:
        data = json.loads(payload)
    # RecursionError: deeply nested arrays/objects fit in a single QR code
    except (ValueError, RecursionError):
        return None
    if not isinstance(data, dict):
        return None

    token = data.get("token")
    school_id = data.get("schoolId")
    issued_at = data.get("timestamp")
    if not _non_empty_str(token) or not _non_empty_str(school_id) or not _is_int(issued_at):
        return None

    session_id = data.get("sessionId")
    if session_id is not None and not isinstance(session_id, str):
        return None

    kind = data.get("type", SESSION_TOKEN_KIND)
    if kind != SESSION_TOKEN_KIND:
        return None

    return SessionClaims(
        token=token,
        school_id=school_id,
        issued_at_millis=issued_at,
        session_id=session_id,
        kind=kind,
    )
