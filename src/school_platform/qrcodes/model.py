from __future__ import annotations

import base64
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import millis_to_datetime
from ..core.constants import SESSION_TOKEN_KIND


@dataclass(frozen=True)
class SessionClaims:
    """Fields carried inside an attendance-session QR code.

    Never persisted: rebuilt from the scanned payload on every verification.
    """

    token: str
    school_id: str
    issued_at_millis: int
    session_id: Optional[str] = None
    kind: str = SESSION_TOKEN_KIND

    def expires_at_millis(self, ttl_millis: int) -> int:
        return self.issued_at_millis + ttl_millis

    def to_dict(self) -> dict:
        return {
            "token": self.token,
            "sessionId": self.session_id,
            "schoolId": self.school_id,
            "timestamp": self.issued_at_millis,
            "type": self.kind,
        }


@dataclass(frozen=True)
class IssuedSessionToken:
    """Result of issuing a session token: payload, PNG bytes and expiry."""

    encoded_payload: str
    rendered_image: bytes
    token: str
    session_id: str
    issued_at_millis: int
    expires_at: datetime

    @classmethod
    def build(cls, *, claims: SessionClaims, encoded_payload: str, rendered_image: bytes, ttl_millis: int) -> "IssuedSessionToken":
        return cls(
            encoded_payload=encoded_payload,
            rendered_image=rendered_image,
            token=claims.token,
            session_id=str(claims.session_id),
            issued_at_millis=claims.issued_at_millis,
            expires_at=millis_to_datetime(claims.expires_at_millis(ttl_millis)),
        )

    @property
    def image_data_url(self) -> str:
        encoded = base64.b64encode(self.rendered_image).decode("ascii")
        return f"data:image/png;base64,{encoded}"

    def to_dict(self) -> dict:
        return {
            "qrImage": self.image_data_url,
            "token": self.token,
            "sessionId": self.session_id,
            "expiresAt": self.expires_at.isoformat(),
            "rawData": self.encoded_payload,
        }
