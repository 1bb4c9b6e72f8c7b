from __future__ import annotations

import logging
from typing import Any, Optional

from ..common.clock import Clock, SystemClock
from ..common.token_source import SecureTokenSource, TokenSource
from ..common.validators import require_identifier
from ..core.constants import SESSION_TOKEN_KIND, SESSION_TOKEN_TTL_MINUTES
from ..core.exceptions import CodecFailure, IssuanceFailure
from .codec import decode_claims, encode_claims
from .model import IssuedSessionToken, SessionClaims
from .renderer import ImageRenderer, QRCodePngRenderer

logger = logging.getLogger(__name__)


class SessionTokenService:
    """Issue and verify attendance-session QR tokens.

    Tokens are stateless: validity depends only on the payload, the clock and
    the school the caller expects. There is no revocation before expiry.
    """

    def __init__(
        self,
        *,
        clock: Clock | None = None,
        token_source: TokenSource | None = None,
        renderer: ImageRenderer | None = None,
        ttl_minutes: int = SESSION_TOKEN_TTL_MINUTES,
    ):
        self._clock = clock or SystemClock()
        self._tokens = token_source or SecureTokenSource()
        self._renderer = renderer or QRCodePngRenderer()
        self._ttl_millis = int(ttl_minutes) * 60 * 1000

    @property
    def ttl_millis(self) -> int:
        return self._ttl_millis

    def issue(self, session_id: Any, school_id: Any) -> IssuedSessionToken:
        session_id = require_identifier(session_id, "session_id")
        school_id = require_identifier(school_id, "school_id")

        try:
            claims = SessionClaims(
                token=self._tokens.new_token(),
                school_id=school_id,
                issued_at_millis=int(self._clock.now_millis()),
                session_id=session_id,
                kind=SESSION_TOKEN_KIND,
            )
            payload = encode_claims(claims)
            image = self._renderer.render(payload)
        except Exception as e:
            logger.exception("QR code generation failed for session %s", session_id)
            raise IssuanceFailure("Failed to generate QR code") from e

        logger.info("QR code generated for session %s", session_id)
        return IssuedSessionToken.build(
            claims=claims,
            encoded_payload=payload,
            rendered_image=image,
            ttl_millis=self._ttl_millis,
        )

    def verify(self, encoded_payload: str, expected_school_id: Any) -> Optional[SessionClaims]:
        try:
            claims = decode_claims(encoded_payload)
        except CodecFailure:
            logger.exception("QR code verification could not parse payload")
            raise

        if claims is None:
            logger.warning("Invalid QR code format")
            return None

        if expected_school_id is None or claims.school_id != str(expected_school_id):
            logger.warning("School ID mismatch in QR code")
            return None

        now = self._clock.now_millis()
        if now - claims.issued_at_millis > self._ttl_millis:
            logger.warning("QR code expired (session %s)", claims.session_id)
            return None

        logger.info("QR code verified for session %s", claims.session_id)
        return claims
