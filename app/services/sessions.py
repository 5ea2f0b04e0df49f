"""Refresh-token sessions: issue, refresh, revoke and purge."""

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from app.core.errors import InvalidSessionError
from app.core.security import create_access_token, generate_opaque_token, hash_token
from app.domain.entities import SessionRecord
from app.domain.repositories import SessionRepository

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class SessionTokens:
    """Access token plus the refresh token it was issued with."""

    access_token: str
    refresh_token: str
    expires_at: datetime


class SessionManager:
    """
    Issues one access token alongside every refresh-token session.

    The raw refresh token is returned to the caller once and never persisted;
    lookups hash the presented token.
    """

    def __init__(
        self,
        sessions: SessionRepository,
        settings: "Settings",
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._sessions = sessions
        self._settings = settings
        self._clock = clock

    def create_session(
        self,
        user_id: str,
        user_agent: str | None = None,
        ip_address: str | None = None,
    ) -> SessionTokens:
        refresh_token = generate_opaque_token()
        expires_at = self._clock() + timedelta(hours=self._settings.REFRESH_TOKEN_EXPIRE_HOURS)
        self._sessions.add(
            SessionRecord(
                id=str(uuid.uuid4()),
                user_id=user_id,
                token_hash=hash_token(refresh_token),
                expires_at=expires_at,
                user_agent=user_agent,
                ip_address=ip_address,
            )
        )
        return SessionTokens(
            access_token=create_access_token(user_id),
            refresh_token=refresh_token,
            expires_at=expires_at,
        )

    def refresh_access_token(self, refresh_token: str) -> SessionTokens:
        """Mint a new access token from an active session. The refresh token is not rotated."""
        session = self._sessions.get_by_token_hash(hash_token(refresh_token))
        if session is None or not session.is_active(self._clock()):
            raise InvalidSessionError()
        return SessionTokens(
            access_token=create_access_token(session.user_id),
            refresh_token=refresh_token,
            expires_at=session.expires_at,
        )

    def revoke_session(self, refresh_token: str) -> None:
        """Revoke the matching session; silently does nothing when there is none."""
        self._sessions.revoke_by_token_hash(hash_token(refresh_token))

    def revoke_all_sessions(self, user_id: str) -> int:
        count = self._sessions.revoke_all_for_user(user_id)
        if count:
            logger.info("Revoked %s session(s) for user_id=%s", count, user_id)
        return count

    def purge_expired(self) -> int:
        """Delete sessions past expires_at. Idempotent: safe to run repeatedly."""
        now = self._clock()
        deleted = self._sessions.delete_expired(now)
        if deleted > 0:
            logger.info("Session purge: cutoff=%s, sessions_deleted=%s", now.isoformat(), deleted)
        return deleted
