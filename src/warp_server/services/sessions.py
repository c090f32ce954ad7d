"""Session token issuance, resolution and revocation."""

import asyncio
import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol

from warp_server.domain.errors import (
    DatabaseError,
    DuplicateSessionToken,
    InvalidCredentials,
    InvalidSessionToken,
)
from warp_server.domain.models import Pointer, RequestMetadata, UserRecord
from warp_server.domain.sessions import SessionRecord
from warp_server.services.authorization import AuthorizationGuard, Operation
from warp_server.services.passwords import DUMMY_PASSWORD_HASH, verify_password

_logger = logging.getLogger(__name__)

FAR_FUTURE = datetime(9999, 12, 31, 23, 59, 59, tzinfo=UTC)

RevocationPolicy = Callable[[datetime], datetime]


class IdentityRepository(Protocol):
    """Lookup interface for identities that can log in."""

    async def find_by_identifier(self, identifier: str) -> list[UserRecord]:
        """Return users whose username or email equals ``identifier``."""

    async def get_by_id(self, user_id: int) -> UserRecord | None:
        """Return a user by id, if present."""


class SessionRepository(Protocol):
    """Persistence interface for login sessions."""

    async def create_session(
        self,
        user: Pointer,
        origin: str | None,
        session_token: str,
        revoked_at: datetime,
    ) -> SessionRecord:
        """Persist a session; raise DuplicateSessionToken if the token exists."""

    async def get_by_token(
        self, session_token: str, active_at: datetime | None = None
    ) -> SessionRecord | None:
        """Return the session for a token, optionally only if active at a time."""

    async def delete_session(self, session_id: int) -> None:
        """Delete a session."""


def fixed_ttl(ttl: timedelta) -> RevocationPolicy:
    """Revoke sessions a fixed duration after they are issued."""

    def policy(now: datetime) -> datetime:
        return now + ttl

    return policy


def non_expiring(now: datetime) -> datetime:
    """Keep sessions valid until they are destroyed."""
    return FAR_FUTURE


def revocation_policy_for(duration_days: int) -> RevocationPolicy:
    """Return the policy for a configured session duration in days."""
    if duration_days <= 0:
        return non_expiring
    return fixed_ttl(timedelta(days=duration_days))


def generate_session_token() -> str:
    """Return an opaque 256-bit session token."""
    return secrets.token_urlsafe(32)


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class SessionService:
    """Issues, resolves and revokes session tokens."""

    identity_repository: IdentityRepository
    session_repository: SessionRepository
    guard: AuthorizationGuard
    revocation_policy: RevocationPolicy = non_expiring
    token_generator: Callable[[], str] = generate_session_token
    clock: Callable[[], datetime] = utc_now
    token_attempts: int = 5

    async def authenticate(self, identifier: str, password: str) -> UserRecord:
        """Return the single user matching the identifier and password."""
        candidates = await self.identity_repository.find_by_identifier(identifier)
        unique = {user.id: user for user in candidates}
        user = next(iter(unique.values())) if len(unique) == 1 else None
        password_hash = user.password_hash if user else DUMMY_PASSWORD_HASH
        verified = await asyncio.to_thread(verify_password, password, password_hash)
        if user is None or not verified:
            raise InvalidCredentials()
        return user

    def create_token(self, user: UserRecord) -> str:
        """Generate a fresh token for a user."""
        _logger.debug("Generating session token for user=%s", user.id)
        return self.token_generator()

    async def issue_session(
        self, user: UserRecord, origin: str | None
    ) -> SessionRecord:
        """Persist a new session for the user, retrying on token collisions."""
        revoked_at = self.revocation_policy(self.clock())
        for attempt in range(1, self.token_attempts + 1):
            try:
                return await self.session_repository.create_session(
                    user=user.to_pointer(),
                    origin=origin,
                    session_token=self.create_token(user),
                    revoked_at=revoked_at,
                )
            except DuplicateSessionToken:
                _logger.warning(
                    "Session token collision: user=%s attempt=%s", user.id, attempt
                )
        raise DatabaseError("Could not generate a unique session token")

    async def resolve_token(self, session_token: str | None) -> SessionRecord | None:
        """Return the active session for a token, or None."""
        if not session_token:
            return None
        now = self.clock()
        session = await self.session_repository.get_by_token(
            session_token, active_at=now
        )
        if session is None or not session.is_active(now):
            return None
        return session

    async def resolve_user(self, session_token: str | None) -> UserRecord | None:
        """Return the user owning an active session token, or None."""
        session = await self.resolve_token(session_token)
        if session is None:
            return None
        return await self.identity_repository.get_by_id(session.user.id)

    async def destroy_session(self, session_token: str | None) -> SessionRecord:
        """Delete the active session for a token."""
        session = await self.resolve_token(session_token)
        if session is None:
            raise InvalidSessionToken()
        await self.session_repository.delete_session(session.id)
        return session

    async def log_in(
        self,
        metadata: RequestMetadata,
        current_user: UserRecord | None,
        identifier: str,
        password: str,
    ) -> SessionRecord:
        """Authenticate a user and issue a session for the request origin."""
        self.guard.authorize(
            Operation.LOG_IN, metadata=metadata, actor=current_user
        ).raise_for_denial()
        user = await self.authenticate(identifier, password)
        session = await self.issue_session(user, metadata.client)
        _logger.info("User logged in: user=%s session=%s", user.id, session.id)
        return session

    async def log_out(self, session_token: str | None) -> SessionRecord:
        """Revoke a session by deleting it."""
        session = await self.destroy_session(session_token)
        _logger.info("User logged out: user=%s session=%s", session.user.id, session.id)
        return session
