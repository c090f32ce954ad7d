"""Supabase-backed session repository."""

from dataclasses import dataclass
from datetime import datetime

from supabase import AsyncClient, PostgrestAPIError

from warp_server.adapters.supabase_queries import (
    UNIQUE_VIOLATION,
    execute,
    parse_timestamp,
    table_name,
)
from warp_server.domain.errors import DatabaseError, DuplicateSessionToken
from warp_server.domain.models import SESSION_CLASS, USER_CLASS, Pointer
from warp_server.domain.sessions import SessionRecord
from warp_server.services.sessions import SessionRepository

_TABLE = table_name(SESSION_CLASS)
_COLUMNS = "id, user_id, origin, session_token, revoked_at, created_at"


@dataclass
class SupabaseSessionRepository(SessionRepository):
    """Supabase implementation for login sessions."""

    client: AsyncClient

    async def create_session(
        self,
        user: Pointer,
        origin: str | None,
        session_token: str,
        revoked_at: datetime,
    ) -> SessionRecord:
        """Create a session row and return it."""
        request = self.client.table(_TABLE).insert(
            {
                "user_id": user.id,
                "origin": origin,
                "session_token": session_token,
                "revoked_at": revoked_at.isoformat(),
            }
        )
        try:
            response = await request.execute()
        except PostgrestAPIError as err:
            if err.code == UNIQUE_VIOLATION:
                raise DuplicateSessionToken(session_token) from err
            raise DatabaseError(err.message or "Failed to create session") from err
        if not response.data:
            raise DatabaseError("Failed to create session")
        return _to_session(response.data[0])

    async def get_by_token(
        self, session_token: str, active_at: datetime | None = None
    ) -> SessionRecord | None:
        """Return the session for a token, optionally only if still active."""
        request = (
            self.client.table(_TABLE)
            .select(_COLUMNS)
            .eq("session_token", session_token)
        )
        if active_at is not None:
            request = request.gt("revoked_at", active_at.isoformat())
        response = await execute(request.limit(1))
        if not response.data:
            return None
        return _to_session(response.data[0])

    async def delete_session(self, session_id: int) -> None:
        """Delete a session row."""
        await execute(self.client.table(_TABLE).delete().eq("id", session_id))


def _to_session(row: dict[str, object]) -> SessionRecord:
    revoked_at = parse_timestamp(row["revoked_at"])
    if revoked_at is None:
        raise DatabaseError("Session row is missing its revocation date")
    user_id = int(row["user_id"])  # type: ignore[call-overload]
    return SessionRecord(
        id=int(row["id"]),  # type: ignore[call-overload]
        user=Pointer(class_name=USER_CLASS, id=user_id),
        origin=row.get("origin"),  # type: ignore[arg-type]
        session_token=str(row["session_token"]),
        revoked_at=revoked_at,
        created_at=parse_timestamp(row.get("created_at")),
    )
