"""Supabase-backed user repository."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import AsyncClient

from warp_server.adapters.supabase_queries import (
    apply_query,
    execute,
    parse_timestamp,
    table_name,
)
from warp_server.domain.errors import DatabaseError
from warp_server.domain.models import USER_CLASS, UserRecord
from warp_server.domain.queries import QueryDescriptor
from warp_server.services.users import UserRepository

_TABLE = table_name(USER_CLASS)
_COLUMNS = "id, username, email, password_hash, created_at, updated_at"


@dataclass
class SupabaseUserRepository(UserRepository):
    """Supabase implementation for user persistence."""

    client: AsyncClient

    async def find(self, query: QueryDescriptor) -> list[UserRecord]:
        """Return users matching a query."""
        builder = self.client.table(_TABLE).select(_COLUMNS)
        response = await execute(apply_query(builder, query))
        return [_to_user(row) for row in response.data or []]

    async def get_by_id(self, user_id: int) -> UserRecord | None:
        """Return a user by id, if present."""
        response = await execute(
            self.client.table(_TABLE).select(_COLUMNS).eq("id", user_id).limit(1)
        )
        if not response.data:
            return None
        return _to_user(response.data[0])

    async def find_by_identifier(self, identifier: str) -> list[UserRecord]:
        """Return users whose username or email equals the identifier."""
        users: dict[int, UserRecord] = {}
        for column in ("username", "email"):
            response = await execute(
                self.client.table(_TABLE)
                .select(_COLUMNS)
                .eq(column, identifier)
                .limit(2)
            )
            for row in response.data or []:
                user = _to_user(row)
                users[user.id] = user
        return list(users.values())

    async def create_user(
        self, username: str, email: str | None, password_hash: str
    ) -> UserRecord:
        """Create a new user row and return it."""
        response = await execute(
            self.client.table(_TABLE).insert(
                {
                    "username": username,
                    "email": email,
                    "password_hash": password_hash,
                }
            )
        )
        if not response.data:
            raise DatabaseError("Failed to create user")
        return _to_user(response.data[0])

    async def update_user(
        self, user_id: int, changes: dict[str, object]
    ) -> UserRecord | None:
        """Update a user row and return it, if it exists."""
        payload = {**changes, "updated_at": datetime.now(tz=UTC).isoformat()}
        response = await execute(
            self.client.table(_TABLE).update(payload).eq("id", user_id)
        )
        if not response.data:
            return None
        return _to_user(response.data[0])

    async def destroy_user(self, user_id: int) -> UserRecord | None:
        """Delete a user row and return it, if it existed."""
        response = await execute(
            self.client.table(_TABLE).delete().eq("id", user_id)
        )
        if not response.data:
            return None
        return _to_user(response.data[0])


def _to_user(row: dict[str, object]) -> UserRecord:
    return UserRecord(
        id=int(row["id"]),  # type: ignore[call-overload]
        username=str(row["username"]),
        email=row.get("email"),  # type: ignore[arg-type]
        password_hash=str(row.get("password_hash") or ""),
        created_at=parse_timestamp(row.get("created_at")),
        updated_at=parse_timestamp(row.get("updated_at")),
    )
