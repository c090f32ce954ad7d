"""Domain models for Warp users and generic classes."""

from dataclasses import dataclass, field
from datetime import datetime

USER_CLASS = "user"
SESSION_CLASS = "session"
USER_TABLE = "users"
SESSION_TABLE = "sessions"
# Class names that would alias the auth tables.
RESERVED_CLASSES = frozenset({USER_CLASS, SESSION_CLASS, USER_TABLE, SESSION_TABLE})


@dataclass(frozen=True)
class Pointer:
    """Lightweight reference to a record of another class."""

    class_name: str
    id: int

    def to_dict(self) -> dict[str, object]:
        """Return the wire representation of the pointer."""
        return {"type": "pointer", "class_name": self.class_name, "id": self.id}


@dataclass(frozen=True)
class UserRecord:
    """Represents a user stored in the database."""

    id: int
    username: str
    email: str | None
    password_hash: str = field(repr=False)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_pointer(self) -> Pointer:
        return Pointer(class_name=USER_CLASS, id=self.id)

    def value(self, key: str) -> object:
        """Return a public attribute by name."""
        return self.to_public_dict().get(key)

    def to_public_dict(self, select: tuple[str, ...] = ()) -> dict[str, object]:
        """Serialize the user without its password hash."""
        data: dict[str, object] = {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "created_at": _isoformat(self.created_at),
            "updated_at": _isoformat(self.updated_at),
        }
        if not select:
            return data
        return {
            key: value for key, value in data.items() if key == "id" or key in select
        }


@dataclass(frozen=True)
class ModelRecord:
    """Represents a record of a generic, schema-defined class."""

    class_name: str
    id: int
    keys: dict[str, object]
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_pointer(self) -> Pointer:
        return Pointer(class_name=self.class_name, id=self.id)

    def value(self, key: str) -> object:
        if key == "id":
            return self.id
        if key == "created_at":
            return _isoformat(self.created_at)
        if key == "updated_at":
            return _isoformat(self.updated_at)
        value = self.keys.get(key)
        if isinstance(value, Pointer):
            return value.id
        return value

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {"id": self.id}
        for key, value in self.keys.items():
            data[key] = value.to_dict() if isinstance(value, Pointer) else value
        data["created_at"] = _isoformat(self.created_at)
        data["updated_at"] = _isoformat(self.updated_at)
        return data


@dataclass(frozen=True)
class RequestMetadata:
    """Per-request facts derived from the transport."""

    is_master: bool = False
    client: str | None = None
    sdk_version: str | None = None


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None
