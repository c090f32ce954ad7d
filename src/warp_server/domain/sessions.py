"""Domain models for login sessions."""

from dataclasses import dataclass
from datetime import datetime

from warp_server.domain.models import Pointer


@dataclass(frozen=True)
class SessionRecord:
    """Represents a persisted login session."""

    id: int
    user: Pointer
    origin: str | None
    session_token: str
    revoked_at: datetime
    created_at: datetime | None = None

    def is_active(self, now: datetime) -> bool:
        """Return whether the token is still valid at ``now``."""
        return now < self.revoked_at

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "user": self.user.to_dict(),
            "origin": self.origin,
            "session_token": self.session_token,
            "revoked_at": self.revoked_at.isoformat(),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
