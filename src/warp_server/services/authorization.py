"""Authorization rules for user and class operations."""

import logging
from dataclasses import dataclass
from enum import StrEnum

from warp_server.domain.errors import ForbiddenOperation, InvalidSessionToken, WarpError
from warp_server.domain.models import USER_CLASS, RequestMetadata, UserRecord

_logger = logging.getLogger(__name__)


class Operation(StrEnum):
    """Operations subject to authorization."""

    FIND = "find"
    GET = "get"
    CREATE = "create"
    UPDATE = "update"
    DESTROY = "destroy"
    LOG_IN = "log_in"
    LOG_OUT = "log_out"
    ME = "me"


@dataclass(frozen=True)
class Decision:
    """Outcome of an authorization check."""

    allowed: bool
    error: WarpError | None = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, error: WarpError) -> "Decision":
        return cls(allowed=False, error=error)

    def raise_for_denial(self) -> None:
        """Raise the denial error, if any."""
        if self.error is not None:
            raise self.error


@dataclass(frozen=True)
class AuthorizationGuard:
    """Decides whether an actor may perform an operation on a target."""

    user_class: str = USER_CLASS

    def authorize(
        self,
        operation: Operation,
        *,
        metadata: RequestMetadata,
        actor: UserRecord | None,
        class_name: str = USER_CLASS,
        target_id: int | None = None,
    ) -> Decision:
        """Evaluate the authorization rules in order."""
        decision = self._evaluate(operation, metadata, actor, class_name, target_id)
        if not decision.allowed:
            _logger.info(
                "Denied %s on %s: %s", operation, class_name, decision.error
            )
        return decision

    def _evaluate(
        self,
        operation: Operation,
        metadata: RequestMetadata,
        actor: UserRecord | None,
        class_name: str,
        target_id: int | None,
    ) -> Decision:
        # Identity requirement, not a privilege: master keys carry no user.
        if operation is Operation.ME and actor is None:
            return Decision.deny(InvalidSessionToken())
        if metadata.is_master:
            return Decision.allow()
        if class_name != self.user_class:
            return Decision.allow()
        if operation in {Operation.UPDATE, Operation.DESTROY}:
            if actor is None or actor.id != target_id:
                verb = "edited" if operation is Operation.UPDATE else "destroyed"
                return Decision.deny(
                    ForbiddenOperation(
                        f"User details can only be {verb} by their owner or via master"
                    )
                )
        if operation is Operation.CREATE and actor is not None:
            return Decision.deny(
                ForbiddenOperation(
                    "Users cannot be created using an active session. Please log out."
                )
            )
        if operation is Operation.LOG_IN and actor is not None:
            return Decision.deny(
                ForbiddenOperation(
                    "Cannot log in using an active session. Please log out."
                )
            )
        return Decision.allow()
