"""User controller: queries, account lifecycle and login sessions."""

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from warp_server.domain.errors import (
    ForbiddenOperation,
    InvalidSessionToken,
    ObjectNotFound,
    ValidationError,
)
from warp_server.domain.models import USER_CLASS, RequestMetadata, UserRecord
from warp_server.domain.queries import QueryDescriptor
from warp_server.domain.sessions import SessionRecord
from warp_server.services.authorization import AuthorizationGuard, Operation
from warp_server.services.passwords import hash_password
from warp_server.services.queries import QueryAssembler, SubqueryResolver
from warp_server.services.sessions import IdentityRepository, SessionService

_logger = logging.getLogger(__name__)

PRIVATE_USER_FIELDS = frozenset({"password", "password_hash"})


class UserRepository(IdentityRepository, Protocol):
    """Persistence interface for users."""

    async def find(self, query: QueryDescriptor) -> list[UserRecord]:
        """Return users matching a query."""

    async def create_user(
        self, username: str, email: str | None, password_hash: str
    ) -> UserRecord:
        """Create and return a new user."""

    async def update_user(
        self, user_id: int, changes: dict[str, object]
    ) -> UserRecord | None:
        """Update a user and return it, or None if it does not exist."""

    async def destroy_user(self, user_id: int) -> UserRecord | None:
        """Delete a user and return it, or None if it did not exist."""


class UserKeys(BaseModel):
    """Keys accepted when creating or updating a user."""

    model_config = ConfigDict(extra="forbid", strict=True)

    username: str | None = Field(default=None, min_length=1)
    email: str | None = Field(default=None, min_length=3)
    password: str | None = Field(default=None, min_length=1)


@dataclass
class UserService:
    """Orchestrates user operations through the guard and session service."""

    repository: UserRepository
    session_service: SessionService
    guard: AuthorizationGuard
    assembler: QueryAssembler
    resolve_subquery: SubqueryResolver

    async def find(self, **params: object) -> list[UserRecord]:
        """Return users matching raw select/include/where/sort/skip/limit."""
        query = await self.assembler.assemble(
            USER_CLASS, self.resolve_subquery, **params
        )
        check_public_query(query)
        return await self.repository.find(query)

    async def get(self, user_id: int) -> UserRecord:
        user = await self.repository.get_by_id(user_id)
        if user is None:
            raise ForbiddenOperation(f"User with id `{user_id}` not found")
        return user

    async def create(
        self,
        metadata: RequestMetadata,
        current_user: UserRecord | None,
        keys: Mapping[str, object],
    ) -> UserRecord:
        """Create a user account; forbidden while authenticated."""
        self.guard.authorize(
            Operation.CREATE, metadata=metadata, actor=current_user
        ).raise_for_denial()
        user_keys = _build_keys(keys)
        if user_keys.username is None or user_keys.password is None:
            raise ValidationError("`username` and `password` are required")
        password_hash = await asyncio.to_thread(hash_password, user_keys.password)
        user = await self.repository.create_user(
            username=user_keys.username,
            email=user_keys.email,
            password_hash=password_hash,
        )
        _logger.info("User created: user=%s", user.id)
        return user

    async def update(
        self,
        metadata: RequestMetadata,
        current_user: UserRecord | None,
        user_id: int,
        keys: Mapping[str, object],
    ) -> UserRecord:
        """Update a user; only the owner or a master caller may do so."""
        self.guard.authorize(
            Operation.UPDATE,
            metadata=metadata,
            actor=current_user,
            target_id=user_id,
        ).raise_for_denial()
        changes = _build_keys(keys).model_dump(exclude_none=True)
        if not changes:
            raise ValidationError("At least one key must be provided")
        password = changes.pop("password", None)
        if password is not None:
            changes["password_hash"] = await asyncio.to_thread(hash_password, password)
        user = await self.repository.update_user(user_id, changes)
        if user is None:
            raise ObjectNotFound(f"User with id `{user_id}` not found")
        return user

    async def destroy(
        self,
        metadata: RequestMetadata,
        current_user: UserRecord | None,
        user_id: int,
    ) -> UserRecord:
        """Delete a user; only the owner or a master caller may do so."""
        self.guard.authorize(
            Operation.DESTROY,
            metadata=metadata,
            actor=current_user,
            target_id=user_id,
        ).raise_for_denial()
        user = await self.repository.destroy_user(user_id)
        if user is None:
            raise ObjectNotFound(f"User with id `{user_id}` not found")
        _logger.info("User destroyed: user=%s", user_id)
        return user

    async def log_in(
        self,
        metadata: RequestMetadata,
        current_user: UserRecord | None,
        identifier: str,
        password: str,
    ) -> SessionRecord:
        return await self.session_service.log_in(
            metadata, current_user, identifier, password
        )

    async def me(
        self, metadata: RequestMetadata, current_user: UserRecord | None
    ) -> UserRecord:
        """Return the user resolved for the current session token."""
        self.guard.authorize(
            Operation.ME, metadata=metadata, actor=current_user
        ).raise_for_denial()
        if current_user is None:
            raise InvalidSessionToken()
        return current_user

    async def log_out(self, session_token: str | None) -> SessionRecord:
        return await self.session_service.log_out(session_token)


def check_public_query(query: QueryDescriptor) -> None:
    """Reject user queries that filter or sort on private fields."""
    fields = {field_name for field_name, _ in query.where}
    fields.update(sort_field.field for sort_field in query.sort)
    private = fields & PRIVATE_USER_FIELDS
    if private:
        raise ValidationError(f"Field `{sorted(private)[0]}` cannot be queried")


def _build_keys(keys: Mapping[str, object]) -> UserKeys:
    if not isinstance(keys, Mapping):
        raise ValidationError("Keys must be an object")
    try:
        return UserKeys.model_validate(dict(keys))
    except PydanticValidationError as err:
        error = err.errors()[0]
        location = ".".join(str(part) for part in error["loc"]) or "keys"
        raise ValidationError(f"Invalid key `{location}`: {error['msg']}") from err
