"""Endpoints for users and login sessions."""

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel

from warp_server.api.deps import (
    get_container,
    get_current_user,
    get_metadata,
    get_session_token,
    require_api_key,
)
from warp_server.api.params import decode_json
from warp_server.containers import AppContainer
from warp_server.domain.errors import ValidationError
from warp_server.domain.models import RequestMetadata, UserRecord

router = APIRouter(tags=["users"], dependencies=[Depends(require_api_key)])


class LoginRequest(BaseModel):
    """Login payload; either username or email identifies the user."""

    username: str | None = None
    email: str | None = None
    password: str


@router.get("/users")
async def find_users(  # noqa: PLR0913
    select: str | None = None,
    include: str | None = None,
    where: str | None = None,
    sort: str | None = None,
    skip: int | None = None,
    limit: int | None = None,
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Return the users matching the query."""
    selected = decode_json("select", select)
    users = await container.user_service.find(
        select=selected,
        include=decode_json("include", include),
        where=decode_json("where", where),
        sort=decode_json("sort", sort),
        skip=skip,
        limit=limit,
    )
    fields = container.assembler.lookup(select=selected).select
    return {"result": [user.to_public_dict(fields) for user in users]}


@router.get("/users/me")
async def me(
    metadata: RequestMetadata = Depends(get_metadata),
    current_user: UserRecord | None = Depends(get_current_user),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Return the user owning the current session."""
    user = await container.user_service.me(metadata, current_user)
    return {"result": user.to_public_dict()}


@router.get("/users/{user_id}")
async def get_user(
    user_id: int,
    select: str | None = None,
    include: str | None = None,
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    lookup = container.assembler.lookup(
        select=decode_json("select", select), include=decode_json("include", include)
    )
    user = await container.user_service.get(user_id)
    return {"result": user.to_public_dict(lookup.select)}


@router.post("/users")
async def create_user(
    keys: dict[str, object] | None = Body(default=None),
    metadata: RequestMetadata = Depends(get_metadata),
    current_user: UserRecord | None = Depends(get_current_user),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    user = await container.user_service.create(metadata, current_user, keys or {})
    return {"result": user.to_public_dict()}


@router.put("/users/{user_id}")
async def update_user(
    user_id: int,
    keys: dict[str, object] | None = Body(default=None),
    metadata: RequestMetadata = Depends(get_metadata),
    current_user: UserRecord | None = Depends(get_current_user),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    user = await container.user_service.update(
        metadata, current_user, user_id, keys or {}
    )
    return {"result": user.to_public_dict()}


@router.delete("/users/{user_id}")
async def destroy_user(
    user_id: int,
    metadata: RequestMetadata = Depends(get_metadata),
    current_user: UserRecord | None = Depends(get_current_user),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    user = await container.user_service.destroy(metadata, current_user, user_id)
    return {"result": user.to_public_dict()}


@router.post("/login")
async def log_in(
    payload: LoginRequest,
    metadata: RequestMetadata = Depends(get_metadata),
    current_user: UserRecord | None = Depends(get_current_user),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Log in with a username or email and return the new session."""
    identifier = payload.username or payload.email
    if not identifier:
        raise ValidationError("`username` or `email` is required")
    session = await container.user_service.log_in(
        metadata, current_user, identifier, payload.password
    )
    return {"result": session.to_dict()}


@router.post("/logout")
async def log_out(
    session_token: str | None = Depends(get_session_token),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Destroy the session of the provided token."""
    session = await container.user_service.log_out(session_token)
    return {"result": session.to_dict()}
