"""Request dependencies shared by the API routers."""

import secrets

from fastapi import Depends, Header, Request

from warp_server.containers import AppContainer
from warp_server.domain.errors import InvalidApiKey
from warp_server.domain.models import RequestMetadata, UserRecord


def get_container(request: Request) -> AppContainer:
    return request.app.state.container


async def require_api_key(
    x_warp_api_key: str | None = Header(default=None),
    container: AppContainer = Depends(get_container),
) -> None:
    """Ensure requests include the application API key."""
    if not x_warp_api_key or not secrets.compare_digest(
        x_warp_api_key, container.settings.api_key
    ):
        raise InvalidApiKey()


async def get_metadata(
    x_warp_master_key: str | None = Header(default=None),
    x_warp_client: str | None = Header(default=None),
    x_warp_sdk_version: str | None = Header(default=None),
    container: AppContainer = Depends(get_container),
) -> RequestMetadata:
    """Build the per-request metadata from transport headers."""
    is_master = bool(x_warp_master_key) and secrets.compare_digest(
        x_warp_master_key or "", container.settings.master_key
    )
    return RequestMetadata(
        is_master=is_master,
        client=x_warp_client,
        sdk_version=x_warp_sdk_version,
    )


async def get_session_token(
    x_warp_session_token: str | None = Header(default=None),
) -> str | None:
    return x_warp_session_token


async def get_current_user(
    session_token: str | None = Depends(get_session_token),
    container: AppContainer = Depends(get_container),
) -> UserRecord | None:
    """Resolve the user owning the request's session token, if any."""
    return await container.session_service.resolve_user(session_token)
