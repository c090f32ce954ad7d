"""Endpoint for running server functions."""

from fastapi import APIRouter, Body, Depends

from warp_server.api.deps import get_container, get_current_user, require_api_key
from warp_server.containers import AppContainer
from warp_server.domain.models import UserRecord

router = APIRouter(
    prefix="/functions", tags=["functions"], dependencies=[Depends(require_api_key)]
)


@router.post("/{function_name}")
async def run_function(
    function_name: str,
    keys: dict[str, object] | None = Body(default=None),
    current_user: UserRecord | None = Depends(get_current_user),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Run a registered function with the request keys."""
    result = await container.function_service.run(function_name, keys, current_user)
    return {"result": result}
