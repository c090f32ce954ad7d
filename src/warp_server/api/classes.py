"""Endpoints for generic classes."""

from fastapi import APIRouter, Body, Depends

from warp_server.api.deps import (
    get_container,
    get_current_user,
    get_metadata,
    require_api_key,
)
from warp_server.api.params import decode_json
from warp_server.containers import AppContainer
from warp_server.domain.models import RequestMetadata, UserRecord

router = APIRouter(
    prefix="/classes", tags=["classes"], dependencies=[Depends(require_api_key)]
)


@router.get("/{class_name}")
async def find_objects(  # noqa: PLR0913
    class_name: str,
    select: str | None = None,
    include: str | None = None,
    where: str | None = None,
    sort: str | None = None,
    skip: int | None = None,
    limit: int | None = None,
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Return the objects of a class matching the query."""
    records = await container.class_service.find(
        class_name,
        select=decode_json("select", select),
        include=decode_json("include", include),
        where=decode_json("where", where),
        sort=decode_json("sort", sort),
        skip=skip,
        limit=limit,
    )
    return {"result": [record.to_dict() for record in records]}


@router.get("/{class_name}/{object_id}")
async def get_object(
    class_name: str,
    object_id: int,
    select: str | None = None,
    include: str | None = None,
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Return a single object, or null if it does not exist."""
    record = await container.class_service.first(
        class_name,
        object_id,
        select=decode_json("select", select),
        include=decode_json("include", include),
    )
    return {"result": record.to_dict() if record else None}


@router.post("/{class_name}")
async def create_object(
    class_name: str,
    keys: dict[str, object] | None = Body(default=None),
    metadata: RequestMetadata = Depends(get_metadata),
    current_user: UserRecord | None = Depends(get_current_user),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    record = await container.class_service.create(
        metadata, current_user, class_name, keys or {}
    )
    return {"result": record.to_dict()}


@router.put("/{class_name}/{object_id}")
async def update_object(  # noqa: PLR0913
    class_name: str,
    object_id: int,
    keys: dict[str, object] | None = Body(default=None),
    metadata: RequestMetadata = Depends(get_metadata),
    current_user: UserRecord | None = Depends(get_current_user),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    record = await container.class_service.update(
        metadata, current_user, class_name, object_id, keys or {}
    )
    return {"result": record.to_dict()}


@router.delete("/{class_name}/{object_id}")
async def destroy_object(
    class_name: str,
    object_id: int,
    metadata: RequestMetadata = Depends(get_metadata),
    current_user: UserRecord | None = Depends(get_current_user),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    record = await container.class_service.destroy(
        metadata, current_user, class_name, object_id
    )
    return {"result": record.to_dict()}
