"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

from warp_server.domain.queries import DEFAULT_LIMIT, DEFAULT_SUBQUERY_DEPTH, MAX_LIMIT
from warp_server.domain.schemas import FieldSpec, ModelSchema

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    api_key: str
    master_key: str
    supabase_url: str
    supabase_service_key: str
    api_prefix: str = "/api/1"
    session_duration_days: int = 730
    query_default_limit: int = DEFAULT_LIMIT
    query_max_limit: int = MAX_LIMIT
    subquery_max_depth: int = DEFAULT_SUBQUERY_DEPTH
    model_classes: str | None = None
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_model_classes(raw: str | None) -> list[ModelSchema]:
    """Parse class declarations from env.

    The format is ``class:field=type,field=type;other:field=type`` where type is
    one of ``string``, ``number``, ``boolean``, ``date``, ``json`` or
    ``pointer.<class>``.
    """
    if raw is None:
        return []
    schemas: list[ModelSchema] = []
    for chunk in raw.split(";"):
        declaration = chunk.strip()
        if not declaration:
            continue
        class_name, _, field_list = declaration.partition(":")
        class_name = class_name.strip()
        if not class_name:
            raise ValueError(f"Missing class name in `{declaration}`")
        fields: dict[str, FieldSpec] = {}
        for item in field_list.split(","):
            entry = item.strip()
            if not entry:
                continue
            name, _, type_name = entry.partition("=")
            name = name.strip()
            fields[name] = FieldSpec.parse(name, type_name.strip() or "string")
        schemas.append(ModelSchema(class_name=class_name, fields=fields))
    return schemas
