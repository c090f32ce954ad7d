"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import AsyncClient

from warp_server.adapters.supabase_model_repository import SupabaseModelRepository
from warp_server.adapters.supabase_session_repository import (
    SupabaseSessionRepository,
)
from warp_server.adapters.supabase_user_repository import SupabaseUserRepository
from warp_server.config import Settings, parse_model_classes
from warp_server.services.authorization import AuthorizationGuard
from warp_server.services.classes import ClassService
from warp_server.services.functions import FunctionRegistry, FunctionService
from warp_server.services.queries import QueryAssembler
from warp_server.services.registry import ModelRegistry
from warp_server.services.sessions import SessionService, revocation_policy_for
from warp_server.services.users import UserService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    assembler: QueryAssembler
    model_registry: ModelRegistry
    session_service: SessionService
    user_service: UserService
    class_service: ClassService
    function_service: FunctionService
    close_resources: Callable[[], Awaitable[None]]


def build_container(
    settings: Settings | None = None,
    client: AsyncClient | None = None,
    functions: FunctionRegistry | None = None,
) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = client or AsyncClient(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    user_repository = SupabaseUserRepository(supabase_client)
    session_repository = SupabaseSessionRepository(supabase_client)
    model_registry = ModelRegistry(users=user_repository)
    for schema in parse_model_classes(resolved_settings.model_classes):
        model_registry.register(SupabaseModelRepository(supabase_client, schema))

    guard = AuthorizationGuard()
    assembler = QueryAssembler(
        default_limit=resolved_settings.query_default_limit,
        max_limit=resolved_settings.query_max_limit,
        max_depth=resolved_settings.subquery_max_depth,
    )
    session_service = SessionService(
        identity_repository=user_repository,
        session_repository=session_repository,
        guard=guard,
        revocation_policy=revocation_policy_for(
            resolved_settings.session_duration_days
        ),
    )
    user_service = UserService(
        repository=user_repository,
        session_service=session_service,
        guard=guard,
        assembler=assembler,
        resolve_subquery=model_registry.resolve_subquery,
    )
    class_service = ClassService(
        registry=model_registry, guard=guard, assembler=assembler
    )
    function_service = FunctionService(functions or FunctionRegistry())

    async def close_resources() -> None:
        if client is None:
            await supabase_client.postgrest.aclose()

    return AppContainer(
        settings=resolved_settings,
        assembler=assembler,
        model_registry=model_registry,
        session_service=session_service,
        user_service=user_service,
        class_service=class_service,
        function_service=function_service,
        close_resources=close_resources,
    )
