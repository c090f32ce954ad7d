"""Shared test fixtures."""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import pytest

from warp_server.config import Settings, parse_model_classes
from warp_server.containers import AppContainer
from warp_server.domain.errors import DuplicateSessionToken
from warp_server.domain.models import ModelRecord, Pointer, RequestMetadata, UserRecord
from warp_server.domain.queries import QueryDescriptor
from warp_server.domain.schemas import ModelSchema
from warp_server.domain.sessions import SessionRecord
from warp_server.services.authorization import AuthorizationGuard
from warp_server.services.classes import ClassService
from warp_server.services.functions import FunctionRegistry, FunctionService
from warp_server.services.passwords import hash_password
from warp_server.services.queries import QueryAssembler
from warp_server.services.registry import ModelAccessor, ModelRegistry
from warp_server.services.sessions import SessionRepository, SessionService
from warp_server.services.users import UserRepository, UserService

MODEL_CLASSES = (
    "post:title=string,views=number,author=pointer.user;"
    "comment:body=string,post=pointer.post"
)
BASE_TIME = datetime(2024, 1, 1, tzinfo=UTC)


def run_query(
    records: list, query: QueryDescriptor, value: Callable[[object, str], object]
) -> list:
    """Evaluate a query descriptor against in-memory records."""
    matched = [
        record
        for record in records
        if all(
            _matches(value(record, field_name), constraint.operator, constraint.operand)
            for field_name, constraint in query.where
        )
    ]
    for sort_field in reversed(query.sort):
        matched.sort(
            key=lambda record, name=sort_field.field: _sort_key(value(record, name)),
            reverse=sort_field.descending,
        )
    return matched[query.skip : query.skip + query.limit]


def _matches(value: object, operator: str, operand: object) -> bool:  # noqa: PLR0911
    if operator == "eq":
        return value == operand
    if operator == "neq":
        return value != operand
    if operator == "exists":
        return (value is not None) == operand
    if operator == "in":
        return value in operand
    if operator == "nin":
        return value not in operand
    if value is None:
        return False
    if operator == "gt":
        return value > operand
    if operator == "gte":
        return value >= operand
    if operator == "lt":
        return value < operand
    if operator == "lte":
        return value <= operand
    if operator == "startsWith":
        return str(value).startswith(str(operand))
    if operator == "endsWith":
        return str(value).endswith(str(operand))
    if operator == "contains":
        return str(operand) in str(value)
    raise AssertionError(f"Unresolved operator {operator}")


def _sort_key(value: object) -> tuple[bool, object]:
    return (value is None, 0 if value is None else value)


@dataclass
class FakeClock:
    """Clock returning a controllable time."""

    now: datetime = BASE_TIME

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


@dataclass
class InMemoryUserRepository(UserRepository):
    """In-memory user repository for tests."""

    users: dict[int, UserRecord] = field(default_factory=dict)
    queries: list[QueryDescriptor] = field(default_factory=list)
    next_id: int = 1

    def add(
        self,
        username: str,
        password: str = "secret",
        email: str | None = None,
        user_id: int | None = None,
    ) -> UserRecord:
        return self._insert(username, email, hash_password(password), user_id)

    def _insert(
        self,
        username: str,
        email: str | None,
        password_hash: str,
        user_id: int | None = None,
    ) -> UserRecord:
        user_id = user_id if user_id is not None else self.next_id
        self.next_id = max(self.next_id, user_id) + 1
        created_at = BASE_TIME + timedelta(minutes=user_id)
        user = UserRecord(
            id=user_id,
            username=username,
            email=email,
            password_hash=password_hash,
            created_at=created_at,
            updated_at=created_at,
        )
        self.users[user_id] = user
        return user

    async def find(self, query: QueryDescriptor) -> list[UserRecord]:
        self.queries.append(query)
        return run_query(
            list(self.users.values()), query, lambda user, key: user.value(key)
        )

    async def get_by_id(self, user_id: int) -> UserRecord | None:
        return self.users.get(user_id)

    async def find_by_identifier(self, identifier: str) -> list[UserRecord]:
        return [
            user
            for user in self.users.values()
            if identifier in {user.username, user.email}
        ]

    async def create_user(
        self, username: str, email: str | None, password_hash: str
    ) -> UserRecord:
        return self._insert(username, email, password_hash)

    async def update_user(
        self, user_id: int, changes: dict[str, object]
    ) -> UserRecord | None:
        user = self.users.get(user_id)
        if user is None:
            return None
        values = {
            "username": user.username,
            "email": user.email,
            "password_hash": user.password_hash,
            **changes,
        }
        updated = UserRecord(
            id=user.id,
            username=str(values["username"]),
            email=values["email"],  # type: ignore[arg-type]
            password_hash=str(values["password_hash"]),
            created_at=user.created_at,
            updated_at=user.updated_at,
        )
        self.users[user_id] = updated
        return updated

    async def destroy_user(self, user_id: int) -> UserRecord | None:
        return self.users.pop(user_id, None)


@dataclass
class InMemorySessionRepository(SessionRepository):
    """In-memory session repository for tests."""

    sessions: dict[int, SessionRecord] = field(default_factory=dict)
    collisions: int = 0
    next_id: int = 1

    async def create_session(
        self,
        user: Pointer,
        origin: str | None,
        session_token: str,
        revoked_at: datetime,
    ) -> SessionRecord:
        if self.collisions > 0:
            self.collisions -= 1
            raise DuplicateSessionToken(session_token)
        if any(s.session_token == session_token for s in self.sessions.values()):
            raise DuplicateSessionToken(session_token)
        session = SessionRecord(
            id=self.next_id,
            user=user,
            origin=origin,
            session_token=session_token,
            revoked_at=revoked_at,
            created_at=BASE_TIME,
        )
        self.sessions[session.id] = session
        self.next_id += 1
        return session

    async def get_by_token(
        self, session_token: str, active_at: datetime | None = None
    ) -> SessionRecord | None:
        for session in self.sessions.values():
            if session.session_token != session_token:
                continue
            if active_at is not None and not session.is_active(active_at):
                return None
            return session
        return None

    async def delete_session(self, session_id: int) -> None:
        self.sessions.pop(session_id, None)


@dataclass
class InMemoryModelRepository(ModelAccessor):
    """In-memory repository for a generic class."""

    schema: ModelSchema
    records: dict[int, ModelRecord] = field(default_factory=dict)
    queries: list[QueryDescriptor] = field(default_factory=list)
    next_id: int = 1

    @property
    def class_name(self) -> str:  # type: ignore[override]
        return self.schema.class_name

    def add(self, **keys: object) -> ModelRecord:
        built = self.schema.build_keys(keys)
        record = ModelRecord(
            class_name=self.class_name,
            id=self.next_id,
            keys=built,
            created_at=BASE_TIME + timedelta(minutes=self.next_id),
        )
        self.records[record.id] = record
        self.next_id += 1
        return record

    async def find(self, query: QueryDescriptor) -> list[ModelRecord]:
        self.queries.append(query)
        return run_query(
            list(self.records.values()), query, lambda record, key: record.value(key)
        )

    async def first(
        self,
        object_id: int,
        select: tuple[str, ...] = (),
        include: tuple[str, ...] = (),
    ) -> ModelRecord | None:
        return self.records.get(object_id)

    async def save(
        self, keys: Mapping[str, object], object_id: int | None = None
    ) -> ModelRecord | None:
        if object_id is None:
            return self.add(**keys)
        built = self.schema.build_keys(keys, partial=True)
        existing = self.records.get(object_id)
        if existing is None:
            return None
        updated = ModelRecord(
            class_name=self.class_name,
            id=object_id,
            keys={**existing.keys, **built},
            created_at=existing.created_at,
        )
        self.records[object_id] = updated
        return updated

    async def destroy(self, object_id: int) -> ModelRecord | None:
        return self.records.pop(object_id, None)

    def to_pointer(self, object_id: int) -> Pointer:
        return Pointer(class_name=self.class_name, id=object_id)


async def echo_function(
    keys: Mapping[str, object], user: UserRecord | None
) -> dict[str, object]:
    return {"keys": dict(keys), "user_id": user.id if user else None}


MASTER = RequestMetadata(is_master=True, client="test-client")
ANONYMOUS = RequestMetadata(client="test-client")


@pytest.fixture
def settings() -> Settings:
    return Settings(
        api_key="api-key",
        master_key="master-key",
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        model_classes=MODEL_CLASSES,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def user_repository() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def session_repository() -> InMemorySessionRepository:
    return InMemorySessionRepository()


@pytest.fixture
def model_repositories(settings: Settings) -> dict[str, InMemoryModelRepository]:
    return {
        schema.class_name: InMemoryModelRepository(schema)
        for schema in parse_model_classes(settings.model_classes)
    }


@pytest.fixture
def guard() -> AuthorizationGuard:
    return AuthorizationGuard()


@pytest.fixture
def assembler() -> QueryAssembler:
    return QueryAssembler()


@pytest.fixture
def registry(
    user_repository: InMemoryUserRepository,
    model_repositories: dict[str, InMemoryModelRepository],
) -> ModelRegistry:
    return ModelRegistry(users=user_repository, models=dict(model_repositories))


@pytest.fixture
def session_service(
    user_repository: InMemoryUserRepository,
    session_repository: InMemorySessionRepository,
    guard: AuthorizationGuard,
    clock: FakeClock,
) -> SessionService:
    return SessionService(
        identity_repository=user_repository,
        session_repository=session_repository,
        guard=guard,
        clock=clock,
    )


@pytest.fixture
def user_service(
    user_repository: InMemoryUserRepository,
    session_service: SessionService,
    guard: AuthorizationGuard,
    assembler: QueryAssembler,
    registry: ModelRegistry,
) -> UserService:
    return UserService(
        repository=user_repository,
        session_service=session_service,
        guard=guard,
        assembler=assembler,
        resolve_subquery=registry.resolve_subquery,
    )


@pytest.fixture
def class_service(
    registry: ModelRegistry, guard: AuthorizationGuard, assembler: QueryAssembler
) -> ClassService:
    return ClassService(registry=registry, guard=guard, assembler=assembler)


@pytest.fixture
def container(  # noqa: PLR0913
    settings: Settings,
    assembler: QueryAssembler,
    registry: ModelRegistry,
    session_service: SessionService,
    user_service: UserService,
    class_service: ClassService,
) -> AppContainer:
    functions = FunctionRegistry()
    functions.register("echo", echo_function)

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        assembler=assembler,
        model_registry=registry,
        session_service=session_service,
        user_service=user_service,
        class_service=class_service,
        function_service=FunctionService(functions),
        close_resources=close_resources,
    )
