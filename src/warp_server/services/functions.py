"""Server-side functions callable through the API."""

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field

from warp_server.domain.errors import FunctionNotFound
from warp_server.domain.models import UserRecord

_logger = logging.getLogger(__name__)

ServerFunction = Callable[[Mapping[str, object], UserRecord | None], Awaitable[object]]


@dataclass
class FunctionRegistry:
    """Maps function names to their implementations."""

    functions: dict[str, ServerFunction] = field(default_factory=dict)

    def register(self, name: str, function: ServerFunction) -> None:
        if name in self.functions:
            raise ValueError(f"Function `{name}` is already registered")
        self.functions[name] = function

    def get(self, name: str) -> ServerFunction:
        function = self.functions.get(name)
        if function is None:
            raise FunctionNotFound(f"Function `{name}` does not exist")
        return function


@dataclass
class FunctionService:
    """Runs registered functions on behalf of the current user."""

    registry: FunctionRegistry

    async def run(
        self,
        function_name: str,
        keys: Mapping[str, object] | None = None,
        user: UserRecord | None = None,
    ) -> object:
        """Run a function with the request keys and the current user."""
        function = self.registry.get(function_name)
        _logger.info(
            "Running function=%s user=%s", function_name, user.id if user else None
        )
        return await function(keys or {}, user)
