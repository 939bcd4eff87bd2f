"""
Dependency Injection wiring for MDB Kit.

A small container with singleton and request lifetimes. The container
registry and the store client are application singletons; the unit of work
is request-scoped, so each request gets its own transaction boundary and
it is disposed when the request scope ends.

Usage:
    container = Container()
    add_mdb_kit(
        container,
        MongoStoreClient(motor_client["app_db"]),
        [EntityContainer(Order, "orders", "customer_id")],
    )
    app.state.container = container

    @app.middleware("http")
    async def scope_middleware(request: Request, call_next):
        async with ScopeManager.request_scope():
            return await call_next(request)

    @app.post("/orders")
    async def create_order(uow: UnitOfWork = Depends(inject(UnitOfWork))):
        ...
"""

import logging
from collections.abc import Callable, Iterable
from contextvars import ContextVar
from enum import Enum
from typing import Any, TypeVar

from .config import KitConfig
from .registry import ContainerRegistry, EntityContainer
from .repositories.unit_of_work import UnitOfWork
from .store.base import DocumentStoreClient

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Context variable for request-scoped instances
_request_scope: ContextVar[dict[type, Any] | None] = ContextVar("request_scope", default=None)


class Scope(Enum):
    """
    Service lifetime scopes.

    SINGLETON: One instance for the entire application lifetime.
    REQUEST: One instance per request, disposed when the request ends.
    """

    SINGLETON = "singleton"
    REQUEST = "request"


class ScopeManager:
    """Manages request-scoped instance lifecycles."""

    @classmethod
    def begin_request(cls) -> dict[type, Any]:
        scope_dict: dict[type, Any] = {}
        _request_scope.set(scope_dict)
        return scope_dict

    @classmethod
    def end_request(cls) -> None:
        """End the current request scope, calling dispose() on instances that have it."""
        scope_dict = _request_scope.get()
        if scope_dict:
            for instance in scope_dict.values():
                dispose = getattr(instance, "dispose", None)
                if dispose is not None:
                    dispose()
            scope_dict.clear()
        _request_scope.set(None)

    @classmethod
    def get_or_create(cls, key: type, factory: Callable[[], Any]) -> Any:
        """
        Get an existing instance from request scope or create one.

        Raises:
            RuntimeError: If called outside a request scope
        """
        scope_dict = _request_scope.get()
        if scope_dict is None:
            raise RuntimeError(
                "No active request scope. Ensure ScopeManager.begin_request() "
                "was called (usually via middleware)."
            )

        if key not in scope_dict:
            scope_dict[key] = factory()
            logger.debug(f"Created request-scoped instance: {key.__name__}")

        return scope_dict[key]

    @classmethod
    def request_scope(cls) -> "_RequestScopeContext":
        """
        Async context manager for request scope.

        Usage:
            async with ScopeManager.request_scope():
                uow = container.resolve(UnitOfWork)
        """
        return _RequestScopeContext()


class _RequestScopeContext:
    async def __aenter__(self):
        ScopeManager.begin_request()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        ScopeManager.end_request()
        return False


class Container:
    """Registry of service factories keyed by type."""

    def __init__(self):
        self._factories: dict[type, tuple[Callable[["Container"], Any], Scope]] = {}
        self._singletons: dict[type, Any] = {}

    def register_instance(self, service_type: type[T], instance: T) -> "Container":
        """Register an existing instance as a singleton."""
        self._singletons[service_type] = instance
        logger.debug(f"Registered instance for {service_type.__name__}")
        return self

    def register_factory(
        self,
        service_type: type[T],
        factory: Callable[["Container"], T],
        scope: Scope = Scope.SINGLETON,
    ) -> "Container":
        """Register a factory receiving the container."""
        self._factories[service_type] = (factory, scope)
        logger.debug(f"Registered factory for {service_type.__name__} as {scope.value}")
        return self

    def resolve(self, service_type: type[T]) -> T:
        """
        Resolve a service instance.

        Raises:
            KeyError: If service is not registered
        """
        if service_type in self._singletons:
            return self._singletons[service_type]

        if service_type not in self._factories:
            raise KeyError(f"Service {service_type.__name__} is not registered.")

        factory, scope = self._factories[service_type]
        if scope == Scope.REQUEST:
            return ScopeManager.get_or_create(service_type, lambda: factory(self))

        instance = factory(self)
        self._singletons[service_type] = instance
        return instance

    def is_registered(self, service_type: type) -> bool:
        return service_type in self._factories or service_type in self._singletons

    def __contains__(self, service_type: type) -> bool:
        return self.is_registered(service_type)


def add_mdb_kit(
    container: Container,
    client: DocumentStoreClient,
    registrations: Iterable[EntityContainer],
    config: KitConfig | None = None,
) -> Container:
    """
    Register the kit's services.

    The registry is built immediately, so registration mistakes surface at
    startup rather than on the first request.

    Args:
        container: Container to register into
        client: Shared store client
        registrations: (entity_type, container_name, partition_key) triples
        config: Optional configuration (defaults to environment-driven KitConfig)

    Returns:
        The container, for chaining
    """
    config = config or KitConfig()
    config.validate()
    registry = ContainerRegistry(registrations)

    container.register_instance(KitConfig, config)
    container.register_instance(ContainerRegistry, registry)
    container.register_instance(DocumentStoreClient, client)
    container.register_factory(
        UnitOfWork,
        lambda c: UnitOfWork(
            c.resolve(DocumentStoreClient),
            c.resolve(ContainerRegistry),
            max_batch_operations=config.max_batch_operations,
            query_page_size=config.query_page_size,
        ),
        scope=Scope.REQUEST,
    )

    logger.info(f"MDB Kit registered with {len(registry)} entity container(s)")
    return container


def inject(service_type: type[T]) -> Callable[..., Any]:
    """
    FastAPI dependency that resolves a service from the app's container.

    Usage:
        @app.get("/orders")
        async def list_orders(uow: UnitOfWork = Depends(inject(UnitOfWork))):
            return await uow.get_repository(Order).get()
    """
    from fastapi import Request

    async def _dependency(request: Request) -> T:
        container = getattr(request.app.state, "container", None)
        if container is None:
            raise RuntimeError("No DI container found on app.state.container")
        return container.resolve(service_type)

    return _dependency
