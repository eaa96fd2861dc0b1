from __future__ import annotations

import importlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any, cast
from urllib.parse import urlparse

import httpx
import structlog
from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase

from paymail.config import Config
from paymail.core.db import store_errors
from paymail.core.modules.identity.client import IdentityProviderClient
from paymail.core.modules.mail.client import GraphMailClient

logger = structlog.get_logger(__name__)


class Service:
    """Base class for services with direct database access."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        self.database = database
        self._core: Core | None = None

    async def on_start(self) -> None:
        """Initialize service on application startup."""

    async def on_stop(self) -> None:
        """Cleanup service on application shutdown."""

    @property
    def core(self) -> Core:
        """Get the core application context."""
        if self._core is None:
            raise RuntimeError("Core not set for service")
        return self._core

    def set_core(self, core: Core) -> None:
        """Set the core application context."""
        self._core = core


class Services:
    """Service registry that automatically discovers and initializes services."""

    from paymail.core.modules.access.service import AccessService  # noqa: PLC0415
    from paymail.core.modules.cleanup.service import CleanupService  # noqa: PLC0415
    from paymail.core.modules.email_log.service import EmailLogService  # noqa: PLC0415
    from paymail.core.modules.session.service import SessionService  # noqa: PLC0415

    session: SessionService
    access: AccessService
    email_log: EmailLogService
    cleanup: CleanupService

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        """Initialize all services automatically using service configuration."""
        self._services: list[Service] = []
        self._database = database

        # Service configuration: (attribute_name, module_path, class_name)
        # Order matters: cleanup starts its timer last and is stopped first
        service_configs = [
            ("session", "paymail.core.modules.session.service", "SessionService"),
            ("access", "paymail.core.modules.access.service", "AccessService"),
            ("email_log", "paymail.core.modules.email_log.service", "EmailLogService"),
            ("cleanup", "paymail.core.modules.cleanup.service", "CleanupService"),
        ]

        for attr_name, module_path, class_name in service_configs:
            module = importlib.import_module(module_path)
            service_class = cast(type[Service], getattr(module, class_name))
            service_instance = service_class(database)
            setattr(self, attr_name, service_instance)
            self._services.append(service_instance)

    def set_core(self, core: Core) -> None:
        """Set core reference for all services."""
        for service in self._services:
            service.set_core(core)

    async def start_all(self) -> None:
        """Start all services that have startup logic."""
        for service in self._services:
            await service.on_start()

    async def stop_all(self) -> None:
        """Stop all services in reverse start order."""
        for service in reversed(self._services):
            await service.on_stop()


class Core:
    """Container providing config, database, external clients and all service instances.

    The MongoDB and HTTP clients can be passed in explicitly; otherwise they are
    built from config. Nothing talks to the network until on_start().
    """

    config: Config
    mongo_client: AsyncMongoClient[dict[str, Any]]
    database: AsyncDatabase[dict[str, Any]]
    http_client: httpx.AsyncClient
    identity: IdentityProviderClient
    mail: GraphMailClient
    services: Services

    def __init__(
        self,
        config: Config,
        mongo_client: AsyncMongoClient[dict[str, Any]] | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config
        if mongo_client is None:
            mongo_client = AsyncMongoClient(
                config.database_url, uuidRepresentation="standard", timeoutMS=config.store_timeout_ms
            )
        self.mongo_client = mongo_client
        self.database = self.mongo_client.get_database(urlparse(config.database_url).path[1:])
        self.http_client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(config.http_timeout))
        self.identity = IdentityProviderClient(
            self.http_client,
            client_id=config.microsoft_client_id,
            client_secret=config.microsoft_client_secret,
            tenant_id=config.microsoft_tenant_id,
        )
        self.mail = GraphMailClient(self.http_client)
        self.services = Services(self.database)
        self.services.set_core(self)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Manage application lifecycle - startup and shutdown."""
        await self.on_start()
        try:
            yield
        finally:
            await self.on_stop()

    async def on_start(self) -> None:
        """Verify the store is reachable, then start all services.

        Raises StoreError when MongoDB cannot be reached, which aborts startup.
        """
        with store_errors("ping"):
            await self.database.command("ping")
        logger.info("store_connected", database=self.database.name)
        await self.services.start_all()

    async def on_stop(self) -> None:
        """Stop services and close MongoDB and HTTP connections on shutdown."""
        await self.services.stop_all()
        await self.http_client.aclose()
        await self.mongo_client.aclose()
