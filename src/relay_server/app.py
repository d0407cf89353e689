"""Litestar application factory and CLI entry point."""

from __future__ import annotations

import argparse
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from litestar import Litestar
from litestar.datastructures import State
from litestar.di import Provide
from loguru import logger

from relay_server.clients.telegram_client import TelegramClient
from relay_server.clients.telegram_poller import TelegramPoller
from relay_server.config import ConfigLoader, Settings
from relay_server.controllers.device import DeviceController
from relay_server.controllers.health import HealthController
from relay_server.controllers.telegram import TelegramController
from relay_server.resources.device import DeviceResource
from relay_server.resources.health import HealthResource
from relay_server.resources.operator import OperatorResource
from relay_server.services.command_service import CommandService
from relay_server.services.notification_service import NotificationService
from relay_server.services.registry_service import DeviceRegistry, RegistrySweeper
from relay_server.services.session_service import SessionService
from relay_server.stores.contracts.queue import QueueStore
from relay_server.stores.file_queue_store import FileQueueStore
from relay_server.stores.form_store import FormStore
from relay_server.stores.message_store import MessageStore
from relay_server.stores.sql_queue_store import SqlQueueStore
from relay_server.utils.db import Database


class AppFactory:
    """Builds and configures the Litestar application. All methods are static."""

    @staticmethod
    def _build_queue_store(settings: Settings) -> QueueStore:
        """File store by default; SQL rows when ``queue_backend`` is ``sql``."""
        if settings.queue_backend == "sql":
            return SqlQueueStore(Database(settings.database_url))
        return FileQueueStore(Path(settings.storage_dir) / "command_queue.json")

    @staticmethod
    def _build(settings: Settings) -> State:
        """Construct the full object graph once.

        queue_store → command_service ─┬→ session_service → OperatorResource
        registry ──────────────────────┤
        message_store ─────────────────┼→ DeviceResource
        form_store, notifications ─────┘
        telegram_client → notifications, OperatorResource, TelegramPoller
        registry → RegistrySweeper, HealthResource
        """
        storage_dir = Path(settings.storage_dir)
        registry = DeviceRegistry(online_window_seconds=settings.online_window_seconds)
        queue_store = AppFactory._build_queue_store(settings)
        command_service = CommandService(queue_store)
        message_store = MessageStore(storage_dir, cap=settings.message_cap)
        form_store = FormStore(storage_dir)
        telegram_client = TelegramClient(
            bot_token=settings.telegram_bot_token,
            api_url=settings.telegram_api_url,
        )
        notifications = NotificationService(telegram_client, settings.operator_ids)
        session_service = SessionService(
            registry,
            command_service,
            ttl_seconds=settings.session_ttl_seconds,
            max_text_length=settings.max_text_length,
        )
        device_resource = DeviceResource(
            registry=registry,
            command_service=command_service,
            message_store=message_store,
            form_store=form_store,
            notifications=notifications,
        )
        operator_resource = OperatorResource(
            channel=telegram_client,
            sessions=session_service,
            registry=registry,
            message_store=message_store,
            operator_ids=settings.operator_ids,
            rate_limit_ms=settings.rate_limit_ms,
            page_size=settings.message_page_size,
            webhook_secret=settings.telegram_webhook_secret,
        )
        sweeper = RegistrySweeper(
            registry,
            interval_seconds=settings.sweep_interval_seconds,
            stale_after_seconds=settings.stale_after_seconds,
        )
        poller = None
        if settings.telegram_polling and telegram_client.is_configured:
            poller = TelegramPoller(telegram_client, operator_resource.handle_update)
        return State({
            "settings": settings,
            "health": HealthResource(registry),
            "device": device_resource,
            "operator": operator_resource,
            "queue_store": queue_store,
            "notifications": notifications,
            "sweeper": sweeper,
            "poller": poller,
        })

    @staticmethod
    @asynccontextmanager
    async def _lifespan(app: Litestar) -> AsyncIterator[None]:
        """Start background tasks on startup, stop and flush on shutdown."""
        settings: Settings = app.state.settings
        queue_store: QueueStore = app.state.queue_store
        await queue_store.prepare()
        sweeper: RegistrySweeper = app.state.sweeper
        poller: TelegramPoller | None = app.state.poller
        sweeper.start()
        if poller is not None:
            poller.start()
        logger.info(f"relay-server started (queue backend: {settings.queue_backend})")
        try:
            yield
        finally:
            if poller is not None:
                await poller.stop()
            await sweeper.stop()
            notifications: NotificationService = app.state.notifications
            await notifications.flush()
            await queue_store.close()

    @staticmethod
    def provide_health(state: State) -> HealthResource:
        """Provide the pre-built HealthResource from app state."""
        health_resource: HealthResource = state.health
        return health_resource

    @staticmethod
    def provide_device(state: State) -> DeviceResource:
        """Provide the pre-built DeviceResource from app state."""
        device_resource: DeviceResource = state.device
        return device_resource

    @staticmethod
    def provide_operator(state: State) -> OperatorResource:
        """Provide the pre-built OperatorResource from app state."""
        operator_resource: OperatorResource = state.operator
        return operator_resource

    @staticmethod
    def create_app(settings: Settings | None = None) -> Litestar:
        """Create and configure the Litestar application."""
        if settings is None:
            settings = ConfigLoader.load_settings()
        return Litestar(
            route_handlers=[HealthController, DeviceController, TelegramController],
            state=AppFactory._build(settings),
            lifespan=[AppFactory._lifespan],
            dependencies={
                "health_resource": Provide(AppFactory.provide_health, sync_to_thread=False),
                "device_resource": Provide(AppFactory.provide_device, sync_to_thread=False),
                "operator_resource": Provide(AppFactory.provide_operator, sync_to_thread=False),
            },
        )


# Public alias so conftest / uvicorn can call create_app() without knowing AppFactory.
create_app = AppFactory.create_app


class CLI:
    """Command-line interface for relay-server."""

    @staticmethod
    def _build_parser() -> argparse.ArgumentParser:
        """Build the CLI argument parser."""
        parser = argparse.ArgumentParser(
            prog="relay-server", description="Relay Server CLI",
        )
        subparsers = parser.add_subparsers(dest="command")

        run_parser = subparsers.add_parser("run", help="Start the server")
        run_parser.add_argument("--host", default="0.0.0.0")
        run_parser.add_argument("--port", type=int, default=3000)
        run_parser.add_argument("--reload", action="store_true", help="Auto-reload on file changes")

        return parser

    @staticmethod
    def main(argv: list[str] | None = None) -> None:
        """CLI entry point. Catches all exceptions and exits cleanly."""
        parser = CLI._build_parser()
        args = parser.parse_args(argv)

        if args.command is None:
            parser.print_help()
            sys.exit(1)

        try:
            if args.command == "run":
                import uvicorn

                uvicorn.run(
                    "relay_server.app:create_app",
                    factory=True,
                    host=args.host,
                    port=args.port,
                    reload=args.reload,
                )
        except KeyboardInterrupt:
            pass
        except Exception as error:
            logger.error(f"Error: {error}")
            sys.exit(1)


if __name__ == "__main__":
    CLI.main()
