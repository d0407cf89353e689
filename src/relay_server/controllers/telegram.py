"""Telegram webhook controller — feeds operator updates to OperatorResource."""

from __future__ import annotations

from typing import Any

from litestar import Controller, Request, post
from litestar.datastructures import State
from litestar.exceptions import NotAuthorizedException
from loguru import logger

from relay_server.resources.operator import OperatorResource, WebhookSecretMismatchError

_SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"


class TelegramController(Controller):
    """HTTP adapter for the Telegram Bot API webhook."""

    path = "/api/telegram"

    @post("/webhook", status_code=200)
    async def webhook(
        self,
        data: dict[str, Any],
        request: Request[object, object, State],
        operator_resource: OperatorResource,
    ) -> dict[str, str]:
        """Receive one update. Always 200 once authenticated so Telegram does not retry."""
        try:
            operator_resource.verify_secret(request.headers.get(_SECRET_HEADER))
        except WebhookSecretMismatchError as error:
            raise NotAuthorizedException(detail=str(error)) from error
        try:
            await operator_resource.handle_update(data)
        except Exception as error:
            # Telegram redelivers an update until it gets a 2xx.
            logger.exception(f"Failed to handle Telegram update: {error}")
        return {"status": "ok"}
