"""Trip middleware for injecting the chat's trip repositories into handlers."""

from typing import Callable, Dict, Any, Awaitable, Mapping

from aiogram import BaseMiddleware
from aiogram.types import TelegramObject

from tripbot.services.rate_source import RateSource
from tripbot.store.registry import StoreRegistry
from tripbot.store.repositories import TripRepositories


def trip_id_for_chat(chat_id: int) -> str:
    """Every chat keeps its own trip document."""
    return f"chat-{chat_id}"


class TripMiddleware(BaseMiddleware):
    """Middleware to provide trip repositories to handlers."""

    def __init__(
            self,
            registry: StoreRegistry,
            base_currency: str,
            default_rates: Mapping[str, Any],
            rate_source: RateSource
    ):
        self.registry = registry
        self.base_currency = base_currency
        self.default_rates = default_rates
        self.rate_source = rate_source

    async def __call__(
            self,
            handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
            event: TelegramObject,
            data: Dict[str, Any],
    ) -> Any:
        """
        Inject trip repositories and the rate source into handler data.

        Must run after AuthMiddleware, which resolves the chat id.
        """
        chat_id = data.get("chat_id")
        if chat_id is not None:
            store = self.registry.get(trip_id_for_chat(chat_id))
            data["repos"] = TripRepositories(store, self.base_currency, self.default_rates)
        data["rate_source"] = self.rate_source
        return await handler(event, data)
