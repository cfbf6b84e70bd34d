"""Identify the sender and the chat of every update."""

from typing import Callable, Dict, Any, Awaitable

from aiogram import BaseMiddleware
from aiogram.types import TelegramObject, Message, CallbackQuery


class AuthMiddleware(BaseMiddleware):
    """Middleware injecting user and chat data."""

    async def __call__(
            self,
            handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
            event: TelegramObject,
            data: Dict[str, Any],
    ) -> Any:
        """
        Inject user data and the chat id the update belongs to.

        Args:
            handler: Handler function
            event: Telegram event
            data: Handler data dictionary

        Returns:
            Handler result
        """
        user = None
        chat = None
        if isinstance(event, Message):
            user = event.from_user
            chat = event.chat
        elif isinstance(event, CallbackQuery):
            user = event.from_user
            chat = event.message.chat if event.message else None

        if user:
            data["user_id"] = user.id
            data["username"] = user.username
            data["full_name"] = user.full_name

        data["chat_id"] = chat.id if chat else (user.id if user else None)

        return await handler(event, data)
