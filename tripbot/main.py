"""Main entry point for the bot."""

import asyncio
import logging

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.fsm.storage.redis import RedisStorage
from aiogram.types import BotCommand
from redis.asyncio import Redis

from tripbot.config import get_settings
from tripbot.database import sessionmanager
from tripbot.handlers import start, member, expense, settlement, rates, analytics
from tripbot.middlewares import AuthMiddleware, TripMiddleware
from tripbot.services.rate_source import OpenExchangeRateSource
from tripbot.store.registry import StoreRegistry

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

BOT_COMMANDS = [
    BotCommand(command="start", description="Start the bot"),
    BotCommand(command="help", description="Show help"),
    BotCommand(command="join", description="Join this trip"),
    BotCommand(command="add_expense", description="Record an expense"),
    BotCommand(command="expenses", description="Latest expenses"),
    BotCommand(command="balances", description="Who owes whom"),
    BotCommand(command="history", description="Completed repayments"),
    BotCommand(command="rates", description="Currency rates"),
    BotCommand(command="breakdown", description="Spend by category"),
]


async def on_startup(bot: Bot):
    """Actions to perform on bot startup."""
    logger.info("Bot starting up...")

    await bot.set_my_commands(BOT_COMMANDS)
    logger.info("Bot commands set")

    bot_info = await bot.get_me()
    logger.info(f"Bot started: @{bot_info.username}")


async def create_storage():
    """FSM storage: Redis when reachable, memory otherwise."""
    redis = Redis.from_url(settings.redis_url)
    try:
        await redis.ping()
    except Exception as e:
        logger.warning(f"Could not connect to Redis: {e}. Using memory storage.")
        await redis.aclose()
        return MemoryStorage()

    logger.info("Using Redis storage for FSM")
    return RedisStorage(redis=redis)


async def main():
    """Main function to run the bot."""
    if not settings.bot_token:
        raise SystemExit("BOT_TOKEN is not set")

    # Shared trip documents
    if settings.store_backend == "sql":
        sessionmanager.init(settings.database_url, echo=settings.debug)
        await sessionmanager.create_all()
        logger.info("Database session manager initialized")
        registry = StoreRegistry("sql", sessionmanager, settings.store_poll_interval)
    else:
        registry = StoreRegistry(settings.store_backend)

    rate_source = OpenExchangeRateSource(settings.rate_api_url, settings.rate_precision)

    bot = Bot(
        token=settings.bot_token,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML)
    )

    dp = Dispatcher(storage=await create_storage())

    # Register middlewares, AuthMiddleware resolves the chat first
    trip_middleware = TripMiddleware(
        registry,
        settings.base_currency,
        settings.default_rate_table,
        rate_source
    )
    for observer in (dp.message, dp.callback_query):
        observer.middleware(AuthMiddleware())
        observer.middleware(trip_middleware)

    # Register handlers
    dp.include_router(start.router)
    dp.include_router(member.router)
    dp.include_router(expense.router)
    dp.include_router(settlement.router)
    dp.include_router(rates.router)
    dp.include_router(analytics.router)

    dp.startup.register(on_startup)

    try:
        logger.info("Starting bot polling...")
        await dp.start_polling(bot, allowed_updates=dp.resolve_used_update_types())
    finally:
        await registry.close()
        await sessionmanager.close()
        await bot.session.close()
        logger.info("Connections closed")


def run():
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        logger.info("Bot stopped by user")


if __name__ == "__main__":
    run()
