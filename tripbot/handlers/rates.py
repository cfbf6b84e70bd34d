"""Handlers for currency rates."""

from aiogram import Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message

from tripbot.ledger.exceptions import LedgerValidationError, RateSourceError, StoreWriteError
from tripbot.services.rate_service import RateService
from tripbot.services.rate_source import RateSource
from tripbot.store.repositories import TripRepositories
from tripbot.utils.constants import ERR_NOT_SYNCED, ERR_RATES_UNAVAILABLE
from tripbot.utils.formatters import format_amount, format_rates
from tripbot.utils.validators import validate_amount, validate_currency_code, validate_rate

router = Router()


@router.message(Command("rates"))
async def cmd_rates(message: Message, repos: TripRepositories, rate_source: RateSource):
    """Show the rate table."""
    rates = await RateService(repos, rate_source).get_rates()
    await message.answer(format_rates(rates), parse_mode="HTML")


@router.message(Command("set_rate"))
async def cmd_set_rate(
        message: Message,
        command: CommandObject,
        repos: TripRepositories,
        rate_source: RateSource
):
    """Set a multiplier: /set_rate EUR 35.1"""
    args = (command.args or "").split()
    if len(args) != 2:
        await message.answer("Usage: /set_rate CODE RATE (e.g. /set_rate EUR 35.1)")
        return

    is_valid, code, error = validate_currency_code(args[0])
    if not is_valid:
        await message.answer(error)
        return

    is_valid, rate, error = validate_rate(args[1])
    if not is_valid:
        await message.answer(error)
        return

    rate_service = RateService(repos, rate_source)
    try:
        changed = await rate_service.set_rate(code, rate)
    except LedgerValidationError as e:
        await message.answer("❌ " + "\n".join(e.messages))
        return
    except StoreWriteError:
        await message.answer(ERR_NOT_SYNCED)
        return

    if not changed:
        await message.answer(f"❌ {code} is the base currency, its rate is always 1")
        return

    await message.answer(f"✅ 1 {code} = {rate.normalize():f} {repos.rates.base_currency}")


@router.message(Command("remove_rate"))
async def cmd_remove_rate(
        message: Message,
        command: CommandObject,
        repos: TripRepositories,
        rate_source: RateSource
):
    """Stop tracking a currency: /remove_rate EUR"""
    is_valid, code, error = validate_currency_code(command.args or "")
    if not is_valid:
        await message.answer(f"{error}\nUsage: /remove_rate CODE")
        return

    try:
        removed = await RateService(repos, rate_source).remove_rate(code)
    except StoreWriteError:
        await message.answer(ERR_NOT_SYNCED)
        return

    if not removed:
        await message.answer(f"❌ {code} is not tracked or is the base currency")
        return

    await message.answer(f"✅ {code} removed. Old {code} expenses now count at 1:1.")


@router.message(Command("refresh_rates"))
async def cmd_refresh_rates(message: Message, repos: TripRepositories, rate_source: RateSource):
    """Pull fresh rates for every tracked currency."""
    rate_service = RateService(repos, rate_source)

    try:
        changed = await rate_service.refresh_rates()
    except RateSourceError:
        await message.answer(ERR_RATES_UNAVAILABLE)
        return
    except StoreWriteError:
        await message.answer(ERR_NOT_SYNCED)
        return

    rates = await rate_service.get_rates()
    summary = f"🔄 Updated: {', '.join(changed)}" if changed else "🔄 Rates already up to date"
    await message.answer(f"{summary}\n\n{format_rates(rates)}", parse_mode="HTML")


@router.message(Command("convert"))
async def cmd_convert(
        message: Message,
        command: CommandObject,
        repos: TripRepositories,
        rate_source: RateSource
):
    """Currency calculator: /convert 100 EUR TWD"""
    args = (command.args or "").split()
    if len(args) != 3:
        await message.answer("Usage: /convert AMOUNT FROM TO (e.g. /convert 100 EUR TWD)")
        return

    is_valid, amount, error = validate_amount(args[0])
    if not is_valid:
        await message.answer(error)
        return

    codes = []
    for arg in args[1:]:
        is_valid, code, error = validate_currency_code(arg)
        if not is_valid:
            await message.answer(error)
            return
        codes.append(code)

    from_code, to_code = codes
    result = await RateService(repos, rate_source).convert(amount, from_code, to_code)
    await message.answer(
        f"💱 {format_amount(amount, from_code)} = {format_amount(result, to_code)}"
    )
