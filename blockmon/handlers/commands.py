"""Telegram command handlers for managing watched addresses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from telegram import BotCommand, Update
from telegram.ext import Application, CallbackContext, CommandHandler

from blockmon.utils.formatting import format_address_list
from blockmon.utils.logging import get_logger
from blockmon.watchlist import WatchlistManager, is_evm_address

logger = get_logger(__name__)

ADD_USAGE = "Please provide an Ethereum address. Usage: /add_address 0x... <name>"
EDIT_USAGE = "Please provide an Ethereum address. Usage: /edit_address 0x... <name>"
DELETE_USAGE = "Please provide an Ethereum address. Usage: /delete_address 0x..."

BOT_COMMANDS = [
    BotCommand("start", "Start the bot"),
    BotCommand("add_address", "Add address to the monitoring list"),
    BotCommand("edit_address", "Edit address name"),
    BotCommand("delete_address", "Remove address from the monitoring list"),
    BotCommand("get_addresses", "Get list of active addresses"),
]


@dataclass
class HandlerContext:
    watchlist: WatchlistManager
    admin_ids: List[int] = field(default_factory=list)


def setup(application: Application, handler_context: HandlerContext) -> None:
    """Register handlers on the Telegram application."""
    application.bot_data["ctx"] = handler_context

    application.add_handler(CommandHandler("start", start))
    application.add_handler(CommandHandler("add_address", add_address_command))
    application.add_handler(CommandHandler("edit_address", edit_address_command))
    application.add_handler(CommandHandler("delete_address", delete_address_command))
    application.add_handler(CommandHandler("get_addresses", get_addresses_command))
    application.add_error_handler(error_handler)


def get_ctx(context: CallbackContext) -> HandlerContext:
    return context.application.bot_data["ctx"]


def parse_address_args(args: Optional[List[str]]) -> Tuple[str, Optional[str]]:
    """Split command arguments into an address and an optional name."""
    args = list(args or [])
    if not args:
        return "", None
    name = " ".join(args[1:]).strip() or None
    return args[0].strip(), name


async def ensure_admin(update: Update, context: CallbackContext) -> bool:
    """Restrict mutating commands to configured admins, when any are set."""
    ctx = get_ctx(context)
    if not ctx.admin_ids:
        return True
    user = update.effective_user
    if user and user.id in ctx.admin_ids:
        return True
    await update.message.reply_text(
        "You are not allowed to change the monitoring list.", parse_mode=None
    )
    return False


async def start(update: Update, context: CallbackContext) -> None:
    await update.message.reply_text(
        "Welcome! Use /add_address <address> <name> to add an address to monitor.",
        parse_mode=None,
    )


async def add_address_command(update: Update, context: CallbackContext) -> None:
    if not await ensure_admin(update, context):
        return
    address, name = parse_address_args(context.args)
    if not is_evm_address(address):
        await update.message.reply_text(ADD_USAGE, parse_mode=None)
        return

    ctx = get_ctx(context)
    try:
        await ctx.watchlist.add(address, name)
    except Exception as exc:
        logger.error("add_address_failed", address=address, error=str(exc))
        await update.message.reply_text(
            f"Error #4736: Address {address} cannot be added to the monitoring "
            "list, check console for more information.",
            parse_mode=None,
        )
        return
    await update.message.reply_text(
        f"Address {address} has been added to the monitoring list.", parse_mode=None
    )


async def edit_address_command(update: Update, context: CallbackContext) -> None:
    if not await ensure_admin(update, context):
        return
    address, name = parse_address_args(context.args)
    if not is_evm_address(address) or not name:
        await update.message.reply_text(EDIT_USAGE, parse_mode=None)
        return

    ctx = get_ctx(context)
    try:
        await ctx.watchlist.rename(address, name)
    except Exception as exc:
        logger.error("edit_address_failed", address=address, error=str(exc))
        await update.message.reply_text(
            f"Error #4737: Cannot set name for address {address}.", parse_mode=None
        )
        return
    await update.message.reply_text(
        f"Address {address} name is changed to {name}.", parse_mode=None
    )


async def delete_address_command(update: Update, context: CallbackContext) -> None:
    if not await ensure_admin(update, context):
        return
    address, _ = parse_address_args(context.args)
    if not is_evm_address(address):
        await update.message.reply_text(DELETE_USAGE, parse_mode=None)
        return

    ctx = get_ctx(context)
    try:
        await ctx.watchlist.remove(address)
    except Exception as exc:
        logger.error("delete_address_failed", address=address, error=str(exc))
        await update.message.reply_text(
            f"Error #4748: Address {address} cannot be removed from the monitoring "
            "list, check console for more information.",
            parse_mode=None,
        )
        return
    await update.message.reply_text(
        f"Address {address} has been removed from the monitoring list.",
        parse_mode=None,
    )


async def get_addresses_command(update: Update, context: CallbackContext) -> None:
    ctx = get_ctx(context)
    try:
        entries = await ctx.watchlist.list()
    except Exception as exc:
        logger.error("get_addresses_failed", error=str(exc))
        await update.message.reply_text(
            "Error #3788: Could not fetch active addresses, check console for "
            "more information.",
            parse_mode=None,
        )
        return
    text = format_address_list([(entry.address, entry.name) for entry in entries])
    await update.message.reply_text(text, parse_mode=None)


async def error_handler(update: object, context: CallbackContext) -> None:
    update_id = getattr(update, "update_id", None)
    logger.error(
        "telegram_update_failed", update_id=update_id, error=str(context.error)
    )
