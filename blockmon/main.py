"""Application entrypoint."""

from __future__ import annotations

import asyncio
import signal

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from telegram import BotCommandScopeDefault
from telegram.ext import ApplicationBuilder

from blockmon.config import load_settings
from blockmon.handlers.commands import BOT_COMMANDS, HandlerContext
from blockmon.handlers.commands import setup as setup_handlers
from blockmon.jobs.cleanup import CleanupService
from blockmon.lifecycle import PendingMessageCache
from blockmon.moralis_client import MoralisStreamsClient
from blockmon.names import NameDirectory, NameResolver
from blockmon.pipeline import NotificationPipeline
from blockmon.solana import SolanaSubscription
from blockmon.store.db import Database
from blockmon.transport import TelegramChannel
from blockmon.utils.logging import configure_logging, get_logger
from blockmon.watchlist import WatchlistManager
from blockmon.webhook import WebhookServer

logger = get_logger(__name__)


async def main() -> None:
    settings = load_settings()
    configure_logging(settings.log_level)

    db = Database(settings.database_url)
    db.connect()
    await db.init_models()

    application = ApplicationBuilder().token(settings.telegram_bot_token).build()
    await application.initialize()
    await application.bot.set_my_commands(BOT_COMMANDS, scope=BotCommandScopeDefault())

    directory = NameDirectory(db)
    moralis = MoralisStreamsClient(
        api_key=settings.moralis_api_key,
        stream_id=settings.moralis_stream_id,
        base_url=settings.moralis_api_url,
    )

    cache = PendingMessageCache(
        ttl_seconds=settings.pending_ttl_minutes * 60,
        max_entries=settings.pending_max_entries,
    )
    pipeline = NotificationPipeline(
        transport=TelegramChannel(
            application.bot,
            settings.telegram_channel_id,
            timeout=settings.telegram_timeout_seconds,
        ),
        resolver=NameResolver(directory),
        cache=cache,
    )

    setup_handlers(
        application,
        HandlerContext(
            watchlist=WatchlistManager(moralis, directory),
            admin_ids=settings.admin_user_ids,
        ),
    )

    scheduler = AsyncIOScheduler()
    CleanupService(
        cache, scheduler, interval_minutes=settings.pending_purge_interval_minutes
    ).start()

    webhook = WebhookServer(
        pipeline,
        secret=settings.moralis_streams_secret,
        host=settings.webhook_host,
        port=settings.webhook_port,
        path=settings.webhook_path,
    )
    solana = SolanaSubscription(
        pipeline,
        settings.solana_watch_addresses,
        rpc_url=settings.solana_rpc_url,
        wss_url=settings.solana_wss_url,
    )
    solana_task: asyncio.Task[None] | None = None

    try:
        scheduler.start()
        await webhook.start()
        if solana.addresses:
            solana_task = asyncio.create_task(solana.run())

        await application.start()
        if application.updater:
            await application.updater.start_polling()

        logger.info("bot_started", commands=len(BOT_COMMANDS))

        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(signum, stop_event.set)

        await stop_event.wait()
        logger.info("shutdown_signal_received")

    finally:
        logger.info("bot_stopping")
        if solana_task:
            solana_task.cancel()
            try:
                await solana_task
            except asyncio.CancelledError:
                pass
        await solana.close()
        if scheduler.running:
            scheduler.shutdown(wait=False)
        await webhook.stop()
        if application.updater and application.updater.running:
            await application.updater.stop()
        if application.running:
            await application.stop()
        await application.shutdown()
        await moralis.close()
        await db.dispose()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
