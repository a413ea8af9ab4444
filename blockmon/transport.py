"""Channel delivery sink backed by the Telegram Bot API."""

from __future__ import annotations

from typing import Protocol

from telegram.error import BadRequest

from blockmon.utils.logging import get_logger

logger = get_logger(__name__)

PARSE_MODE = "MarkdownV2"


class Transport(Protocol):
    """Delivery sink used by the notification pipeline."""

    async def send(self, text: str) -> int:
        """Post a message and return its id."""
        ...

    async def edit(self, message_id: int, text: str) -> None:
        """Replace the text of a delivered message; raise on failure."""
        ...


class TelegramChannel:
    """Send, edit and delete MarkdownV2 messages in one channel."""

    def __init__(self, bot, channel_id: int | str, timeout: float = 10.0) -> None:
        self.bot = bot
        self.channel_id = channel_id
        self.timeout = timeout

    async def send(self, text: str) -> int:
        message = await self.bot.send_message(
            chat_id=self.channel_id,
            text=text,
            parse_mode=PARSE_MODE,
            disable_web_page_preview=True,
            read_timeout=self.timeout,
            write_timeout=self.timeout,
        )
        return message.message_id

    async def edit(self, message_id: int, text: str) -> None:
        try:
            await self.bot.edit_message_text(
                chat_id=self.channel_id,
                message_id=message_id,
                text=text,
                parse_mode=PARSE_MODE,
                disable_web_page_preview=True,
                read_timeout=self.timeout,
                write_timeout=self.timeout,
            )
        except BadRequest as exc:
            # Re-sending the same pending text is not an error for us.
            if "message is not modified" in str(exc).lower():
                logger.info("telegram_edit_unchanged", message_id=message_id)
                return
            raise

    async def delete(self, message_id: int) -> bool:
        return await self.bot.delete_message(
            chat_id=self.channel_id,
            message_id=message_id,
            read_timeout=self.timeout,
            write_timeout=self.timeout,
        )
