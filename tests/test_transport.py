from types import SimpleNamespace

import pytest
from telegram.error import BadRequest

from blockmon.transport import PARSE_MODE, TelegramChannel


class DummyBot:
    def __init__(self, edit_error: Exception | None = None) -> None:
        self.edit_error = edit_error
        self.sent = []
        self.edited = []

    async def send_message(self, **kwargs):
        self.sent.append(kwargs)
        return SimpleNamespace(message_id=55)

    async def edit_message_text(self, **kwargs):
        if self.edit_error:
            raise self.edit_error
        self.edited.append(kwargs)


@pytest.mark.asyncio
async def test_send_posts_markdown_to_channel():
    bot = DummyBot()
    channel = TelegramChannel(bot, "@blockmon", timeout=3)

    assert await channel.send("*hi*") == 55

    call = bot.sent[0]
    assert call["chat_id"] == "@blockmon"
    assert call["parse_mode"] == PARSE_MODE == "MarkdownV2"
    assert call["disable_web_page_preview"] is True
    assert call["read_timeout"] == 3


@pytest.mark.asyncio
async def test_edit_replaces_text():
    bot = DummyBot()
    await TelegramChannel(bot, -100123).edit(55, "updated")
    assert bot.edited[0]["message_id"] == 55
    assert bot.edited[0]["text"] == "updated"


@pytest.mark.asyncio
async def test_unchanged_edit_counts_as_success():
    bot = DummyBot(
        BadRequest(
            "Message is not modified: specified new message content and reply "
            "markup are exactly the same"
        )
    )
    await TelegramChannel(bot, -100123).edit(55, "same")


@pytest.mark.asyncio
async def test_other_edit_errors_propagate():
    bot = DummyBot(BadRequest("Message to edit not found"))
    with pytest.raises(BadRequest):
        await TelegramChannel(bot, -100123).edit(55, "text")


@pytest.mark.asyncio
async def test_delete_removes_channel_message():
    bot = DummyBot()
    calls = []

    async def delete_message(**kwargs):
        calls.append(kwargs)
        return True

    bot.delete_message = delete_message

    assert await TelegramChannel(bot, "@blockmon", timeout=4).delete(55) is True
    assert calls == [
        {
            "chat_id": "@blockmon",
            "message_id": 55,
            "read_timeout": 4,
            "write_timeout": 4,
        }
    ]
