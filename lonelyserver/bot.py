"""Telethon powered application entrypoint.

A Telegram group stands in for the game session: members joining and leaving
the group are the arrivals and departures.
"""

from __future__ import annotations

import asyncio
import html
import logging

from telethon import TelegramClient, events
from telethon.errors.rpcerrorlist import ChatAdminRequiredError

from .config import Settings, load_settings
from .listener import Notification, SessionListener
from .logging_utils import configure_logging
from .manager import ConfigManager
from .policy import StyleTag
from .stores import build_config_store

logger = logging.getLogger(__name__)

HTML_STYLES = {
    StyleTag.BOLD: "b",
    StyleTag.ITALIC: "i",
    StyleTag.UNDERLINE: "u",
    StyleTag.STRIKETHROUGH: "s",
    StyleTag.MAGIC: "tg-spoiler",
}


class LonelyServerApplication:
    """High level wrapper that wires Telethon chat actions with the session listener."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or load_settings()
        self.client = TelegramClient("lonelyserver", self.settings.api_id, self.settings.api_hash)
        self.store = build_config_store(self.settings)
        self.config_manager = ConfigManager(self.store)
        self.listener = SessionListener(self.config_manager)
        self._handlers_registered = False

    def register_handlers(self) -> None:
        if self._handlers_registered:
            return

        @self.client.on(events.ChatAction())
        async def handle_chat_action(event: events.ChatAction.Event) -> None:  # pragma: no cover - Telethon runtime
            if not self._is_session_chat(event.chat_id):
                return
            if event.user_left or event.user_kicked:
                user = await event.get_user()
                if user is None or getattr(user, "bot", False):
                    return
                self.listener.on_departure(self._display_name(user))
            elif event.user_joined or event.user_added:
                user = await event.get_user()
                if user is None or getattr(user, "bot", False):
                    return
                roster_size = await self._count_members(event.chat_id)
                notification = self.listener.on_join(self._display_name(user), roster_size)
                if notification:
                    await self._send(event, notification)

        self._handlers_registered = True

    def _is_session_chat(self, chat_id: int | None) -> bool:
        return not self.settings.chat_id or chat_id == self.settings.chat_id

    async def _count_members(self, chat_id: int, *, limit: int = 2) -> int:
        """Count human members, stopping once ``limit`` is reached."""
        count = 0
        async for participant in self.client.iter_participants(chat_id):
            if getattr(participant, "bot", False):
                continue
            count += 1
            if count >= limit:
                break
        return count

    async def _send(self, event: events.ChatAction.Event, notification: Notification) -> None:
        try:
            await event.respond(self.render_html(notification), parse_mode="html")
        except ChatAdminRequiredError:  # pragma: no cover - runtime guard
            logger.warning("Cannot notify %s: missing chat permissions", notification.recipient)

    async def start(self) -> None:  # pragma: no cover - requires Telegram credentials
        configure_logging(self.settings.log_level)
        await self.config_manager.load()
        self.register_handlers()
        await self.client.start(bot_token=self.settings.bot_token)
        await self.client.run_until_disconnected()

    async def shutdown(self) -> None:
        close = getattr(self.store, "close", None)
        if close is not None:
            await close()
        await self.client.disconnect()

    @staticmethod
    def render_html(notification: Notification) -> str:
        """Escape the text and map text-decoration styles onto Telegram HTML; colours render plain."""
        text = html.escape(notification.text)
        tag = HTML_STYLES.get(notification.style_tag)
        if tag is None:
            return text
        return f"<{tag}>{text}</{tag}>"

    @staticmethod
    def _display_name(user: object) -> str:
        username = getattr(user, "username", None)
        if username:
            return f"@{username}"
        first = (getattr(user, "first_name", "") or "").strip()
        last = (getattr(user, "last_name", "") or "").strip()
        full = " ".join(filter(None, [first, last])).strip()
        return full or str(getattr(user, "id", "someone"))


def run() -> None:  # pragma: no cover - CLI helper
    app = LonelyServerApplication()
    asyncio.run(app.start())
