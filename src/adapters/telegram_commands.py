"""Telegram bot command adapter.

Maps chat commands onto the core SubscriptionService. Parsing and replies
live here; every rule about handles, keywords and settings stays in core.
"""

from __future__ import annotations

import html
import logging
import re
from typing import Awaitable, Callable, List, Tuple

from telethon import Button, events

from core.errors import (
    ConfigurationError,
    InvalidHandleError,
    SourceUnavailableError,
    UnknownSourceError,
)
from core.models import AlertSettings, SettingName
from core.service import SubscriptionService

LOGGER = logging.getLogger(__name__)

HELP_TEXT = """📚 <b>Command Reference</b>

<b>📡 Monitoring:</b>
/add @handle - Watch an account
/remove @handle - Stop watching
/list - Show watched accounts
/check @handle - Check an account now

<b>🔑 Keywords:</b>
/keyword add [word] - Add keyword filter
/keyword addcase [word] - Add case-sensitive keyword
/keyword remove [word] - Remove keyword
/keywords - List all keywords

<b>⚙️ Settings:</b>
/settings - Show settings
/toggle retweets|quotes|replies|keywords_only|telegram

<b>🎮 Controls:</b>
/pause - Pause all alerts
/resume - Resume alerts
/status - Check bot status"""

_SETTING_LABELS = {
    SettingName.ALERT_RETWEETS: "Retweets",
    SettingName.ALERT_QUOTES: "Quotes",
    SettingName.ALERT_REPLIES: "Replies",
    SettingName.KEYWORDS_ONLY: "Keywords Only",
    SettingName.PAUSED: "Paused",
    SettingName.TELEGRAM_ENABLED: "Telegram",
}


def _on_off(value: bool) -> str:
    return "On" if value else "Off"


def _argument(event) -> str:
    match = getattr(event, "pattern_match", None)
    if not match or match.lastindex is None:
        return ""
    return (match.group(1) or "").strip()


# Inline keyboard callback data -> setting flipped by the button.
_CALLBACK_SETTINGS = {
    b"toggle_retweets": SettingName.ALERT_RETWEETS,
    b"toggle_quotes": SettingName.ALERT_QUOTES,
    b"toggle_replies": SettingName.ALERT_REPLIES,
    b"toggle_keywords_only": SettingName.KEYWORDS_ONLY,
    b"toggle_telegram": SettingName.TELEGRAM_ENABLED,
    b"toggle_pause": SettingName.PAUSED,
}


def _mark(value: bool) -> str:
    return "✅" if value else "❌"


def _settings_view(current: AlertSettings) -> Tuple[str, list]:
    """Render the settings message and its toggle keyboard."""

    lines = ["⚙️ <b>Your Settings</b>", "", "<b>Tweet Types:</b>"]
    for name in (SettingName.ALERT_RETWEETS, SettingName.ALERT_QUOTES, SettingName.ALERT_REPLIES):
        lines.append(f"• {_SETTING_LABELS[name]}: {_on_off(name.read(current))}")
    lines.append("")
    lines.append(f"<b>Mode:</b> {'Keywords Only' if current.keywords_only else 'All Tweets'}")
    lines.append(f"<b>Telegram:</b> {_on_off(current.telegram_enabled)}")
    lines.append(f"<b>Status:</b> {'⏸️ Paused' if current.paused else '▶️ Active'}")
    lines.append("")
    lines.append("<i>Tap buttons below to toggle:</i>")

    buttons = [
        [
            Button.inline(f"{_mark(current.alert_retweets)} Retweets", b"toggle_retweets"),
            Button.inline(f"{_mark(current.alert_quotes)} Quotes", b"toggle_quotes"),
        ],
        [
            Button.inline(f"{_mark(current.alert_replies)} Replies", b"toggle_replies"),
            Button.inline(f"{_mark(current.keywords_only)} Keywords Only", b"toggle_keywords_only"),
        ],
        [Button.inline(f"{_mark(current.telegram_enabled)} Telegram", b"toggle_telegram")],
        [Button.inline("▶️ Resume Alerts" if current.paused else "⏸️ Pause Alerts", b"toggle_pause")],
    ]
    return "\n".join(lines), buttons


class CommandHandlers:
    """One coroutine per chat command; each replies to the requesting chat."""

    def __init__(self, service: SubscriptionService) -> None:
        self._service = service

    async def _reply(self, event, text: str, buttons=None) -> None:
        await event.respond(text, parse_mode="html", link_preview=False, buttons=buttons)

    async def start(self, event) -> None:
        # First contact creates the default settings row.
        self._service.get_settings(event.chat_id)
        await self._reply(
            event,
            "🐦 <b>Tweet Alert Bot</b>\n\n"
            "I watch accounts and send you new posts.\n\n"
            "1️⃣ Add accounts: <code>/add @username</code>\n"
            "2️⃣ Add keywords: <code>/keyword add claim</code>\n"
            "3️⃣ View settings: <code>/settings</code>\n\n"
            "Use /help for all commands.",
        )

    async def show_help(self, event) -> None:
        await self._reply(event, HELP_TEXT)

    async def add(self, event) -> None:
        raw = _argument(event)
        if not raw:
            await self._reply(event, "❌ Please specify a username.\nExample: <code>/add @username</code>")
            return
        try:
            handle, created = await self._service.add_subscription(event.chat_id, raw)
        except InvalidHandleError:
            await self._reply(event, f"❌ <code>{html.escape(raw)}</code> is not a valid username.")
            return
        except UnknownSourceError:
            await self._reply(event, f"❌ Could not find @{html.escape(raw.lstrip('@'))}. The account may be private or suspended.")
            return
        except SourceUnavailableError:
            await self._reply(event, "⚠️ Could not verify the account right now, all upstream instances failed. Try again later.")
            return

        if created:
            await self._reply(event, f"✅ <b>Now watching:</b> @{handle}\n\nUse /settings to customize alert types.")
        else:
            await self._reply(event, f"ℹ️ You are already watching @{handle}.")

    async def remove(self, event) -> None:
        raw = _argument(event)
        try:
            removed = self._service.remove_subscription(event.chat_id, raw)
        except InvalidHandleError:
            await self._reply(event, "❌ Please specify a username.\nExample: <code>/remove @username</code>")
            return
        handle = html.escape(raw.strip().lstrip("@").lower())
        if removed:
            await self._reply(event, f"✅ Stopped watching @{handle}")
        else:
            await self._reply(event, f"❌ You weren't watching @{handle}")

    async def list_accounts(self, event) -> None:
        subscriptions = self._service.list_subscriptions(event.chat_id)
        if not subscriptions:
            await self._reply(event, "📭 You're not watching any accounts yet.\n\nUse <code>/add @username</code> to start!")
            return
        lines = [f"📡 <b>Watched Accounts ({len(subscriptions)})</b>", ""]
        for sub in subscriptions:
            source = self._service.source(sub.handle)
            if source is not None and source.last_item_id:
                lines.append(f"• @{sub.handle} <i>(last seen {html.escape(source.last_item_id)})</i>")
            else:
                lines.append(f"• @{sub.handle}")
        await self._reply(event, "\n".join(lines))

    async def keyword(self, event) -> None:
        parts = _argument(event).split(None, 1)
        action = parts[0].lower() if parts else ""
        pattern = parts[1].strip() if len(parts) > 1 else ""

        if action not in {"add", "addcase", "remove"}:
            await self._reply(
                event,
                "❌ Usage:\n<code>/keyword add [word]</code>\n<code>/keyword remove [word]</code>",
            )
            return
        if not pattern:
            await self._reply(event, f"❌ Please specify a keyword to {action}.")
            return

        safe = html.escape(pattern)
        if action == "remove":
            if self._service.remove_keyword(event.chat_id, pattern):
                await self._reply(event, f"✅ Removed keyword: <b>{safe}</b>")
            else:
                await self._reply(event, f"❌ Keyword \"{safe}\" not found.")
            return

        added = self._service.add_keyword(event.chat_id, pattern, case_sensitive=action == "addcase")
        if added:
            await self._reply(event, f"✅ Added keyword: <b>{safe}</b>")
        else:
            await self._reply(event, f"ℹ️ Keyword \"{safe}\" already exists.")

    async def keywords(self, event) -> None:
        keywords = self._service.list_keywords(event.chat_id)
        if not keywords:
            await self._reply(event, "📭 No keywords set.\n\nUse <code>/keyword add [word]</code> to add keywords.")
            return
        lines = [f"🔑 <b>Your Keywords ({len(keywords)})</b>", ""]
        for kw in keywords:
            suffix = " <i>(case-sensitive)</i>" if kw.case_sensitive else ""
            lines.append(f"• {html.escape(kw.pattern)}{suffix}")
        await self._reply(event, "\n".join(lines))

    async def settings(self, event) -> None:
        text, buttons = _settings_view(self._service.get_settings(event.chat_id))
        await self._reply(event, text, buttons=buttons)

    async def settings_callback(self, event) -> None:
        """Flip the setting behind a tapped button and redraw the menu."""

        setting = _CALLBACK_SETTINGS.get(event.data)
        if setting is None:
            await event.answer("Unknown action")
            return

        setting, value = self._service.toggle_setting(event.chat_id, setting.value)
        if setting is SettingName.PAUSED:
            feedback = "⏸️ Alerts paused" if value else "▶️ Alerts resumed"
        else:
            feedback = f"{_SETTING_LABELS[setting]}: {_on_off(value)}"
        await event.answer(feedback)

        text, buttons = _settings_view(self._service.get_settings(event.chat_id))
        await event.edit(text, parse_mode="html", link_preview=False, buttons=buttons)

    async def toggle(self, event) -> None:
        raw = _argument(event)
        try:
            setting, value = self._service.toggle_setting(event.chat_id, raw)
        except ConfigurationError:
            await self._reply(
                event,
                "❌ Unknown setting. Available:\n• retweets\n• quotes\n• replies\n• keywords_only\n• telegram",
            )
            return
        await self._reply(event, f"✅ {_SETTING_LABELS[setting]} is now: <b>{_on_off(value).upper()}</b>")

    async def pause(self, event) -> None:
        self._service.pause(event.chat_id)
        await self._reply(event, "⏸️ Alerts paused. Use /resume to start receiving alerts again.")

    async def resume(self, event) -> None:
        self._service.resume(event.chat_id)
        await self._reply(event, "▶️ Alerts resumed! You'll now receive new alerts.")

    async def status(self, event) -> None:
        status = self._service.status(event.chat_id)
        await self._reply(
            event,
            "📊 <b>Bot Status</b>\n\n"
            f"<b>Monitoring:</b> {status.subscriptions} account(s)\n"
            f"<b>Keywords:</b> {status.keywords} keyword(s)\n"
            f"<b>Alerts:</b> {'⏸️ Paused' if status.settings.paused else '▶️ Active'}",
        )

    async def check(self, event) -> None:
        raw = _argument(event)
        try:
            result = await self._service.force_check(raw)
        except InvalidHandleError:
            await self._reply(event, "❌ Please specify a username.\nExample: <code>/check @username</code>")
            return
        if not result.ok:
            await self._reply(event, f"⚠️ Could not fetch @{result.handle} right now.")
            return
        await self._reply(
            event,
            f"🔄 Checked @{result.handle}: {result.items} new item(s), "
            f"{result.stats.delivered} alert(s) sent.",
        )

    def routes(self) -> List[Tuple[str, Callable[[object], Awaitable[None]]]]:
        return [
            (r"^/start(?:@\w+)?$", self.start),
            (r"^/help(?:@\w+)?$", self.show_help),
            (r"^/add(?:@\w+)?(?:\s+(.+))?$", self.add),
            (r"^/remove(?:@\w+)?(?:\s+(.+))?$", self.remove),
            (r"^/list(?:@\w+)?$", self.list_accounts),
            (r"^/keyword(?:@\w+)?(?:\s+(.+))?$", self.keyword),
            (r"^/keywords(?:@\w+)?$", self.keywords),
            (r"^/settings(?:@\w+)?$", self.settings),
            (r"^/toggle(?:@\w+)?(?:\s+(.+))?$", self.toggle),
            (r"^/pause(?:@\w+)?$", self.pause),
            (r"^/resume(?:@\w+)?$", self.resume),
            (r"^/status(?:@\w+)?$", self.status),
            (r"^/check(?:@\w+)?(?:\s+(.+))?$", self.check),
        ]


def _guarded(handler: Callable[[object], Awaitable[None]]) -> Callable[[object], Awaitable[None]]:
    async def wrapper(event) -> None:
        try:
            await handler(event)
        except Exception:
            LOGGER.exception("Error while handling %s", getattr(handler, "__name__", "command"))

    return wrapper


def register_commands(client, handlers: CommandHandlers) -> int:
    """Attach every command to the Telethon client. Returns the count."""

    routes = handlers.routes()
    for pattern, handler in routes:
        client.add_event_handler(
            _guarded(handler),
            events.NewMessage(incoming=True, pattern=re.compile(pattern, re.IGNORECASE | re.DOTALL)),
        )
    client.add_event_handler(
        _guarded(handlers.settings_callback),
        events.CallbackQuery(pattern=re.compile(rb"^toggle_")),
    )
    LOGGER.info("Registered %s command handlers", len(routes))
    return len(routes)
