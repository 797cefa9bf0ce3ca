#!/usr/bin/env python3
"""
Mock Market Maker - Alert Sink
Best-effort Telegram delivery of warning/fatal messages; never raises.
"""

import asyncio
import logging
from datetime import datetime, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import aiohttp

logger = logging.getLogger("alerts")

TELEGRAM_API = "https://api.telegram.org"
MESSAGE_PREFIX = "[Market Maker]"
SEND_TIMEOUT = 10.0


def resolve_timezone(name: str) -> tzinfo:
    if not name:
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown ALERT_TIMEZONE %r, using UTC", name)
        return timezone.utc


class Notifier:
    """Alert sink interface. ``notify`` must never raise."""

    async def notify(self, message: str) -> None:
        logger.debug("Alert (no sink configured): %s", message)


class TelegramNotifier(Notifier):
    def __init__(
        self,
        session: Optional[aiohttp.ClientSession],
        bot_token: str,
        chat_id: str,
        tz_name: str = "UTC",
        api_url: str = TELEGRAM_API,
    ):
        self.session = session
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.tz = resolve_timezone(tz_name)
        self.api_url = api_url.rstrip("/")
        self.enabled = bool(session is not None and bot_token and chat_id)

    def _now_str(self) -> str:
        return datetime.now(self.tz).strftime("%d/%m/%Y %H:%M:%S")

    def format_message(self, message: str) -> str:
        return f"{MESSAGE_PREFIX} {self._now_str()}\n{message}"

    async def notify(self, message: str) -> None:
        if not self.enabled:
            return
        url = f"{self.api_url}/bot{self.bot_token}/sendMessage"
        payload = {"chat_id": self.chat_id, "text": self.format_message(message)}
        try:
            async with self.session.post(url, json=payload, timeout=aiohttp.ClientTimeout(total=SEND_TIMEOUT)) as response:
                if response.status != 200:
                    body = await response.text()
                    logger.warning("Telegram send failed: %s %s", response.status, body[:200])
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: broad-except
            logger.warning("Telegram error: %s", exc)
