"""Telegram notification service."""
import logging
import ssl

import aiohttp
import certifi

from ..config import TelegramConfig

logger = logging.getLogger(__name__)

# Telegram rejects longer messages
MAX_MESSAGE_LENGTH = 4096


def _hard_split(text: str, limit: int) -> list[str]:
    """Cut at the limit, backing off so no tag or entity is cut in half."""
    chunks: list[str] = []
    while len(text) > limit:
        cut = limit
        for opener, closer in (("<", ">"), ("&", ";")):
            head = text[:cut]
            start = head.rfind(opener)
            if start > 0 and start > head.rfind(closer):
                cut = start
        chunks.append(text[:cut])
        text = text[cut:]
    chunks.append(text)
    return chunks


def _split(text: str, limit: int, separators: tuple[str, ...]) -> list[str]:
    if len(text) <= limit:
        return [text]
    if not separators:
        return _hard_split(text, limit)

    sep, finer = separators[0], separators[1:]
    chunks: list[str] = []
    current = ""
    for block in text.split(sep):
        candidate = f"{current}{sep}{block}" if current else block
        if len(candidate) <= limit:
            current = candidate
            continue
        if current:
            chunks.append(current)
        pieces = _split(block, limit, finer)
        chunks.extend(pieces[:-1])
        current = pieces[-1]
    if current:
        chunks.append(current)
    return chunks


def split_message(text: str, limit: int = MAX_MESSAGE_LENGTH) -> list[str]:
    """Split on blank lines, then on lines, so each chunk fits in one message."""
    return _split(text, limit, ("\n\n", "\n"))


class TelegramNotifier:
    """Send messages to Telegram chats through one bot."""

    def __init__(self, config: TelegramConfig) -> None:
        self.bot_token = config.bot_token
        self.api_url = config.api_url

    async def _send_chunk(
        self, session: aiohttp.ClientSession, chat_id: str, text: str
    ) -> bool:
        url = f"{self.api_url}/bot{self.bot_token}/sendMessage"
        payload = {
            "chat_id": chat_id,
            "text": text,
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        async with session.post(url, json=payload) as response:
            if response.status == 200:
                return True
            logger.error(
                "Failed to send Telegram message to %s: %s", chat_id, response.status
            )
            return False

    async def send_message(self, chat_id: str, text: str) -> bool:
        """Deliver text to one chat; returns whether every part was accepted."""
        if not self.bot_token or not chat_id:
            logger.warning("Telegram credentials not configured")
            return False

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                for chunk in split_message(text):
                    if not await self._send_chunk(session, chat_id, chunk):
                        return False
        except (aiohttp.ClientError, TimeoutError) as e:
            logger.error("Telegram delivery to %s failed: %s", chat_id, e)
            return False

        logger.info("Telegram message sent to %s", chat_id)
        return True
