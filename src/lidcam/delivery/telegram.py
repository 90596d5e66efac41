"""Telegram Bot API delivery backend.

Uploads clips with ``sendVideo`` and sends plain notices with
``sendMessage``. Clips over the Bot API upload ceiling are never sent.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any

import httpx

from lidcam.delivery.base import DeliveryError, VideoDelivery
from lidcam.domain.models import DeliveryResult, DeliveryStatus

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://api.telegram.org"
DEFAULT_MAX_UPLOAD_MB = 50.0
PLACEHOLDER_TOKEN = "PUT_YOUR_BOT_TOKEN_HERE"
TEST_MESSAGE = "lidcam test message - connection successful!"


def format_caption(now: datetime | None = None) -> str:
    """Caption attached to every uploaded clip."""
    now = now or datetime.now()
    return f"Laptop lid opened - {now.strftime('%b')} {now.day}, {now.strftime('%H:%M:%S')}"


class TelegramDelivery(VideoDelivery):
    """Sends clips to a Telegram chat through a bot."""

    def __init__(
        self,
        bot_token: str,
        chat_id: int,
        api_base_url: str = DEFAULT_API_BASE_URL,
        timeout: float = 60.0,
        max_upload_mb: float = DEFAULT_MAX_UPLOAD_MB,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._token = bot_token.strip()
        self._chat_id = chat_id
        self._api_base_url = api_base_url.rstrip("/")
        self._timeout = timeout
        self._max_upload_mb = max_upload_mb
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self._token) and self._token != PLACEHOLDER_TOKEN and self._chat_id != 0

    @property
    def max_upload_mb(self) -> float:
        return self._max_upload_mb

    async def deliver(self, path: Path) -> DeliveryResult:
        path = Path(path)
        if not self.is_configured:
            logger.info("Telegram bot not configured, video saved locally: %s", path)
            return DeliveryResult(status=DeliveryStatus.NOT_CONFIGURED, path=path)

        try:
            size_mb = path.stat().st_size / (1024 * 1024)
        except OSError as e:
            logger.error("Cannot access video file %s: %s", path, e)
            return DeliveryResult(
                status=DeliveryStatus.DELIVERY_FAILED,
                path=path,
                error=f"Cannot access video file: {e}",
            )

        if size_mb > self._max_upload_mb:
            logger.warning(
                "Video too large for Telegram (%.1f MB > %.0f MB): %s",
                size_mb, self._max_upload_mb, path,
            )
            return DeliveryResult(status=DeliveryStatus.TOO_LARGE, path=path, size_mb=size_mb)

        logger.info("Sending video to Telegram (%.1f MB)...", size_mb)
        try:
            with open(path, "rb") as fh:
                await self._call(
                    "sendVideo",
                    data={"chat_id": str(self._chat_id), "caption": format_caption()},
                    files={"video": (path.name, fh, "video/mp4")},
                )
        except DeliveryError as e:
            logger.error("Failed to send video to Telegram: %s", e)
            return DeliveryResult(
                status=DeliveryStatus.DELIVERY_FAILED, path=path, size_mb=size_mb, error=str(e)
            )

        logger.info("Video sent successfully")
        return DeliveryResult(status=DeliveryStatus.DELIVERED, path=path, size_mb=size_mb)

    async def notify(self, text: str) -> None:
        if not self.is_configured:
            raise DeliveryError("Telegram bot not configured")
        await self.send_message(self._chat_id, text)

    async def send_message(self, chat_id: int, text: str) -> None:
        await self._call("sendMessage", data={"chat_id": str(chat_id), "text": text})

    async def get_bot_username(self) -> str:
        """Verify the token with ``getMe`` and return the bot's username."""
        result = await self._call("getMe")
        return str(result.get("username", ""))

    async def test_connection(self, send_message: bool = True) -> str:
        """Check the token and, if a chat is set, post a test message.

        Returns:
            The bot's username.

        Raises:
            DeliveryError: If the token is rejected or the message fails.
        """
        if not self._token:
            raise DeliveryError("Bot token is empty")
        username = await self.get_bot_username()
        logger.info("Connected to Telegram bot @%s", username)
        if send_message and self._chat_id:
            await self.send_message(self._chat_id, TEST_MESSAGE)
            logger.info("Test message sent to chat %d", self._chat_id)
        return username

    async def _call(
        self,
        method: str,
        data: dict[str, str] | None = None,
        files: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """POST a Bot API method and return its ``result`` payload."""
        url = f"{self._api_base_url}/bot{self._token}/{method}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.post(url, data=data, files=files)
        except httpx.HTTPError as e:
            raise DeliveryError(f"{method} request failed: {self._redact(str(e))}") from e

        try:
            payload = resp.json()
        except ValueError as e:
            raise DeliveryError(
                f"{method} returned non-JSON response (HTTP {resp.status_code})",
                status_code=resp.status_code,
            ) from e

        if not isinstance(payload, dict):
            raise DeliveryError(
                f"{method} returned an unexpected response (HTTP {resp.status_code})",
                status_code=resp.status_code,
            )

        if resp.status_code >= 400 or not payload.get("ok", False):
            description = payload.get("description") or f"HTTP {resp.status_code}"
            raise DeliveryError(f"{method} failed: {description}", status_code=resp.status_code)
        result = payload.get("result")
        return result if isinstance(result, dict) else {}

    def _redact(self, text: str) -> str:
        # httpx error messages include the request URL, which embeds the token
        if self._token:
            return text.replace(self._token, "<token>")
        return text
