"""Abstract base class for clip delivery.

A delivery backend forwards a finished clip somewhere off the machine.
It reports the outcome as a ``DeliveryResult`` rather than raising, so a
recording task can always tell "sent", "too large", "not configured" and
"failed" apart and leave the clip on disk in every case but the first.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from lidcam.domain.models import DeliveryResult, DeliveryStatus

logger = logging.getLogger(__name__)


class VideoDelivery(ABC):
    """Forwards recorded clips to a remote endpoint."""

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """Whether a remote endpoint has been set up."""
        ...

    @abstractmethod
    async def deliver(self, path: Path) -> DeliveryResult:
        """Send the clip at ``path``.

        Never raises for transport problems; those come back as a
        ``DELIVERY_FAILED`` result. The file is never deleted.
        """
        ...

    @abstractmethod
    async def notify(self, text: str) -> None:
        """Send a short text notice (used when the clip itself can't go).

        Raises:
            DeliveryError: If the notice cannot be sent.
        """
        ...


class NullDelivery(VideoDelivery):
    """Delivery backend used when no endpoint is configured."""

    @property
    def is_configured(self) -> bool:
        return False

    async def deliver(self, path: Path) -> DeliveryResult:
        logger.info("Delivery not configured, video saved locally: %s", path)
        return DeliveryResult(status=DeliveryStatus.NOT_CONFIGURED, path=Path(path))

    async def notify(self, text: str) -> None:
        logger.debug("Delivery not configured, dropping notice: %s", text)


class DeliveryError(Exception):
    """Raised when talking to the delivery endpoint fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
