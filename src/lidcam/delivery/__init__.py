"""Clip delivery module for lidcam.

Public API:
    VideoDelivery -- Abstract base class
    NullDelivery -- Used when no endpoint is configured
    TelegramDelivery -- Telegram Bot API implementation
    DeliveryError -- Raised by transport failures
"""

from lidcam.delivery.base import DeliveryError, NullDelivery, VideoDelivery
from lidcam.delivery.telegram import TelegramDelivery

__all__ = ["DeliveryError", "NullDelivery", "TelegramDelivery", "VideoDelivery"]
