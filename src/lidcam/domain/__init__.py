"""Domain models shared across lidcam components."""

from lidcam.domain.models import (
    CameraDevice,
    DeliveryResult,
    DeliveryStatus,
    LidState,
    MonitorEvent,
    MonitorEventType,
    RecordingRequest,
    RecordingResult,
)

__all__ = [
    "CameraDevice",
    "DeliveryResult",
    "DeliveryStatus",
    "LidState",
    "MonitorEvent",
    "MonitorEventType",
    "RecordingRequest",
    "RecordingResult",
]
