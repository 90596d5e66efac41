"""Core domain models for the lidcam system.

These models describe the data flowing between the lid monitor and its
collaborators: observed lid states, camera devices, the request/result
pair of each triggered recording, delivery outcomes, and the events the
monitor reports to whichever front end hosts it.
"""

from __future__ import annotations

import enum
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class LidState(str, enum.Enum):
    """Observed state of the laptop lid."""

    OPEN = "open"
    CLOSED = "closed"

    @classmethod
    def from_open(cls, is_open: bool) -> LidState:
        return cls.OPEN if is_open else cls.CLOSED


class DeliveryStatus(str, enum.Enum):
    """Outcome of forwarding a recorded clip."""

    DELIVERED = "delivered"
    TOO_LARGE = "too_large"  # Over the size ceiling, nothing was sent
    NOT_CONFIGURED = "not_configured"  # No endpoint set up, clip stays local
    DELIVERY_FAILED = "delivery_failed"


class MonitorEventType(str, enum.Enum):
    """Kinds of events reported by the monitor and its recording tasks."""

    STARTED = "started"
    STOPPED = "stopped"
    LID_OPEN = "lid_open"
    ARMED = "armed"
    TRIGGERED = "triggered"
    COOLDOWN_SKIPPED = "cooldown_skipped"
    RECORDING_SAVED = "recording_saved"
    RECORDING_FAILED = "recording_failed"
    DELIVERED = "delivered"
    DELIVERY_SKIPPED = "delivery_skipped"
    TOO_LARGE = "too_large"
    DELIVERY_FAILED = "delivery_failed"


# ---------------------------------------------------------------------------
# Camera Models
# ---------------------------------------------------------------------------


class CameraDevice(BaseModel):
    """A camera found while probing OpenCV device indices."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(ge=0, description="OpenCV device index")
    width: float = Field(default=0.0, ge=0, description="Reported frame width")
    height: float = Field(default=0.0, ge=0, description="Reported frame height")
    fps: int = Field(default=30, description="Reported frame rate")

    @property
    def resolution(self) -> str:
        return f"{self.width:.0f}x{self.height:.0f}"

    @property
    def label(self) -> str:
        """Human-readable description used by both front ends."""
        return f"Camera {self.id} - {self.resolution} @ {self.fps}fps"


# ---------------------------------------------------------------------------
# Recording Models
# ---------------------------------------------------------------------------


class RecordingRequest(BaseModel):
    """What a single trigger asks the recorder to do.

    Built once per trigger and handed to the spawned task; nothing else
    holds a reference to it afterwards.
    """

    model_config = ConfigDict(frozen=True)

    device: CameraDevice
    duration: float = Field(gt=0, description="Seconds of video to capture")
    requested_at: datetime = Field(default_factory=datetime.now)


class RecordingResult(BaseModel):
    """Either the path of the written clip or the reason recording failed."""

    model_config = ConfigDict(frozen=True)

    request: RecordingRequest
    path: Path | None = None
    error: str | None = None
    frame_count: int = Field(default=0, ge=0)

    @property
    def ok(self) -> bool:
        return self.path is not None and self.error is None


class DeliveryResult(BaseModel):
    """Outcome of a delivery attempt for one clip."""

    model_config = ConfigDict(frozen=True)

    status: DeliveryStatus
    path: Path
    size_mb: float | None = None
    error: str | None = None


# ---------------------------------------------------------------------------
# Monitor Events
# ---------------------------------------------------------------------------


class MonitorEvent(BaseModel):
    """A notification from the monitor or a recording task to the front end."""

    type: MonitorEventType
    message: str
    path: Path | None = None
    timestamp: datetime = Field(default_factory=datetime.now)
