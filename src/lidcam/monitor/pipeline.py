"""The task spawned for each trigger: record a clip, then deliver it.

Every failure inside a pipeline run ends that run only. Nothing here
raises back into the sampling loop, and a clip that could not be
delivered stays on disk.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from lidcam.capture.base import CaptureError, DeviceUnavailableError, VideoRecorder
from lidcam.delivery.base import DeliveryError, VideoDelivery
from lidcam.domain.models import (
    DeliveryResult,
    DeliveryStatus,
    MonitorEvent,
    MonitorEventType,
    RecordingRequest,
    RecordingResult,
)

logger = logging.getLogger(__name__)

EventCallback = Callable[[MonitorEvent], None]


def emit_event(
    callback: EventCallback | None,
    event_type: MonitorEventType,
    message: str,
    path: Path | None = None,
) -> None:
    """Hand an event to the front end callback, never letting it raise."""
    if callback is None:
        return
    try:
        callback(MonitorEvent(type=event_type, message=message, path=path))
    except Exception:
        logger.exception("Event callback failed for %s", event_type.value)


class RecordingPipeline:
    """Runs the record-then-deliver sequence for one trigger."""

    def __init__(
        self,
        recorder: VideoRecorder,
        delivery: VideoDelivery,
        on_event: EventCallback | None = None,
    ) -> None:
        self._recorder = recorder
        self._delivery = delivery
        self._on_event = on_event

    async def run(self, request: RecordingRequest) -> RecordingResult:
        """Record ``request`` and forward the clip if recording succeeded."""
        result = await self._record(request)
        if result.ok and result.path is not None:
            await self._deliver(result.path)
        return result

    async def _record(self, request: RecordingRequest) -> RecordingResult:
        device = request.device
        logger.info("Lid opened, recording %.0fs from camera %d", request.duration, device.id)
        try:
            result = await self._recorder.record(request)
        except DeviceUnavailableError as e:
            logger.error("Camera %d unavailable: %s", device.id, e)
            self._emit(MonitorEventType.RECORDING_FAILED, "Error - Camera unavailable")
            return RecordingResult(request=request, error=str(e))
        except CaptureError as e:
            logger.error("Recording failed: %s", e)
            self._emit(MonitorEventType.RECORDING_FAILED, f"Error - {e}")
            return RecordingResult(request=request, error=str(e))
        except Exception as e:
            logger.exception("Unexpected error while recording")
            self._emit(MonitorEventType.RECORDING_FAILED, f"Error - {e}")
            return RecordingResult(request=request, error=str(e))

        self._emit(
            MonitorEventType.RECORDING_SAVED,
            f"Recording complete! Saved {result.frame_count} frames to: {result.path}",
            path=result.path,
        )
        return result

    async def _deliver(self, path: Path) -> DeliveryResult | None:
        try:
            result = await self._delivery.deliver(path)
        except Exception as e:
            logger.exception("Unexpected error while delivering %s", path)
            self._emit(MonitorEventType.DELIVERY_FAILED, f"Failed to send video: {e}", path=path)
            return None

        size = f"{result.size_mb:.1f} MB" if result.size_mb is not None else "unknown size"
        if result.status is DeliveryStatus.DELIVERED:
            self._emit(MonitorEventType.DELIVERED, "Video sent successfully", path=path)
        elif result.status is DeliveryStatus.NOT_CONFIGURED:
            self._emit(
                MonitorEventType.DELIVERY_SKIPPED,
                "Delivery not configured, video saved locally",
                path=path,
            )
        elif result.status is DeliveryStatus.TOO_LARGE:
            self._emit(MonitorEventType.TOO_LARGE, f"Video too large to send ({size})", path=path)
            await self._notify_fallback(f"Video recorded but too large to send ({size})\n{path}")
        else:
            self._emit(
                MonitorEventType.DELIVERY_FAILED,
                f"Failed to send video: {result.error}",
                path=path,
            )
            await self._notify_fallback(f"Video recorded but failed to send ({size})\n{path}")
        return result

    async def _notify_fallback(self, text: str) -> None:
        """Tell the chat where the clip was kept locally, if anything is configured."""
        if not self._delivery.is_configured:
            return
        try:
            await self._delivery.notify(text)
        except DeliveryError as e:
            logger.error("Failed to send notification message: %s", e)

    def _emit(self, event_type: MonitorEventType, message: str, path: Path | None = None) -> None:
        emit_event(self._on_event, event_type, message, path=path)
