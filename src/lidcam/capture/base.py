"""Abstract base class for video recorders.

The monitor hands each trigger's ``RecordingRequest`` to a recorder and
never looks inside it; all the recorder must do is produce a clip file
or raise. This lets the OpenCV implementation be replaced by a fake in
tests without touching the monitor or the recording pipeline.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from lidcam.domain.models import RecordingRequest, RecordingResult

logger = logging.getLogger(__name__)


class VideoRecorder(ABC):
    """Records a fixed-length clip from a camera device.

    Example usage::

        recorder = WebcamRecorder(output_dir=Path("videos"))
        result = await recorder.record(RecordingRequest(device=cam, duration=10))
        print(result.path)
    """

    @abstractmethod
    async def record(self, request: RecordingRequest) -> RecordingResult:
        """Capture ``request.duration`` seconds from ``request.device``.

        May take noticeably longer than the requested duration (device
        open, writer flush). Implementations must not block the event
        loop while capturing.

        Returns:
            A successful RecordingResult carrying the clip path.

        Raises:
            DeviceUnavailableError: If the camera cannot be opened.
            CaptureError: If the clip cannot be written.
        """
        ...


class CaptureError(Exception):
    """Raised when a recording cannot be produced."""


class DeviceUnavailableError(CaptureError):
    """Raised when the camera device cannot be opened."""

    def __init__(self, message: str, device_id: int | None = None) -> None:
        super().__init__(message)
        self.device_id = device_id


class NoCameraError(Exception):
    """Raised at startup when no usable camera was found."""
