"""Hand-written fakes for the lid sensor, clock and recorder.

Imported by ``conftest.py`` for fixtures and by tests that need to build
their own instances.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from lidcam.capture.base import DeviceUnavailableError, VideoRecorder
from lidcam.domain.models import LidState, RecordingRequest, RecordingResult
from lidcam.sensor.base import LidSensor, SensorError


class ScriptedSensor(LidSensor):
    """Returns (or raises) a fixed sequence of readings, then fails."""

    def __init__(self, readings: list[LidState | Exception]) -> None:
        self._readings = list(readings)
        self.calls = 0

    def read(self) -> LidState:
        self.calls += 1
        if not self._readings:
            raise SensorError("script exhausted")
        item = self._readings.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class FakeClock:
    """Monotonic clock whose value the test sets directly."""

    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeRecorder(VideoRecorder):
    """Records requests and writes a small placeholder clip.

    If ``gate`` is set, each recording blocks until the event is set,
    which lets tests observe the monitor while a clip is in flight.
    """

    def __init__(self, output_dir: Path, fail: bool = False) -> None:
        self.output_dir = output_dir
        self.fail = fail
        self.requests: list[RecordingRequest] = []
        self.gate: asyncio.Event | None = None

    async def record(self, request: RecordingRequest) -> RecordingResult:
        self.requests.append(request)
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise DeviceUnavailableError("Failed to open camera", device_id=request.device.id)
        path = self.output_dir / f"capture_{len(self.requests)}.mp4"
        path.write_bytes(b"\x00" * 1024)
        return RecordingResult(request=request, path=path, frame_count=10)
