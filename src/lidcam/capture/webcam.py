"""Webcam recorder implementation using OpenCV.

Captures frames from a local camera and writes them to a timestamped
MP4 file. OpenCV's blocking calls run in a thread pool executor so the
event loop (and with it the lid monitor) keeps ticking while a clip is
being recorded.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from datetime import datetime
from pathlib import Path

import cv2
import numpy as np

from lidcam.capture.base import CaptureError, DeviceUnavailableError, VideoRecorder
from lidcam.domain.models import CameraDevice, RecordingRequest, RecordingResult

logger = logging.getLogger(__name__)

FILENAME_PREFIX = "capture_"
FILENAME_TIME_FORMAT = "%Y%m%d_%H%M%S"


class WebcamRecorder(VideoRecorder):
    """Records clips from an OpenCV camera.

    Only one recording may hold a given device at a time. A second
    trigger for the same device waits in its worker thread until the
    first clip is finished instead of opening the camera twice.
    """

    def __init__(
        self,
        output_dir: Path | str,
        codec: str = "avc1",
        fallback_fps: int = 30,
        fallback_resolution: tuple[int, int] = (1280, 720),
        flush_delay: float = 1.0,
    ) -> None:
        if len(codec) != 4:
            raise ValueError(f"FOURCC codec must be 4 characters, got {codec!r}")
        self._output_dir = Path(output_dir).expanduser()
        self._codec = codec
        self._fallback_fps = fallback_fps
        self._fallback_resolution = fallback_resolution
        self._flush_delay = flush_delay
        self._locks: dict[int, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    async def record(self, request: RecordingRequest) -> RecordingResult:
        """Record a clip in a worker thread."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._record_sync, request)

    def device_lock(self, device_id: int) -> threading.Lock:
        """Return the lock guarding exclusive use of ``device_id``."""
        with self._locks_guard:
            lock = self._locks.get(device_id)
            if lock is None:
                lock = self._locks[device_id] = threading.Lock()
            return lock

    def _record_sync(self, request: RecordingRequest) -> RecordingResult:
        """Synchronous recording (runs in thread pool)."""
        device = request.device
        lock = self.device_lock(device.id)
        if lock.locked():
            logger.info("Camera %d is busy, waiting for the running recording", device.id)
        with lock:
            path, frames = self._capture_to_file(device, request.duration)
        if self._flush_delay > 0:
            time.sleep(self._flush_delay)
        logger.info("Saved %d frames to %s", frames, path)
        return RecordingResult(request=request, path=path, frame_count=frames)

    def _capture_to_file(self, device: CameraDevice, duration: float) -> tuple[Path, int]:
        cap = cv2.VideoCapture(device.id)
        try:
            if not cap.isOpened():
                raise DeviceUnavailableError(
                    f"Failed to open camera {device.id}", device_id=device.id
                )
            width, height = self.frame_size(device)
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
            fps = self.frame_rate(device)

            path = self.next_output_path()
            fourcc = cv2.VideoWriter_fourcc(*self._codec)
            writer = cv2.VideoWriter(str(path), fourcc, float(fps), (width, height), True)
            if not writer.isOpened():
                raise CaptureError(f"Failed to create video writer for {path}")

            logger.info(
                "Recording %dx%d @ %dfps for %.1fs to %s",
                width, height, fps, duration, path,
            )
            try:
                frames = self._write_frames(cap, writer, fps, duration, (width, height))
            finally:
                writer.release()
        finally:
            cap.release()
        return path, frames

    def _write_frames(
        self,
        cap: cv2.VideoCapture,
        writer: cv2.VideoWriter,
        fps: int,
        duration: float,
        size: tuple[int, int],
    ) -> int:
        """Read and write frames at ``fps`` until ``duration`` has elapsed."""
        interval = 1.0 / fps
        start = time.monotonic()
        deadline = start + duration
        next_tick = start + interval
        frames = 0
        while True:
            delay = next_tick - time.monotonic()
            if delay > 0:
                time.sleep(delay)
            next_tick += interval
            if time.monotonic() > deadline:
                break
            ok, frame = cap.read()
            if not ok or frame is None or frame.size == 0:
                continue
            writer.write(self._fit_frame(frame, size))
            frames += 1
        return frames

    @staticmethod
    def _fit_frame(frame: np.ndarray, size: tuple[int, int]) -> np.ndarray:
        # VideoWriter silently drops frames whose size differs from the header
        width, height = size
        if frame.shape[1] != width or frame.shape[0] != height:
            return cv2.resize(frame, (width, height))
        return frame

    def frame_size(self, device: CameraDevice) -> tuple[int, int]:
        width, height = int(device.width), int(device.height)
        if width == 0 or height == 0:
            return self._fallback_resolution
        return width, height

    def frame_rate(self, device: CameraDevice) -> int:
        return device.fps if device.fps > 0 else self._fallback_fps

    def next_output_path(self, now: datetime | None = None) -> Path:
        """Return a fresh ``capture_<timestamp>.mp4`` path in the output dir."""
        self._output_dir.mkdir(parents=True, exist_ok=True)
        stamp = (now or datetime.now()).strftime(FILENAME_TIME_FORMAT)
        path = self._output_dir / f"{FILENAME_PREFIX}{stamp}.mp4"
        suffix = 1
        while path.exists():
            path = self._output_dir / f"{FILENAME_PREFIX}{stamp}_{suffix}.mp4"
            suffix += 1
        return path
