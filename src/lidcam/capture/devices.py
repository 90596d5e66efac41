"""Camera discovery by probing OpenCV device indices."""

from __future__ import annotations

import logging

import cv2

from lidcam.capture.base import NoCameraError
from lidcam.domain.models import CameraDevice

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_FPS = 30


def probe_device(index: int, fallback_fps: int = DEFAULT_FALLBACK_FPS) -> CameraDevice | None:
    """Open device ``index`` briefly and report its geometry, or None."""
    cap = cv2.VideoCapture(index)
    try:
        if not cap.isOpened():
            return None
        width = cap.get(cv2.CAP_PROP_FRAME_WIDTH)
        height = cap.get(cv2.CAP_PROP_FRAME_HEIGHT)
        fps = int(cap.get(cv2.CAP_PROP_FPS))
    finally:
        cap.release()
    if fps <= 0:
        fps = fallback_fps
    return CameraDevice(id=index, width=max(width, 0.0), height=max(height, 0.0), fps=fps)


def enumerate_devices(
    max_devices: int = 3, fallback_fps: int = DEFAULT_FALLBACK_FPS
) -> list[CameraDevice]:
    """Probe indices ``0..max_devices-1`` and return the cameras that open."""
    devices: list[CameraDevice] = []
    for index in range(max_devices):
        device = probe_device(index, fallback_fps=fallback_fps)
        if device is None:
            continue
        logger.debug("Found camera %s", device.label)
        devices.append(device)
    logger.info("Found %d camera(s)", len(devices))
    return devices


def require_devices(
    max_devices: int = 3, fallback_fps: int = DEFAULT_FALLBACK_FPS
) -> list[CameraDevice]:
    """Like ``enumerate_devices`` but fail when nothing was found.

    Raises:
        NoCameraError: If no device index could be opened.
    """
    devices = enumerate_devices(max_devices, fallback_fps=fallback_fps)
    if not devices:
        raise NoCameraError("No cameras found")
    return devices
