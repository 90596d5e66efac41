"""Video capture module for lidcam.

Provides camera discovery and fixed-length clip recording. The abstract
base class allows the OpenCV recorder to be swapped for a fake in tests.

Public API:
    VideoRecorder -- Abstract base class
    WebcamRecorder -- OpenCV implementation
    enumerate_devices / require_devices -- Camera discovery
"""

from lidcam.capture.base import (
    CaptureError,
    DeviceUnavailableError,
    NoCameraError,
    VideoRecorder,
)

__all__ = [
    "CaptureError",
    "DeviceUnavailableError",
    "NoCameraError",
    "VideoRecorder",
    "WebcamRecorder",
    "enumerate_devices",
    "require_devices",
]


def __getattr__(name: str) -> object:
    """Lazy import for implementations that require OpenCV."""
    if name == "WebcamRecorder":
        from lidcam.capture.webcam import WebcamRecorder
        return WebcamRecorder
    if name in ("enumerate_devices", "require_devices"):
        from lidcam.capture import devices
        return getattr(devices, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
