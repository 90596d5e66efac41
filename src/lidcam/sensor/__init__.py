"""Lid sensor module for lidcam.

Public API:
    LidSensor -- Abstract base class
    SensorError -- Raised when a read fails
    IoregLidSensor -- macOS ``ioreg`` implementation
"""

from lidcam.sensor.base import LidSensor, SensorError
from lidcam.sensor.ioreg import IoregLidSensor

__all__ = ["LidSensor", "SensorError", "IoregLidSensor"]
