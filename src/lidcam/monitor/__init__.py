"""Lid monitor module for lidcam.

Public API:
    LidMonitor -- asyncio sampling loop
    MonitorService -- thread-hosted start/stop wrapper
    TransitionTracker / TickOutcome -- the edge-detection state machine
    RecordingPipeline -- record-then-deliver task for one trigger
"""

from lidcam.monitor.loop import LidMonitor, MonitorService
from lidcam.monitor.pipeline import RecordingPipeline
from lidcam.monitor.state import TickOutcome, TransitionTracker

__all__ = [
    "LidMonitor",
    "MonitorService",
    "RecordingPipeline",
    "TickOutcome",
    "TransitionTracker",
]
