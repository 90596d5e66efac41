"""The lid monitor: sample the sensor on a timer, trigger recordings on edges.

``LidMonitor`` is the asyncio sampling loop. It owns a
``TransitionTracker`` and is the only thing that mutates it. Recordings
are launched as detached tasks and never awaited by the loop.

``MonitorService`` hosts a ``LidMonitor`` on its own thread and event
loop so that synchronous front ends (the Qt GUI) get a plain
``start()`` / ``stop()`` control surface.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable

from lidcam.capture.base import VideoRecorder
from lidcam.delivery.base import VideoDelivery
from lidcam.domain.models import CameraDevice, LidState, MonitorEventType, RecordingRequest
from lidcam.monitor.pipeline import EventCallback, RecordingPipeline, emit_event
from lidcam.monitor.state import TickOutcome, TransitionTracker
from lidcam.sensor.base import LidSensor, SensorError

logger = logging.getLogger(__name__)

DEFAULT_TICK_INTERVAL = 0.5
DEFAULT_COOLDOWN = 5.0
DEFAULT_RECORD_DURATION = 15.0
DEFAULT_SENSOR_TIMEOUT = 2.0


class LidMonitor:
    """Samples the lid sensor and fires one recording per close->open edge.

    Coordinates: read sensor -> update tracker -> [trigger] spawn task -> repeat
    """

    def __init__(
        self,
        sensor: LidSensor,
        recorder: VideoRecorder,
        delivery: VideoDelivery,
        device: CameraDevice,
        record_duration: float = DEFAULT_RECORD_DURATION,
        cooldown: float = DEFAULT_COOLDOWN,
        tick_interval: float = DEFAULT_TICK_INTERVAL,
        sensor_timeout: float = DEFAULT_SENSOR_TIMEOUT,
        cancel_tasks_on_stop: bool = False,
        on_event: EventCallback | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if record_duration <= 0:
            raise ValueError("record_duration must be > 0")
        if tick_interval <= 0:
            raise ValueError("tick_interval must be > 0")
        self._sensor = sensor
        self._device = device
        self._record_duration = record_duration
        self._tick_interval = tick_interval
        self._sensor_timeout = sensor_timeout
        self._cancel_tasks_on_stop = cancel_tasks_on_stop
        self._on_event = on_event
        self._clock = clock
        self._tracker = TransitionTracker(cooldown=cooldown)
        self._pipeline = RecordingPipeline(recorder, delivery, on_event=on_event)
        self._tasks: set[asyncio.Task] = set()
        self._running = False
        self._stop_requested = False
        self._wake: asyncio.Event | None = None
        self._failed_reads = 0
        self._sensor_executor: ThreadPoolExecutor | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def tracker(self) -> TransitionTracker:
        return self._tracker

    @property
    def in_flight(self) -> int:
        """Number of recording tasks that have not finished yet."""
        return len(self._tasks)

    def stop(self) -> None:
        """Ask the sampling loop to exit. Safe to call at any time, repeatedly.

        Must be called from the loop's own thread; other threads go
        through ``MonitorService.stop()``.
        """
        self._stop_requested = True
        if self._wake is not None:
            self._wake.set()

    async def run(self) -> None:
        """Sample until ``stop()`` is called or the task is cancelled."""
        loop = asyncio.get_running_loop()
        self._wake = asyncio.Event()
        self._running = True
        logger.info(
            "Monitoring lid state (tick %.2fs, cooldown %.1fs, recording %.0fs from camera %d)",
            self._tick_interval, self._tracker.cooldown, self._record_duration, self._device.id,
        )
        self._emit(MonitorEventType.STARTED, "Monitoring - waiting for lid close/open")
        next_tick = loop.time()
        try:
            while not self._stop_requested:
                await self.tick()
                next_tick += self._tick_interval
                delay = max(0.0, next_tick - loop.time())
                if delay == 0.0:
                    # Fell behind (slow sensor read); resync instead of bursting
                    next_tick = loop.time()
                try:
                    await asyncio.wait_for(self._wake.wait(), timeout=delay)
                except asyncio.TimeoutError:
                    pass
        finally:
            self._running = False
            self._stop_requested = False
            self._wake = None
            if self._cancel_tasks_on_stop:
                self.cancel_tasks()
            self.close_sensor_executor()
            logger.info("Monitoring stopped")
            self._emit(MonitorEventType.STOPPED, "Stopped")

    async def tick(self) -> TickOutcome | None:
        """Run one sampling step. Returns None when the sensor read failed."""
        try:
            state = await self._read_sensor()
        except SensorError as e:
            self._record_read_failure(e)
            return None

        if self._failed_reads:
            logger.info("Lid sensor recovered after %d failed read(s)", self._failed_reads)
            self._failed_reads = 0

        outcome = self._tracker.observe(state, self._clock())
        self._report(outcome, state)
        if outcome is TickOutcome.TRIGGER:
            self._launch_recording()
        return outcome

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for in-flight recording tasks to finish (best effort)."""
        if not self._tasks:
            return
        logger.info("Waiting for %d recording(s) to finish", len(self._tasks))
        _, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        if pending:
            logger.warning("%d recording(s) still running after %.0fs", len(pending), timeout or 0)

    def cancel_tasks(self) -> None:
        """Cancel in-flight recording tasks.

        The capture thread itself cannot be interrupted, so a clip that is
        already being written is still finished on disk; only delivery is
        abandoned.
        """
        for task in list(self._tasks):
            task.cancel()

    def close_sensor_executor(self) -> None:
        """Release the sensor thread. A later ``tick()`` starts a new one."""
        if self._sensor_executor is not None:
            self._sensor_executor.shutdown(wait=False)
            self._sensor_executor = None

    def _sensor_pool(self) -> ThreadPoolExecutor:
        # Kept apart from the default executor, where recordings queue on the camera lock
        if self._sensor_executor is None:
            self._sensor_executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="lidcam-sensor"
            )
        return self._sensor_executor

    async def _read_sensor(self) -> LidState:
        loop = asyncio.get_running_loop()
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(self._sensor_pool(), self._sensor.read),
                timeout=self._sensor_timeout,
            )
        except asyncio.TimeoutError as e:
            raise SensorError(f"lid sensor read timed out after {self._sensor_timeout:.1f}s") from e
        except SensorError:
            raise
        except Exception as e:
            raise SensorError(f"unexpected lid sensor error: {e}") from e

    def _record_read_failure(self, error: SensorError) -> None:
        self._failed_reads += 1
        if self._failed_reads == 1:
            logger.warning("Lid sensor read failed, skipping tick: %s", error)
        else:
            logger.debug("Lid sensor read failed (%d in a row): %s", self._failed_reads, error)

    def _launch_recording(self) -> None:
        request = RecordingRequest(device=self._device, duration=self._record_duration)
        task = asyncio.create_task(
            self._pipeline.run(request),
            name=f"lidcam-recording-{request.requested_at:%H%M%S}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _report(self, outcome: TickOutcome, state: LidState) -> None:
        if outcome is TickOutcome.FIRST_SAMPLE:
            if state is LidState.CLOSED:
                self._emit(MonitorEventType.ARMED, "Monitoring - lid closed (armed)")
            else:
                self._emit(MonitorEventType.LID_OPEN, "Monitoring - lid open")
        elif outcome is TickOutcome.ARMED:
            logger.info("Lid closed - recording armed")
            self._emit(MonitorEventType.ARMED, "Monitoring - lid closed (armed)")
        elif outcome is TickOutcome.TRIGGER:
            logger.info("Lid opened - starting recording")
            self._emit(MonitorEventType.TRIGGERED, "Recording...")
        elif outcome is TickOutcome.COOLDOWN:
            logger.info("Lid opened but still in cooldown period")
            self._emit(MonitorEventType.COOLDOWN_SKIPPED, "Lid opened but still in cooldown period")

    def _emit(self, event_type: MonitorEventType, message: str) -> None:
        emit_event(self._on_event, event_type, message)


class MonitorService:
    """Runs a ``LidMonitor`` on a background thread with its own event loop.

    Usage::

        service = MonitorService(sensor, recorder, delivery, on_event=print)
        service.start(device, duration=15, cooldown=5, tick_interval=0.5)
        ...
        service.stop()
    """

    def __init__(
        self,
        sensor: LidSensor,
        recorder: VideoRecorder,
        delivery: VideoDelivery,
        sensor_timeout: float = DEFAULT_SENSOR_TIMEOUT,
        cancel_tasks_on_stop: bool = False,
        on_event: EventCallback | None = None,
    ) -> None:
        self._sensor = sensor
        self._recorder = recorder
        self._delivery = delivery
        self._sensor_timeout = sensor_timeout
        self._cancel_tasks_on_stop = cancel_tasks_on_stop
        self._on_event = on_event
        self._lock = threading.Lock()
        self._monitor: LidMonitor | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._monitor is not None

    def set_delivery(self, delivery: VideoDelivery) -> None:
        """Replace the delivery backend used by the next ``start()``."""
        self._delivery = delivery

    def start(
        self,
        device: CameraDevice,
        duration: float = DEFAULT_RECORD_DURATION,
        cooldown: float = DEFAULT_COOLDOWN,
        tick_interval: float = DEFAULT_TICK_INTERVAL,
    ) -> None:
        """Start monitoring in the background.

        Raises:
            RuntimeError: If monitoring is already running.
        """
        with self._lock:
            if self._monitor is not None:
                raise RuntimeError("Monitor is already running")
            monitor = LidMonitor(
                sensor=self._sensor,
                recorder=self._recorder,
                delivery=self._delivery,
                device=device,
                record_duration=duration,
                cooldown=cooldown,
                tick_interval=tick_interval,
                sensor_timeout=self._sensor_timeout,
                cancel_tasks_on_stop=self._cancel_tasks_on_stop,
                on_event=self._on_event,
            )
            ready = threading.Event()
            thread = threading.Thread(
                target=self._run_thread,
                args=(monitor, ready),
                name="lidcam-monitor",
                daemon=True,
            )
            self._monitor = monitor
            self._thread = thread
            thread.start()
        ready.wait(timeout=5.0)

    def stop(self) -> None:
        """Stop monitoring. Idempotent; a no-op when not running.

        Does not wait for in-flight recordings; the background thread
        finishes them before it exits.
        """
        with self._lock:
            monitor, loop = self._monitor, self._loop
            self._monitor = None
            self._loop = None
        if monitor is None:
            return
        if loop is None or loop.is_closed():
            return
        try:
            loop.call_soon_threadsafe(monitor.stop)
        except RuntimeError:
            logger.debug("Monitor loop already closed")

    def join(self, timeout: float | None = None) -> None:
        """Wait for the background thread (including pending recordings) to exit."""
        thread = self._thread
        if thread is not None:
            thread.join(timeout)

    def _run_thread(self, monitor: LidMonitor, ready: threading.Event) -> None:
        try:
            asyncio.run(self._serve(monitor, ready))
        except Exception:
            logger.exception("Monitor thread crashed")
        finally:
            ready.set()
            with self._lock:
                if self._monitor is monitor:
                    self._monitor = None
                    self._loop = None

    async def _serve(self, monitor: LidMonitor, ready: threading.Event) -> None:
        with self._lock:
            if self._monitor is monitor:
                self._loop = asyncio.get_running_loop()
            else:
                # stop() won the race before the loop existed
                monitor.stop()
        ready.set()
        await monitor.run()
        await monitor.drain()
