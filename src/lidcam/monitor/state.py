"""Edge detection for lid transitions.

``TransitionTracker`` holds the monitor's private state (armed flag,
previous observation, last trigger time) and decides, one observation
at a time, whether a close->open edge should launch a recording. It does
no I/O and reads no clock, so every decision is a pure function of the
observations and timestamps fed to it.
"""

from __future__ import annotations

import enum

from lidcam.domain.models import LidState


class TickOutcome(str, enum.Enum):
    """What a single successful observation did to the tracker."""

    FIRST_SAMPLE = "first_sample"  # Baseline recorded, never triggers
    UNCHANGED = "unchanged"
    ARMED = "armed"  # Open -> closed edge
    TRIGGER = "trigger"  # Closed -> open edge that launches a recording
    COOLDOWN = "cooldown"  # Qualifying edge suppressed by the cooldown


class TransitionTracker:
    """Arms on a close and triggers on the next open, at most once per cooldown.

    Example::

        tracker = TransitionTracker(cooldown=5.0)
        tracker.observe(LidState.OPEN, now=0.0)    # FIRST_SAMPLE
        tracker.observe(LidState.CLOSED, now=1.0)  # ARMED
        tracker.observe(LidState.OPEN, now=2.0)    # TRIGGER
    """

    def __init__(self, cooldown: float = 5.0) -> None:
        if cooldown < 0:
            raise ValueError("cooldown must be >= 0")
        self._cooldown = cooldown
        self._armed = False
        self._previous: LidState | None = None
        self._last_trigger_time: float | None = None

    @property
    def cooldown(self) -> float:
        return self._cooldown

    @property
    def armed(self) -> bool:
        return self._armed

    @property
    def previous(self) -> LidState | None:
        return self._previous

    @property
    def last_trigger_time(self) -> float | None:
        return self._last_trigger_time

    def cooldown_elapsed(self, now: float) -> bool:
        if self._last_trigger_time is None:
            return True
        return now - self._last_trigger_time > self._cooldown

    def observe(self, current: LidState, now: float) -> TickOutcome:
        """Feed one successful sensor read taken at time ``now`` (seconds)."""
        if self._previous is None:
            self._previous = current
            self._armed = current is LidState.CLOSED
            return TickOutcome.FIRST_SAMPLE

        previous = self._previous
        outcome = TickOutcome.UNCHANGED

        if current is LidState.CLOSED:
            # Any close re-arms, whatever the armed flag was before
            self._armed = True
            if previous is LidState.OPEN:
                outcome = TickOutcome.ARMED
        elif previous is LidState.CLOSED:
            # A closed previous read always left the tracker armed
            if self.cooldown_elapsed(now):
                self._last_trigger_time = now
                self._armed = False
                outcome = TickOutcome.TRIGGER
            else:
                outcome = TickOutcome.COOLDOWN

        self._previous = current
        return outcome
