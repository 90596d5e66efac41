"""Tests for the TransitionTracker edge-detection state machine."""

from __future__ import annotations

import itertools

import pytest

from lidcam.domain.models import LidState
from lidcam.monitor.state import TickOutcome, TransitionTracker

OPEN = LidState.OPEN
CLOSED = LidState.CLOSED


def feed(tracker: TransitionTracker, readings: list[tuple[float, LidState]]) -> list[TickOutcome]:
    return [tracker.observe(state, now) for now, state in readings]


def triggers(outcomes: list[TickOutcome]) -> int:
    return sum(1 for o in outcomes if o is TickOutcome.TRIGGER)


class TestFirstSample:
    @pytest.mark.parametrize("state", [OPEN, CLOSED])
    def test_first_sample_never_triggers(self, state: LidState) -> None:
        tracker = TransitionTracker(cooldown=5.0)
        assert tracker.observe(state, 0.0) is TickOutcome.FIRST_SAMPLE
        assert tracker.previous is state
        assert tracker.last_trigger_time is None

    def test_first_closed_sample_arms(self) -> None:
        tracker = TransitionTracker()
        tracker.observe(CLOSED, 0.0)
        assert tracker.armed is True

    def test_first_open_sample_does_not_arm(self) -> None:
        tracker = TransitionTracker()
        tracker.observe(OPEN, 0.0)
        assert tracker.armed is False

    def test_closed_first_then_open_triggers(self) -> None:
        tracker = TransitionTracker(cooldown=5.0)
        outcomes = feed(tracker, [(0, CLOSED), (1, OPEN)])
        assert outcomes == [TickOutcome.FIRST_SAMPLE, TickOutcome.TRIGGER]


class TestScenarios:
    def test_open_closed_open(self) -> None:
        tracker = TransitionTracker(cooldown=5.0)
        outcomes = feed(tracker, [(0, OPEN), (1, CLOSED), (2, OPEN)])
        assert outcomes == [TickOutcome.FIRST_SAMPLE, TickOutcome.ARMED, TickOutcome.TRIGGER]
        assert tracker.last_trigger_time == 2
        assert tracker.armed is False

    def test_second_edge_within_cooldown_is_suppressed(self) -> None:
        tracker = TransitionTracker(cooldown=5.0)
        outcomes = feed(tracker, [(0, CLOSED), (1, OPEN), (2, CLOSED), (3, OPEN)])
        assert outcomes == [
            TickOutcome.FIRST_SAMPLE,
            TickOutcome.TRIGGER,
            TickOutcome.ARMED,
            TickOutcome.COOLDOWN,
        ]
        assert tracker.last_trigger_time == 1

    def test_cooldown_skip_leaves_tracker_armed(self) -> None:
        tracker = TransitionTracker(cooldown=5.0)
        feed(tracker, [(0, CLOSED), (1, OPEN), (2, CLOSED), (3, OPEN)])
        assert tracker.armed is True
        assert tracker.previous is OPEN

    def test_staying_open_after_cooldown_does_not_fire(self) -> None:
        tracker = TransitionTracker(cooldown=5.0)
        outcomes = feed(
            tracker, [(0, CLOSED), (1, OPEN), (2, CLOSED), (3, OPEN), (10, OPEN), (11, OPEN)]
        )
        assert triggers(outcomes) == 1

    def test_edge_after_cooldown_fires_again(self) -> None:
        tracker = TransitionTracker(cooldown=5.0)
        outcomes = feed(tracker, [(0, CLOSED), (1, OPEN), (8, CLOSED), (9, OPEN)])
        assert triggers(outcomes) == 2
        assert tracker.last_trigger_time == 9


class TestIdempotence:
    def test_repeated_closed_reads_fire_once(self) -> None:
        tracker = TransitionTracker(cooldown=5.0)
        outcomes = feed(
            tracker, [(0, OPEN), (1, CLOSED), (2, CLOSED), (3, CLOSED), (4, OPEN)]
        )
        assert outcomes[1] is TickOutcome.ARMED
        assert outcomes[2] is TickOutcome.UNCHANGED
        assert outcomes[3] is TickOutcome.UNCHANGED
        assert triggers(outcomes) == 1

    def test_repeated_open_reads_after_trigger_do_not_retrigger(self) -> None:
        tracker = TransitionTracker(cooldown=0.0)
        outcomes = feed(tracker, [(0, CLOSED), (1, OPEN)] + [(t, OPEN) for t in range(2, 20)])
        assert triggers(outcomes) == 1
        assert tracker.armed is False

    def test_new_close_rearms_after_trigger(self) -> None:
        tracker = TransitionTracker(cooldown=0.0)
        feed(tracker, [(0, CLOSED), (1, OPEN)])
        assert tracker.armed is False
        tracker.observe(CLOSED, 2)
        assert tracker.armed is True


class TestCooldownBoundary:
    @pytest.mark.parametrize(
        ("second_edge", "expected"),
        [
            (4.999, TickOutcome.COOLDOWN),
            (5.0, TickOutcome.COOLDOWN),
            (5.001, TickOutcome.TRIGGER),
        ],
    )
    def test_boundary(self, second_edge: float, expected: TickOutcome) -> None:
        tracker = TransitionTracker(cooldown=5.0)
        # Trigger at t=0 from an armed closed baseline
        tracker.observe(CLOSED, -1.0)
        assert tracker.observe(OPEN, 0.0) is TickOutcome.TRIGGER
        tracker.observe(CLOSED, second_edge - 0.0005)
        assert tracker.observe(OPEN, second_edge) is expected

    def test_cooldown_measured_from_launch_not_completion(self) -> None:
        tracker = TransitionTracker(cooldown=5.0)
        feed(tracker, [(0, CLOSED), (1, OPEN)])
        assert tracker.cooldown_elapsed(6.01) is True
        assert tracker.cooldown_elapsed(5.99) is False

    def test_zero_cooldown_allows_back_to_back_edges(self) -> None:
        tracker = TransitionTracker(cooldown=0.0)
        outcomes = feed(tracker, [(0, CLOSED), (1, OPEN), (2, CLOSED), (3, OPEN)])
        assert triggers(outcomes) == 2

    def test_negative_cooldown_rejected(self) -> None:
        with pytest.raises(ValueError):
            TransitionTracker(cooldown=-1.0)


class TestNoTriggerWithoutClose:
    def test_open_only_sequence_never_triggers(self) -> None:
        tracker = TransitionTracker()
        outcomes = feed(tracker, [(t, OPEN) for t in range(10)])
        assert triggers(outcomes) == 0
        assert tracker.armed is False

    def test_closed_only_sequence_never_triggers(self) -> None:
        tracker = TransitionTracker()
        outcomes = feed(tracker, [(t, CLOSED) for t in range(10)])
        assert triggers(outcomes) == 0
        assert tracker.armed is True


class TestEveryOpenEdgeIsDecided:
    @pytest.mark.parametrize("sequence", list(itertools.product([OPEN, CLOSED], repeat=6)))
    def test_close_then_open_either_triggers_or_waits(self, sequence) -> None:
        tracker = TransitionTracker(cooldown=2.0)
        previous = None
        for now, state in enumerate(sequence):
            if previous is CLOSED:
                assert tracker.armed is True
            outcome = tracker.observe(state, float(now))
            if previous is CLOSED and state is OPEN:
                assert outcome in (TickOutcome.TRIGGER, TickOutcome.COOLDOWN)
            previous = state
