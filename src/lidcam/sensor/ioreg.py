"""Lid sensor backed by the macOS I/O Registry.

Runs ``ioreg -r -k AppleClamshellState -d 1`` and looks for the
``AppleClamshellState`` property. ``Yes`` means the clamshell is closed.
"""

from __future__ import annotations

import logging
import subprocess

from lidcam.domain.models import LidState
from lidcam.sensor.base import LidSensor, SensorError

logger = logging.getLogger(__name__)

IOREG_COMMAND = ("ioreg", "-r", "-k", "AppleClamshellState", "-d", "1")
CLAMSHELL_KEY = "AppleClamshellState"

DEFAULT_TIMEOUT = 2.0


def parse_clamshell_state(output: str) -> LidState:
    """Extract the lid state from ``ioreg`` text output.

    Raises:
        SensorError: If no line carries a recognisable clamshell value.
    """
    for line in output.splitlines():
        if CLAMSHELL_KEY not in line:
            continue
        if "= Yes" in line:
            return LidState.CLOSED
        if "= No" in line:
            return LidState.OPEN
    raise SensorError(f"{CLAMSHELL_KEY} not found")


class IoregLidSensor(LidSensor):
    """Reads the clamshell state through the ``ioreg`` command."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT) -> None:
        self._timeout = timeout

    def read(self) -> LidState:
        try:
            proc = subprocess.run(
                IOREG_COMMAND,
                capture_output=True,
                text=True,
                timeout=self._timeout,
                check=True,
            )
        except subprocess.TimeoutExpired as e:
            raise SensorError(f"ioreg timed out after {self._timeout:.1f}s") from e
        except (OSError, subprocess.CalledProcessError) as e:
            raise SensorError(f"failed to run ioreg: {e}") from e
        return parse_clamshell_state(proc.stdout)
