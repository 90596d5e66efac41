"""Abstract base class for lid state sensors.

The monitor only needs one capability from the hardware side: read the
current lid state, or fail. Keeping that behind an interface lets the
macOS ``ioreg`` reader be swapped for a scripted sensor in tests or a
different platform query later.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from lidcam.domain.models import LidState

logger = logging.getLogger(__name__)


class LidSensor(ABC):
    """Reads the current lid state from the operating system.

    ``read()`` is synchronous and may block briefly on an external
    process; the monitor calls it from a worker thread with a timeout.
    """

    @abstractmethod
    def read(self) -> LidState:
        """Return the current lid state.

        Raises:
            SensorError: If the state cannot be determined.
        """
        ...


class SensorError(Exception):
    """Raised when the lid state cannot be read."""
