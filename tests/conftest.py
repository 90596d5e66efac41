"""Shared test fixtures for the lidcam test suite.

Provides scripted lid sensors, a controllable clock, a fake recorder and
mock delivery backends so the monitor can be exercised without a camera,
a laptop lid, or network access.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from lidcam.delivery.base import VideoDelivery
from lidcam.domain.models import (
    CameraDevice,
    DeliveryResult,
    DeliveryStatus,
)
from tests.fakes import FakeClock, FakeRecorder


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_device() -> CameraDevice:
    """A 720p camera at index 0."""
    return CameraDevice(id=0, width=1280, height=720, fps=30)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_recorder(tmp_path: Path) -> FakeRecorder:
    return FakeRecorder(tmp_path)


@pytest.fixture
def mock_delivery() -> AsyncMock:
    """A configured delivery backend whose deliver() succeeds."""
    mock = AsyncMock(spec=VideoDelivery)
    mock.is_configured = True

    async def _deliver(path: Path) -> DeliveryResult:
        return DeliveryResult(status=DeliveryStatus.DELIVERED, path=path, size_mb=0.001)

    mock.deliver.side_effect = _deliver
    return mock

