"""Tests for camera discovery."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from lidcam.capture.base import NoCameraError
from lidcam.capture.devices import enumerate_devices, probe_device, require_devices

WIDTH, HEIGHT, FPS = 3, 4, 5


def camera(opened: bool, width: float = 1280, height: float = 720, fps: float = 30) -> MagicMock:
    cap = MagicMock()
    cap.isOpened.return_value = opened
    props = {WIDTH: width, HEIGHT: height, FPS: fps}
    cap.get.side_effect = lambda prop: props[prop]
    return cap


@pytest.fixture
def mock_cv2():
    with patch("lidcam.capture.devices.cv2") as cv2_mock:
        cv2_mock.CAP_PROP_FRAME_WIDTH = WIDTH
        cv2_mock.CAP_PROP_FRAME_HEIGHT = HEIGHT
        cv2_mock.CAP_PROP_FPS = FPS
        yield cv2_mock


class TestProbeDevice:
    def test_reports_geometry(self, mock_cv2: MagicMock) -> None:
        cap = camera(True, 1920, 1080, 60)
        mock_cv2.VideoCapture.return_value = cap

        device = probe_device(1)

        assert device is not None
        assert device.id == 1
        assert device.label == "Camera 1 - 1920x1080 @ 60fps"
        cap.release.assert_called_once()

    def test_unopenable_index_is_none(self, mock_cv2: MagicMock) -> None:
        cap = camera(False)
        mock_cv2.VideoCapture.return_value = cap

        assert probe_device(0) is None
        cap.release.assert_called_once()

    def test_zero_fps_uses_fallback(self, mock_cv2: MagicMock) -> None:
        mock_cv2.VideoCapture.return_value = camera(True, fps=0)
        device = probe_device(0, fallback_fps=24)
        assert device is not None
        assert device.fps == 24


class TestEnumerateDevices:
    def test_skips_indices_that_do_not_open(self, mock_cv2: MagicMock) -> None:
        mock_cv2.VideoCapture.side_effect = [camera(True), camera(False), camera(True)]

        devices = enumerate_devices(max_devices=3)

        assert [d.id for d in devices] == [0, 2]
        assert mock_cv2.VideoCapture.call_count == 3

    def test_probes_only_up_to_limit(self, mock_cv2: MagicMock) -> None:
        mock_cv2.VideoCapture.side_effect = lambda index: camera(True)
        assert len(enumerate_devices(max_devices=10)) == 10

    def test_require_devices_raises_when_empty(self, mock_cv2: MagicMock) -> None:
        mock_cv2.VideoCapture.side_effect = lambda index: camera(False)
        with pytest.raises(NoCameraError, match="No cameras found"):
            require_devices(max_devices=3)

    def test_require_devices_returns_found(self, mock_cv2: MagicMock) -> None:
        mock_cv2.VideoCapture.side_effect = lambda index: camera(True)
        assert [d.id for d in require_devices(max_devices=2)] == [0, 1]
