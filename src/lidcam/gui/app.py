"""Desktop front end built on PySide6.

A small fixed-size window for picking a camera, the clip length and the
optional Telegram credentials, with Start/Stop controls and a log pane.
Closing the window hides it to the system tray; monitoring keeps
running until Stop or Quit.

The lid monitor runs on ``MonitorService``'s background thread. Its
events and log records reach the widgets through Qt signals, which Qt
delivers on the GUI thread.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from datetime import datetime
from pathlib import Path

from pydantic import SecretStr
from PySide6.QtCore import QObject, Qt, Signal
from PySide6.QtGui import QAction, QCloseEvent
from PySide6.QtWidgets import (
    QApplication,
    QComboBox,
    QGridLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QMenu,
    QMessageBox,
    QPlainTextEdit,
    QPushButton,
    QSpinBox,
    QStyle,
    QSystemTrayIcon,
    QVBoxLayout,
    QWidget,
)

from lidcam.capture.devices import enumerate_devices
from lidcam.cli import build_delivery, build_recorder
from lidcam.config.settings import Settings, save_settings
from lidcam.delivery.base import DeliveryError
from lidcam.delivery.telegram import PLACEHOLDER_TOKEN, TelegramDelivery
from lidcam.domain.models import CameraDevice, MonitorEvent, MonitorEventType
from lidcam.monitor.loop import MonitorService
from lidcam.sensor.ioreg import IoregLidSensor
from lidcam.utils.logging import ROOT_LOGGER

logger = logging.getLogger(__name__)

APP_NAME = "lidcam"
WINDOW_WIDTH = 400
WINDOW_HEIGHT_COLLAPSED = 220
WINDOW_HEIGHT_EXPANDED = 320

# Status label text for events that change what the monitor is doing
STATUS_TEXT = {
    MonitorEventType.STARTED: "Monitoring - waiting for lid close/open",
    MonitorEventType.ARMED: "Monitoring - lid closed (armed)",
    MonitorEventType.LID_OPEN: "Monitoring - lid open",
    MonitorEventType.TRIGGERED: "Recording...",
    MonitorEventType.RECORDING_SAVED: "Monitoring - recording complete",
    MonitorEventType.STOPPED: "Stopped",
}


def run_connection_test(delivery: TelegramDelivery, with_chat: bool) -> tuple[bool, str]:
    """Run the bot check on the calling thread and describe the outcome.

    Never raises, so the Test button is always re-enabled.
    """
    try:
        username = asyncio.run(delivery.test_connection(send_message=with_chat))
    except DeliveryError as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Unexpected error while testing the Telegram connection")
        return False, f"Unexpected error: {e}"
    if with_chat:
        return True, "Telegram connection test successful!"
    return True, f"Bot connection successful (@{username})!\nAdd chat ID to send test messages."


class _SignalBridge(QObject):
    """Carries callbacks from worker threads onto the GUI thread."""

    monitorEvent = Signal(object)
    logMessage = Signal(str)
    testFinished = Signal(bool, str)


class QtLogHandler(logging.Handler):
    """Forwards ``lidcam`` log records to the window's log pane."""

    def __init__(self, bridge: _SignalBridge) -> None:
        super().__init__(level=logging.INFO)
        self._bridge = bridge
        self.setFormatter(logging.Formatter("%(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._bridge.logMessage.emit(self.format(record))
        except RuntimeError:
            # Bridge already destroyed during shutdown
            pass


class MainWindow(QWidget):
    """Main lidcam window plus its tray icon."""

    def __init__(self, settings: Settings, config_path: Path | None = None) -> None:
        super().__init__()
        self._settings = settings
        self._config_path = config_path
        self._devices: list[CameraDevice] = []
        self._log_visible = False
        self._quitting = False

        self._bridge = _SignalBridge(self)
        self._bridge.monitorEvent.connect(self._on_monitor_event)
        self._bridge.logMessage.connect(self.append_log)
        self._bridge.testFinished.connect(self._on_test_finished)

        self._log_handler = QtLogHandler(self._bridge)
        logging.getLogger(ROOT_LOGGER).addHandler(self._log_handler)

        self._service = MonitorService(
            sensor=IoregLidSensor(timeout=settings.monitor.sensor_timeout),
            recorder=build_recorder(settings),
            delivery=build_delivery(settings),
            sensor_timeout=settings.monitor.sensor_timeout,
            cancel_tasks_on_stop=settings.monitor.cancel_tasks_on_stop,
            on_event=self._bridge.monitorEvent.emit,
        )

        self.setWindowTitle(APP_NAME)
        self.setWindowIcon(self.style().standardIcon(QStyle.SP_ComputerIcon))
        self._setup_ui()
        self._setup_tray()
        self.setFixedSize(WINDOW_WIDTH, WINDOW_HEIGHT_COLLAPSED)

        self.load_devices()
        self.load_configuration()

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def _setup_ui(self) -> None:
        layout = QVBoxLayout(self)

        status_row = QHBoxLayout()
        icon = QLabel()
        icon.setPixmap(self.style().standardIcon(QStyle.SP_MessageBoxInformation).pixmap(16, 16))
        self._status_label = QLabel("Ready")
        status_row.addWidget(icon)
        status_row.addWidget(self._status_label, 1)
        layout.addLayout(status_row)

        camera_label = QLabel("<b>Camera &amp; Duration:</b>")
        self._device_combo = QComboBox()
        self._device_combo.setPlaceholderText("Select camera device...")
        self._device_combo.currentIndexChanged.connect(self._on_device_selected)
        self._duration_spin = QSpinBox()
        self._duration_spin.setRange(1, 3600)
        self._duration_spin.setSuffix(" s")
        self._duration_spin.setValue(int(self._settings.monitor.record_duration))
        camera_row = QGridLayout()
        camera_row.addWidget(self._device_combo, 0, 0)
        camera_row.addWidget(self._duration_spin, 0, 1)
        layout.addWidget(camera_label)
        layout.addLayout(camera_row)

        telegram_label = QLabel("<b>Telegram (optional):</b>")
        self._token_edit = QLineEdit()
        self._token_edit.setPlaceholderText("Bot token")
        self._token_edit.setEchoMode(QLineEdit.Password)
        self._chat_edit = QLineEdit()
        self._chat_edit.setPlaceholderText("Chat ID")
        self._test_button = QPushButton("Test")
        self._test_button.clicked.connect(self.test_telegram_connection)
        telegram_row = QGridLayout()
        telegram_row.addWidget(self._token_edit, 0, 0)
        telegram_row.addWidget(self._chat_edit, 0, 1)
        telegram_row.addWidget(self._test_button, 0, 2)
        layout.addWidget(telegram_label)
        layout.addLayout(telegram_row)

        self._start_button = QPushButton("Start")
        self._start_button.setDefault(True)
        self._start_button.clicked.connect(self.start_monitoring)
        self._stop_button = QPushButton("Stop")
        self._stop_button.setEnabled(False)
        self._stop_button.clicked.connect(self.stop_monitoring)
        self._log_button = QPushButton("Show Log")
        self._log_button.clicked.connect(self.toggle_log)
        controls_row = QGridLayout()
        controls_row.addWidget(self._start_button, 0, 0)
        controls_row.addWidget(self._stop_button, 0, 1)
        controls_row.addWidget(self._log_button, 0, 2)
        layout.addLayout(controls_row)

        self._log_text = QPlainTextEdit()
        self._log_text.setReadOnly(True)
        self._log_text.setMinimumHeight(80)
        self._log_text.setVisible(False)
        layout.addWidget(self._log_text)
        self.append_log("Ready to start monitoring...")

    def _setup_tray(self) -> None:
        self._tray: QSystemTrayIcon | None = None
        if not QSystemTrayIcon.isSystemTrayAvailable():
            logger.info("System tray not available, closing the window will quit")
            return

        self._tray = QSystemTrayIcon(self)
        self._tray.setIcon(self.style().standardIcon(QStyle.SP_ComputerIcon))
        self._tray.setToolTip(APP_NAME)

        menu = QMenu(self)
        show_action = QAction("Show", menu)
        start_action = QAction("Start Monitoring", menu)
        stop_action = QAction("Stop Monitoring", menu)
        quit_action = QAction("Quit", menu)
        menu.addAction(show_action)
        menu.addSeparator()
        menu.addAction(start_action)
        menu.addAction(stop_action)
        menu.addSeparator()
        menu.addAction(quit_action)
        self._tray.setContextMenu(menu)

        show_action.triggered.connect(self.show_from_tray)
        start_action.triggered.connect(self._start_from_tray)
        stop_action.triggered.connect(self.stop_monitoring)
        quit_action.triggered.connect(self.quit_application)
        self._tray.show()

    # ------------------------------------------------------------------
    # Devices and configuration
    # ------------------------------------------------------------------

    def load_devices(self) -> None:
        self.append_log("Scanning for cameras...")
        cap = self._settings.capture
        self._devices = enumerate_devices(cap.gui_max_devices, fallback_fps=cap.fallback_fps)
        self._device_combo.clear()
        if not self._devices:
            self.append_log("No cameras found!")
            self._status_label.setText("Error - No cameras found")
            self._start_button.setEnabled(False)
            return

        for device in self._devices:
            self._device_combo.addItem(device.label, device.id)
        preferred = cap.device_index
        index = self._device_combo.findData(preferred) if preferred is not None else 0
        self._device_combo.setCurrentIndex(max(index, 0))
        self.append_log(f"Found {len(self._devices)} camera(s)")

    def load_configuration(self) -> None:
        tg = self._settings.telegram
        token = tg.bot_token.get_secret_value()
        if token and token != PLACEHOLDER_TOKEN:
            self._token_edit.setText(token)
        if tg.chat_id:
            self._chat_edit.setText(str(tg.chat_id))
        self.append_log("Configuration loaded")

    def save_configuration(self) -> bool:
        """Copy the form into the settings and persist them."""
        chat_text = self._chat_edit.text().strip()
        try:
            chat_id = int(chat_text) if chat_text else 0
        except ValueError:
            QMessageBox.critical(self, "Invalid Chat ID", "Chat ID must be a number.")
            return False

        tg = self._settings.telegram
        tg.bot_token = SecretStr(self._token_edit.text().strip())
        tg.chat_id = chat_id
        self._settings.monitor.record_duration = float(self._duration_spin.value())
        device = self.selected_device()
        if device is not None:
            self._settings.capture.device_index = device.id
        try:
            save_settings(self._settings, self._config_path)
        except OSError as e:
            self.append_log(f"Cannot save configuration: {e}")
            return True
        self.append_log("Configuration saved")
        return True

    def selected_device(self) -> CameraDevice | None:
        index = self._device_combo.currentIndex()
        if index < 0 or index >= len(self._devices):
            return None
        return self._devices[index]

    def _on_device_selected(self, index: int) -> None:
        if 0 <= index < len(self._devices):
            self.append_log(f"Selected: {self._devices[index].label}")

    # ------------------------------------------------------------------
    # Monitoring
    # ------------------------------------------------------------------

    def start_monitoring(self) -> None:
        if self._service.is_running:
            return
        device = self.selected_device()
        if device is None:
            QMessageBox.critical(self, "No Camera", "Please select a camera.")
            return
        if not self.save_configuration():
            return

        delivery = build_delivery(self._settings)
        self._service.set_delivery(delivery)
        if delivery.is_configured:
            self.append_log(f"Telegram delivery enabled for chat {self._settings.telegram.chat_id}")

        monitor_cfg = self._settings.monitor
        self._service.start(
            device,
            duration=float(self._duration_spin.value()),
            cooldown=monitor_cfg.cooldown,
            tick_interval=monitor_cfg.tick_interval,
        )
        self._set_controls_running(True)
        self.append_log("Started monitoring lid state...")

    def stop_monitoring(self) -> None:
        was_running = self._service.is_running
        self._service.stop()
        self._set_controls_running(False)
        self._status_label.setText("Stopped")
        if was_running:
            self.append_log("Monitoring stopped")

    def _start_from_tray(self) -> None:
        if not self._service.is_running:
            self.start_monitoring()

    def _set_controls_running(self, running: bool) -> None:
        self._start_button.setEnabled(not running and bool(self._devices))
        self._stop_button.setEnabled(running)
        self._device_combo.setEnabled(not running)
        self._duration_spin.setEnabled(not running)
        self._token_edit.setEnabled(not running)
        self._chat_edit.setEnabled(not running)

    def _on_monitor_event(self, event: MonitorEvent) -> None:
        status = STATUS_TEXT.get(event.type)
        if event.type is MonitorEventType.RECORDING_FAILED:
            status = event.message
        # Log records already reach the pane through QtLogHandler
        if status is not None and self._service.is_running:
            self._status_label.setText(status)

    # ------------------------------------------------------------------
    # Telegram test
    # ------------------------------------------------------------------

    def test_telegram_connection(self) -> None:
        token = self._token_edit.text().strip()
        if not token:
            QMessageBox.critical(self, "Telegram", "Please enter bot token.")
            return
        chat_text = self._chat_edit.text().strip()
        chat_id = int(chat_text) if chat_text.lstrip("-").isdigit() else 0

        self.append_log("Testing Telegram connection...")
        self._test_button.setEnabled(False)
        delivery = TelegramDelivery(
            bot_token=token,
            chat_id=chat_id,
            api_base_url=self._settings.telegram.api_base_url,
            timeout=self._settings.telegram.timeout,
        )
        threading.Thread(
            target=self._run_connection_test,
            args=(delivery, chat_id != 0),
            name="lidcam-telegram-test",
            daemon=True,
        ).start()

    def _run_connection_test(self, delivery: TelegramDelivery, with_chat: bool) -> None:
        ok, message = run_connection_test(delivery, with_chat)
        self._bridge.testFinished.emit(ok, message)

    def _on_test_finished(self, ok: bool, message: str) -> None:
        self._test_button.setEnabled(True)
        if ok:
            self.append_log(message.splitlines()[0])
            QMessageBox.information(self, "Success", message)
        else:
            self.append_log(f"Telegram connection failed: {message}")
            QMessageBox.critical(self, "Telegram", f"Connection failed: {message}")

    # ------------------------------------------------------------------
    # Log pane, tray and shutdown
    # ------------------------------------------------------------------

    def append_log(self, message: str) -> None:
        self._log_text.appendPlainText(f"[{datetime.now():%H:%M:%S}] {message}")

    def toggle_log(self) -> None:
        self._log_visible = not self._log_visible
        self._log_text.setVisible(self._log_visible)
        self._log_button.setText("Hide Log" if self._log_visible else "Show Log")
        height = WINDOW_HEIGHT_EXPANDED if self._log_visible else WINDOW_HEIGHT_COLLAPSED
        self.setFixedSize(WINDOW_WIDTH, height)

    def show_from_tray(self) -> None:
        self.showNormal()
        self.raise_()
        self.activateWindow()
        self.append_log("Application restored from system tray")

    def quit_application(self) -> None:
        self._quitting = True
        self.stop_monitoring()
        logging.getLogger(ROOT_LOGGER).removeHandler(self._log_handler)
        if self._tray is not None:
            self._tray.hide()
        QApplication.instance().quit()

    def closeEvent(self, event: QCloseEvent) -> None:  # noqa: N802 - Qt override
        if self._quitting:
            event.accept()
            return
        if self._tray is None:
            self.quit_application()
            event.accept()
            return
        event.ignore()
        self.hide()
        self.append_log("Application minimized to system tray")


def run_gui(settings: Settings, config_path: Path | None = None) -> int:
    """Create the Qt application and run it until Quit."""
    app = QApplication.instance() or QApplication([APP_NAME])
    app.setApplicationName(APP_NAME)
    app.setQuitOnLastWindowClosed(False)

    window = MainWindow(settings, config_path=config_path)
    window.setWindowFlag(Qt.WindowMaximizeButtonHint, False)
    window.show()
    return app.exec()
