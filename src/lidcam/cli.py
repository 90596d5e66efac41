"""Command-line interface for lidcam.

Provides the console front end (``lidcam monitor``), the desktop GUI
launcher, and a few commands for checking a camera or a Telegram bot
on their own.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Callable

from lidcam.domain.models import CameraDevice, MonitorEvent

logger = logging.getLogger(__name__)

DEFAULT_DURATION = 15


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="lidcam",
        description="Record a video clip whenever the laptop lid is opened",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: ~/.config/lidcam/lidcam.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    monitor_parser = subparsers.add_parser(
        "monitor",
        help="Watch the lid from the console (Ctrl+C waits for a clip being recorded)",
    )
    _add_device_options(monitor_parser)
    monitor_parser.add_argument(
        "--cooldown", type=float, default=None,
        help="Minimum seconds between two recordings",
    )

    subparsers.add_parser("gui", help="Start the desktop GUI")
    subparsers.add_parser("devices", help="List available cameras")

    record_parser = subparsers.add_parser("record", help="Record one clip now and deliver it")
    _add_device_options(record_parser)
    record_parser.add_argument(
        "--no-send", action="store_true",
        help="Keep the clip local even if Telegram is configured",
    )

    telegram_parser = subparsers.add_parser("test-telegram", help="Check the Telegram bot settings")
    telegram_parser.add_argument(
        "--no-message", action="store_true",
        help="Only verify the token, do not post a test message",
    )

    subparsers.add_parser("init-config", help="Write a configuration file with the current settings")

    return parser.parse_args(argv)


def _add_device_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--device", type=int, default=None,
        help="Camera device id (skips the interactive prompt)",
    )
    parser.add_argument(
        "--duration", type=float, default=None,
        help="Recording length in seconds (skips the interactive prompt)",
    )


# ---------------------------------------------------------------------------
# Interactive prompts
# ---------------------------------------------------------------------------


def choose_device(
    devices: list[CameraDevice], input_fn: Callable[[str], str] = input
) -> CameraDevice:
    """List cameras and ask the user to pick one.

    Raises:
        ValueError: If the answer is not a valid list index.
    """
    print("Available cameras:")
    for idx, d in enumerate(devices):
        print(f"  [{idx}] id={d.id}  {d.resolution} @ {d.fps}fps")
    line = input_fn("Pick camera: ").strip()
    try:
        choice = int(line)
    except ValueError:
        raise ValueError("invalid choice") from None
    if choice < 0 or choice >= len(devices):
        raise ValueError("invalid choice")
    return devices[choice]


def prompt_duration(
    default: int = DEFAULT_DURATION, input_fn: Callable[[str], str] = input
) -> float:
    """Ask for the clip length; blank or invalid answers keep the default."""
    line = input_fn(f"Length in seconds (default {default}): ").strip()
    if not line:
        return float(default)
    try:
        value = int(line)
    except ValueError:
        return float(default)
    return float(value) if value > 0 else float(default)


def find_device(devices: list[CameraDevice], device_id: int) -> CameraDevice:
    """Return the probed camera with ``device_id``.

    Raises:
        ValueError: If no such camera was found.
    """
    for device in devices:
        if device.id == device_id:
            return device
    raise ValueError(f"camera {device_id} not found")


def select_device(
    settings, device_id: int | None, input_fn: Callable[[str], str] = input
) -> CameraDevice:
    """Probe cameras and pick one from the flag, the config, or a prompt."""
    from lidcam.capture.devices import require_devices

    devices = require_devices(
        settings.capture.max_devices, fallback_fps=settings.capture.fallback_fps
    )
    if device_id is None:
        device_id = settings.capture.device_index
    if device_id is not None:
        return find_device(devices, device_id)
    return choose_device(devices, input_fn=input_fn)


# ---------------------------------------------------------------------------
# Component builders
# ---------------------------------------------------------------------------


def build_recorder(settings):
    from lidcam.capture.webcam import WebcamRecorder

    cap = settings.capture
    return WebcamRecorder(
        output_dir=cap.output_dir,
        codec=cap.codec,
        fallback_fps=cap.fallback_fps,
        fallback_resolution=(cap.fallback_width, cap.fallback_height),
        flush_delay=cap.flush_delay,
    )


def build_delivery(settings, enabled: bool = True):
    """Telegram delivery when configured, otherwise a local-only stand-in."""
    from lidcam.delivery.base import NullDelivery
    from lidcam.delivery.telegram import TelegramDelivery

    tg = settings.telegram
    delivery = TelegramDelivery(
        bot_token=tg.bot_token.get_secret_value(),
        chat_id=tg.chat_id,
        api_base_url=tg.api_base_url,
        timeout=tg.timeout,
        max_upload_mb=tg.max_upload_mb,
    )
    if not enabled or not delivery.is_configured:
        return NullDelivery()
    return delivery


async def connect_delivery(delivery):
    """Verify a configured bot once at startup; fall back to local-only on failure."""
    from lidcam.delivery.base import DeliveryError, NullDelivery
    from lidcam.delivery.telegram import TelegramDelivery

    if not isinstance(delivery, TelegramDelivery):
        print("Telegram bot not configured, videos will be saved locally.")
        return delivery
    try:
        username = await delivery.get_bot_username()
    except DeliveryError as e:
        print(f"Telegram bot error: {e}")
        return NullDelivery()
    print(f"Telegram bot connected (@{username})")
    return delivery


def print_event(event: MonitorEvent) -> None:
    print(f"[{event.timestamp:%H:%M:%S}] {event.message}")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def _monitor(settings, device: CameraDevice, duration: float, cooldown: float) -> None:
    """Run the lid monitor in the console until interrupted."""
    from lidcam.monitor.loop import LidMonitor
    from lidcam.sensor.ioreg import IoregLidSensor

    delivery = await connect_delivery(build_delivery(settings))
    monitor = LidMonitor(
        sensor=IoregLidSensor(timeout=settings.monitor.sensor_timeout),
        recorder=build_recorder(settings),
        delivery=delivery,
        device=device,
        record_duration=duration,
        cooldown=cooldown,
        tick_interval=settings.monitor.tick_interval,
        sensor_timeout=settings.monitor.sensor_timeout,
        cancel_tasks_on_stop=settings.monitor.cancel_tasks_on_stop,
        on_event=print_event,
    )
    print("Monitoring lid state... (Ctrl+C to quit)")
    await run_until_interrupted(monitor)


async def run_until_interrupted(monitor) -> None:
    """Run ``monitor`` and, on Ctrl+C, say when a clip is still being written."""
    try:
        await monitor.run()
    except asyncio.CancelledError:
        if monitor.in_flight:
            print(
                f"\nStopping... waiting for {monitor.in_flight} recording(s) "
                "to release the camera"
            )
        raise


async def _record_once(settings, device: CameraDevice, duration: float, send: bool) -> bool:
    """Record a single clip right away and deliver it."""
    from lidcam.domain.models import RecordingRequest
    from lidcam.monitor.pipeline import RecordingPipeline

    delivery = build_delivery(settings, enabled=send)
    pipeline = RecordingPipeline(build_recorder(settings), delivery, on_event=print_event)
    result = await pipeline.run(RecordingRequest(device=device, duration=duration))
    return result.ok


async def _test_telegram(settings, send_message: bool) -> bool:
    from lidcam.delivery.base import DeliveryError
    from lidcam.delivery.telegram import TelegramDelivery

    tg = settings.telegram
    delivery = TelegramDelivery(
        bot_token=tg.bot_token.get_secret_value(),
        chat_id=tg.chat_id,
        api_base_url=tg.api_base_url,
        timeout=tg.timeout,
    )
    try:
        username = await delivery.test_connection(send_message=send_message)
    except DeliveryError as e:
        print(f"Telegram connection failed: {e}")
        return False
    print(f"Successfully connected to Telegram bot: @{username}")
    if send_message and tg.chat_id:
        print("Test message sent successfully!")
    elif not tg.chat_id:
        print("Add chat_id to the configuration to send test messages.")
    return True


def _list_devices(settings) -> int:
    from lidcam.capture.devices import enumerate_devices

    devices = enumerate_devices(
        settings.capture.gui_max_devices, fallback_fps=settings.capture.fallback_fps
    )
    if not devices:
        print("No cameras found")
        return 1
    for d in devices:
        print(f"  id={d.id}  {d.resolution} @ {d.fps}fps")
    return 0


def _resolve_duration(args, settings) -> float:
    if args.duration is not None:
        if args.duration <= 0:
            raise ValueError("duration must be > 0")
        return args.duration
    if args.device is not None or settings.capture.device_index is not None:
        return settings.monitor.record_duration
    return prompt_duration(int(settings.monitor.record_duration))


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the lidcam CLI."""
    args = parse_args(argv)

    if args.command is None:
        parse_args(["--help"])
        return 0

    from lidcam.capture.base import NoCameraError
    from lidcam.config.settings import load_settings, resolve_config_path, save_settings
    from lidcam.utils.logging import setup_logging

    settings = load_settings(args.config)

    if args.verbose:
        settings.logging.level = "DEBUG"

    setup_logging(settings.logging)

    try:
        if args.command == "monitor":
            device = select_device(settings, args.device)
            duration = _resolve_duration(args, settings)
            cooldown = args.cooldown if args.cooldown is not None else settings.monitor.cooldown
            logger.info("Starting console monitor on %s", device.label)
            try:
                asyncio.run(_monitor(settings, device, duration, cooldown))
            except KeyboardInterrupt:
                print("\nStopped")
            return 0

        if args.command == "gui":
            from lidcam.gui.app import run_gui

            return run_gui(settings, config_path=resolve_config_path(args.config))

        if args.command == "devices":
            return _list_devices(settings)

        if args.command == "record":
            device = select_device(settings, args.device)
            duration = _resolve_duration(args, settings)
            ok = asyncio.run(_record_once(settings, device, duration, send=not args.no_send))
            return 0 if ok else 1

        if args.command == "test-telegram":
            ok = asyncio.run(_test_telegram(settings, send_message=not args.no_message))
            return 0 if ok else 1

        if args.command == "init-config":
            path = save_settings(settings, args.config)
            print(f"Wrote configuration to {path}")
            print("Edit telegram.bot_token and telegram.chat_id to enable delivery.")
            return 0

    except NoCameraError as e:
        logger.error("%s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    return 0


if __name__ == "__main__":
    sys.exit(main())
