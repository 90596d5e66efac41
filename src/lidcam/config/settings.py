"""Configuration management for lidcam.

Loads settings from a YAML configuration file with environment variable
overrides for sensitive values (the Telegram bot token). Supports .env
files. The GUI writes the file back with ``save_settings``.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("~/.config/lidcam/lidcam.yaml")


class MonitorConfig(BaseModel):
    tick_interval: float = Field(default=0.5, gt=0, description="Seconds between lid reads")
    cooldown: float = Field(default=5.0, ge=0, description="Minimum seconds between triggers")
    record_duration: float = Field(default=15.0, gt=0, description="Clip length in seconds")
    sensor_timeout: float = Field(default=2.0, gt=0)
    cancel_tasks_on_stop: bool = Field(default=False)


class CaptureConfig(BaseModel):
    device_index: int | None = Field(default=None, description="Skip the camera prompt")
    max_devices: int = Field(default=3, gt=0, description="Indices probed by the console")
    gui_max_devices: int = Field(default=10, gt=0, description="Indices probed by the GUI")
    output_dir: Path = Field(default=Path("~/lidcam/videos"))
    codec: str = Field(default="avc1", min_length=4, max_length=4)
    fallback_fps: int = Field(default=30, gt=0)
    fallback_width: int = Field(default=1280, gt=0)
    fallback_height: int = Field(default=720, gt=0)
    flush_delay: float = Field(default=1.0, ge=0)


class TelegramConfig(BaseModel):
    bot_token: SecretStr = Field(default=SecretStr(""))
    chat_id: int = Field(default=0)
    api_base_url: str = Field(default="https://api.telegram.org")
    timeout: float = Field(default=60.0, gt=0)
    max_upload_mb: float = Field(default=50.0, gt=0)


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file: str | None = Field(default=None)


class Settings(BaseSettings):
    """Root configuration for lidcam.

    Loads from YAML file and supports environment variable overrides.
    Reads .env files automatically.
    """

    model_config = {
        "env_prefix": "LIDCAM_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    monitor: MonitorConfig = Field(default_factory=MonitorConfig)
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    telegram: TelegramConfig = Field(default_factory=TelegramConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def resolve_config_path(config_path: Path | str | None = None) -> Path:
    return Path(config_path or DEFAULT_CONFIG_PATH).expanduser()


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings from YAML + .env + environment variables.

    Priority: TELEGRAM_* env vars > YAML file > LIDCAM_* env vars > .env > defaults
    """
    path = resolve_config_path(config_path)

    # Load .env file manually for non-prefixed vars
    _load_dotenv()

    yaml_data: dict = {}
    if path.exists():
        with open(path) as f:
            yaml_data = yaml.safe_load(f) or {}
        logger.info("Loaded configuration from %s", path)
    else:
        logger.warning("Config file %s not found, using defaults + env vars", path)

    _apply_env_overrides(yaml_data)

    return Settings(**yaml_data)


def save_settings(settings: Settings, config_path: Path | str | None = None) -> Path:
    """Write ``settings`` to YAML, creating the parent directory.

    The bot token is written in clear text; the file lives in the
    user's own config directory.
    """
    path = resolve_config_path(config_path)
    data = settings.model_dump(mode="json")
    data["telegram"]["bot_token"] = settings.telegram.bot_token.get_secret_value()

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.safe_dump(data, f, sort_keys=False)
    logger.info("Configuration saved to %s", path)
    return path


def _load_dotenv() -> None:
    """Load .env file into os.environ if it exists."""
    env_path = Path(".env")
    if not env_path.exists():
        return
    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" in line:
                key, _, value = line.partition("=")
                key = key.strip()
                value = value.strip()
                if not os.environ.get(key):
                    os.environ[key] = value


def _apply_env_overrides(yaml_data: dict) -> None:
    """Apply environment variable overrides for non-prefixed vars."""
    token = os.environ.get("TELEGRAM_BOT_TOKEN", "")
    chat_id = os.environ.get("TELEGRAM_CHAT_ID", "")

    if not token and not chat_id:
        return

    telegram = yaml_data.get("telegram") or {}
    if token:
        telegram["bot_token"] = token
    if chat_id:
        try:
            telegram["chat_id"] = int(chat_id)
        except ValueError:
            logger.warning("Ignoring non-numeric TELEGRAM_CHAT_ID=%r", chat_id)
    yaml_data["telegram"] = telegram
