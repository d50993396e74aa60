"""Configuration helpers for the imagegenai project."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

SUPPORTED_SIZES = ("1024x1024", "1024x1536", "1536x1024")
MIN_REQUEST_TIMEOUT = 30.0


@dataclass(slots=True)
class AppConfig:
    """Centralized application configuration."""

    data_dir: Path = Path("data/images")
    metadata_filename: str = "images.json"
    log_dir: Path = Path("logs")
    api_base_url: str = "https://api.openai.com/v1"
    image_model: str = "gpt-image-1"
    request_timeout: float = 60.0
    default_size: str = "1024x1024"
    keyring_service: str = "imagegenai"
    api_key_name: str = "openai_api_key"
    openai_key: Optional[str] = None

    @property
    def metadata_path(self) -> Path:
        return Path(self.data_dir) / self.metadata_filename

    @property
    def generation_url(self) -> str:
        return f"{self.api_base_url.rstrip('/')}/images/generations"


def _load_env_file(path: Path) -> None:
    """Populate environment variables from a simple KEY=VALUE .env file."""
    if not path.exists():
        return

    for line in path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        os.environ[key.strip()] = value.strip()


def _parse_timeout(raw: Optional[str], default: float) -> float:
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return max(value, MIN_REQUEST_TIMEOUT)


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Return an AppConfig instance with environment-aware settings."""
    env_path = Path(config_path) if config_path else Path(".env")
    _load_env_file(env_path)

    defaults = AppConfig()
    data_dir = Path(os.getenv("IMAGEGEN_DATA_DIR", str(defaults.data_dir))).expanduser()
    log_dir = Path(os.getenv("IMAGEGEN_LOG_DIR", str(defaults.log_dir))).expanduser()

    default_size = os.getenv("IMAGEGEN_DEFAULT_SIZE", defaults.default_size)
    if default_size not in SUPPORTED_SIZES:
        default_size = defaults.default_size

    return AppConfig(
        data_dir=data_dir,
        log_dir=log_dir,
        api_base_url=os.getenv("OPENAI_BASE_URL") or defaults.api_base_url,
        image_model=os.getenv("OPENAI_IMAGE_MODEL") or defaults.image_model,
        request_timeout=_parse_timeout(
            os.getenv("IMAGEGEN_REQUEST_TIMEOUT"), defaults.request_timeout
        ),
        default_size=default_size,
        openai_key=os.getenv("OPENAI_API_KEY") or None,
    )
