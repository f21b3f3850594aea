# pmapi/config/app_config.py
from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import find_dotenv, load_dotenv

# Load .env from the working tree without clobbering real env vars,
# so container/CI values still win.
load_dotenv(find_dotenv(usecwd=True), override=False)

DEFAULT_API_URL = "http://localhost:3000"
DEFAULT_TIMEOUT = 30.0
DEFAULT_STORAGE_PATH = os.path.join("~", ".pmapi", "storage.json")


@dataclass
class Settings:
    api_url: str = DEFAULT_API_URL
    storage_path: str = DEFAULT_STORAGE_PATH
    timeout: float = DEFAULT_TIMEOUT
    log_level: str = "INFO"

    @property
    def storage_file(self) -> Path:
        return Path(os.path.expanduser(self.storage_path))


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except Exception:
        return default


def _config_path() -> Optional[str]:
    return os.getenv("PMAPI_CONFIG") or None


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Read the optional JSON overrides file. Missing file -> {}."""
    path = path or _config_path()
    if not path or not os.path.exists(path):
        return {}
    with open(path, "r") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"config file {path} must contain a JSON object")
    return data


def save_config(config: Dict[str, Any], path: Optional[str] = None) -> None:
    path = path or _config_path()
    if not path:
        raise ValueError("no config path given and PMAPI_CONFIG is not set")
    with open(path, "w") as f:
        json.dump(config, f, indent=2)


def load_settings(path: Optional[str] = None) -> Settings:
    """
    Build Settings from env (PMAPI_URL / VITE_API_URL, PMAPI_STORAGE_PATH,
    PMAPI_TIMEOUT, LOG_LEVEL) with the JSON overrides file merged on top.
    """
    settings = Settings(
        api_url=os.getenv("PMAPI_URL") or os.getenv("VITE_API_URL") or DEFAULT_API_URL,
        storage_path=os.getenv("PMAPI_STORAGE_PATH") or DEFAULT_STORAGE_PATH,
        timeout=_env_float("PMAPI_TIMEOUT", DEFAULT_TIMEOUT),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )

    overrides = load_config(path)
    for key, value in overrides.items():
        if not hasattr(settings, key):
            raise ValueError(f"unknown setting '{key}' in config file")
        setattr(settings, key, value)

    settings.api_url = str(settings.api_url).rstrip("/")
    try:
        settings.timeout = float(settings.timeout)
    except (TypeError, ValueError):
        settings.timeout = DEFAULT_TIMEOUT
    return settings


def save_settings(settings: Settings, path: Optional[str] = None) -> None:
    save_config(asdict(settings), path)
