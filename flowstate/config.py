"""Runtime settings. Zero imports from the rest of the package.

Defaults can be overridden by ``config.json`` inside the data dir, and
environment variables win over both.
"""
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_DATA_DIR = Path.home() / ".flowstate"
CONFIG_FILE_NAME = "config.json"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class Settings:
    data_dir: Path = DEFAULT_DATA_DIR
    storage_file: str = "flowstate-storage.json"
    storage_key: str = "flowstate-storage"
    log_level: str = "WARNING"

    @property
    def storage_path(self) -> Path:
        return self.data_dir / self.storage_file


def load_config(data_dir: Path) -> dict:
    """Returns {} on missing or corrupt file."""
    try:
        with open(data_dir / CONFIG_FILE_NAME, "r", encoding="utf-8") as f:
            config = json.load(f)
    except (OSError, json.JSONDecodeError):
        return {}
    return config if isinstance(config, dict) else {}


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if env is None else env
    data_dir = Path(env.get("FLOWSTATE_HOME") or DEFAULT_DATA_DIR).expanduser()
    config = load_config(data_dir)
    defaults = Settings(data_dir=data_dir)
    return Settings(
        data_dir=data_dir,
        storage_file=str(config.get("storage_file", defaults.storage_file)),
        storage_key=env.get("FLOWSTATE_STORAGE_KEY") or str(config.get("storage_key", defaults.storage_key)),
        log_level=(env.get("FLOWSTATE_LOG_LEVEL") or str(config.get("log_level", defaults.log_level))).upper(),
    )


def configure_logging(level: str = "WARNING") -> None:
    """No-op when the root logger already has handlers."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.WARNING), format=LOG_FORMAT)
