# tasknest/utils/config.py
import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from .paths import DB_PATH, config_dir

log = logging.getLogger(__name__)

SETTINGS_FILE = config_dir() / "settings.json"

_DEFAULTS: Dict[str, Any] = {
    "server": {
        "host": "127.0.0.1",
        "port": 5000,
    },
    "database": {
        "path": str(DB_PATH),
        "pool_size": 10,
    },
    "client": {
        "base_url": "http://127.0.0.1:5000/api",
        "timeout": 10,
        "user_id": 1,
        "ws_id": 1,
    },
    "users": [
        {"id": "1", "name": "John Doe"},
        {"id": "2", "name": "Jane Williams Smith"},
        {"id": "3", "name": "Mike Johnson"},
        {"id": "4", "name": "Amy Chen"},
        {"id": "5", "name": "Bob Wilson"},
        {"id": "6", "name": "Chris Lee"},
    ],
}

# env var -> (section, key, cast)
_ENV_OVERRIDES = {
    "TASKNEST_DB": ("database", "path", str),
    "TASKNEST_API_URL": ("client", "base_url", str),
    "TASKNEST_HOST": ("server", "host", str),
    "TASKNEST_PORT": ("server", "port", int),
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = _merge(out[key], value)
        else:
            out[key] = value
    return out


def _apply_env(data: Dict[str, Any]) -> Dict[str, Any]:
    for var, (section, key, cast) in _ENV_OVERRIDES.items():
        raw = os.environ.get(var)
        if raw is None or raw == "":
            continue
        try:
            data.setdefault(section, {})[key] = cast(raw)
        except ValueError:
            log.warning("Ignoring %s=%r (expected %s)", var, raw, cast.__name__)
    return data


def load_settings(path: Optional[Path] = None) -> Dict[str, Any]:
    settings_file = Path(path) if path is not None else SETTINGS_FILE
    data = copy.deepcopy(_DEFAULTS)
    if settings_file.exists():
        try:
            data = _merge(_DEFAULTS, json.loads(settings_file.read_text()))
        except Exception:
            log.warning("Unreadable settings file %s; using defaults", settings_file)
            data = copy.deepcopy(_DEFAULTS)
    return _apply_env(data)


def save_settings(data: Dict[str, Any], path: Optional[Path] = None) -> None:
    settings_file = Path(path) if path is not None else SETTINGS_FILE
    settings_file.write_text(json.dumps(data, indent=2))
