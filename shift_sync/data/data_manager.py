# data/data_manager.py
from __future__ import annotations
import json
import logging
import os
from dataclasses import dataclass, field, asdict, fields
from pathlib import Path
from typing import List

from shift_sync.utils.date_helper import GREGORIAN, JALALI

_logger = logging.getLogger(__name__)

APP_CONFIG_NAME = "app_config.json"
DISPLAY_CONFIG_NAME = "display_config.json"
DEFAULT_MANAGER_PREFIXES = ["manager", "مدیر"]


def default_home() -> Path:
    return Path(os.environ.get("SHIFT_SYNC_HOME") or Path.home() / ".shift_sync")


def _safe_json_load(path: Path, default):
    if not path.exists():
        return default
    try:
        raw = path.read_text(encoding="utf-8").strip()
        if not raw:
            return default
        return json.loads(raw)
    except (OSError, ValueError) as exc:
        _logger.warning("could not read %s: %s", path, exc)
        return default


def _safe_json_save(path: Path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
    tmp.replace(path)


# ---------- app config ----------
@dataclass
class AppConfig:
    data_directory: str = ""
    reports_directory: str = ""
    sync_enabled: bool = True
    sync_interval_seconds: int = 30
    debounce_ms: int = 500
    retry_attempts: int = 3
    retry_initial_delay_ms: int = 100
    manager_role_prefixes: List[str] = field(default_factory=lambda: list(DEFAULT_MANAGER_PREFIXES))
    calendar: str = GREGORIAN
    shift_capacity: int = 15
    selected_display_group: str = "default"

    def __post_init__(self):
        if not self.data_directory:
            self.data_directory = str(default_home() / "data")
        if not self.reports_directory:
            self.reports_directory = str(Path(self.data_directory) / "reports")

    @property
    def reports_path(self) -> Path:
        return Path(self.reports_directory)


# ---------- display config ----------
@dataclass
class DisplayConfig:
    background_color: str = "#1a1a1a"
    refresh_interval: int = 30


def _coerce(cls, raw: dict):
    """Build a config dataclass from raw JSON, keeping defaults for bad values."""
    base = cls()
    if not isinstance(raw, dict):
        return base
    kwargs = {}
    for f in fields(cls):
        if f.name not in raw:
            continue
        value = raw[f.name]
        current = getattr(base, f.name)
        if isinstance(current, bool):
            ok = isinstance(value, bool)
        elif isinstance(current, int):
            ok = isinstance(value, int) and not isinstance(value, bool) and value > 0
        elif isinstance(current, list):
            ok = isinstance(value, list) and all(isinstance(v, str) for v in value)
        else:
            ok = isinstance(value, str)
        if ok:
            kwargs[f.name] = value
        else:
            _logger.warning("config %s: ignoring bad value %r", f.name, value)
    return cls(**kwargs)


def load_app_config(path: Path | None = None) -> AppConfig:
    path = path or default_home() / APP_CONFIG_NAME
    cfg = _coerce(AppConfig, _safe_json_load(path, default={}))
    if cfg.calendar not in (GREGORIAN, JALALI):
        _logger.warning("unknown calendar %r, using %s", cfg.calendar, GREGORIAN)
        cfg.calendar = GREGORIAN
    return cfg


def save_app_config(cfg: AppConfig, path: Path | None = None) -> None:
    _safe_json_save(path or default_home() / APP_CONFIG_NAME, asdict(cfg))


def parse_display_config(raw) -> DisplayConfig:
    return _coerce(DisplayConfig, raw)


def load_display_config(path: Path | None = None) -> DisplayConfig:
    path = path or default_home() / DISPLAY_CONFIG_NAME
    return parse_display_config(_safe_json_load(path, default={}))


def save_display_config(cfg: DisplayConfig, path: Path | None = None) -> None:
    _safe_json_save(path or default_home() / DISPLAY_CONFIG_NAME, asdict(cfg))
