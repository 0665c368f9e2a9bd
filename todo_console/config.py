from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

LOGGER_NAME = "todo_console"

DEFAULT_CONFIG_PATH = os.path.expanduser("~/.todo_console.yml")
DEFAULT_STATE_PATH = os.path.expanduser("~/.todo_console.ui.json")
DEFAULT_DATA_DIR = "~/.todo_console"
ALIGNMENTS = ("left", "right", "center")


# -----------------------------
# Config models
# -----------------------------
@dataclass
class ColumnOverride:
    width: Optional[int] = None
    align: Optional[str] = None


@dataclass
class AppConfig:
    data_dir: str = DEFAULT_DATA_DIR
    themes_dir: Optional[str] = None
    theme: str = "Default"
    due_soon_days: int = 3
    log_level: str = "ERROR"
    columns: Dict[str, ColumnOverride] = field(default_factory=dict)
    state_path: str = DEFAULT_STATE_PATH

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir).expanduser()

    @property
    def themes_path(self) -> Path:
        if self.themes_dir:
            return Path(self.themes_dir).expanduser()
        return self.data_path / "themes"

    @property
    def log_path(self) -> Path:
        return self.data_path / "todo_console.log"

    def column_override(self, key: str) -> Tuple[Optional[int], Optional[str]]:
        override = self.columns.get(key) or self.columns.get(key.lower())
        if override is None:
            return None, None
        return override.width, override.align

    def theme_name(self) -> str:
        """Theme chosen in the UI state, else the configured default."""
        saved = load_state(self.state_path).get("theme")
        if isinstance(saved, str) and saved.strip():
            return saved.strip()
        return self.theme

    def persist_theme(self, name: str) -> None:
        data = load_state(self.state_path)
        data["theme"] = name
        save_state(self.state_path, data)


def _parse_columns(raw: Any) -> Dict[str, ColumnOverride]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError("Config: 'columns' must be a mapping of column key to {width, align}.")
    out: Dict[str, ColumnOverride] = {}
    for key, item in raw.items():
        if isinstance(item, int) and not isinstance(item, bool):
            item = {"width": item}
        if not isinstance(item, dict):
            raise ValueError(f"Config: column entry needs 'width' and/or 'align': {key}")
        width = item.get("width")
        if width is not None:
            try:
                width = int(width)
            except (TypeError, ValueError):
                raise ValueError(f"Config: column '{key}' width must be an integer") from None
            if width < 1:
                raise ValueError(f"Config: column '{key}' width must be positive")
        align = item.get("align")
        if align is not None and str(align).lower() not in ALIGNMENTS:
            raise ValueError(f"Config: column '{key}' align must be one of {', '.join(ALIGNMENTS)}")
        out[str(key)] = ColumnOverride(width=width, align=str(align) if align is not None else None)
    return out


def load_config(path: Optional[str]) -> AppConfig:
    """Load YAML config; a missing default file yields defaults."""
    if path is None:
        path = DEFAULT_CONFIG_PATH
        if not os.path.isfile(path):
            return AppConfig()
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError("Config: top level must be a mapping.")
    cfg = AppConfig()
    if raw.get("data_dir"):
        cfg.data_dir = str(raw["data_dir"])
    if raw.get("themes_dir"):
        cfg.themes_dir = str(raw["themes_dir"])
    if raw.get("theme"):
        cfg.theme = str(raw["theme"])
    if raw.get("state_path"):
        cfg.state_path = os.path.expanduser(str(raw["state_path"]))
    if raw.get("log_level"):
        cfg.log_level = str(raw["log_level"])
    if "due_soon_days" in raw:
        try:
            cfg.due_soon_days = int(raw["due_soon_days"])
        except (TypeError, ValueError):
            raise ValueError("Config: 'due_soon_days' must be an integer.") from None
    cfg.columns = _parse_columns(raw.get("columns"))
    return cfg


# -----------------------------
# UI state
# -----------------------------
def load_state(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
            if isinstance(data, dict):
                return data
    except FileNotFoundError:
        pass
    except Exception:
        logging.getLogger(LOGGER_NAME).warning("Ignoring unreadable UI state %s", path, exc_info=True)
    return {}


def save_state(path: str, data: Dict[str, Any]) -> None:
    d = os.path.dirname(path)
    if d and not os.path.isdir(d):
        os.makedirs(d, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
