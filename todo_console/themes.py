from __future__ import annotations

import copy
import json
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

import yaml

LOGGER_NAME = "todo_console"


# -----------------------------
# Theme data (file-shaped)
# -----------------------------
COLOR_TOKENS = (
    "Normal", "Header", "Accent1", "Accent2", "Success", "Warning",
    "Error", "Completed", "DueSoon", "Overdue", "TableBorder",
)

HEADER_STYLES = ("Simple", "Double", "Gradient", "Minimal", "Block")

DEFAULT_THEME_DATA: Dict[str, Any] = {
    "Name": "Default",
    "Description": "Balanced console colors with light box-drawing borders",
    "Author": "todo_console",
    "Version": "1.0",
    "UseAnsiColors": True,
    "Colors": {
        "Normal": "White",
        "Header": "Cyan",
        "Accent1": "Yellow",
        "Accent2": "Cyan",
        "Success": "Green",
        "Warning": "Yellow",
        "Error": "Red",
        "Completed": "DarkGray",
        "DueSoon": "Yellow",
        "Overdue": "Red",
        "TableBorder": "DarkGray",
    },
    "Table": {
        "Chars": {
            "Horizontal": "─",
            "Vertical": "│",
            "TopLeft": "┌",
            "TopRight": "┐",
            "BottomLeft": "└",
            "BottomRight": "┘",
            "LeftJunction": "├",
            "RightJunction": "┤",
            "TopJunction": "┬",
            "BottomJunction": "┴",
            "CrossJunction": "┼",
        },
        "RowSeparator": False,
        "CellPadding": 1,
        "HeaderStyle": "Bold",
    },
    "Headers": {
        "Style": "Double",
        "BorderChar": "═",
        "Corners": "╔╗╚╝",
        "GradientChars": "░▒▓█",
    },
    "Menu": {
        "SelectedPrefix": "> ",
        "UnselectedPrefix": "  ",
    },
    "ProgressBar": {
        "FilledChar": "█",
        "EmptyChar": "░",
        "LeftCap": "[",
        "RightCap": "]",
    },
}

# Built-in presets other than Default are overlays resolved against Default.
BUILTIN_THEME_OVERLAYS: Dict[str, Dict[str, Any]] = {
    "Default": {},
    "RetroWave": {
        "Description": "Synthwave magenta and cyan with double-line borders",
        "Colors": {
            "Normal": "Magenta",
            "Header": "Cyan",
            "Accent1": "Yellow",
            "Accent2": "DarkMagenta",
            "Completed": "DarkCyan",
            "TableBorder": "DarkMagenta",
        },
        "Table": {
            "Chars": {
                "Horizontal": "═", "Vertical": "║",
                "TopLeft": "╔", "TopRight": "╗", "BottomLeft": "╚", "BottomRight": "╝",
                "LeftJunction": "╠", "RightJunction": "╣",
                "TopJunction": "╦", "BottomJunction": "╩", "CrossJunction": "╬",
            },
        },
        "Headers": {"Style": "Gradient", "GradientChars": "░▒▓█▓▒░"},
        "ProgressBar": {"FilledChar": "▰", "EmptyChar": "▱", "LeftCap": "", "RightCap": ""},
    },
    "NeonCyberpunk": {
        "Description": "High-contrast neon on heavy borders",
        "Colors": {
            "Normal": "Cyan",
            "Header": "Magenta",
            "Accent1": "Yellow",
            "Accent2": "Magenta",
            "Success": "Green",
            "Completed": "DarkGray",
            "DueSoon": "DarkYellow",
            "Overdue": "Red",
            "TableBorder": "Magenta",
        },
        "Table": {
            "Chars": {
                "Horizontal": "━", "Vertical": "┃",
                "TopLeft": "┏", "TopRight": "┓", "BottomLeft": "┗", "BottomRight": "┛",
                "LeftJunction": "┣", "RightJunction": "┫",
                "TopJunction": "┳", "BottomJunction": "┻", "CrossJunction": "╋",
            },
            "RowSeparator": True,
        },
        "Headers": {"Style": "Block", "BorderChar": "█"},
        "Menu": {"SelectedPrefix": "▶ "},
    },
    "Matrix": {
        "Description": "Green phosphor terminal",
        "Colors": {
            "Normal": "Green",
            "Header": "Green",
            "Accent1": "DarkGreen",
            "Accent2": "Green",
            "Success": "Green",
            "Warning": "DarkGreen",
            "Error": "Red",
            "Completed": "DarkGreen",
            "DueSoon": "White",
            "Overdue": "Red",
            "TableBorder": "DarkGreen",
        },
        "Table": {
            "Chars": {
                "Horizontal": "-", "Vertical": "|",
                "TopLeft": "+", "TopRight": "+", "BottomLeft": "+", "BottomRight": "+",
                "LeftJunction": "+", "RightJunction": "+",
                "TopJunction": "+", "BottomJunction": "+", "CrossJunction": "+",
            },
        },
        "Headers": {"Style": "Minimal", "BorderChar": "="},
        "ProgressBar": {"FilledChar": "#", "EmptyChar": ".", "LeftCap": "[", "RightCap": "]"},
    },
    "Ocean": {
        "Description": "Calm blues with rounded corners",
        "Colors": {
            "Normal": "Gray",
            "Header": "Blue",
            "Accent1": "Cyan",
            "Accent2": "DarkCyan",
            "TableBorder": "DarkBlue",
        },
        "Table": {
            "Chars": {"TopLeft": "╭", "TopRight": "╮", "BottomLeft": "╰", "BottomRight": "╯"},
        },
        "Headers": {"Style": "Simple", "BorderChar": "─", "Corners": "╭╮╰╯"},
    },
    "Minimal": {
        "Description": "Plain ASCII using the terminal's own palette",
        "UseAnsiColors": False,
        "Table": {
            "Chars": {
                "Horizontal": "-", "Vertical": "|",
                "TopLeft": "+", "TopRight": "+", "BottomLeft": "+", "BottomRight": "+",
                "LeftJunction": "+", "RightJunction": "+",
                "TopJunction": "+", "BottomJunction": "+", "CrossJunction": "+",
            },
        },
        "Headers": {"Style": "Minimal", "BorderChar": "-", "Corners": "++++"},
        "Menu": {"SelectedPrefix": "* "},
        "ProgressBar": {"FilledChar": "#", "EmptyChar": "-"},
    },
}


def deep_merge(base: Mapping[str, Any], overlay: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Merge ``overlay`` onto a copy of ``base``.

    Keys whose values are mappings on both sides are merged recursively;
    any other overlay value replaces the base value and is copied, never aliased.
    """
    merged: Dict[str, Any] = copy.deepcopy(dict(base))
    if not overlay:
        return merged
    for key, value in overlay.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


# -----------------------------
# Typed theme records
# -----------------------------
def _file_key(attr: str) -> str:
    return "".join(part[:1].upper() + part[1:] for part in attr.split("_"))


def _coerce(value: Any, default: Any, where: str) -> Any:
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in {"true", "false", "yes", "no", "1", "0"}:
            return value.strip().lower() in {"true", "yes", "1"}
    elif isinstance(default, int):
        try:
            return int(value)
        except (TypeError, ValueError, OverflowError):
            pass
    elif isinstance(default, str):
        if isinstance(value, (str, int, float)) and not isinstance(value, bool):
            return str(value)
    logging.getLogger(LOGGER_NAME).warning("Theme value %s=%r is invalid; using %r", where, value, default)
    return default


class _Record:
    """Builds frozen theme records from the PascalCase file shape and back."""

    _nested: Dict[str, type] = {}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], defaults: Mapping[str, Any], where: str = ""):
        kwargs: Dict[str, Any] = {}
        data = data if isinstance(data, Mapping) else {}
        for f in fields(cls):  # type: ignore[arg-type]
            key = _file_key(f.name)
            default = defaults[key]
            path = f"{where}.{key}" if where else key
            value = data.get(key, default)
            nested = cls._nested.get(f.name)
            if nested is not None:
                if not isinstance(value, Mapping):
                    logging.getLogger(LOGGER_NAME).warning("Theme section %s is not a mapping; using defaults", path)
                    value = default
                kwargs[f.name] = nested.from_dict(value, default, path)
            else:
                kwargs[f.name] = cls._clean(f.name, _coerce(value, default, path), default, path)
        return cls(**kwargs)

    @classmethod
    def _clean(cls, attr: str, value: Any, default: Any, where: str) -> Any:
        return value

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for f in fields(self):  # type: ignore[arg-type]
            value = getattr(self, f.name)
            out[_file_key(f.name)] = value.to_dict() if isinstance(value, _Record) else value
        return out


@dataclass(frozen=True)
class BorderGlyphs(_Record):
    horizontal: str
    vertical: str
    top_left: str
    top_right: str
    bottom_left: str
    bottom_right: str
    left_junction: str
    right_junction: str
    top_junction: str
    bottom_junction: str
    cross_junction: str

    @classmethod
    def _clean(cls, attr: str, value: Any, default: Any, where: str) -> Any:
        # Each slot holds exactly one visible character.
        if not value:
            logging.getLogger(LOGGER_NAME).warning("Glyph %s is empty; using %r", where, default)
            return default
        return value[0]


ASCII_GLYPHS = BorderGlyphs(
    horizontal="-", vertical="|",
    top_left="+", top_right="+", bottom_left="+", bottom_right="+",
    left_junction="+", right_junction="+",
    top_junction="+", bottom_junction="+", cross_junction="+",
)


@dataclass(frozen=True)
class ThemeColors(_Record):
    normal: str
    header: str
    accent1: str
    accent2: str
    success: str
    warning: str
    error: str
    completed: str
    due_soon: str
    overdue: str
    table_border: str

    def get(self, token: str, default: Optional[str] = None) -> Optional[str]:
        attr = _TOKEN_ATTRS.get((token or "").replace(" ", "").lower())
        if attr is None:
            return default
        return getattr(self, attr)


_TOKEN_ATTRS = {token.lower(): _attr for token, _attr in zip(
    COLOR_TOKENS,
    ("normal", "header", "accent1", "accent2", "success", "warning",
     "error", "completed", "due_soon", "overdue", "table_border"),
)}


@dataclass(frozen=True)
class TableStyle(_Record):
    chars: BorderGlyphs
    row_separator: bool
    cell_padding: int
    header_style: str

    _nested = {"chars": BorderGlyphs}

    @classmethod
    def _clean(cls, attr: str, value: Any, default: Any, where: str) -> Any:
        if attr == "cell_padding" and value < 0:
            return 0
        return value


@dataclass(frozen=True)
class HeaderBox(_Record):
    style: str
    border_char: str
    corners: str
    gradient_chars: str

    @classmethod
    def _clean(cls, attr: str, value: Any, default: Any, where: str) -> Any:
        if attr == "style":
            for style in HEADER_STYLES:
                if style.lower() == value.strip().lower():
                    return style
            logging.getLogger(LOGGER_NAME).warning("Header style %r is unknown; using %r", value, default)
            return default
        if attr == "border_char" and not value:
            return default
        if attr == "corners" and len(value) != 4:
            logging.getLogger(LOGGER_NAME).warning("Header corners %r need 4 glyphs; using %r", value, default)
            return default
        return value


@dataclass(frozen=True)
class MenuStyle(_Record):
    selected_prefix: str
    unselected_prefix: str


@dataclass(frozen=True)
class ProgressBarStyle(_Record):
    filled_char: str
    empty_char: str
    left_cap: str
    right_cap: str

    @classmethod
    def _clean(cls, attr: str, value: Any, default: Any, where: str) -> Any:
        if attr in {"filled_char", "empty_char"} and not value:
            return default
        return value


@dataclass(frozen=True)
class Theme(_Record):
    name: str
    description: str
    author: str
    version: str
    use_ansi_colors: bool
    colors: ThemeColors
    table: TableStyle
    headers: HeaderBox
    menu: MenuStyle
    progress_bar: ProgressBarStyle

    _nested = {
        "colors": ThemeColors,
        "table": TableStyle,
        "headers": HeaderBox,
        "menu": MenuStyle,
        "progress_bar": ProgressBarStyle,
    }

    @classmethod
    def from_data(cls, data: Mapping[str, Any]) -> "Theme":
        """Build a theme from already-merged file-shaped data."""
        return cls.from_dict(data, DEFAULT_THEME_DATA)

    def color(self, token: str) -> str:
        return self.colors.get(token) or self.colors.normal


DEFAULT_THEME = Theme.from_data(DEFAULT_THEME_DATA)


@dataclass(frozen=True)
class ThemeInfo:
    name: str
    type: str
    source: str


# -----------------------------
# Render state + store
# -----------------------------
@dataclass
class RenderState:
    """The only mutable rendering state: current theme, ANSI flag, length cache."""

    theme: Optional[Theme] = None
    ansi_enabled: bool = True
    length_cache: Dict[str, int] = field(default_factory=dict)


ThemeSource = Union[str, Theme]


class ThemeStore:
    def __init__(
        self,
        themes_dir: Optional[Union[str, Path]] = None,
        state: Optional[RenderState] = None,
        persist_theme: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.themes_dir = Path(themes_dir).expanduser() if themes_dir else None
        self.state = state if state is not None else RenderState()
        self.persist_theme = persist_theme
        self._available: Optional[List[ThemeInfo]] = None

    def reinitialize(self, themes_dir: Optional[Union[str, Path]] = None) -> None:
        if themes_dir is not None:
            self.themes_dir = Path(themes_dir).expanduser()
        self._available = None

    @staticmethod
    def builtin_name(name: Optional[str]) -> Optional[str]:
        lowered = (name or "").strip().lower()
        for builtin in BUILTIN_THEME_OVERLAYS:
            if builtin.lower() == lowered:
                return builtin
        return None

    def _theme_file(self, name: str) -> Optional[Path]:
        if self.themes_dir is None or not name or os.sep in name or name.startswith("."):
            return None
        for suffix in (".json", ".yml", ".yaml"):
            path = self.themes_dir / f"{name}{suffix}"
            if path.is_file():
                return path
        return None

    def load_theme(self, name: str) -> Optional[Dict[str, Any]]:
        """Return the overlay for ``name``: a built-in preset or a theme file."""
        builtin = self.builtin_name(name)
        if builtin is not None:
            if builtin == "Default":
                return copy.deepcopy(DEFAULT_THEME_DATA)
            return copy.deepcopy(BUILTIN_THEME_OVERLAYS[builtin])
        path = self._theme_file(name)
        if path is None:
            return None
        try:
            raw = path.read_text(encoding="utf-8")
            if path.suffix == ".json":
                data = json.loads(raw)
            else:
                data = yaml.safe_load(raw) or {}
        except Exception:
            logging.getLogger(LOGGER_NAME).warning("Failed to load theme file %s", path, exc_info=True)
            return None
        if not isinstance(data, dict):
            logging.getLogger(LOGGER_NAME).warning("Theme file %s does not hold a mapping", path)
            return None
        return data

    def resolve_theme(self, loaded: Optional[Mapping[str, Any]], name: Optional[str] = None) -> Theme:
        """Deep-merge ``loaded`` onto Default and build the effective theme."""
        merged = deep_merge(DEFAULT_THEME_DATA, loaded)
        merged["Name"] = (name or "Default") if loaded is not None else "Default"
        return Theme.from_data(merged)

    def get_theme(self, name: str) -> Theme:
        loaded = self.load_theme(name)
        if loaded is None:
            logging.getLogger(LOGGER_NAME).warning("Theme %r not found; using Default", name)
            return self.resolve_theme(None)
        return self.resolve_theme(loaded, self.builtin_name(name) or name)

    def set_current_theme(self, theme: ThemeSource) -> bool:
        if isinstance(theme, Theme):
            resolved = theme
        else:
            name = str(theme or "").strip()
            loaded = self.load_theme(name)
            if loaded is None:
                logging.getLogger(LOGGER_NAME).warning("Theme %r not found; keeping %s", name, self.get_current_theme().name)
                return False
            try:
                resolved = self.resolve_theme(loaded, self.builtin_name(name) or name)
            except Exception:
                logging.getLogger(LOGGER_NAME).warning("Theme %r could not be resolved", name, exc_info=True)
                return False
        self.state.theme = resolved
        self.state.ansi_enabled = bool(resolved.use_ansi_colors)
        if self.persist_theme is not None:
            try:
                self.persist_theme(resolved.name)
            except Exception:
                logging.getLogger(LOGGER_NAME).warning("Unable to persist theme %s", resolved.name, exc_info=True)
        return True

    def get_current_theme(self) -> Theme:
        return self.state.theme if self.state.theme is not None else DEFAULT_THEME

    def list_available_themes(self) -> List[ThemeInfo]:
        if self._available is not None:
            return list(self._available)
        found = [ThemeInfo(name=name, type="Built-in", source="built-in") for name in BUILTIN_THEME_OVERLAYS]
        seen = {info.name.lower() for info in found}
        if self.themes_dir is not None and self.themes_dir.is_dir():
            for path in sorted(self.themes_dir.glob("*.json")):
                if path.stem.lower() in seen:
                    continue
                found.append(ThemeInfo(name=path.stem, type="Custom", source=str(path)))
                seen.add(path.stem.lower())
        self._available = found
        return list(found)

    def save_theme(self, theme: Theme, path: Optional[Union[str, Path]] = None) -> Path:
        """Write ``theme`` as a JSON theme file; defaults to ``<themes_dir>/<name>.json``."""
        if path is None:
            if self.themes_dir is None:
                raise ValueError("No themes directory configured")
            path = self.themes_dir / f"{theme.name}.json"
        target = Path(path).expanduser()
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8") as f:
            json.dump(theme.to_dict(), f, indent=2, ensure_ascii=False)
            f.write("\n")
        self._available = None
        return target
