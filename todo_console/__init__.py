"""Console projects/todos/time tracker with a themed terminal renderer."""

from .render import RenderEngine
from .storage import CsvStore, Project, TimeEntry, Todo
from .tables import ColumnSpec
from .text import TextMetrics, strip_ansi, wrap_text
from .themes import DEFAULT_THEME, Theme, ThemeInfo, ThemeStore

__all__ = [
    "ColumnSpec",
    "CsvStore",
    "DEFAULT_THEME",
    "Project",
    "RenderEngine",
    "TextMetrics",
    "Theme",
    "ThemeInfo",
    "ThemeStore",
    "TimeEntry",
    "Todo",
    "strip_ansi",
    "wrap_text",
]
