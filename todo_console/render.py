from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import IO, Any, Callable, Iterable, Mapping, Optional, Sequence, Tuple, Union

from prompt_toolkit.shortcuts import clear as pt_clear

from .boxes import BoxRenderer
from .colors import ColorResolver
from .tables import ColumnInput, RowColorizer, TableRenderer
from .text import TextMetrics
from .themes import RenderState, Theme, ThemeSource, ThemeStore

LOGGER_NAME = "todo_console"

DEFAULT_CONSOLE_WIDTH = 80
DEFAULT_BAR_WIDTH = 40

ColumnOverride = Callable[[str], Tuple[Optional[int], Optional[str]]]


class RenderEngine:
    """Display API over one RenderState.

    Everything that changes while rendering (current theme, ANSI flag,
    visible-length cache) lives on ``self.state``; two engines never share it.
    """

    def __init__(
        self,
        themes_dir: Optional[Union[str, Path]] = None,
        theme: Optional[ThemeSource] = None,
        stream: Optional[IO[str]] = None,
        console_width: Optional[int] = None,
        column_override: Optional[ColumnOverride] = None,
        persist_theme: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.state = RenderState()
        self.themes = ThemeStore(themes_dir, self.state)
        self.metrics = TextMetrics(self.state.length_cache)
        self.colors = ColorResolver(stream)
        self.console_width_override = console_width
        self.column_override_lookup = column_override
        self.boxes = BoxRenderer(self)
        self.tables = TableRenderer(self)
        if theme is not None and not self.themes.set_current_theme(theme):
            self.themes.set_current_theme("Default")
        # Persist only explicit switches, not the startup theme.
        self.themes.persist_theme = persist_theme

    # -----------------------------
    # Theme / state
    # -----------------------------
    @property
    def theme(self) -> Theme:
        return self.themes.get_current_theme()

    @property
    def ansi_enabled(self) -> bool:
        return self.state.ansi_enabled

    def set_theme(self, theme: ThemeSource) -> bool:
        return self.themes.set_current_theme(theme)

    def console_width(self) -> int:
        if self.console_width_override is not None and self.console_width_override > 0:
            return int(self.console_width_override)
        try:
            columns = shutil.get_terminal_size((DEFAULT_CONSOLE_WIDTH, 24)).columns
        except (OSError, ValueError):
            columns = 0
        return columns if columns > 0 else DEFAULT_CONSOLE_WIDTH

    def column_override(self, key: str) -> Tuple[Optional[int], Optional[str]]:
        if self.column_override_lookup is None:
            return None, None
        try:
            return self.column_override_lookup(key)
        except Exception:
            logging.getLogger(LOGGER_NAME).debug("Column override lookup failed for %s", key, exc_info=True)
            return None, None

    def resolve_color(self, color: Optional[str], theme: Optional[Theme] = None) -> str:
        """Map a theme token (``Overdue``) or a plain color name to a color name."""
        theme = theme or self.theme
        if not color:
            return theme.colors.normal
        by_token = theme.colors.get(color)
        if by_token:
            return by_token
        if self.colors.is_known(color):
            return color
        logging.getLogger(LOGGER_NAME).debug("Unknown color or token %r; using Normal", color)
        return theme.colors.normal

    # -----------------------------
    # Output
    # -----------------------------
    def write_segments(self, segments: Iterable[Tuple[Optional[str], str]], newline: bool = True) -> None:
        theme = self.theme
        resolved = [(self.resolve_color(color, theme), text) for color, text in segments]
        self.colors.write(resolved, ansi=self.state.ansi_enabled, newline=newline)

    def write_color_text(self, text: Any, color: Optional[str] = "Normal", newline: bool = True) -> None:
        self.write_segments([(color, "" if text is None else str(text))], newline=newline)

    def clear_screen(self) -> None:
        if self.state.ansi_enabled:
            self.colors.out.write("\x1b[2J\x1b[H")
        elif self.colors.stream is None:
            pt_clear()

    # -----------------------------
    # Components
    # -----------------------------
    def render_header(self, title: str, subtitle: Optional[str] = None, clear: bool = True) -> None:
        self.boxes.render_header(title, subtitle, clear=clear)

    def show_info_box(self, title: str, message: str, kind: str = "Info") -> None:
        self.boxes.show_info_box(title, message, kind)

    def show_table(
        self,
        rows: Optional[Sequence[Any]],
        columns: Sequence[ColumnInput],
        header_labels: Optional[Union[Mapping[str, str], Sequence[str]]] = None,
        formatters: Optional[Mapping[str, Callable[[Any, Any], str]]] = None,
        row_colorizer: Optional[RowColorizer] = None,
    ) -> int:
        return self.tables.show_table(rows, columns, header_labels, formatters, row_colorizer)

    def progress_bar_text(self, current: float, total: float, width: int = DEFAULT_BAR_WIDTH) -> str:
        glyphs = self.theme.progress_bar
        width = max(1, int(width))
        try:
            done = min(max(float(current), 0.0), float(total)) if total > 0 else 0.0
            pct = done * 100.0 / float(total) if total > 0 else 0.0
            fill = int(width * done / float(total)) if total > 0 else 0
        except (TypeError, ValueError, OverflowError, ZeroDivisionError):
            pct, fill = 0.0, 0
        bar = glyphs.filled_char * fill + glyphs.empty_char * (width - fill)
        return f"{glyphs.left_cap}{bar}{glyphs.right_cap} {int(pct):3d}%"

    def show_progress_bar(
        self,
        current: float,
        total: float,
        width: int = DEFAULT_BAR_WIDTH,
        label: str = "",
        color: str = "Success",
    ) -> None:
        segments = []
        if label:
            segments.append(("Normal", f"{label} "))
        segments.append((color, self.progress_bar_text(current, total, width)))
        self.write_segments(segments)
