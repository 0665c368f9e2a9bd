from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, List, Mapping, Optional, Sequence, Tuple, Union

from .text import strip_ansi
from .themes import ASCII_GLYPHS, DEFAULT_THEME, BorderGlyphs, Theme

if TYPE_CHECKING:
    from .render import RenderEngine

LOGGER_NAME = "todo_console"

ALIGN_LEFT = "Left"
ALIGN_RIGHT = "Right"
ALIGN_CENTER = "Center"

NO_DATA_TEXT = "No data available"
FORMAT_ERROR_TEXT = "[ERR]"
MIN_COLUMN_WIDTH = 3

Formatter = Callable[[Any, Any], str]
RowColorizer = Callable[[Any, int], Optional[str]]

# Used when no theme was ever made current on the engine.
FALLBACK_THEME = dataclasses.replace(
    DEFAULT_THEME,
    name="Fallback",
    table=dataclasses.replace(DEFAULT_THEME.table, chars=ASCII_GLYPHS, row_separator=False, cell_padding=1),
)


@dataclass
class ColumnSpec:
    key: str
    label: Optional[str] = None
    width: Optional[int] = None
    align: str = ALIGN_LEFT
    formatter: Optional[Formatter] = None
    # width is a hard content width (configured override) rather than a minimum
    fixed: bool = False

    @property
    def header(self) -> str:
        return self.label if self.label is not None else self.key


ColumnInput = Union[str, ColumnSpec]


def normalize_align(align: Optional[str]) -> str:
    lowered = (align or "").strip().lower()
    if lowered == "right":
        return ALIGN_RIGHT
    if lowered == "center":
        return ALIGN_CENTER
    return ALIGN_LEFT


def cell_value(row: Any, key: str) -> Any:
    if isinstance(row, Mapping):
        return row.get(key)
    return getattr(row, key, None)


def _sanitize_cell_text(s: Any) -> str:
    return ("" if s is None else str(s)).replace("\n", " ").replace("\r", " ")


def align_text(text: str, width: int, align: str, visible: int) -> str:
    """Pad ``text`` (``visible`` columns wide) inside a cell of ``width``."""
    padding = max(0, width - visible)
    if align == ALIGN_RIGHT:
        return " " * padding + text
    if align == ALIGN_CENTER:
        left = padding // 2
        return " " * left + text + " " * (padding - left)
    return text + " " * padding


class TableRenderer:
    def __init__(self, engine: "RenderEngine") -> None:
        self.engine = engine

    def _theme(self) -> Theme:
        theme = self.engine.state.theme
        if not isinstance(theme, Theme):
            return FALLBACK_THEME
        return theme

    # -----------------------------
    # Layout
    # -----------------------------
    def resolve_columns(
        self,
        columns: Sequence[ColumnInput],
        header_labels: Optional[Union[Mapping[str, str], Sequence[str]]] = None,
        formatters: Optional[Mapping[str, Formatter]] = None,
    ) -> List[ColumnSpec]:
        resolved: List[ColumnSpec] = []
        for idx, col in enumerate(columns or []):
            spec = dataclasses.replace(col) if isinstance(col, ColumnSpec) else ColumnSpec(key=str(col))
            if isinstance(header_labels, Mapping):
                if spec.key in header_labels:
                    spec.label = str(header_labels[spec.key])
            elif header_labels is not None and idx < len(header_labels):
                spec.label = str(header_labels[idx])
            if formatters and spec.key in formatters:
                spec.formatter = formatters[spec.key]
            fixed, align = self.engine.column_override(spec.key)
            if align:
                spec.align = align
            spec.align = normalize_align(spec.align)
            if fixed is not None:
                try:
                    spec.width = int(fixed)
                    spec.fixed = True
                except (TypeError, ValueError):
                    logging.getLogger(LOGGER_NAME).debug("Ignoring width override %r for %s", fixed, spec.key)
            resolved.append(spec)
        return resolved

    def format_cell(self, column: ColumnSpec, row: Any) -> str:
        try:
            value = cell_value(row, column.key)
            if column.formatter is not None:
                value = column.formatter(value, row)
            return _sanitize_cell_text(value)
        except Exception:
            logging.getLogger(LOGGER_NAME).warning("Formatter for column %s failed", column.key, exc_info=True)
            return FORMAT_ERROR_TEXT

    def column_widths(self, columns: Sequence[ColumnSpec], cells: Sequence[Sequence[str]], padding: int) -> List[int]:
        widths: List[int] = []
        for idx, col in enumerate(columns):
            if col.fixed and col.width is not None:
                content = max(0, col.width)
            else:
                content = max(
                    [max(0, col.width or 0), len(col.header)]
                    + [self.engine.metrics.visible_length(row[idx]) for row in cells]
                )
            widths.append(max(MIN_COLUMN_WIDTH, content + 2 * padding))
        return widths

    # -----------------------------
    # Drawing
    # -----------------------------
    @staticmethod
    def border(widths: Sequence[int], left: str, junction: str, right: str, horizontal: str) -> str:
        return left + junction.join(horizontal * w for w in widths) + right

    def _cell(self, text: str, width: int, align: str, padding: int, plain: bool) -> str:
        budget = max(0, width - 2 * padding)
        metrics = self.engine.metrics
        if plain:
            text = strip_ansi(text)
            if len(text) > budget:
                text = metrics.safe_truncate(text, budget, preserve_ansi=False)
            visible = len(text)
        else:
            visible = metrics.visible_length(text)
            if visible > budget:
                text = metrics.safe_truncate(text, budget, preserve_ansi=True)
                visible = metrics.visible_length(text)
        return " " * padding + align_text(text, budget, align, visible) + " " * padding

    def _row_color(self, row_colorizer: Optional[RowColorizer], row: Any, index: int, theme: Theme) -> str:
        if row_colorizer is None:
            return theme.colors.normal
        try:
            color = row_colorizer(row, index)
        except Exception:
            logging.getLogger(LOGGER_NAME).warning("Row colorizer failed for row %d", index, exc_info=True)
            return theme.colors.normal
        if not color:
            return theme.colors.normal
        return self.engine.resolve_color(str(color), theme)

    def show_table(
        self,
        rows: Optional[Sequence[Any]],
        columns: Sequence[ColumnInput],
        header_labels: Optional[Union[Mapping[str, str], Sequence[str]]] = None,
        formatters: Optional[Mapping[str, Formatter]] = None,
        row_colorizer: Optional[RowColorizer] = None,
    ) -> int:
        """Render a bordered table and return the number of rows drawn."""
        theme = self._theme()
        glyphs: BorderGlyphs = theme.table.chars if isinstance(theme.table.chars, BorderGlyphs) else ASCII_GLYPHS
        padding = max(0, int(theme.table.cell_padding))
        specs = self.resolve_columns(columns, header_labels, formatters)
        if not specs:
            return 0
        present = [row for row in (rows or []) if row is not None]
        cells = [[self.format_cell(col, row) for col in specs] for row in present]
        widths = self.column_widths(specs, cells, padding)

        border_color = theme.colors.table_border
        header_color = theme.colors.header
        v = glyphs.vertical
        h = glyphs.horizontal

        def emit_line(segments: List[Tuple[str, str]]) -> None:
            self.engine.write_segments(segments)

        def emit_cells(texts: Sequence[str], color: str) -> None:
            segments: List[Tuple[str, str]] = [(border_color, v)]
            for text in texts:
                segments.append((color, text))
                segments.append((border_color, v))
            emit_line(segments)

        emit_line([(border_color, self.border(widths, glyphs.top_left, glyphs.top_junction, glyphs.top_right, h))])
        emit_cells(
            [self._cell(col.header, w, col.align, padding, plain=True) for col, w in zip(specs, widths)],
            header_color,
        )

        if not present:
            inner = sum(widths) + len(widths) - 1
            emit_line([(border_color, self.border(widths, glyphs.left_junction, glyphs.bottom_junction, glyphs.right_junction, h))])
            message = NO_DATA_TEXT if len(NO_DATA_TEXT) <= inner else self.engine.metrics.safe_truncate(NO_DATA_TEXT, inner)
            emit_cells([align_text(message, inner, ALIGN_CENTER, len(message))], theme.colors.normal)
            emit_line([(border_color, glyphs.bottom_left + h * inner + glyphs.bottom_right)])
            return 0

        separator = self.border(widths, glyphs.left_junction, glyphs.cross_junction, glyphs.right_junction, h)
        emit_line([(border_color, separator)])
        for index, (row, texts) in enumerate(zip(present, cells)):
            if index and theme.table.row_separator:
                emit_line([(border_color, separator)])
            color = self._row_color(row_colorizer, row, index, theme)
            emit_cells(
                [self._cell(text, w, col.align, padding, plain=False) for text, w, col in zip(texts, widths, specs)],
                color,
            )
        emit_line([(border_color, self.border(widths, glyphs.bottom_left, glyphs.bottom_junction, glyphs.bottom_right, h))])
        return len(present)
