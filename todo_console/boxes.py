from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Tuple

from .text import strip_ansi, wrap_text
from .themes import ASCII_GLYPHS, BorderGlyphs, Theme

if TYPE_CHECKING:
    from .render import RenderEngine

INFO_BOX_KINDS = {
    "info": "Accent2",
    "warning": "Warning",
    "error": "Error",
    "success": "Success",
}

MAX_BOX_WIDTH = 70
MAX_HEADER_WIDTH = 78
MIN_BOX_WIDTH = 20

Segment = Tuple[Optional[str], str]


def _center(text: str, width: int) -> str:
    remaining = max(0, width - len(text))
    left = remaining // 2
    return " " * left + text + " " * (remaining - left)


def _glyphs(theme: Optional[Theme]) -> BorderGlyphs:
    glyphs = getattr(getattr(theme, "table", None), "chars", None)
    return glyphs if isinstance(glyphs, BorderGlyphs) else ASCII_GLYPHS


class BoxRenderer:
    def __init__(self, engine: "RenderEngine") -> None:
        self.engine = engine

    def box_width(self, limit: int = MAX_BOX_WIDTH, margin: int = 4) -> int:
        return max(MIN_BOX_WIDTH, min(self.engine.console_width() - margin, limit))

    # -----------------------------
    # Info boxes
    # -----------------------------
    def info_box_lines(self, title: str, message: str, glyphs: BorderGlyphs, box_width: int) -> List[str]:
        content_width = box_width - 4
        inner = box_width - 2
        title_lines = wrap_text(strip_ansi(title), content_width)
        message_lines = wrap_text(strip_ansi(message), content_width)
        v = glyphs.vertical
        lines = [glyphs.top_left + glyphs.horizontal * inner + glyphs.top_right]
        for line in title_lines:
            lines.append(f"{v} {_center(line, content_width)} {v}")
        if title_lines:
            lines.append(glyphs.left_junction + glyphs.horizontal * inner + glyphs.right_junction)
        for line in message_lines:
            lines.append(f"{v} {line.ljust(content_width)} {v}")
        lines.append(glyphs.bottom_left + glyphs.horizontal * inner + glyphs.bottom_right)
        return lines

    def show_info_box(self, title: str, message: str, kind: str = "Info") -> None:
        theme = self.engine.theme
        token = INFO_BOX_KINDS.get(str(kind or "").strip().lower(), INFO_BOX_KINDS["info"])
        for line in self.info_box_lines(title or "", message or "", _glyphs(theme), self.box_width()):
            self.engine.write_segments([(token, line)])

    # -----------------------------
    # Headers
    # -----------------------------
    def header_lines(self, title: str, subtitle: Optional[str], theme: Theme, width: int) -> List[List[Segment]]:
        headers = theme.headers
        style = (headers.style or "").strip().lower()
        border = (headers.border_char or "-")[0]
        inner = width - 2
        texts: List[Tuple[str, str]] = [("Header", line) for line in wrap_text(strip_ansi(title), inner - 2)]
        if subtitle:
            texts += [("Accent1", line) for line in wrap_text(strip_ansi(subtitle), inner - 2)]

        if style == "minimal":
            rows: List[List[Segment]] = [[(token, _center(text, width))] for token, text in texts]
            rows.append([("Accent2", border * width)])
            return rows

        if style == "double":
            tl, tr, bl, br, h, v = "╔", "╗", "╚", "╝", "═", "║"
        elif style == "block":
            tl = tr = bl = br = h = v = "█"
        elif style == "gradient":
            ramp = headers.gradient_chars or border
            edge = (ramp * (width // len(ramp) + 1))[:width]
            v = ramp[-1]
            rows = [[("Accent2", edge)]]
            rows += [[("Accent2", v), (token, _center(text, inner)), ("Accent2", v)] for token, text in texts]
            rows.append([("Accent2", edge[::-1])])
            return rows
        else:
            corners = headers.corners if len(headers.corners) == 4 else "++++"
            tl, tr, bl, br = corners
            h = border
            v = _glyphs(theme).vertical

        rows = [[("Accent2", tl + h * inner + tr)]]
        rows += [[("Accent2", v), (token, _center(text, inner)), ("Accent2", v)] for token, text in texts]
        rows.append([("Accent2", bl + h * inner + br)])
        return rows

    def render_header(self, title: str, subtitle: Optional[str] = None, clear: bool = True) -> None:
        if clear:
            self.engine.clear_screen()
        theme = self.engine.theme
        width = self.box_width(MAX_HEADER_WIDTH, margin=2)
        for row in self.header_lines(title or "", subtitle, theme, width):
            self.engine.write_segments(row)
