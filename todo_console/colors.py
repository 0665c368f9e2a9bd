from __future__ import annotations

import logging
import re
import sys
from typing import IO, Iterable, List, Optional, Tuple

from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import FormattedText

from .text import strip_ansi

LOGGER_NAME = "todo_console"

RESET = "\x1b[0m"

# Console color names -> (SGR foreground code, prompt_toolkit palette name)
CONSOLE_COLORS = {
    "black": (30, "ansiblack"),
    "darkred": (31, "ansired"),
    "darkgreen": (32, "ansigreen"),
    "darkyellow": (33, "ansiyellow"),
    "darkblue": (34, "ansiblue"),
    "darkmagenta": (35, "ansimagenta"),
    "darkcyan": (36, "ansicyan"),
    "gray": (37, "ansigray"),
    "grey": (37, "ansigray"),
    "darkgray": (90, "ansibrightblack"),
    "darkgrey": (90, "ansibrightblack"),
    "red": (91, "ansibrightred"),
    "green": (92, "ansibrightgreen"),
    "yellow": (93, "ansibrightyellow"),
    "blue": (94, "ansibrightblue"),
    "magenta": (95, "ansibrightmagenta"),
    "cyan": (96, "ansibrightcyan"),
    "white": (97, "ansiwhite"),
}

FALLBACK_COLOR = "white"

_HEX_RE = re.compile(r"^#([0-9a-fA-F]{6})$")

Segment = Tuple[Optional[str], str]


def _normalize(color: Optional[str]) -> str:
    return (color or "").strip().replace(" ", "").replace("_", "").lower()


class ColorResolver:
    """Turns console color names into ANSI SGR codes or native palette styles."""

    def __init__(self, stream: Optional[IO[str]] = None) -> None:
        self.stream = stream

    @property
    def out(self) -> IO[str]:
        return self.stream if self.stream is not None else sys.stdout

    def is_known(self, color: Optional[str]) -> bool:
        norm = _normalize(color)
        return norm in CONSOLE_COLORS or bool(_HEX_RE.match(norm))

    def ansi_code(self, color: Optional[str]) -> str:
        norm = _normalize(color)
        match = _HEX_RE.match(norm)
        if match:
            raw = match.group(1)
            r, g, b = int(raw[0:2], 16), int(raw[2:4], 16), int(raw[4:6], 16)
            return f"\x1b[38;2;{r};{g};{b}m"
        if norm not in CONSOLE_COLORS:
            if norm:
                logging.getLogger(LOGGER_NAME).debug("Unknown color %r; using %s", color, FALLBACK_COLOR)
            norm = FALLBACK_COLOR
        return f"\x1b[{CONSOLE_COLORS[norm][0]}m"

    def native_style(self, color: Optional[str]) -> str:
        norm = _normalize(color)
        if _HEX_RE.match(norm):
            return norm
        entry = CONSOLE_COLORS.get(norm) or CONSOLE_COLORS[FALLBACK_COLOR]
        return entry[1]

    def colorize(self, text: str, color: Optional[str]) -> str:
        if not text:
            return ""
        return f"{self.ansi_code(color)}{text}{RESET}"

    def write(self, segments: Iterable[Segment], ansi: bool = True, newline: bool = True) -> None:
        """Write (color, text) segments either as raw SGR or via the native palette."""
        parts: List[Segment] = [(color, text or "") for color, text in segments]
        end = "\n" if newline else ""
        if ansi:
            self.out.write("".join(self.colorize(text, color) for color, text in parts) + end)
            return
        fragments = [(self.native_style(color), strip_ansi(text)) for color, text in parts if text]
        print_formatted_text(FormattedText(fragments), end=end, file=self.out)

    def write_text(self, text: str, color: Optional[str] = None, ansi: bool = True, newline: bool = True) -> None:
        self.write([(color, text)], ansi=ansi, newline=newline)
