from __future__ import annotations

import hashlib
import logging
import re
from typing import Dict, List, Optional

LOGGER_NAME = "todo_console"

ANSI_RE = re.compile(r"\x1b\[[0-9;]*[mK]")
ELLIPSIS = "..."
RESET = "\x1b[0m"
VISIBLE_LENGTH_CACHE_LIMIT = 1000


# -----------------------------
# Metrics
# -----------------------------
def strip_ansi(text: Optional[str]) -> str:
    """Remove SGR / erase-line escape sequences."""
    if not text:
        return ""
    text = str(text)
    # removing one sequence can splice its neighbours into another
    while True:
        stripped = ANSI_RE.sub("", text)
        if stripped == text:
            return stripped
        text = stripped


def _digest(text: str) -> str:
    return hashlib.md5(text.encode("utf-8", "surrogatepass")).hexdigest()


class TextMetrics:
    """ANSI-aware length and truncation with a bounded visible-length cache.

    The cache is keyed by a digest of the raw input. When it grows past
    ``limit`` entries it is dropped wholesale; it only ever affects speed.
    """

    def __init__(self, cache: Optional[Dict[str, int]] = None, limit: int = VISIBLE_LENGTH_CACHE_LIMIT) -> None:
        self.cache: Dict[str, int] = cache if cache is not None else {}
        self.limit = limit

    def clear_cache(self) -> None:
        self.cache.clear()

    def visible_length(self, text: Optional[str]) -> int:
        if not text:
            return 0
        try:
            raw = str(text)
            key = _digest(raw)
            cached = self.cache.get(key)
            if cached is not None:
                return cached
            length = len(strip_ansi(raw))
            if len(self.cache) >= self.limit:
                self.cache.clear()
            self.cache[key] = length
            return length
        except Exception:
            logging.getLogger(LOGGER_NAME).debug("visible_length fallback for %r", text, exc_info=True)
            try:
                return len(text)
            except Exception:
                return 0

    def safe_truncate(self, text: Optional[str], max_len: int, preserve_ansi: bool = False) -> str:
        """Shorten ``text`` to ``max_len`` visible characters ending in '...'."""
        if not text:
            return ""
        try:
            text = str(text)
            max_len = max(0, int(max_len))
            if self.visible_length(text) <= max_len:
                return text
            if max_len <= len(ELLIPSIS):
                return ELLIPSIS[:max_len]
            budget = max_len - len(ELLIPSIS)
            if not preserve_ansi:
                return strip_ansi(text)[:budget] + ELLIPSIS

            out: List[str] = []
            visible = 0
            had_escape = False
            i = 0
            while i < len(text) and visible < budget:
                match = ANSI_RE.match(text, i)
                if match:
                    out.append(match.group())
                    had_escape = True
                    i = match.end()
                    continue
                out.append(text[i])
                visible += 1
                i += 1
            if not had_escape and ANSI_RE.search(text, i):
                had_escape = True
            result = "".join(out) + ELLIPSIS
            if had_escape:
                result += RESET
            return result
        except Exception:
            logging.getLogger(LOGGER_NAME).debug("safe_truncate fallback for %r", text, exc_info=True)
            try:
                return str(text)[:max(0, int(max_len))]
            except Exception:
                return ""


# -----------------------------
# Wrapping
# -----------------------------
def wrap_text(text: Optional[str], width: int) -> List[str]:
    """Greedy word wrap; words wider than ``width`` are hard-split."""
    words = (text or "").split()
    if not words:
        return []
    width = max(1, int(width))
    lines: List[str] = []
    current = ""
    for word in words:
        if len(word) > width:
            if current:
                lines.append(current)
                current = ""
            while len(word) > width:
                lines.append(word[:width])
                word = word[width:]
            current = word
            continue
        if not current:
            current = word
        elif len(current) + 1 + len(word) > width:
            lines.append(current)
            current = word
        else:
            current = f"{current} {word}"
    if current:
        lines.append(current)
    return lines
