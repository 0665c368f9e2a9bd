from conftest import plain

from todo_console.boxes import BoxRenderer
from todo_console.render import RenderEngine
from todo_console.themes import ASCII_GLYPHS


def test_info_box_with_title(engine, out):
    engine.show_info_box("Saved", "All good", "Success")
    raw = out.getvalue()
    lines = plain(raw)
    assert len(lines) == 5
    assert {len(line) for line in lines} == {70}
    assert lines[0] == "┌" + "─" * 68 + "┐"
    assert lines[1].strip("│ ") == "Saved"
    assert lines[2] == "├" + "─" * 68 + "┤"
    assert lines[3].startswith("│ All good ")
    assert lines[4] == "└" + "─" * 68 + "┘"
    assert "\x1b[92m" in raw


def test_info_box_without_title_has_no_separator(engine, out):
    engine.show_info_box("", "Just a message")
    lines = plain(out.getvalue())
    assert len(lines) == 3
    assert "\x1b[96m" in out.getvalue()


def test_info_box_wraps_message(engine):
    lines = BoxRenderer(engine).info_box_lines("", "one two three four five six", ASCII_GLYPHS, 20)
    assert lines == [
        "+------------------+",
        "| one two three    |",
        "| four five six    |",
        "+------------------+",
    ]


def test_info_box_width_has_floor(themes_dir, out):
    engine = RenderEngine(themes_dir=themes_dir, stream=out, console_width=10)
    engine.show_info_box("T", "m", "Error")
    assert {len(line) for line in plain(out.getvalue())} == {20}


def test_double_header_with_subtitle(engine, out):
    engine.render_header("Todo", "subtitle here")
    raw = out.getvalue()
    assert raw.startswith("\x1b[2J\x1b[H")
    lines = plain(raw)
    assert len(lines) == 4
    assert lines[0] == "╔" + "═" * 76 + "╗"
    assert lines[1].startswith("║") and lines[1].strip("║ ") == "Todo"
    assert lines[2].strip("║ ") == "subtitle here"
    assert lines[3] == "╚" + "═" * 76 + "╝"


def test_header_without_clear(engine, out):
    engine.render_header("Todo", clear=False)
    assert "\x1b[2J" not in out.getvalue()


def test_minimal_header_in_native_mode(engine, out):
    assert engine.set_theme("Minimal")
    engine.render_header("Title")
    lines = plain(out.getvalue())
    assert "\x1b" not in out.getvalue()
    assert lines[0].strip() == "Title"
    assert lines[-1] == "-" * 78


def test_gradient_header(engine, out):
    assert engine.set_theme("RetroWave")
    engine.render_header("Synth", clear=False)
    lines = plain(out.getvalue())
    assert lines[0] == ("░▒▓█▓▒░" * 12)[:78]
    assert lines[-1] == lines[0][::-1]
    assert lines[1].strip("░ ") == "Synth"


def test_block_header(engine, out):
    assert engine.set_theme("NeonCyberpunk")
    engine.render_header("Neon", clear=False)
    lines = plain(out.getvalue())
    assert lines[0] == "█" * 78
    assert lines[1].startswith("█") and lines[1].endswith("█")
