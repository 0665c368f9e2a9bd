import io

from todo_console.colors import RESET, ColorResolver


def test_ansi_codes_for_console_names():
    c = ColorResolver()
    assert c.ansi_code("Red") == "\x1b[91m"
    assert c.ansi_code("DarkRed") == "\x1b[31m"
    assert c.ansi_code("dark gray") == "\x1b[90m"
    assert c.ansi_code("White") == "\x1b[97m"


def test_hex_colors_use_truecolor_sequences():
    assert ColorResolver().ansi_code("#ff8000") == "\x1b[38;2;255;128;0m"
    assert ColorResolver().is_known("#FF8000")


def test_unknown_color_falls_back_to_white():
    c = ColorResolver()
    assert not c.is_known("chartreuse")
    assert c.ansi_code("chartreuse") == "\x1b[97m"
    assert c.native_style("chartreuse") == "ansiwhite"


def test_native_styles_use_prompt_toolkit_palette():
    c = ColorResolver()
    assert c.native_style("Red") == "ansibrightred"
    assert c.native_style("DarkGreen") == "ansigreen"


def test_colorize_wraps_with_reset_and_skips_empty():
    c = ColorResolver()
    assert c.colorize("hi", "Green") == "\x1b[92mhi" + RESET
    assert c.colorize("", "Green") == ""


def test_write_ansi_segments():
    buf = io.StringIO()
    ColorResolver(buf).write([("Red", "a"), ("Green", "b")])
    assert buf.getvalue() == "\x1b[91ma" + RESET + "\x1b[92mb" + RESET + "\n"


def test_write_native_strips_escapes():
    buf = io.StringIO()
    ColorResolver(buf).write([("Red", "\x1b[31mhi\x1b[0m"), (None, " there")], ansi=False)
    value = buf.getvalue()
    assert "hi there" in value
    assert "\x1b[31m" not in value


def test_write_text_without_newline():
    buf = io.StringIO()
    ColorResolver(buf).write_text("x", "Blue", newline=False)
    assert buf.getvalue() == "\x1b[94mx" + RESET
