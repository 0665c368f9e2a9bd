import logging

from conftest import plain

from todo_console.render import RenderEngine
from todo_console.tables import ColumnSpec


ROWS = [{"name": "alpha", "n": 1}, {"name": "b", "n": 22}]


def test_table_layout_with_labels(engine, out):
    assert engine.show_table(ROWS, ["name", "n"], {"name": "Name", "n": "N"}) == 2
    assert plain(out.getvalue()) == [
        "┌───────┬────┐",
        "│ Name  │ N  │",
        "├───────┼────┤",
        "│ alpha │ 1  │",
        "│ b     │ 22 │",
        "└───────┴────┘",
    ]


def test_alignment_and_list_labels(engine, out):
    engine.show_table(ROWS, ["name", ColumnSpec("n", align="right")], ["Name", "N"])
    lines = plain(out.getvalue())
    assert lines[3] == "│ alpha │  1 │"
    assert lines[4] == "│ b     │ 22 │"


def test_center_alignment(engine, out):
    engine.show_table([{"x": "a"}], [ColumnSpec("x", "Label", align="center")])
    assert plain(out.getvalue())[3] == "│   a   │"


def test_empty_table_draws_no_data_row(engine, out):
    rendered = engine.show_table([], [ColumnSpec("name", "Name", width=20), "n"])
    assert rendered == 0
    lines = plain(out.getvalue())
    assert len(lines) == 5
    assert lines[2].startswith("├") and lines[2].endswith("┤") and "┴" in lines[2]
    assert "No data available" in lines[3]
    assert lines[3].startswith("│") and lines[3].endswith("│")
    assert lines[4] == "└" + "─" * 26 + "┘"
    assert {len(line) for line in lines} == {28}


def test_none_rows_are_skipped(engine, out):
    assert engine.show_table(None, ["a"]) == 0
    assert engine.show_table([None, {"a": 1}], ["a"]) == 1


def test_no_columns_draws_nothing(engine, out):
    assert engine.show_table(ROWS, []) == 0
    assert out.getvalue() == ""


def test_formatter_failure_shows_marker(engine, out, caplog):
    caplog.set_level(logging.WARNING, logger="todo_console")

    def explode(value, row):
        raise RuntimeError("bad")

    assert engine.show_table(ROWS, ["name", "n"], formatters={"n": explode}) == 2
    assert "[ERR]" in out.getvalue()
    assert "Formatter for column n failed" in caplog.text


def test_formatter_receives_value_and_row(engine, out):
    engine.show_table(ROWS, [ColumnSpec("n", formatter=lambda v, row: f"{row['name']}:{v}")])
    assert "alpha:1" in out.getvalue()


def test_row_colorizer_tokens_and_failures(engine, out, caplog):
    caplog.set_level(logging.WARNING, logger="todo_console")
    engine.show_table(ROWS, ["name"], row_colorizer=lambda row, i: "Overdue" if i == 0 else None)
    assert "\x1b[91m alpha" in out.getvalue()

    out.truncate(0)
    out.seek(0)

    def broken(row, index):
        raise KeyError("nope")

    assert engine.show_table(ROWS, ["name"], row_colorizer=broken) == 2
    assert "\x1b[97m alpha" in out.getvalue()
    assert "Row colorizer failed" in caplog.text


def test_ansi_cells_are_measured_by_visible_width(engine, out):
    engine.show_table([{"a": "\x1b[31mred\x1b[0m"}], ["a"])
    assert plain(out.getvalue())[0] == "┌─────┐"


def test_configured_width_truncates_cells(themes_dir, out):
    engine = RenderEngine(
        themes_dir=themes_dir,
        theme="Default",
        stream=out,
        console_width=80,
        column_override=lambda key: (5, "right") if key == "title" else (None, None),
    )
    engine.show_table([{"title": "abcdefghij"}, {"title": "ab"}], ["title"], {"title": "Title"})
    lines = plain(out.getvalue())
    assert lines[0] == "┌───────┐"
    assert lines[1] == "│ Title │"
    assert lines[3] == "│ ab... │"
    assert lines[4] == "│    ab │"


def test_narrow_override_truncates_header(themes_dir, out):
    engine = RenderEngine(themes_dir=themes_dir, stream=out, column_override=lambda key: (3, None))
    engine.show_table([{"title": "x"}], ["title"], {"title": "Title"})
    assert plain(out.getvalue())[1] == "| ... |"


def test_fallback_theme_uses_ascii_borders(out):
    engine = RenderEngine(stream=out, console_width=80)
    engine.show_table([{"a": "x"}], ["a"])
    assert plain(out.getvalue())[0] == "+---+"


def test_row_separators(engine, out):
    assert engine.set_theme("NeonCyberpunk")
    engine.show_table(ROWS, ["name"])
    lines = plain(out.getvalue())
    assert len(lines) == 7
    assert lines[4] == lines[2]
    assert lines[0].startswith("┏")


class _Unprintable:
    def __str__(self):
        raise RuntimeError("no text")


def test_unprintable_values_show_marker(engine, out, caplog):
    caplog.set_level(logging.WARNING, logger="todo_console")
    assert engine.show_table([{"a": _Unprintable()}, {"a": "fine"}], ["a"]) == 2
    lines = plain(out.getvalue())
    assert "│ [ERR] │" in lines
    assert "│ fine  │" in lines
