import json
import logging

import pytest

from todo_console import config as cfgmod


def _write(path, text):
    path.write_text(text, encoding="utf-8")
    return str(path)


def test_load_config_reads_yaml(tmp_path):
    path = _write(
        tmp_path / "cfg.yml",
        "data_dir: {data}\n"
        "theme: Ocean\n"
        "due_soon_days: 5\n"
        "log_level: debug\n"
        "columns:\n"
        "  title: 30\n"
        "  due: {{width: 12, align: right}}\n".format(data=tmp_path / "data"),
    )
    cfg = cfgmod.load_config(path)
    assert cfg.data_path == tmp_path / "data"
    assert cfg.themes_path == tmp_path / "data" / "themes"
    assert cfg.log_path == tmp_path / "data" / "todo_console.log"
    assert cfg.theme == "Ocean"
    assert cfg.due_soon_days == 5
    assert cfg.log_level == "debug"
    assert cfg.column_override("title") == (30, None)
    assert cfg.column_override("due") == (12, "right")
    assert cfg.column_override("other") == (None, None)


def test_missing_default_config_gives_defaults(monkeypatch, tmp_path):
    monkeypatch.setattr(cfgmod, "DEFAULT_CONFIG_PATH", str(tmp_path / "absent.yml"))
    cfg = cfgmod.load_config(None)
    assert cfg.theme == "Default"
    assert cfg.columns == {}


def test_explicit_missing_config_raises(tmp_path):
    with pytest.raises(OSError):
        cfgmod.load_config(str(tmp_path / "absent.yml"))


@pytest.mark.parametrize(
    "body",
    [
        "- just\n- a list\n",
        "columns: [1, 2]\n",
        "columns:\n  title: {width: zero}\n",
        "columns:\n  title: {width: 0}\n",
        "columns:\n  title: {align: diagonal}\n",
        "due_soon_days: soon\n",
    ],
)
def test_invalid_config_raises_value_error(tmp_path, body):
    with pytest.raises(ValueError):
        cfgmod.load_config(_write(tmp_path / "bad.yml", body))


def test_theme_name_prefers_saved_state(tmp_path):
    state = tmp_path / "ui.json"
    cfg = cfgmod.AppConfig(theme="Ocean", state_path=str(state))
    assert cfg.theme_name() == "Ocean"
    cfg.persist_theme("Matrix")
    assert json.loads(state.read_text(encoding="utf-8")) == {"theme": "Matrix"}
    assert cfg.theme_name() == "Matrix"


def test_persist_theme_keeps_other_state_keys(tmp_path):
    state = tmp_path / "nested" / "ui.json"
    cfgmod.save_state(str(state), {"last_view": "todos"})
    cfgmod.AppConfig(state_path=str(state)).persist_theme("Minimal")
    assert cfgmod.load_state(str(state)) == {"last_view": "todos", "theme": "Minimal"}


def test_corrupt_state_is_ignored(tmp_path, caplog):
    caplog.set_level(logging.WARNING, logger="todo_console")
    state = tmp_path / "ui.json"
    state.write_text("{oops", encoding="utf-8")
    assert cfgmod.load_state(str(state)) == {}
    assert "Ignoring unreadable UI state" in caplog.text
    assert cfgmod.AppConfig(theme="Ocean", state_path=str(state)).theme_name() == "Ocean"
