import io
import os
import re
import sys

import pytest

ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

from todo_console.render import RenderEngine  # noqa: E402

_ANSI = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")


def plain(text):
    """Output without escape sequences or carriage returns, split into lines."""
    return _ANSI.sub("", text).replace("\r", "").splitlines()


@pytest.fixture
def themes_dir(tmp_path):
    path = tmp_path / "themes"
    path.mkdir()
    return path


@pytest.fixture
def out():
    return io.StringIO()


@pytest.fixture
def engine(themes_dir, out):
    """Engine writing ANSI output to a buffer at a fixed 80-column width."""
    return RenderEngine(themes_dir=themes_dir, theme="Default", stream=out, console_width=80)


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"
