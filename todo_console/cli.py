from __future__ import annotations

import argparse
import logging
import os
import sys
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

from prompt_toolkit import prompt

from . import dates
from .config import AppConfig, load_config
from .logs import setup_logging
from .render import RenderEngine
from .storage import GRANULARITIES, CsvStore, Todo
from .tables import ALIGN_CENTER, ALIGN_RIGHT, ColumnSpec

LOGGER_NAME = "todo_console"

ReadFn = Callable[[str], str]


@dataclass
class App:
    cfg: AppConfig
    store: CsvStore
    engine: RenderEngine
    clear_screen: bool = True


def build_app(cfg: AppConfig, stream=None, console_width: Optional[int] = None, theme: Optional[str] = None) -> App:
    engine = RenderEngine(
        themes_dir=cfg.themes_path,
        theme=theme or cfg.theme_name(),
        stream=stream,
        console_width=console_width,
        column_override=cfg.column_override,
        persist_theme=cfg.persist_theme,
    )
    return App(cfg=cfg, store=CsvStore(cfg.data_path), engine=engine)


def _error_text(exc: Exception) -> str:
    if isinstance(exc, KeyError) and exc.args:
        return str(exc.args[0])
    return str(exc)


# -----------------------------
# Views
# -----------------------------
def todo_colorizer(app: App) -> Callable[[Todo, int], Optional[str]]:
    today = dates.today()

    def colorize(todo: Todo, _index: int) -> Optional[str]:
        if todo.done:
            return "Completed"
        return dates.due_status(todo.due_date, today, app.cfg.due_soon_days)

    return colorize


def show_projects(app: App, include_archived: bool = False) -> int:
    projects = app.store.list_projects(include_archived=include_archived)
    todos = app.store.list_todos()
    totals = app.store.project_totals()
    counts: Dict[int, List[int]] = {}
    for t in todos:
        done_total = counts.setdefault(t.project_id, [0, 0])
        done_total[0] += t.done
        done_total[1] += 1
    columns = [
        ColumnSpec("id", "Id", align=ALIGN_RIGHT),
        ColumnSpec("name", "Project"),
        ColumnSpec("todos", "Done", align=ALIGN_CENTER,
                   formatter=lambda _v, p: "{}/{}".format(*counts.get(p.id, [0, 0]))),
        ColumnSpec("time", "Time", align=ALIGN_RIGHT,
                   formatter=lambda _v, p: dates.format_duration(totals.get(p.name, 0))),
        ColumnSpec("description", "Description"),
    ]
    return app.engine.show_table(
        projects,
        columns,
        row_colorizer=lambda p, _i: "Completed" if p.archived else None,
    )


def show_todos(app: App, project: Optional[str] = None, open_only: bool = False) -> int:
    project_id = app.store.get_project(project).id if project else None
    todos = app.store.list_todos(project_id=project_id, include_done=not open_only)
    names = {p.id: p.name for p in app.store.list_projects(include_archived=True)}
    totals = app.store.todo_totals()
    running = {e.todo_id for e in app.store.active_entries()}

    def fmt_time(_value: Any, todo: Todo) -> str:
        text = dates.format_duration(totals.get(todo.id, 0))
        return f"{text} *" if todo.id in running else text

    columns = [
        ColumnSpec("id", "Id", align=ALIGN_RIGHT),
        ColumnSpec("project_id", "Project", formatter=lambda v, _t: names.get(v, "?")),
        ColumnSpec("title", "Title"),
        ColumnSpec("due_date", "Due", formatter=lambda v, _t: v or "-"),
        ColumnSpec("priority", "Priority", align=ALIGN_CENTER),
        ColumnSpec("done", "Status", formatter=lambda v, _t: "done" if v else "open"),
        ColumnSpec("time", "Time", align=ALIGN_RIGHT, formatter=fmt_time),
    ]
    return app.engine.show_table(todos, columns, row_colorizer=todo_colorizer(app))


def show_report(app: App, granularity: str = "week", since_days: Optional[int] = 30) -> int:
    engine = app.engine
    engine.render_header("Time report", f"Last {since_days} days by {granularity}" if since_days else f"All time by {granularity}", clear=False)
    totals = app.store.project_totals(since_days=since_days)
    rows = [{"project": name or "-", "seconds": secs} for name, secs in sorted(totals.items(), key=lambda kv: kv[1], reverse=True)]
    engine.show_table(
        rows,
        [
            ColumnSpec("project", "Project"),
            ColumnSpec("seconds", "Time", align=ALIGN_RIGHT, formatter=lambda v, _r: dates.format_duration(v)),
        ],
    )
    periods = app.store.period_totals(granularity, since_days=since_days)
    engine.show_table(
        [{"period": key, "seconds": secs} for key, secs in periods.items()],
        [
            ColumnSpec("period", granularity.capitalize()),
            ColumnSpec("seconds", "Time", align=ALIGN_RIGHT, formatter=lambda v, _r: dates.format_duration(v)),
        ],
    )
    todos = app.store.list_todos()
    for project in app.store.list_projects():
        mine = [t for t in todos if t.project_id == project.id]
        if mine:
            engine.show_progress_bar(sum(t.done for t in mine), len(mine), width=30, label=f"{project.name:<20.20}")
    return len(rows)


def show_themes(app: App) -> int:
    current = app.engine.theme.name
    infos = app.engine.themes.list_available_themes()
    return app.engine.show_table(
        infos,
        [
            ColumnSpec("name", "Theme", formatter=lambda v, _i: f"{v} (current)" if v == current else v),
            ColumnSpec("type", "Type"),
            ColumnSpec("source", "Source"),
        ],
        row_colorizer=lambda info, _i: "Accent1" if info.name == current else None,
    )


def show_preview(app: App) -> int:
    engine = app.engine
    theme = engine.theme
    engine.render_header(theme.name, theme.description, clear=False)
    for kind in ("Info", "Success", "Warning", "Error"):
        engine.show_info_box(kind, f"This is how a {kind.lower()} message looks.", kind)
    sample = [
        {"title": "Ship release notes", "due": "overdue", "state": "Overdue"},
        {"title": "Review pull request", "due": "tomorrow", "state": "DueSoon"},
        {"title": "Archive old sprint", "due": "done", "state": "Completed"},
    ]
    engine.show_table(sample, ["title", "due"], {"title": "Title", "due": "Due"},
                      row_colorizer=lambda row, _i: row["state"])
    engine.show_progress_bar(2, 3, width=30, label="Progress")
    return 0


# -----------------------------
# Commands
# -----------------------------
def cmd_projects(app: App, args: argparse.Namespace) -> int:
    show_projects(app, include_archived=args.all)
    return 0


def cmd_add_project(app: App, args: argparse.Namespace) -> int:
    project = app.store.add_project(args.name, args.description or "")
    app.engine.show_info_box("Project added", f"#{project.id} {project.name}", "Success")
    return 0


def cmd_todos(app: App, args: argparse.Namespace) -> int:
    show_todos(app, project=args.project, open_only=args.open)
    return 0


def cmd_add(app: App, args: argparse.Namespace) -> int:
    project = app.store.get_project(args.project)
    due = dates.parse_date(args.due) if args.due else None
    todo = app.store.add_todo(project.id, args.title, due.isoformat() if due else "", args.priority)
    app.engine.show_info_box("Todo added", f"#{todo.id} {todo.title} ({project.name})", "Success")
    return 0


def cmd_done(app: App, args: argparse.Namespace) -> int:
    todo = app.store.complete_todo(args.id)
    app.engine.show_info_box("Completed", f"#{todo.id} {todo.title}", "Success")
    return 0


def cmd_rm(app: App, args: argparse.Namespace) -> int:
    todo = app.store.get_todo(args.id)
    app.store.delete_todo(todo.id)
    app.engine.show_info_box("Deleted", f"#{todo.id} {todo.title}", "Warning")
    return 0


def cmd_start(app: App, args: argparse.Namespace) -> int:
    entry = app.store.start_timer(args.id, args.note or "")
    todo = app.store.get_todo(entry.todo_id)
    app.engine.show_info_box("Timer running", f"#{todo.id} {todo.title} since {entry.started_at}", "Info")
    return 0


def cmd_stop(app: App, args: argparse.Namespace) -> int:
    stopped = app.store.stop_timer(args.id)
    if not stopped:
        app.engine.show_info_box("Timer", "No running timers.", "Warning")
        return 1
    lines = []
    for entry in stopped:
        secs = app.store.todo_total_seconds(entry.todo_id)
        lines.append(f"#{entry.todo_id} total {dates.format_duration(secs)}.")
    app.engine.show_info_box("Timer stopped", " ".join(lines), "Success")
    return 0


def cmd_report(app: App, args: argparse.Namespace) -> int:
    show_report(app, args.granularity, args.since_days or None)
    return 0


def cmd_themes(app: App, args: argparse.Namespace) -> int:
    show_themes(app)
    return 0


def cmd_theme(app: App, args: argparse.Namespace) -> int:
    if not app.engine.set_theme(args.name):
        app.engine.show_info_box("Theme", f"Theme '{args.name}' was not found; keeping {app.engine.theme.name}.", "Error")
        return 1
    if args.preview:
        return show_preview(app)
    app.engine.show_info_box("Theme", f"Now using {app.engine.theme.name}.", "Success")
    return 0


def cmd_export_theme(app: App, args: argparse.Namespace) -> int:
    theme = app.engine.themes.get_theme(args.name) if args.name else app.engine.theme
    path = app.engine.themes.save_theme(theme, args.path)
    app.engine.show_info_box("Theme exported", f"{theme.name} written to {path}", "Success")
    return 0


def cmd_preview(app: App, args: argparse.Namespace) -> int:
    return show_preview(app)


def cmd_menu(app: App, args: argparse.Namespace) -> int:
    return run_menu(app)


# -----------------------------
# Menu
# -----------------------------
MENU_ITEMS = [
    ("List projects", "projects"),
    ("List open todos", "todos"),
    ("Add project", "add-project"),
    ("Add todo", "add"),
    ("Complete todo", "done"),
    ("Start timer", "start"),
    ("Stop timers", "stop"),
    ("Time report", "report"),
    ("Switch theme", "theme"),
    ("Quit", "quit"),
]


def _ask_int(read: ReadFn, label: str) -> int:
    raw = read(f"{label}: ").strip()
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Not a number: {raw!r}") from None


def _menu_action(app: App, action: str, read: ReadFn) -> None:
    store = app.store
    if action == "projects":
        show_projects(app)
    elif action == "todos":
        show_todos(app, open_only=True)
    elif action == "add-project":
        project = store.add_project(read("Project name: "), read("Description: "))
        app.engine.show_info_box("Project added", f"#{project.id} {project.name}", "Success")
    elif action == "add":
        show_projects(app)
        project = store.get_project(read("Project (id or name): "))
        title = read("Title: ")
        due = dates.parse_date(read("Due (empty, today, +3d, friday, YYYY-MM-DD): "))
        priority = read("Priority [High/Medium/Low]: ") or "Medium"
        todo = store.add_todo(project.id, title, due.isoformat() if due else "", priority)
        app.engine.show_info_box("Todo added", f"#{todo.id} {todo.title}", "Success")
    elif action == "done":
        show_todos(app, open_only=True)
        todo = store.complete_todo(_ask_int(read, "Todo id"))
        app.engine.show_info_box("Completed", f"#{todo.id} {todo.title}", "Success")
    elif action == "start":
        show_todos(app, open_only=True)
        entry = store.start_timer(_ask_int(read, "Todo id"))
        app.engine.show_info_box("Timer running", f"Todo #{entry.todo_id} since {entry.started_at}", "Info")
    elif action == "stop":
        stopped = store.stop_timer()
        app.engine.show_info_box("Timer", f"Stopped {len(stopped)} timer(s).", "Success" if stopped else "Warning")
    elif action == "report":
        show_report(app)
    elif action == "theme":
        show_themes(app)
        name = read("Theme name: ").strip()
        if app.engine.set_theme(name):
            app.engine.show_info_box("Theme", f"Now using {app.engine.theme.name}.", "Success")
        else:
            app.engine.show_info_box("Theme", f"Theme '{name}' was not found.", "Error")


def run_menu(app: App, read: Optional[ReadFn] = None) -> int:
    """Numbered menu loop; returns when the user quits or input ends."""
    read = read or (lambda message: prompt(message))
    engine = app.engine
    selected = 0
    while True:
        engine.render_header("todo-console", "Projects, todos and time", clear=app.clear_screen)
        menu = engine.theme.menu
        for idx, (label, _action) in enumerate(MENU_ITEMS):
            prefix = menu.selected_prefix if idx == selected else menu.unselected_prefix
            engine.write_color_text(f"{prefix}{idx + 1}) {label}", "Accent1" if idx == selected else "Normal")
        try:
            raw = read("choice> ").strip()
        except (EOFError, KeyboardInterrupt):
            return 0
        if not raw:
            raw = str(selected + 1)
        if raw.lower() in {"q", "quit", "exit"}:
            return 0
        try:
            choice = int(raw) - 1
            if not 0 <= choice < len(MENU_ITEMS):
                raise ValueError
        except ValueError:
            engine.show_info_box("Menu", f"Unknown choice: {raw}", "Warning")
            continue
        selected = choice
        action = MENU_ITEMS[choice][1]
        if action == "quit":
            return 0
        try:
            _menu_action(app, action, read)
        except (EOFError, KeyboardInterrupt):
            return 0
        except (ValueError, KeyError) as exc:
            engine.show_info_box("Error", _error_text(exc), "Error")
        if app.clear_screen:
            try:
                read("Press Enter to continue ")
            except (EOFError, KeyboardInterrupt):
                return 0


# -----------------------------
# CLI
# -----------------------------
def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="todo-console", description="Projects, todos and time tracking in the terminal")
    ap.add_argument("--config", help="Path to YAML config (default ~/.todo_console.yml)")
    ap.add_argument("--data-dir", help="Directory holding the CSV files")
    ap.add_argument("--state", help="Path to UI state JSON (remembers the theme)")
    ap.add_argument("--theme", help="Theme to use for this run only")
    ap.add_argument("--log-level", help="File log level (DEBUG, INFO, WARNING, ERROR)")
    sub = ap.add_subparsers(dest="command")

    p = sub.add_parser("projects", help="List projects")
    p.add_argument("--all", action="store_true", help="Include archived projects")
    p.set_defaults(func=cmd_projects)

    p = sub.add_parser("add-project", help="Create a project")
    p.add_argument("name")
    p.add_argument("--description", default="")
    p.set_defaults(func=cmd_add_project)

    p = sub.add_parser("todos", help="List todos")
    p.add_argument("--project", help="Project id or name")
    p.add_argument("--open", action="store_true", help="Hide completed todos")
    p.set_defaults(func=cmd_todos)

    p = sub.add_parser("add", help="Add a todo")
    p.add_argument("title")
    p.add_argument("--project", required=True, help="Project id or name")
    p.add_argument("--due", help="Due date: YYYY-MM-DD, today, tomorrow, +3d, friday")
    p.add_argument("--priority", default="Medium", help="High, Medium or Low")
    p.set_defaults(func=cmd_add)

    p = sub.add_parser("done", help="Complete a todo")
    p.add_argument("id", type=int)
    p.set_defaults(func=cmd_done)

    p = sub.add_parser("rm", help="Delete a todo and its time entries")
    p.add_argument("id", type=int)
    p.set_defaults(func=cmd_rm)

    p = sub.add_parser("start", help="Start a timer for a todo")
    p.add_argument("id", type=int)
    p.add_argument("--note", default="")
    p.set_defaults(func=cmd_start)

    p = sub.add_parser("stop", help="Stop running timers")
    p.add_argument("id", type=int, nargs="?")
    p.set_defaults(func=cmd_stop)

    p = sub.add_parser("report", help="Time report")
    p.add_argument("--granularity", default="week", choices=list(GRANULARITIES))
    p.add_argument("--since-days", type=int, default=30, help="Days back to include (0 = all)")
    p.set_defaults(func=cmd_report)

    p = sub.add_parser("themes", help="List available themes")
    p.set_defaults(func=cmd_themes)

    p = sub.add_parser("theme", help="Switch and remember the theme")
    p.add_argument("name")
    p.add_argument("--preview", action="store_true")
    p.set_defaults(func=cmd_theme)

    p = sub.add_parser("export-theme", help="Write a theme as JSON")
    p.add_argument("path")
    p.add_argument("--name", help="Theme to export (default: current)")
    p.set_defaults(func=cmd_export_theme)

    p = sub.add_parser("preview", help="Preview the current theme")
    p.set_defaults(func=cmd_preview)

    p = sub.add_parser("menu", help="Interactive menu (default)")
    p.set_defaults(func=cmd_menu)
    return ap


def main(argv: Optional[Sequence[str]] = None, stream=None) -> int:
    args = build_parser().parse_args(argv)
    try:
        cfg = load_config(args.config)
    except (OSError, ValueError) as exc:
        print(f"Failed to load config: {exc}", file=sys.stderr)
        return 2
    if args.data_dir:
        cfg.data_dir = args.data_dir
    if args.state:
        cfg.state_path = os.path.expanduser(args.state)
    if args.log_level:
        cfg.log_level = args.log_level
    setup_logging(cfg.log_path, cfg.log_level)

    app = build_app(cfg, stream=stream, theme=args.theme)
    func = getattr(args, "func", cmd_menu)
    try:
        return func(app, args)
    except (ValueError, KeyError) as exc:
        logging.getLogger(LOGGER_NAME).info("Command %s failed: %s", args.command or "menu", exc)
        app.engine.show_info_box("Error", _error_text(exc), "Error")
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
