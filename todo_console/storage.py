from __future__ import annotations

import csv
import datetime as dt
import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Type, TypeVar, Union

from . import dates

LOGGER_NAME = "todo_console"

PRIORITIES = ("High", "Medium", "Low")
GRANULARITIES = ("day", "week", "month")


# -----------------------------
# Records
# -----------------------------
@dataclass
class Project:
    id: int
    name: str
    description: str = ""
    created_at: str = ""
    archived: int = 0


@dataclass
class Todo:
    id: int
    project_id: int
    title: str
    due_date: str = ""
    priority: str = "Medium"
    done: int = 0
    created_at: str = ""
    completed_at: str = ""


@dataclass
class TimeEntry:
    id: int
    todo_id: int
    project_id: int
    started_at: str
    ended_at: str = ""
    note: str = ""

    @property
    def running(self) -> bool:
        return not self.ended_at


Record = TypeVar("Record", Project, Todo, TimeEntry)


def _from_csv(cls: Type[Record], raw: Dict[str, Optional[str]]) -> Record:
    kwargs: Dict[str, Any] = {}
    for f in fields(cls):
        value = raw.get(f.name)
        if value is None:
            continue
        if f.type == "int":
            try:
                kwargs[f.name] = int(value or 0)
            except ValueError:
                kwargs[f.name] = 0
        else:
            kwargs[f.name] = value
    return cls(**kwargs)


# -----------------------------
# CSV store
# -----------------------------
class CsvStore:
    """Projects, todos and time entries kept as one CSV file each."""

    FILES: Dict[str, Tuple[str, type]] = {
        "projects": ("projects.csv", Project),
        "todos": ("todos.csv", Todo),
        "entries": ("time_entries.csv", TimeEntry),
    }
    IDS_FILE = "ids.csv"

    def __init__(self, data_dir: Union[str, Path]):
        self.data_dir = Path(data_dir).expanduser()
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def path(self, kind: str) -> Path:
        return self.data_dir / self.FILES[kind][0]

    def _read(self, kind: str) -> List[Any]:
        path = self.path(kind)
        cls = self.FILES[kind][1]
        if not path.exists():
            return []
        rows: List[Any] = []
        with open(path, "r", encoding="utf-8", newline="") as f:
            for line_no, raw in enumerate(csv.DictReader(f), start=2):
                try:
                    rows.append(_from_csv(cls, raw))
                except TypeError:
                    logging.getLogger(LOGGER_NAME).warning("Skipping malformed row %d in %s", line_no, path)
        return rows

    def _write(self, kind: str, rows: Iterable[Any]) -> None:
        path = self.path(kind)
        cls = self.FILES[kind][1]
        names = [f.name for f in fields(cls)]
        tmp = path.with_suffix(path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=names)
            writer.writeheader()
            for row in rows:
                writer.writerow(asdict(row))
        tmp.replace(path)

    def _last_ids(self) -> Dict[str, int]:
        path = self.data_dir / self.IDS_FILE
        if not path.exists():
            return {}
        out: Dict[str, int] = {}
        with open(path, "r", encoding="utf-8", newline="") as f:
            for raw in csv.DictReader(f):
                try:
                    out[raw["kind"]] = int(raw["last_id"])
                except (KeyError, TypeError, ValueError):
                    logging.getLogger(LOGGER_NAME).warning("Ignoring bad id counter row in %s: %r", path, raw)
        return out

    def _next_id(self, kind: str, rows: List[Any]) -> int:
        """Allocate an id above every id ever handed out for ``kind``."""
        last = self._last_ids()
        new_id = max(max((r.id for r in rows), default=0), last.get(kind, 0)) + 1
        last[kind] = new_id
        path = self.data_dir / self.IDS_FILE
        tmp = path.with_suffix(path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(["kind", "last_id"])
            for name in sorted(last):
                writer.writerow([name, last[name]])
        tmp.replace(path)
        return new_id

    # ---- Projects ----
    def list_projects(self, include_archived: bool = False) -> List[Project]:
        rows = self._read("projects")
        if not include_archived:
            rows = [p for p in rows if not p.archived]
        return sorted(rows, key=lambda p: p.name.lower())

    def get_project(self, ref: Union[int, str]) -> Project:
        """Look up a project by id or (case-insensitive) name."""
        rows = self._read("projects")
        for p in rows:
            if str(p.id) == str(ref).strip():
                return p
        lowered = str(ref).strip().lower()
        for p in rows:
            if p.name.lower() == lowered:
                return p
        raise KeyError(f"Project not found: {ref}")

    def add_project(self, name: str, description: str = "") -> Project:
        name = (name or "").strip()
        if not name:
            raise ValueError("Project name is required")
        rows = self._read("projects")
        if any(p.name.lower() == name.lower() for p in rows):
            raise ValueError(f"Project already exists: {name}")
        project = Project(id=self._next_id("projects", rows), name=name, description=description.strip(), created_at=dates.now_iso())
        rows.append(project)
        self._write("projects", rows)
        return project

    def update_project(self, project_id: int, **changes: Any) -> Project:
        rows = self._read("projects")
        for idx, p in enumerate(rows):
            if p.id == project_id:
                rows[idx] = _replace(p, changes)
                self._write("projects", rows)
                return rows[idx]
        raise KeyError(f"Project not found: {project_id}")

    def archive_project(self, project_id: int) -> Project:
        return self.update_project(project_id, archived=1)

    def delete_project(self, project_id: int) -> None:
        rows = self._read("projects")
        kept = [p for p in rows if p.id != project_id]
        if len(kept) == len(rows):
            raise KeyError(f"Project not found: {project_id}")
        self._write("projects", kept)
        self._write("todos", [t for t in self._read("todos") if t.project_id != project_id])
        self._write("entries", [e for e in self._read("entries") if e.project_id != project_id])

    # ---- Todos ----
    def list_todos(self, project_id: Optional[int] = None, include_done: bool = True) -> List[Todo]:
        rows = self._read("todos")
        if project_id is not None:
            rows = [t for t in rows if t.project_id == project_id]
        if not include_done:
            rows = [t for t in rows if not t.done]
        # open first, then by due date (undated last), then id
        return sorted(rows, key=lambda t: (t.done, t.due_date or "9999-99-99", t.id))

    def get_todo(self, todo_id: int) -> Todo:
        for t in self._read("todos"):
            if t.id == todo_id:
                return t
        raise KeyError(f"Todo not found: {todo_id}")

    def add_todo(self, project_id: int, title: str, due_date: str = "", priority: str = "Medium") -> Todo:
        title = (title or "").strip()
        if not title:
            raise ValueError("Todo title is required")
        priority = _normalize_priority(priority)
        project = self.get_project(project_id)
        rows = self._read("todos")
        todo = Todo(
            id=self._next_id("todos", rows),
            project_id=project.id,
            title=title,
            due_date=due_date or "",
            priority=priority,
            created_at=dates.now_iso(),
        )
        rows.append(todo)
        self._write("todos", rows)
        return todo

    def update_todo(self, todo_id: int, **changes: Any) -> Todo:
        if "priority" in changes:
            changes["priority"] = _normalize_priority(changes["priority"])
        rows = self._read("todos")
        for idx, t in enumerate(rows):
            if t.id == todo_id:
                rows[idx] = _replace(t, changes)
                self._write("todos", rows)
                return rows[idx]
        raise KeyError(f"Todo not found: {todo_id}")

    def complete_todo(self, todo_id: int) -> Todo:
        self.stop_timer(todo_id)
        return self.update_todo(todo_id, done=1, completed_at=dates.now_iso())

    def reopen_todo(self, todo_id: int) -> Todo:
        return self.update_todo(todo_id, done=0, completed_at="")

    def delete_todo(self, todo_id: int) -> None:
        rows = self._read("todos")
        kept = [t for t in rows if t.id != todo_id]
        if len(kept) == len(rows):
            raise KeyError(f"Todo not found: {todo_id}")
        self._write("todos", kept)
        self._write("entries", [e for e in self._read("entries") if e.todo_id != todo_id])

    # ---- Time entries ----
    def list_entries(self, todo_id: Optional[int] = None) -> List[TimeEntry]:
        rows = self._read("entries")
        if todo_id is not None:
            rows = [e for e in rows if e.todo_id == todo_id]
        return rows

    def active_entries(self) -> List[TimeEntry]:
        return [e for e in self._read("entries") if e.running]

    def start_timer(self, todo_id: int, note: str = "") -> TimeEntry:
        todo = self.get_todo(todo_id)
        rows = self._read("entries")
        # Avoid duplicate open entries for the same todo
        for e in rows:
            if e.todo_id == todo_id and e.running:
                return e
        entry = TimeEntry(
            id=self._next_id("entries", rows),
            todo_id=todo.id,
            project_id=todo.project_id,
            started_at=dates.now_iso(),
            note=note,
        )
        rows.append(entry)
        self._write("entries", rows)
        return entry

    def stop_timer(self, todo_id: Optional[int] = None) -> List[TimeEntry]:
        rows = self._read("entries")
        now = dates.now_iso()
        stopped: List[TimeEntry] = []
        for e in rows:
            if e.running and (todo_id is None or e.todo_id == todo_id):
                e.ended_at = now
                stopped.append(e)
        if stopped:
            self._write("entries", rows)
        return stopped

    # ---- Aggregations ----
    def _spans(self, entries: Iterable[TimeEntry], since_days: Optional[int] = None) -> List[Tuple[TimeEntry, dt.datetime, dt.datetime]]:
        now = dates.now_local()
        since = (now - dt.timedelta(days=since_days)) if since_days else None
        spans = []
        for e in entries:
            st = dates.parse_timestamp(e.started_at)
            if st is None:
                continue
            en = dates.parse_timestamp(e.ended_at) or now
            if since is not None:
                if en <= since:
                    continue
                st = max(st, since)
            if st >= en:
                continue
            spans.append((e, st, en))
        return spans

    def todo_total_seconds(self, todo_id: int) -> int:
        return sum(int((en - st).total_seconds()) for _, st, en in self._spans(self.list_entries(todo_id)))

    def todo_totals(self, since_days: Optional[int] = None) -> Dict[int, int]:
        out: Dict[int, int] = {}
        for e, st, en in self._spans(self._read("entries"), since_days):
            out[e.todo_id] = out.get(e.todo_id, 0) + int((en - st).total_seconds())
        return out

    def project_totals(self, since_days: Optional[int] = None) -> Dict[str, int]:
        names = {p.id: p.name for p in self._read("projects")}
        out: Dict[str, int] = {}
        for e, st, en in self._spans(self._read("entries"), since_days):
            name = names.get(e.project_id, "")
            out[name] = out.get(name, 0) + int((en - st).total_seconds())
        return out

    def period_totals(self, granularity: str, since_days: Optional[int] = None, project_id: Optional[int] = None) -> Dict[str, int]:
        if granularity not in GRANULARITIES:
            raise ValueError("granularity must be 'day' | 'week' | 'month'")
        entries = self._read("entries")
        if project_id is not None:
            entries = [e for e in entries if e.project_id == project_id]
        out: Dict[str, int] = {}
        for _, st, en in self._spans(entries, since_days):
            cur = st
            while cur < en:
                seg_end = min(_next_boundary(cur, granularity), en)
                key = _period_key(cur, granularity)
                out[key] = out.get(key, 0) + int((seg_end - cur).total_seconds())
                cur = seg_end
        return dict(sorted(out.items()))


def _replace(record: Any, changes: Dict[str, Any]) -> Any:
    names = {f.name for f in fields(record)}
    unknown = set(changes) - names - {"id"}
    if unknown:
        raise ValueError(f"Unknown fields: {', '.join(sorted(unknown))}")
    data = asdict(record)
    data.update({k: v for k, v in changes.items() if k != "id"})
    return type(record)(**data)


def _normalize_priority(priority: Optional[str]) -> str:
    lowered = (priority or "").strip().lower()
    for name in PRIORITIES:
        if name.lower() == lowered or name[0].lower() == lowered:
            return name
    raise ValueError(f"Priority must be one of: {', '.join(PRIORITIES)}")


def _period_key(d: dt.datetime, granularity: str) -> str:
    if granularity == "day":
        return d.date().isoformat()
    if granularity == "week":
        iso_year, iso_week, _ = d.isocalendar()
        return f"{iso_year}-W{iso_week:02d}"
    return f"{d.year}-{d.month:02d}"


def _next_boundary(d: dt.datetime, granularity: str) -> dt.datetime:
    if granularity == "day":
        base = d.replace(hour=0, minute=0, second=0, microsecond=0)
        return base + dt.timedelta(days=1)
    if granularity == "week":
        # ISO week: Monday start
        start_of_week = d - dt.timedelta(days=d.weekday())
        start_of_week = start_of_week.replace(hour=0, minute=0, second=0, microsecond=0)
        return start_of_week + dt.timedelta(days=7)
    first = d.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if first.month == 12:
        return first.replace(year=first.year + 1, month=1)
    return first.replace(month=first.month + 1)
