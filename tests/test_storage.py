import datetime as _dt

import pytest

from todo_console import dates
from todo_console.storage import CsvStore, TimeEntry


def _iso(year, month, day, hour, minute=0):
    return _dt.datetime(year, month, day, hour, minute, tzinfo=_dt.timezone.utc).isoformat()


@pytest.fixture
def store(data_dir):
    return CsvStore(data_dir)


@pytest.fixture
def seeded(store):
    alpha = store.add_project("Alpha", "first")
    beta = store.add_project("Beta")
    store.add_todo(alpha.id, "Write docs", "2024-01-12", "high")
    store.add_todo(alpha.id, "Fix bug", "2024-01-11")
    store.add_todo(beta.id, "Plan", priority="L")
    return store


def test_projects_crud(store, data_dir):
    p = store.add_project("  Alpha  ", "desc")
    assert (p.id, p.name) == (1, "Alpha")
    assert (data_dir / "projects.csv").exists()
    assert store.get_project("alpha").id == 1
    assert store.get_project(1).name == "Alpha"
    assert store.get_project("1").name == "Alpha"
    with pytest.raises(ValueError):
        store.add_project("ALPHA")
    with pytest.raises(ValueError):
        store.add_project("   ")
    with pytest.raises(KeyError):
        store.get_project("missing")
    store.update_project(1, description="changed")
    assert store.get_project(1).description == "changed"
    with pytest.raises(ValueError):
        store.update_project(1, colour="red")


def test_archived_projects_are_hidden(seeded):
    seeded.archive_project(1)
    assert [p.name for p in seeded.list_projects()] == ["Beta"]
    assert [p.name for p in seeded.list_projects(include_archived=True)] == ["Alpha", "Beta"]


def test_todos_are_sorted_open_first_then_due(seeded):
    seeded.complete_todo(2)
    titles = [t.title for t in seeded.list_todos()]
    assert titles == ["Write docs", "Plan", "Fix bug"]
    assert [t.title for t in seeded.list_todos(include_done=False)] == ["Write docs", "Plan"]
    assert [t.title for t in seeded.list_todos(project_id=2)] == ["Plan"]


def test_priorities_are_normalized(seeded):
    assert seeded.get_todo(1).priority == "High"
    assert seeded.get_todo(2).priority == "Medium"
    assert seeded.get_todo(3).priority == "Low"
    with pytest.raises(ValueError):
        seeded.add_todo(1, "Nope", priority="urgent")
    with pytest.raises(ValueError):
        seeded.add_todo(1, "  ")
    with pytest.raises(KeyError):
        seeded.add_todo(99, "Orphan")


def test_complete_and_reopen(seeded):
    done = seeded.complete_todo(1)
    assert done.done == 1
    assert done.completed_at
    reopened = seeded.reopen_todo(1)
    assert reopened.done == 0
    assert reopened.completed_at == ""
    with pytest.raises(KeyError):
        seeded.complete_todo(42)


def test_timer_start_is_idempotent_and_stop_returns_entries(seeded):
    first = seeded.start_timer(1, "focus")
    again = seeded.start_timer(1)
    assert again.id == first.id
    assert [e.todo_id for e in seeded.active_entries()] == [1]
    stopped = seeded.stop_timer()
    assert [e.id for e in stopped] == [first.id]
    assert seeded.active_entries() == []
    assert seeded.stop_timer() == []


def test_completing_a_todo_stops_its_timer(seeded):
    seeded.start_timer(1)
    seeded.start_timer(3)
    seeded.complete_todo(1)
    assert [e.todo_id for e in seeded.active_entries()] == [3]


def test_deleting_cascades(seeded):
    seeded.start_timer(1)
    seeded.delete_todo(1)
    assert seeded.list_entries() == []
    seeded.start_timer(2)
    seeded.delete_project(1)
    assert seeded.list_todos() and all(t.project_id == 2 for t in seeded.list_todos())
    assert seeded.list_entries() == []
    with pytest.raises(KeyError):
        seeded.delete_todo(1)


def _entries(store, *spans):
    store._write(
        "entries",
        [
            TimeEntry(id=i, todo_id=todo_id, project_id=project_id, started_at=st, ended_at=en)
            for i, (todo_id, project_id, st, en) in enumerate(spans, start=1)
        ],
    )


def test_totals_by_todo_and_project(seeded):
    _entries(
        seeded,
        (1, 1, _iso(2024, 1, 15, 10), _iso(2024, 1, 15, 12)),
        (2, 1, _iso(2024, 1, 15, 13), _iso(2024, 1, 15, 13, 30)),
        (3, 2, _iso(2024, 1, 16, 9), _iso(2024, 1, 16, 10)),
    )
    assert seeded.todo_total_seconds(1) == 7200
    assert seeded.todo_totals() == {1: 7200, 2: 1800, 3: 3600}
    assert seeded.project_totals() == {"Alpha": 9000, "Beta": 3600}
    assert seeded.period_totals("month") == {"2024-01": 12600}
    assert seeded.period_totals("month", project_id=2) == {"2024-01": 3600}


def test_period_totals_split_across_boundaries(seeded):
    _entries(seeded, (1, 1, _iso(2024, 1, 31, 0), _iso(2024, 2, 2, 0)))
    months = seeded.period_totals("month")
    assert sum(months.values()) == 48 * 3600
    assert set(months) <= {"2024-01", "2024-02"}
    days = seeded.period_totals("day")
    assert sum(days.values()) == 48 * 3600
    assert len(days) in (2, 3)
    assert list(days) == sorted(days)
    with pytest.raises(ValueError):
        seeded.period_totals("year")


def test_since_days_clips_spans(seeded, monkeypatch):
    now = _dt.datetime(2024, 1, 20, 12, tzinfo=_dt.timezone.utc)
    monkeypatch.setattr(dates, "now_local", lambda: now)
    _entries(
        seeded,
        (1, 1, _iso(2024, 1, 1, 10), _iso(2024, 1, 1, 12)),
        (2, 1, _iso(2024, 1, 19, 6), _iso(2024, 1, 19, 18)),
        (3, 2, _iso(2024, 1, 20, 11), ""),
    )
    assert seeded.todo_totals(since_days=1) == {2: 6 * 3600, 3: 3600}
    assert seeded.project_totals() == {"Alpha": 14 * 3600, "Beta": 3600}


def test_bad_numbers_in_csv_read_as_zero(store, data_dir):
    (data_dir / "projects.csv").write_text(
        "id,name,description,created_at,archived\n1,Alpha,,,0\nx,Beta,,,\n",
        encoding="utf-8",
    )
    assert [p.name for p in store.list_projects()] == ["Alpha", "Beta"]
    assert store.get_project("Beta").id == 0
    assert store.add_project("Gamma").id == 2


def test_ids_are_not_reused_after_delete(store):
    project = store.add_project("Alpha")
    store.add_todo(project.id, "One")
    second = store.add_todo(project.id, "Two")
    store.delete_todo(second.id)
    assert store.add_todo(project.id, "Three").id == 3
    store.delete_project(project.id)
    assert store.add_project("Beta").id == 2
    assert CsvStore(store.data_dir).add_todo(2, "Four").id == 4


def test_entry_ids_survive_todo_deletion(seeded):
    first = seeded.start_timer(1)
    seeded.delete_todo(1)
    assert seeded.start_timer(2).id == first.id + 1
