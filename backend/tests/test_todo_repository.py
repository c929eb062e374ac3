from __future__ import annotations

from datetime import datetime

import pytest
from conftest import PASSWORD

from todo_api.errors import NotFound
from todo_api.todos import TodoRepository
from todo_api.users import UserStore


@pytest.fixture
def repo(engine) -> TodoRepository:
    return TodoRepository(engine)


@pytest.fixture
def alice(engine) -> str:
    return UserStore(engine, pbkdf2_iters=1000).register("Alice", "alice@example.com", PASSWORD).id


@pytest.fixture
def bob(engine) -> str:
    return UserStore(engine, pbkdf2_iters=1000).register("Bob", "bob@example.com", PASSWORD).id


def _make(repo, owner, title="Task", **attrs):
    return repo.create(owner, {"title": title, **attrs})


def test_create_defaults(repo, alice):
    t = _make(repo, alice)
    assert t.user_id == alice
    assert t.completed is False
    assert t.completed_at is None
    assert t.priority == "medium"
    assert t.description == ""
    assert t.tags == []
    assert repo.find_by_id(alice, t.id).title == "Task"


def test_completed_at_follows_completed(repo, alice):
    t = _make(repo, alice)
    t = repo.update(alice, t.id, {"completed": True})
    assert t.completed is True
    stamped = t.completed_at
    assert stamped is not None

    # setting it again keeps the original timestamp
    t = repo.update(alice, t.id, {"completed": True, "title": "Renamed"})
    assert t.completed_at == stamped

    t = repo.update(alice, t.id, {"completed": False})
    assert t.completed is False
    assert t.completed_at is None


def test_toggle_twice_restores_state(repo, alice):
    t = _make(repo, alice)
    once = repo.toggle_completion(alice, t.id)
    assert once.completed is True and once.completed_at is not None
    twice = repo.toggle_completion(alice, t.id)
    assert twice.completed is False and twice.completed_at is None


def test_partial_update_leaves_other_fields(repo, alice):
    due = datetime(2030, 1, 2, 3, 4, 5)
    t = _make(repo, alice, description="desc", priority="high", due_date=due, tags=["a", "b"])
    t = repo.update(alice, t.id, {"title": "New"})
    assert t.title == "New"
    assert t.description == "desc"
    assert t.priority == "high"
    assert t.due_date == due
    assert t.tags == ["a", "b"]

    t = repo.update(alice, t.id, {"due_date": None, "tags": ["c"]})
    assert t.due_date is None
    assert t.tags == ["c"]


def test_other_owner_sees_nothing(repo, alice, bob):
    t = _make(repo, alice)
    with pytest.raises(NotFound):
        repo.find_by_id(bob, t.id)
    with pytest.raises(NotFound):
        repo.update(bob, t.id, {"title": "hijack"})
    with pytest.raises(NotFound):
        repo.toggle_completion(bob, t.id)
    with pytest.raises(NotFound):
        repo.delete(bob, t.id)
    rows, total = repo.list_page(bob)
    assert rows == [] and total == 0
    assert repo.find_by_id(alice, t.id).title == "Task"


def test_delete(repo, alice):
    t = _make(repo, alice)
    repo.delete(alice, t.id)
    with pytest.raises(NotFound):
        repo.find_by_id(alice, t.id)
    with pytest.raises(NotFound):
        repo.delete(alice, t.id)


def test_delete_all_completed_is_exact(repo, alice, bob):
    done = [_make(repo, alice, f"done {i}") for i in range(3)]
    for t in done:
        repo.toggle_completion(alice, t.id)
    keep = _make(repo, alice, "open")
    theirs = _make(repo, bob, "bob done")
    repo.toggle_completion(bob, theirs.id)

    assert repo.delete_all_completed(alice) == 3
    assert repo.delete_all_completed(alice) == 0

    rows, total = repo.list_page(alice)
    assert [r.id for r in rows] == [keep.id]
    assert repo.find_by_id(bob, theirs.id).completed is True


def test_stats(repo, alice, bob):
    empty = repo.stats(alice)
    assert empty.total == empty.completed == empty.pending == 0
    assert empty.high_priority == empty.medium_priority == empty.low_priority == 0

    _make(repo, alice, priority="high")
    _make(repo, alice, priority="high")
    low = _make(repo, alice, priority="low")
    _make(repo, alice)
    _make(repo, bob, priority="high")
    repo.toggle_completion(alice, low.id)

    s = repo.stats(alice)
    assert s.total == 4
    assert s.completed == 1
    assert s.pending == 3
    assert (s.high_priority, s.medium_priority, s.low_priority) == (2, 1, 1)
    assert s.total == s.completed + s.pending
    assert s.total == s.high_priority + s.medium_priority + s.low_priority


def test_list_filters_and_counts_filtered_set(repo, alice):
    for i in range(5):
        t = _make(repo, alice, f"t{i}", priority="high" if i % 2 else "low")
        if i < 2:
            repo.toggle_completion(alice, t.id)

    rows, total = repo.list_page(alice, completed=True)
    assert total == 2 and all(r.completed for r in rows)

    rows, total = repo.list_page(alice, priority="high")
    assert total == 2 and all(r.priority == "high" for r in rows)

    rows, total = repo.list_page(alice, completed=False, priority="low")
    assert total == 2
    assert sorted(r.title for r in rows) == ["t2", "t4"]


def test_list_pagination(repo, alice):
    for i in range(7):
        _make(repo, alice, f"t{i}")
    seen = []
    for page in (1, 2, 3):
        rows, total = repo.list_page(alice, page=page, limit=3, sort_by="title", sort_order="asc")
        assert total == 7
        assert len(rows) <= 3
        seen.extend(r.title for r in rows)
    assert seen == [f"t{i}" for i in range(7)]
    rows, _ = repo.list_page(alice, page=4, limit=3)
    assert rows == []


def test_list_sorts_priority_by_rank(repo, alice):
    _make(repo, alice, "m", priority="medium")
    _make(repo, alice, "h", priority="high")
    _make(repo, alice, "l", priority="low")
    rows, _ = repo.list_page(alice, sort_by="priority", sort_order="desc")
    assert [r.title for r in rows] == ["h", "m", "l"]
    rows, _ = repo.list_page(alice, sort_by="priority", sort_order="asc")
    assert [r.title for r in rows] == ["l", "m", "h"]


def test_list_sorts_by_title(repo, alice):
    for title in ("banana", "apple", "cherry"):
        _make(repo, alice, title)
    rows, _ = repo.list_page(alice, sort_by="title", sort_order="desc")
    assert [r.title for r in rows] == ["cherry", "banana", "apple"]


def test_list_page_beyond_offset_range(repo, alice):
    _make(repo, alice)
    rows, total = repo.list_page(alice, page=10**17, limit=100)
    assert rows == []
    assert total == 1


def test_created_todo_carries_owner(repo, alice):
    t = _make(repo, alice)
    assert t.owner.id == alice
    assert t.owner.name == "Alice"
    assert repo.find_by_id(alice, t.id).owner.email == "alice@example.com"


def test_create_for_unknown_owner(repo):
    with pytest.raises(NotFound):
        _make(repo, "ffffffffffffffffffffffffffffffff")
