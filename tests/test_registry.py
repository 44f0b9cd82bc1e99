"""
Tests for the connection registry
"""
from exam_presence.core.registry import ONLINE, TESTING, ConnectionRegistry


def test_register_sets_online():
    reg = ConnectionRegistry()
    reg.register("s1", "Ali", group_code="G1")
    entry = reg.get("s1")
    assert entry.status == ONLINE
    assert entry.current_test_title is None
    assert entry.group_code == "G1"
    assert entry.role == "student"


def test_latest_register_wins():
    reg = ConnectionRegistry()
    first = reg.register("s1", "Ali")
    reg.register("s2", "Bobur")
    reg.set_testing("s1", "Quiz1")
    second = reg.register("s1", "Ali V.", role="admin")

    assert second > first
    assert len(reg) == 2
    ids = [p.id for p in reg.snapshot()]
    assert ids == ["s1", "s2"]
    entry = reg.get("s1")
    assert entry.display_name == "Ali V."
    assert entry.role == "admin"
    assert entry.status == ONLINE
    assert entry.current_test_title is None


def test_never_two_entries_for_one_id():
    reg = ConnectionRegistry()
    ops = [("r", "a"), ("r", "b"), ("r", "a"), ("d", "b"), ("r", "a"), ("d", "c"), ("r", "b")]
    for op, pid in ops:
        if op == "r":
            reg.register(pid, pid.upper())
        else:
            reg.deregister(pid)
        ids = [p.id for p in reg.snapshot()]
        assert len(ids) == len(set(ids))
    assert sorted(p.id for p in reg.snapshot()) == ["a", "b"]


def test_deregister_absent_is_noop():
    reg = ConnectionRegistry()
    assert reg.deregister("ghost") is False
    assert len(reg) == 0


def test_set_testing_and_back_online():
    reg = ConnectionRegistry()
    reg.register("A", "Anna")
    after_register = reg.get("A").to_dict()

    assert reg.set_testing("A", "Algebra") is True
    snap = {p.id: p for p in reg.snapshot()}
    assert snap["A"].status == TESTING
    assert snap["A"].current_test_title == "Algebra"

    assert reg.set_online("A") is True
    assert reg.get("A").to_dict() == after_register
    assert "currentTestTitle" not in reg.get("A").to_dict()


def test_status_change_on_unknown_id_returns_false():
    reg = ConnectionRegistry()
    assert reg.set_testing("ghost", "Quiz1") is False
    assert reg.set_online("ghost") is False
    assert "ghost" not in reg


def test_stale_generation_is_ignored():
    reg = ConnectionRegistry()
    old = reg.register("s1", "Ali")
    new = reg.register("s1", "Ali")

    assert reg.set_testing("s1", "Quiz1", generation=old) is False
    assert reg.deregister("s1", generation=old) is False
    assert "s1" in reg

    assert reg.set_testing("s1", "Quiz1", generation=new) is True
    assert reg.deregister("s1", generation=new) is True
    assert "s1" not in reg


def test_snapshot_does_not_alias_live_entries():
    reg = ConnectionRegistry()
    handle = object()
    reg.register("s1", "Ali", connection=handle)
    snap = reg.snapshot()

    reg.set_testing("s1", "Quiz1")
    reg.deregister("s1")

    assert snap[0].status == ONLINE
    assert snap[0].current_test_title is None
    assert snap[0].connection is None


def test_title_present_iff_testing():
    reg = ConnectionRegistry()
    reg.register("a", "A")
    reg.register("b", "B")
    reg.set_testing("b", "Geometry")
    for p in reg.snapshot():
        data = p.to_dict()
        assert ("currentTestTitle" in data) == (data["status"] == TESTING)


def test_counts_and_groups():
    reg = ConnectionRegistry()
    reg.register("a", "A", group_code="G1")
    reg.register("b", "B", group_code="G2")
    reg.set_testing("b", "Geometry")
    assert reg.counts() == {"total": 2, "online": 1, "testing": 1}
    assert [d["id"] for d in reg.list_by_group("G2")] == ["b"]

    reg.clear()
    assert reg.counts() == {"total": 0, "online": 0, "testing": 0}
