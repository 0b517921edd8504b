import pytest

from ngwa.store import (
    BatchUpdate,
    Database,
    EdgeRow,
    Identity,
    ObjectLock,
    ReducerContext,
    Table,
    Timestamp,
    UpdateType,
    UserPresence,
)


def _edge(workflow_id="wf", from_uuid="a", to_uuid="b", edge_id=0):
    return EdgeRow(
        id=edge_id,
        workflow_id=workflow_id,
        from_node_uuid=from_uuid,
        from_output="out",
        to_node_uuid=to_uuid,
        to_input="in",
    )


def test_timestamp_from_micros_and_order():
    early = Timestamp.from_micros(10)
    late = Timestamp.from_micros(20)
    assert early.micros == 10
    assert early < late


def test_timestamp_plus_millis():
    ts = Timestamp.from_micros(1_000)
    assert ts.plus_millis(5) == Timestamp.from_micros(6_000)
    assert ts.plus_millis(0) == ts


def test_identity_defaults_are_distinct_and_compare_by_value():
    a = Identity()
    b = Identity()
    assert a != b
    assert Identity(a.hex) == a


def test_auto_inc_assigns_increasing_ids():
    table = Table("id", auto_inc=True)
    first = table.insert(_edge())
    second = table.insert(_edge())
    assert first.id >= 1
    assert second.id > first.id
    assert len(table) == 2


def test_explicit_id_is_kept():
    table = Table("id", auto_inc=True)
    row = table.insert(_edge(edge_id=42))
    assert row.id == 42
    assert table.find(42).to_node_uuid == "b"


def test_duplicate_primary_key_raises():
    table = Table("lock_key")
    ts = Timestamp.from_micros(0)
    owner = Identity()
    lock = ObjectLock(
        lock_key="node:x",
        workflow_id="wf",
        owner_identity=owner,
        lock_type=1,
        acquired_at=ts,
        expires_at=ts,
    )
    table.insert(lock)
    with pytest.raises(ValueError):
        table.insert(lock)


def test_find_returns_copy():
    table = Table("id", auto_inc=True)
    row = table.insert(_edge())
    found = table.find(row.id)
    found.to_input = "changed"
    assert table.find(row.id).to_input == "in"


def test_find_missing_returns_none():
    assert Table("id").find("nope") is None


def test_update_replaces_row():
    table = Table("id", auto_inc=True)
    row = table.insert(_edge())
    row.to_input = "other"
    table.update(row)
    assert table.find(row.id).to_input == "other"


def test_update_missing_raises_key_error():
    table = Table("id", auto_inc=True)
    with pytest.raises(KeyError):
        table.update(_edge(edge_id=7))


def test_delete_reports_presence():
    table = Table("id", auto_inc=True)
    row = table.insert(_edge())
    assert table.delete(row.id) is True
    assert table.delete(row.id) is False
    assert table.find(row.id) is None


def test_filter_by_columns():
    table = Table("id", auto_inc=True)
    table.insert(_edge("wf1", "a", "b"))
    table.insert(_edge("wf2", "a", "c"))
    table.insert(_edge("wf1", "b", "c"))
    rows = table.filter(workflow_id="wf1")
    assert [r.from_node_uuid for r in rows] == ["a", "b"]
    assert [r.to_node_uuid for r in table.filter(workflow_id="wf1", from_node_uuid="b")] == ["c"]
    assert table.filter(workflow_id="none") == []


def test_database_tables_are_independent():
    db = Database()
    other = Database()
    db.workflow_edge.insert(_edge())
    assert len(db.workflow_edge) == 1
    assert len(other.workflow_edge) == 0


def test_presence_keyed_by_identity():
    db = Database()
    who = Identity()
    db.user_presence.insert(
        UserPresence(
            user_identity=who,
            workflow_id="wf",
            nickname="ann",
            cursor_color=0xFF0000FF,
            last_seen=Timestamp.from_micros(0),
        )
    )
    found = db.user_presence.find(who)
    assert found.nickname == "ann"
    assert found.cursor_x == 0.0


def test_reducer_context_defaults():
    ctx = ReducerContext()
    assert len(ctx.db.workflow) == 0
    assert ctx.timestamp.micros > 0


def test_update_type_values_and_batch_defaults():
    assert [int(t) for t in UpdateType] == [0, 1, 2]
    update = BatchUpdate(UpdateType.DRAG, x=1.0, y=2.0)
    assert update.update_type == 1
    assert update.vertices_json == ""
    assert update.edge_id == 0