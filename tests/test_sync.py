from ngwa.store import UpdateType
from ngwa.sync import SyncManager, VertexData


def _immediate():
    manager = SyncManager()
    manager.send_interval = 0.0
    return manager


def test_sync_manager_coalesces_cursor():
    manager = _immediate()
    manager.queue_cursor(1.0, 2.0)
    manager.queue_cursor(3.0, 4.0)
    manager.queue_cursor(5.0, 6.0)

    updates = manager.tick()
    assert len(updates) == 1
    assert updates[0].update_type == 0
    assert updates[0].x == 5.0
    assert updates[0].y == 6.0


def test_sync_manager_respects_interval():
    manager = SyncManager()
    manager.send_interval = 1.0
    manager.queue_cursor(1.0, 2.0)

    assert manager.tick() == []
    assert manager.has_pending()


def test_vertex_data_json():
    v = VertexData(5, 100.5, 200.5, 10.0, -5.0)
    json = v.to_json()
    assert '"i":5' in json
    assert '"x":100.5' in json


def test_vertex_data_json_whole_numbers_have_no_fraction():
    v = VertexData(1, 10.0, 0.0, 0.0, -5.0)
    assert v.to_json() == '{"i":1,"x":10,"y":0,"vx":0,"vy":-5}'


def test_physics_owner_gate():
    manager = _immediate()
    manager.physics_owner = False
    manager.queue_edge_vertices(1, [VertexData(0, 0.0, 0.0, 0.0, 0.0)])

    assert manager.tick() == []
    assert not manager.has_pending()


def test_physics_owner_sends_vertices():
    manager = _immediate()
    manager.physics_owner = True
    manager.queue_edge_vertices(
        1,
        [
            VertexData(0, 0.0, 0.0, 0.0, 0.0),
            VertexData(1, 10.0, 10.0, 0.0, 0.0),
        ],
    )

    updates = manager.tick()
    assert len(updates) == 1
    assert updates[0].update_type == 2
    assert updates[0].edge_id == 1
    assert '"i":0' in updates[0].vertices_json
    assert '"i":1' in updates[0].vertices_json
    assert updates[0].vertices_json.startswith("[")
    assert updates[0].vertices_json.endswith("]")


def test_drag_sequence_increments_and_keeps_latest():
    manager = _immediate()
    manager.queue_drag(1.0, 1.0)
    manager.queue_drag(2.0, 3.0)

    updates = manager.tick()
    assert len(updates) == 1
    assert updates[0].update_type is UpdateType.DRAG
    assert (updates[0].x, updates[0].y) == (2.0, 3.0)
    assert updates[0].sequence == 2


def test_cursor_comes_before_drag():
    manager = _immediate()
    manager.queue_drag(1.0, 1.0)
    manager.queue_cursor(2.0, 2.0)

    kinds = [u.update_type for u in manager.tick()]
    assert kinds == [UpdateType.CURSOR, UpdateType.DRAG]


def test_drain_empties_pending():
    manager = _immediate()
    manager.queue_cursor(1.0, 1.0)
    manager.tick()
    assert not manager.has_pending()
    assert manager.tick() == []


def test_clear_drops_pending_updates():
    manager = _immediate()
    manager.queue_cursor(1.0, 1.0)
    manager.queue_drag(1.0, 1.0)
    manager.queue_edge_vertices(3, [])
    manager.clear()
    assert not manager.has_pending()


def test_reset_forgets_state():
    manager = _immediate()
    manager.set_workflow("wf-1")
    manager.physics_owner = True
    manager.connected = True
    manager.queue_cursor(1.0, 1.0)

    assert manager.workflow_id == "wf-1"
    manager.reset()
    assert manager.workflow_id == ""
    assert manager.physics_owner is False
    assert manager.connected is False
    assert not manager.has_pending()


def test_should_send_needs_pending():
    manager = _immediate()
    assert manager.should_send() is False
    manager.queue_cursor(0.0, 0.0)
    assert manager.should_send() is True