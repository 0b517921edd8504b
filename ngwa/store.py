"""In-memory tables for collaborative workflow state, keyed by primary key."""

from __future__ import annotations

import dataclasses
import enum
import secrets
import time
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar


@dataclass(frozen=True)
class Identity:
    """An opaque identity of a connected client."""

    hex: str = field(default_factory=lambda: secrets.token_hex(32))


@dataclass(frozen=True, order=True)
class Timestamp:
    """A point in time, in microseconds since the Unix epoch."""

    micros: int

    @classmethod
    def from_micros(cls, micros: int) -> Timestamp:
        return cls(int(micros))

    def plus_millis(self, millis: int) -> Timestamp:
        """Return the timestamp ``millis`` milliseconds later."""
        return Timestamp(self.micros + int(millis) * 1000)


def _now() -> Timestamp:
    return Timestamp(time.time_ns() // 1000)


@dataclass(kw_only=True)
class WorkflowRow:
    """A stored workflow; ``id`` is the client-side UUID as a string."""

    id: str
    name: str
    owner_identity: Identity
    is_shared: bool = False
    created_at: Timestamp
    updated_at: Timestamp


@dataclass(kw_only=True)
class NodeRow:
    """A node of a stored workflow."""

    id: int = 0
    workflow_id: str
    node_uuid: str
    node_type: str
    name: str
    position_x: float
    position_y: float
    config_json: str
    disabled: bool = False
    last_modified_by: Identity
    last_modified_at: Timestamp


@dataclass(kw_only=True)
class EdgeRow:
    """An edge of a stored workflow, joining two nodes by pin names."""

    id: int = 0
    workflow_id: str
    from_node_uuid: str
    from_output: str
    to_node_uuid: str
    to_input: str


@dataclass(kw_only=True)
class ExecutionLog:
    """One workflow run: ``status`` is "running", "success" or "error"."""

    id: int = 0
    workflow_id: str
    started_at: Timestamp
    finished_at: Timestamp | None = None
    status: str
    trigger_type: str
    error_message: str | None = None
    triggered_by: Identity


@dataclass(kw_only=True)
class UserPresence:
    """Which workflow a user is in and where their cursor is."""

    user_identity: Identity
    workflow_id: str
    nickname: str
    cursor_color: int
    cursor_x: float = 0.0
    cursor_y: float = 0.0
    last_seen: Timestamp


@dataclass(kw_only=True)
class UserSelection:
    """The nodes a user has selected, as a JSON array of UUIDs."""

    user_identity: Identity
    workflow_id: str
    selected_node_uuids: str
    last_updated: Timestamp


@dataclass(kw_only=True)
class DragState:
    """An ongoing drag of nodes, a group, an edge or a selection box."""

    user_identity: Identity
    workflow_id: str
    drag_type: str
    node_uuids: str
    from_pin: str
    start_x: float
    start_y: float
    current_x: float
    current_y: float
    last_updated: Timestamp


@dataclass(kw_only=True)
class EdgeVertex:
    """One simulated vertex of an edge wire."""

    id: int = 0
    workflow_id: str
    edge_id: int
    vertex_index: int
    position_x: float
    position_y: float
    velocity_x: float = 0.0
    velocity_y: float = 0.0
    last_modified_at: Timestamp


@dataclass(kw_only=True)
class PhysicsState:
    """Which client, if any, runs the physics simulation of a workflow."""

    workflow_id: str
    owner_identity: Identity | None = None
    simulation_running: bool = False
    tick_count: int = 0
    last_tick_at: Timestamp


@dataclass(kw_only=True)
class ObjectLock:
    """A lock on a node, edge or vertex; ``lock_type`` 0 is read, 1 is write."""

    lock_key: str
    workflow_id: str
    owner_identity: Identity
    lock_type: int
    acquired_at: Timestamp
    expires_at: Timestamp


class UpdateType(enum.IntEnum):
    """Kinds of high-frequency update."""

    CURSOR = 0
    DRAG = 1
    EDGE_VERTICES = 2


@dataclass
class BatchUpdate:
    """A single update within a batch of high-frequency updates."""

    update_type: int
    x: float = 0.0
    y: float = 0.0
    sequence: int = 0
    edge_id: int = 0
    vertices_json: str = ""


R = TypeVar("R")


class Table(Generic[R]):
    """Rows held by primary key; rows handed out are copies."""

    def __init__(self, primary_key: str, *, auto_inc: bool = False) -> None:
        self.primary_key = primary_key
        self.auto_inc = auto_inc
        self._rows: dict[Any, R] = {}
        self._next_id = 1

    def _key(self, row: R) -> Any:
        return getattr(row, self.primary_key)

    def insert(self, row: R) -> R:
        """Store ``row``; an auto-increment key of 0 gets the next free id."""
        key = self._key(row)
        if self.auto_inc and key == 0:
            while self._next_id in self._rows:
                self._next_id += 1
            key = self._next_id
            self._next_id += 1
            row = dataclasses.replace(row, **{self.primary_key: key})
        else:
            row = dataclasses.replace(row)
        if key in self._rows:
            raise ValueError(f"duplicate primary key {self.primary_key}={key!r}")
        self._rows[key] = row
        return dataclasses.replace(row)

    def find(self, key: Any) -> R | None:
        row = self._rows.get(key)
        return None if row is None else dataclasses.replace(row)

    def update(self, row: R) -> R:
        """Replace the stored row with the same key; raise KeyError if absent."""
        key = self._key(row)
        if key not in self._rows:
            raise KeyError(key)
        self._rows[key] = dataclasses.replace(row)
        return dataclasses.replace(row)

    def delete(self, key: Any) -> bool:
        """Remove the row with ``key``; return whether one was there."""
        return self._rows.pop(key, None) is not None

    def filter(self, **kwargs: Any) -> list[R]:
        """Rows whose named columns equal the given values, in insertion order."""
        return [
            dataclasses.replace(row)
            for row in self._rows.values()
            if all(getattr(row, name) == value for name, value in kwargs.items())
        ]

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[R]:
        return iter([dataclasses.replace(row) for row in self._rows.values()])


@dataclass
class Database:
    """Every table of the collaboration store."""

    workflow: Table[WorkflowRow] = field(default_factory=lambda: Table("id"))
    workflow_node: Table[NodeRow] = field(
        default_factory=lambda: Table("id", auto_inc=True)
    )
    workflow_edge: Table[EdgeRow] = field(
        default_factory=lambda: Table("id", auto_inc=True)
    )
    execution_log: Table[ExecutionLog] = field(
        default_factory=lambda: Table("id", auto_inc=True)
    )
    user_presence: Table[UserPresence] = field(
        default_factory=lambda: Table("user_identity")
    )
    user_selection: Table[UserSelection] = field(
        default_factory=lambda: Table("user_identity")
    )
    drag_state: Table[DragState] = field(
        default_factory=lambda: Table("user_identity")
    )
    edge_vertex: Table[EdgeVertex] = field(
        default_factory=lambda: Table("id", auto_inc=True)
    )
    physics_state: Table[PhysicsState] = field(
        default_factory=lambda: Table("workflow_id")
    )
    object_lock: Table[ObjectLock] = field(default_factory=lambda: Table("lock_key"))


@dataclass
class ReducerContext:
    """The database, the calling client and the time of one reducer call."""

    db: Database = field(default_factory=Database)
    sender: Identity = field(default_factory=Identity)
    timestamp: Timestamp = field(default_factory=_now)