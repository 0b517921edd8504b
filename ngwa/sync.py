"""Coalescing of high-frequency updates into periodic batches."""

from __future__ import annotations

import math
import time
from dataclasses import dataclass

from ngwa.store import UpdateType


def _format_number(value: float | int) -> str:
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    if value.is_integer():
        return str(int(value))
    return repr(value)


@dataclass
class VertexData:
    """Position and velocity of one simulated edge vertex."""

    index: int
    x: float
    y: float
    vx: float
    vy: float

    def to_json(self) -> str:
        """Serialise to a compact JSON object with keys i, x, y, vx, vy."""
        fields = {"i": self.index, "x": self.x, "y": self.y, "vx": self.vx, "vy": self.vy}
        body = ",".join(f'"{key}":{_format_number(value)}' for key, value in fields.items())
        return "{" + body + "}"


@dataclass
class DragUpdate:
    """The latest drag position with its ordering sequence number."""

    x: float
    y: float
    sequence: int


@dataclass
class BatchUpdateData:
    """One update ready to be sent in a batch."""

    update_type: UpdateType
    x: float = 0.0
    y: float = 0.0
    sequence: int = 0
    edge_id: int = 0
    vertices_json: str = ""


class SyncManager:
    """Keeps only the latest cursor, drag and per-edge vertex updates and
    releases them at most once per ``send_interval`` seconds."""

    def __init__(self, send_interval: float = 0.016) -> None:
        self.send_interval = send_interval
        self.physics_owner = False
        self.connected = False
        self._pending_cursor: tuple[float, float] | None = None
        self._pending_drag: DragUpdate | None = None
        self._pending_edge_vertices: dict[int, list[VertexData]] = {}
        self._sequence_counter = 0
        self._last_send = time.monotonic()
        self._workflow_id = ""

    @property
    def workflow_id(self) -> str:
        return self._workflow_id

    def set_workflow(self, workflow_id: str) -> None:
        self._workflow_id = workflow_id

    def queue_cursor(self, x: float, y: float) -> None:
        self._pending_cursor = (x, y)

    def queue_drag(self, x: float, y: float) -> None:
        self._sequence_counter += 1
        self._pending_drag = DragUpdate(x, y, self._sequence_counter)

    def queue_edge_vertices(self, edge_id: int, vertices: list[VertexData]) -> None:
        """Queue vertices for an edge, replacing any pending for it."""
        self._pending_edge_vertices[edge_id] = list(vertices)

    def has_pending(self) -> bool:
        return (
            self._pending_cursor is not None
            or self._pending_drag is not None
            or bool(self._pending_edge_vertices)
        )

    def should_send(self) -> bool:
        elapsed = time.monotonic() - self._last_send
        return elapsed >= self.send_interval and self.has_pending()

    def drain_pending(self) -> list[BatchUpdateData]:
        """Take every pending update if the send interval has elapsed.

        Edge vertices are only sent by the physics owner; otherwise they
        are dropped.
        """
        if not self.should_send():
            return []

        updates: list[BatchUpdateData] = []

        if self._pending_cursor is not None:
            x, y = self._pending_cursor
            self._pending_cursor = None
            updates.append(BatchUpdateData(UpdateType.CURSOR, x, y))

        if self._pending_drag is not None:
            drag = self._pending_drag
            self._pending_drag = None
            updates.append(
                BatchUpdateData(UpdateType.DRAG, drag.x, drag.y, sequence=drag.sequence)
            )

        if self.physics_owner:
            for edge_id, vertices in self._pending_edge_vertices.items():
                json = "[" + ",".join(v.to_json() for v in vertices) + "]"
                updates.append(
                    BatchUpdateData(
                        UpdateType.EDGE_VERTICES, edge_id=edge_id, vertices_json=json
                    )
                )
        self._pending_edge_vertices.clear()

        self._last_send = time.monotonic()
        return updates

    def tick(self) -> list[BatchUpdateData]:
        """Call once per frame; returns what is due to be sent."""
        return self.drain_pending()

    def clear(self) -> None:
        self._pending_cursor = None
        self._pending_drag = None
        self._pending_edge_vertices.clear()

    def reset(self) -> None:
        """Drop pending updates and forget the workflow and connection state."""
        self.clear()
        self._workflow_id = ""
        self.physics_owner = False
        self.connected = False