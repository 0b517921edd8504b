"""Reducers for live collaboration: presence, selection, drags, physics and locks."""

from __future__ import annotations

import dataclasses
import logging
import re
from collections.abc import Iterable
from typing import NamedTuple

from ngwa.store import (
    BatchUpdate,
    DragState,
    EdgeVertex,
    ObjectLock,
    PhysicsState,
    ReducerContext,
    UpdateType,
    UserPresence,
    UserSelection,
)

logger = logging.getLogger(__name__)

_MAX_INDEX = 0xFFFF
_INDEX_RE = re.compile(r"\+?[0-9]+")
_FLOAT_RE = re.compile(
    r"[+-]?(?:inf|infinity|nan|(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:e[+-]?[0-9]+)?)",
    re.IGNORECASE,
)


class _Vertex(NamedTuple):
    index: int
    x: float
    y: float
    vx: float
    vy: float


def _parse_index(text: str) -> int:
    if _INDEX_RE.fullmatch(text):
        value = int(text)
        if value <= _MAX_INDEX:
            return value
    return 0


def _parse_float(text: str) -> float:
    if _FLOAT_RE.fullmatch(text):
        return float(text)
    return 0.0


# ---------------------------------------------------------------------------
# Presence
# ---------------------------------------------------------------------------


def join_workflow(
    ctx: ReducerContext, workflow_id: str, nickname: str, cursor_color: int
) -> None:
    """Enter a workflow, replacing any earlier presence of the caller."""
    ctx.db.user_presence.delete(ctx.sender)
    ctx.db.user_presence.insert(
        UserPresence(
            user_identity=ctx.sender,
            workflow_id=workflow_id,
            nickname=nickname,
            cursor_color=cursor_color,
            cursor_x=0.0,
            cursor_y=0.0,
            last_seen=ctx.timestamp,
        )
    )


def leave_workflow(ctx: ReducerContext) -> None:
    ctx.db.user_presence.delete(ctx.sender)


def update_cursor(ctx: ReducerContext, cursor_x: float, cursor_y: float) -> None:
    presence = ctx.db.user_presence.find(ctx.sender)
    if presence is not None:
        ctx.db.user_presence.update(
            dataclasses.replace(
                presence, cursor_x=cursor_x, cursor_y=cursor_y, last_seen=ctx.timestamp
            )
        )


def update_nickname(ctx: ReducerContext, nickname: str) -> None:
    presence = ctx.db.user_presence.find(ctx.sender)
    if presence is not None:
        ctx.db.user_presence.update(dataclasses.replace(presence, nickname=nickname))


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------


def update_selection(ctx: ReducerContext, workflow_id: str, node_uuids: str) -> None:
    """Record the caller's selection, a JSON array of node UUIDs."""
    selection = ctx.db.user_selection.find(ctx.sender)
    if selection is not None:
        ctx.db.user_selection.update(
            dataclasses.replace(
                selection,
                workflow_id=workflow_id,
                selected_node_uuids=node_uuids,
                last_updated=ctx.timestamp,
            )
        )
    else:
        ctx.db.user_selection.insert(
            UserSelection(
                user_identity=ctx.sender,
                workflow_id=workflow_id,
                selected_node_uuids=node_uuids,
                last_updated=ctx.timestamp,
            )
        )


def clear_selection(ctx: ReducerContext) -> None:
    ctx.db.user_selection.delete(ctx.sender)


# ---------------------------------------------------------------------------
# Drag state
# ---------------------------------------------------------------------------


def start_drag(
    ctx: ReducerContext,
    workflow_id: str,
    drag_type: str,
    node_uuids: str,
    from_pin: str,
    x: float,
    y: float,
) -> None:
    """Begin a drag at (x, y), replacing any drag the caller had going."""
    ctx.db.drag_state.delete(ctx.sender)
    ctx.db.drag_state.insert(
        DragState(
            user_identity=ctx.sender,
            workflow_id=workflow_id,
            drag_type=drag_type,
            node_uuids=node_uuids,
            from_pin=from_pin,
            start_x=x,
            start_y=y,
            current_x=x,
            current_y=y,
            last_updated=ctx.timestamp,
        )
    )


def update_drag(ctx: ReducerContext, x: float, y: float) -> None:
    drag = ctx.db.drag_state.find(ctx.sender)
    if drag is not None:
        ctx.db.drag_state.update(
            dataclasses.replace(drag, current_x=x, current_y=y, last_updated=ctx.timestamp)
        )


def end_drag(ctx: ReducerContext) -> None:
    ctx.db.drag_state.delete(ctx.sender)


# ---------------------------------------------------------------------------
# Physics
# ---------------------------------------------------------------------------


def claim_physics_ownership(ctx: ReducerContext, workflow_id: str) -> None:
    """Take over the physics simulation if it is unclaimed or already ours."""
    state = ctx.db.physics_state.find(workflow_id)
    if state is None:
        ctx.db.physics_state.insert(
            PhysicsState(
                workflow_id=workflow_id,
                owner_identity=ctx.sender,
                simulation_running=True,
                tick_count=0,
                last_tick_at=ctx.timestamp,
            )
        )
        logger.info("Physics state created for workflow %s", workflow_id)
        return

    if state.owner_identity is None or state.owner_identity == ctx.sender:
        ctx.db.physics_state.update(
            dataclasses.replace(
                state,
                owner_identity=ctx.sender,
                simulation_running=True,
                last_tick_at=ctx.timestamp,
            )
        )
        logger.info(
            "Physics ownership claimed for workflow %s by %s", workflow_id, ctx.sender
        )


def release_physics_ownership(ctx: ReducerContext, workflow_id: str) -> None:
    state = ctx.db.physics_state.find(workflow_id)
    if state is not None and state.owner_identity == ctx.sender:
        ctx.db.physics_state.update(
            dataclasses.replace(state, owner_identity=None, simulation_running=False)
        )
        logger.info("Physics ownership released for workflow %s", workflow_id)


def parse_vertices(vertices_json: str) -> list[_Vertex]:
    """Read a flat array of ``{i|index, x, y, vx, vy}`` objects.

    The reader is lenient: unknown keys are skipped and any value that
    does not parse becomes 0.
    """
    if not vertices_json or vertices_json == "[]":
        return []

    vertices: list[_Vertex] = []
    trimmed = vertices_json.lstrip("[").rstrip("]")
    for entry in trimmed.split("},{"):
        index = 0
        x = y = vx = vy = 0.0
        for item in entry.lstrip("{").rstrip("}").split(","):
            parts = item.split(":")
            if len(parts) != 2:
                continue
            key = parts[0].strip().strip('"')
            value = parts[1].strip()
            if key in ("index", "i"):
                index = _parse_index(value)
            elif key == "x":
                x = _parse_float(value)
            elif key == "y":
                y = _parse_float(value)
            elif key == "vx":
                vx = _parse_float(value)
            elif key == "vy":
                vy = _parse_float(value)
        vertices.append(_Vertex(index, x, y, vx, vy))
    return vertices


def update_edge_vertices(
    ctx: ReducerContext, workflow_id: str, edge_id: int, vertices_json: str
) -> None:
    """Replace the stored vertices of an edge; only the physics owner may."""
    state = ctx.db.physics_state.find(workflow_id)
    if state is not None and state.owner_identity != ctx.sender:
        logger.warning("Non-owner tried to update edge vertices")
        return

    for vertex in ctx.db.edge_vertex.filter(edge_id=edge_id):
        ctx.db.edge_vertex.delete(vertex.id)

    for vertex in parse_vertices(vertices_json):
        ctx.db.edge_vertex.insert(
            EdgeVertex(
                workflow_id=workflow_id,
                edge_id=edge_id,
                vertex_index=vertex.index,
                position_x=vertex.x,
                position_y=vertex.y,
                velocity_x=vertex.vx,
                velocity_y=vertex.vy,
                last_modified_at=ctx.timestamp,
            )
        )


def init_edge_vertices(
    ctx: ReducerContext,
    workflow_id: str,
    edge_id: int,
    vertex_count: int,
    start_x: float,
    start_y: float,
    end_x: float,
    end_y: float,
) -> None:
    """Lay out ``vertex_count`` resting vertices evenly from start to end."""
    divisor = max(vertex_count - 1, 1)
    for i in range(vertex_count):
        t = i / divisor
        ctx.db.edge_vertex.insert(
            EdgeVertex(
                workflow_id=workflow_id,
                edge_id=edge_id,
                vertex_index=i,
                position_x=start_x + (end_x - start_x) * t,
                position_y=start_y + (end_y - start_y) * t,
                velocity_x=0.0,
                velocity_y=0.0,
                last_modified_at=ctx.timestamp,
            )
        )


# ---------------------------------------------------------------------------
# Object locks
# ---------------------------------------------------------------------------


def try_acquire_lock(
    ctx: ReducerContext,
    workflow_id: str,
    lock_key: str,
    lock_type: int,
    duration_ms: int,
) -> None:
    """Take or refresh a lock; callers check the lock table for the outcome."""
    now = ctx.timestamp
    expires = now.plus_millis(duration_ms)

    existing = ctx.db.object_lock.find(lock_key)
    if existing is not None:
        if existing.expires_at.micros > now.micros:
            if existing.owner_identity == ctx.sender:
                ctx.db.object_lock.update(
                    dataclasses.replace(existing, expires_at=expires, lock_type=lock_type)
                )
            return
        ctx.db.object_lock.delete(existing.lock_key)

    ctx.db.object_lock.insert(
        ObjectLock(
            lock_key=lock_key,
            workflow_id=workflow_id,
            owner_identity=ctx.sender,
            lock_type=lock_type,
            acquired_at=now,
            expires_at=expires,
        )
    )


def release_lock(ctx: ReducerContext, lock_key: str) -> None:
    lock = ctx.db.object_lock.find(lock_key)
    if lock is not None and lock.owner_identity == ctx.sender:
        ctx.db.object_lock.delete(lock.lock_key)


# ---------------------------------------------------------------------------
# Batched high-frequency updates
# ---------------------------------------------------------------------------


def batch_high_freq_update(
    ctx: ReducerContext, workflow_id: str, updates: Iterable[BatchUpdate]
) -> None:
    """Apply coalesced cursor and drag updates in order.

    Edge vertex entries are accepted but leave the vertex table alone;
    vertices are written through ``update_edge_vertices``.
    """
    for update in updates:
        if update.update_type == UpdateType.CURSOR:
            presence = ctx.db.user_presence.find(ctx.sender)
            if presence is not None:
                ctx.db.user_presence.update(
                    dataclasses.replace(
                        presence,
                        cursor_x=update.x,
                        cursor_y=update.y,
                        last_seen=ctx.timestamp,
                    )
                )
        elif update.update_type == UpdateType.DRAG:
            drag = ctx.db.drag_state.find(ctx.sender)
            if drag is not None:
                ctx.db.drag_state.update(
                    dataclasses.replace(
                        drag,
                        current_x=update.x,
                        current_y=update.y,
                        last_updated=ctx.timestamp,
                    )
                )