"""Reducers that create, change and delete workflows, nodes, edges and runs."""

from __future__ import annotations

import dataclasses
import logging

from ngwa.store import (
    Database,
    EdgeRow,
    ExecutionLog,
    NodeRow,
    ReducerContext,
    WorkflowRow,
)

logger = logging.getLogger(__name__)


def _touch_workflow(ctx: ReducerContext, workflow_id: str) -> None:
    workflow = ctx.db.workflow.find(workflow_id)
    if workflow is not None:
        ctx.db.workflow.update(dataclasses.replace(workflow, updated_at=ctx.timestamp))


def _find_node(ctx: ReducerContext, workflow_id: str, node_uuid: str) -> NodeRow | None:
    return next(
        (
            node
            for node in ctx.db.workflow_node.filter(workflow_id=workflow_id)
            if node.node_uuid == node_uuid
        ),
        None,
    )


def _modify_node(ctx: ReducerContext, workflow_id: str, node_uuid: str, **changes) -> None:
    node = _find_node(ctx, workflow_id, node_uuid)
    if node is None:
        return
    ctx.db.workflow_node.update(
        dataclasses.replace(
            node,
            last_modified_by=ctx.sender,
            last_modified_at=ctx.timestamp,
            **changes,
        )
    )


def init(ctx: ReducerContext) -> Database:
    """Announce that the store is ready and return its database."""
    database = ctx.db
    logger.info("ngwa-spacetime module initialized")
    return database


def identity_connected(ctx: ReducerContext) -> None:
    logger.info("Client connected: %s", ctx.sender)


def identity_disconnected(ctx: ReducerContext) -> None:
    """Drop the presence of a client that has gone away."""
    if ctx.db.user_presence.delete(ctx.sender):
        logger.info("Removed presence for disconnected client: %s", ctx.sender)


def create_workflow(ctx: ReducerContext, workflow_id: str, name: str) -> WorkflowRow:
    """Create a workflow owned by the caller; raise ValueError if the id is taken."""
    row = ctx.db.workflow.insert(
        WorkflowRow(
            id=workflow_id,
            name=name,
            owner_identity=ctx.sender,
            is_shared=False,
            created_at=ctx.timestamp,
            updated_at=ctx.timestamp,
        )
    )
    logger.info("Created workflow: %s", workflow_id)
    return row


def update_workflow_name(ctx: ReducerContext, workflow_id: str, name: str) -> None:
    workflow = ctx.db.workflow.find(workflow_id)
    if workflow is not None:
        ctx.db.workflow.update(
            dataclasses.replace(workflow, name=name, updated_at=ctx.timestamp)
        )


def delete_workflow(ctx: ReducerContext, workflow_id: str) -> None:
    """Delete a workflow together with all of its nodes and edges."""
    for node in ctx.db.workflow_node.filter(workflow_id=workflow_id):
        ctx.db.workflow_node.delete(node.id)
    for edge in ctx.db.workflow_edge.filter(workflow_id=workflow_id):
        ctx.db.workflow_edge.delete(edge.id)
    if ctx.db.workflow.delete(workflow_id):
        logger.info("Deleted workflow: %s", workflow_id)


def share_workflow(ctx: ReducerContext, workflow_id: str, is_shared: bool) -> None:
    workflow = ctx.db.workflow.find(workflow_id)
    if workflow is not None:
        ctx.db.workflow.update(
            dataclasses.replace(workflow, is_shared=is_shared, updated_at=ctx.timestamp)
        )


def add_node(
    ctx: ReducerContext,
    workflow_id: str,
    node_uuid: str,
    node_type: str,
    name: str,
    position_x: float,
    position_y: float,
    config_json: str,
) -> NodeRow:
    """Add an enabled node to a workflow and return the stored row."""
    row = ctx.db.workflow_node.insert(
        NodeRow(
            workflow_id=workflow_id,
            node_uuid=node_uuid,
            node_type=node_type,
            name=name,
            position_x=position_x,
            position_y=position_y,
            config_json=config_json,
            disabled=False,
            last_modified_by=ctx.sender,
            last_modified_at=ctx.timestamp,
        )
    )
    _touch_workflow(ctx, workflow_id)
    logger.info("Added node %s to workflow %s", node_uuid, workflow_id)
    return row


def move_node(
    ctx: ReducerContext,
    workflow_id: str,
    node_uuid: str,
    position_x: float,
    position_y: float,
) -> None:
    _modify_node(ctx, workflow_id, node_uuid, position_x=position_x, position_y=position_y)


def update_node_config(
    ctx: ReducerContext, workflow_id: str, node_uuid: str, config_json: str
) -> None:
    _modify_node(ctx, workflow_id, node_uuid, config_json=config_json)


def update_node_name(ctx: ReducerContext, workflow_id: str, node_uuid: str, name: str) -> None:
    _modify_node(ctx, workflow_id, node_uuid, name=name)


def toggle_node_disabled(ctx: ReducerContext, workflow_id: str, node_uuid: str) -> None:
    node = _find_node(ctx, workflow_id, node_uuid)
    if node is not None:
        _modify_node(ctx, workflow_id, node_uuid, disabled=not node.disabled)


def delete_node(ctx: ReducerContext, workflow_id: str, node_uuid: str) -> None:
    """Delete a node and every edge that starts or ends at it."""
    node = _find_node(ctx, workflow_id, node_uuid)
    if node is not None:
        ctx.db.workflow_node.delete(node.id)
    for edge in ctx.db.workflow_edge.filter(workflow_id=workflow_id):
        if node_uuid in (edge.from_node_uuid, edge.to_node_uuid):
            ctx.db.workflow_edge.delete(edge.id)
    logger.info("Deleted node %s from workflow %s", node_uuid, workflow_id)


def add_edge(
    ctx: ReducerContext,
    workflow_id: str,
    from_node_uuid: str,
    from_output: str,
    to_node_uuid: str,
    to_input: str,
) -> EdgeRow:
    """Connect two nodes by pin names and return the stored edge."""
    row = ctx.db.workflow_edge.insert(
        EdgeRow(
            workflow_id=workflow_id,
            from_node_uuid=from_node_uuid,
            from_output=from_output,
            to_node_uuid=to_node_uuid,
            to_input=to_input,
        )
    )
    _touch_workflow(ctx, workflow_id)
    return row


def delete_edge(ctx: ReducerContext, edge_id: int) -> None:
    ctx.db.workflow_edge.delete(edge_id)


def delete_edge_by_pins(
    ctx: ReducerContext,
    workflow_id: str,
    from_node_uuid: str,
    from_output: str,
    to_node_uuid: str,
    to_input: str,
) -> None:
    """Delete the first edge of the workflow joining exactly these pins."""
    wanted = (from_node_uuid, from_output, to_node_uuid, to_input)
    for edge in ctx.db.workflow_edge.filter(workflow_id=workflow_id):
        if (edge.from_node_uuid, edge.from_output, edge.to_node_uuid, edge.to_input) == wanted:
            ctx.db.workflow_edge.delete(edge.id)
            break


def start_execution(ctx: ReducerContext, workflow_id: str, trigger_type: str) -> ExecutionLog:
    """Record the start of a run and return its log entry."""
    return ctx.db.execution_log.insert(
        ExecutionLog(
            workflow_id=workflow_id,
            started_at=ctx.timestamp,
            finished_at=None,
            status="running",
            trigger_type=trigger_type,
            error_message=None,
            triggered_by=ctx.sender,
        )
    )


def finish_execution(
    ctx: ReducerContext,
    execution_id: int,
    success: bool,
    error_message: str | None = None,
) -> None:
    entry = ctx.db.execution_log.find(execution_id)
    if entry is not None:
        ctx.db.execution_log.update(
            dataclasses.replace(
                entry,
                finished_at=ctx.timestamp,
                status="success" if success else "error",
                error_message=error_message,
            )
        )