"""Workflow execution: node registry, topological ordering and data passing."""

from __future__ import annotations

import copy
import uuid
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from ngwa.core import (
    CycleDetectedError,
    ExecutionContext,
    ExecutionFailedError,
    NodeDefinition,
    NodeNotFoundError,
    NodeOutput,
    TriggerData,
    Workflow,
    WorkflowEdge,
)


class NodeRegistry:
    """Available node types, keyed by their ``node_type``."""

    def __init__(self) -> None:
        self._nodes: dict[str, NodeDefinition] = {}

    def register(self, node: NodeDefinition) -> None:
        self._nodes[node.node_type] = node

    def get(self, node_type: str) -> NodeDefinition | None:
        return self._nodes.get(node_type)

    def all(self) -> Iterator[NodeDefinition]:
        return iter(self._nodes.values())

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_type: object) -> bool:
        return node_type in self._nodes


@dataclass
class ExecutionResult:
    """Outcome of a workflow run."""

    workflow_id: uuid.UUID
    node_outputs: dict[uuid.UUID, NodeOutput] = field(default_factory=dict)
    success: bool = True
    error: str | None = None


class WorkflowExecutor:
    """Runs workflows node by node in dependency order."""

    def __init__(self, node_registry: NodeRegistry) -> None:
        self.node_registry = node_registry

    async def execute(
        self, workflow: Workflow, trigger_data: TriggerData | None = None
    ) -> ExecutionResult:
        """Execute every enabled node of ``workflow`` and collect their outputs."""
        order = self.topological_sort(workflow)
        node_outputs: dict[uuid.UUID, NodeOutput] = {}

        for node_id in order:
            node = workflow.get_node(node_id)
            if node is None:
                raise NodeNotFoundError(node_id)
            if node.disabled:
                continue

            definition = self.node_registry.get(node.node_type)
            if definition is None:
                raise ExecutionFailedError(f"Unknown node type: {node.node_type}")

            ctx = ExecutionContext(
                workflow_id=workflow.id,
                node_id=node_id,
                inputs=self.gather_inputs(node_id, workflow.edges, node_outputs),
                config=copy.deepcopy(node.config),
            )
            node_outputs[node_id] = await definition.execute(ctx)

        return ExecutionResult(workflow_id=workflow.id, node_outputs=node_outputs)

    def topological_sort(self, workflow: Workflow) -> list[uuid.UUID]:
        """Order node ids so that every edge points forward; raise on cycles."""
        in_degree: dict[uuid.UUID, int] = {node.id: 0 for node in workflow.nodes}
        adjacency: dict[uuid.UUID, list[uuid.UUID]] = {node.id: [] for node in workflow.nodes}

        for edge in workflow.edges:
            if edge.from_node in adjacency:
                adjacency[edge.from_node].append(edge.to_node)
            if edge.to_node in in_degree:
                in_degree[edge.to_node] += 1

        stack = [node_id for node_id, degree in in_degree.items() if degree == 0]
        result: list[uuid.UUID] = []

        while stack:
            node_id = stack.pop()
            result.append(node_id)
            for neighbor in adjacency.get(node_id, ()):
                if neighbor in in_degree:
                    in_degree[neighbor] -= 1
                    if in_degree[neighbor] == 0:
                        stack.append(neighbor)

        if len(result) != len(workflow.nodes):
            raise CycleDetectedError()
        return result

    def gather_inputs(
        self,
        node_id: uuid.UUID,
        edges: Iterable[WorkflowEdge],
        outputs: Mapping[uuid.UUID, NodeOutput],
    ) -> dict[str, Any]:
        """Collect the values that upstream outputs feed into ``node_id``."""
        inputs: dict[str, Any] = {}
        for edge in edges:
            if edge.to_node != node_id:
                continue
            output = outputs.get(edge.from_node)
            if output is not None and edge.from_output in output.data:
                inputs[edge.to_input] = output.data[edge.from_output]
        return inputs