import uuid

import pytest

from ngwa.core import (
    CycleDetectedError,
    ExecutionFailedError,
    MissingInputError,
    NodeDefinition,
    NodeOutput,
    PinDefinition,
    PinType,
    TriggerData,
    Workflow,
    WorkflowEdge,
    WorkflowNode,
)
from ngwa.executor import ExecutionResult, NodeRegistry, WorkflowExecutor


class SourceNode(NodeDefinition):
    node_type = "source"
    display_name = "Source"

    def inputs(self):
        return []

    def outputs(self):
        return [PinDefinition("out", PinType.NUMBER)]

    async def execute(self, ctx):
        return NodeOutput().with_value("out", ctx.get_config("start", int))


class AddNode(NodeDefinition):
    node_type = "add"
    display_name = "Add"

    def inputs(self):
        return [PinDefinition("in", PinType.NUMBER)]

    def outputs(self):
        return [PinDefinition("out", PinType.NUMBER)]

    async def execute(self, ctx):
        value = ctx.get_input("in", int)
        return NodeOutput().with_value("out", value + ctx.get_config("amount", int))


def make_registry():
    registry = NodeRegistry()
    registry.register(SourceNode())
    registry.register(AddNode())
    return registry


def test_topological_sort():
    workflow = Workflow("Test")
    node1 = WorkflowNode("trigger", (0.0, 0.0))
    node2 = WorkflowNode("process", (100.0, 0.0))
    node3 = WorkflowNode("output", (200.0, 0.0))
    id1, id2, id3 = node1.id, node2.id, node3.id
    workflow.add_node(node1)
    workflow.add_node(node2)
    workflow.add_node(node3)
    workflow.add_edge(WorkflowEdge(id1, "out", id2, "in"))
    workflow.add_edge(WorkflowEdge(id2, "out", id3, "in"))

    executor = WorkflowExecutor(NodeRegistry())
    order = executor.topological_sort(workflow)

    assert order.index(id1) < order.index(id2) < order.index(id3)


def test_topological_sort_detects_cycle():
    workflow = Workflow("Cycle")
    a = workflow.add_node(WorkflowNode("a"))
    b = workflow.add_node(WorkflowNode("b"))
    workflow.add_edge(WorkflowEdge(a, "out", b, "in"))
    workflow.add_edge(WorkflowEdge(b, "out", a, "in"))
    with pytest.raises(CycleDetectedError):
        WorkflowExecutor(NodeRegistry()).topological_sort(workflow)


def test_topological_sort_contains_every_node():
    workflow = Workflow("Loose")
    ids = {workflow.add_node(WorkflowNode("x")) for _ in range(4)}
    order = WorkflowExecutor(NodeRegistry()).topological_sort(workflow)
    assert set(order) == ids
    assert len(order) == 4


def test_gather_inputs_maps_output_to_input():
    executor = WorkflowExecutor(NodeRegistry())
    a, b, c = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
    edges = [
        WorkflowEdge(a, "out", c, "left"),
        WorkflowEdge(b, "missing", c, "right"),
        WorkflowEdge(a, "out", b, "in"),
    ]
    outputs = {a: NodeOutput().with_value("out", 1), b: NodeOutput().with_value("out", 2)}
    assert executor.gather_inputs(c, edges, outputs) == {"left": 1}


def test_registry():
    registry = make_registry()
    assert isinstance(registry.get("add"), AddNode)
    assert registry.get("unknown") is None
    assert sorted(node.node_type for node in registry.all()) == ["add", "source"]
    assert "source" in registry
    assert len(registry) == 2


@pytest.mark.asyncio
async def test_execute_passes_data_along_edges():
    workflow = Workflow("Chain")
    src = workflow.add_node(WorkflowNode("source", config={"start": 2}))
    add = workflow.add_node(WorkflowNode("add", config={"amount": 5}))
    workflow.add_edge(WorkflowEdge(src, "out", add, "in"))

    result = await WorkflowExecutor(make_registry()).execute(workflow, TriggerData())

    assert isinstance(result, ExecutionResult)
    assert result.success is True
    assert result.error is None
    assert result.workflow_id == workflow.id
    assert result.node_outputs[src].get("out") == 2
    assert result.node_outputs[add].get("out") == 7


@pytest.mark.asyncio
async def test_execute_skips_disabled_nodes():
    workflow = Workflow("Disabled")
    src = workflow.add_node(WorkflowNode("source", config={"start": 1}, disabled=True))
    result = await WorkflowExecutor(make_registry()).execute(workflow, TriggerData())
    assert src not in result.node_outputs


@pytest.mark.asyncio
async def test_execute_unknown_node_type():
    workflow = Workflow("Unknown")
    workflow.add_node(WorkflowNode("mystery"))
    with pytest.raises(ExecutionFailedError) as info:
        await WorkflowExecutor(make_registry()).execute(workflow, TriggerData())
    assert str(info.value) == "Execution failed: Unknown node type: mystery"


@pytest.mark.asyncio
async def test_execute_propagates_node_errors():
    workflow = Workflow("Broken")
    workflow.add_node(WorkflowNode("add", config={"amount": 1}))
    with pytest.raises(MissingInputError):
        await WorkflowExecutor(make_registry()).execute(workflow, TriggerData())


@pytest.mark.asyncio
async def test_execute_cycle_raises():
    workflow = Workflow("Cycle")
    a = workflow.add_node(WorkflowNode("source", config={"start": 1}))
    b = workflow.add_node(WorkflowNode("add", config={"amount": 1}))
    workflow.add_edge(WorkflowEdge(a, "out", b, "in"))
    workflow.add_edge(WorkflowEdge(b, "out", a, "in"))
    with pytest.raises(CycleDetectedError):
        await WorkflowExecutor(make_registry()).execute(workflow, TriggerData())