# ngwa

ngwa is a small workflow automation engine. A workflow is a directed acyclic
graph of nodes joined by edges, each edge running from an output pin of one
node to an input pin of another. The executor orders the nodes
topologically, runs each one in turn and passes values along the edges.

## What is in the package

- `ngwa.core` – the domain model: `Workflow`, `WorkflowNode`, `WorkflowEdge`,
  `WorkflowSettings`, `ErrorHandling`, `PinDefinition`, `PinType`,
  `NodeOutput`, `ExecutionContext`, `NodeDefinition`, `TriggerData`,
  `TriggerType` and the `ExecutionError` family (`MissingInputError`,
  `InvalidInputError`, `MissingConfigError`, `InvalidConfigError`,
  `ExecutionFailedError`, `NodeNotFoundError`, `CycleDetectedError`).
- `ngwa.executor` – `NodeRegistry`, `WorkflowExecutor` and `ExecutionResult`.
- `ngwa.nodes` – the built-in nodes `ManualTriggerNode` (`manual_trigger`),
  `HttpRequestNode` (`http_request`), `IfNode` (`if`) and `SetNode` (`set`),
  and `create_default_registry()`, which returns a registry holding all four.
- `ngwa.scheduler` – `validate_cron_expression()` for six- or seven-field
  cron expressions (seconds first, `@daily` and similar shorthands accepted),
  `CronScheduler`, which keeps a table of `CronJob`s, and `WebhookServer`,
  an aiohttp server that runs a workflow on `POST /webhook/{workflow_id}`.
- `ngwa.store` – in-memory tables (`Table`, `Database`) of rows for
  workflows, nodes, edges, execution logs, user presence, selections, drag
  state, edge vertices, physics ownership and object locks, and the
  `ReducerContext` (database, calling `Identity`, `Timestamp`) that every
  reducer takes.
- `ngwa.reducers` – reducers that create, change and delete workflows, nodes
  and edges and record execution runs.
- `ngwa.collab` – reducers for live collaboration: presence and cursors,
  selections, drags, physics ownership and edge vertices, object locks and
  `batch_high_freq_update()`.
- `ngwa.sync` – `SyncManager`, which coalesces cursor, drag and edge-vertex
  updates and hands them out in batches at most once per send interval.

## Running a workflow

```python
import asyncio

from ngwa.core import TriggerData, Workflow, WorkflowEdge, WorkflowNode
from ngwa.executor import WorkflowExecutor
from ngwa.nodes import create_default_registry

workflow = Workflow("Greeting")
trigger = WorkflowNode("manual_trigger", (0.0, 0.0))
setter = WorkflowNode("set", (200.0, 0.0), config={"values": {"greeting": "hello"}})
workflow.add_node(trigger)
workflow.add_node(setter)
workflow.add_edge(WorkflowEdge(trigger.id, "trigger", setter.id, "trigger"))

executor = WorkflowExecutor(create_default_registry())
result = asyncio.run(executor.execute(workflow, TriggerData()))
print(result.node_outputs[setter.id].get("output"))
# {'greeting': 'hello'}
```

A workflow with a cycle raises `CycleDetectedError`; a node whose type is not
registered raises `ExecutionFailedError`. Disabled nodes are skipped, and the
first error a node raises ends the run.

## Built-in nodes

- `manual_trigger` outputs `trigger` = `True`.
- `http_request` takes its URL from the `url` input or the `url` config
  entry, the method from `method` (GET, POST, PUT, DELETE or PATCH, default
  GET), a JSON body from the `body` input or config entry and string headers
  from the `headers` input. It outputs `response` (the JSON body, or `None`),
  `status` and `headers`.
- `if` reads the `value` input and the `condition` config entry (`equals`,
  `not_equals`, `contains`, `is_empty`, `is_not_empty`; default
  `is_not_empty`) with an optional `compare_value`, and passes the value on
  through its `true` or `false` output.
- `set` merges the `values` config object into its `input` object (or into
  an empty object) and outputs the result as `output`.

## Writing a node

Subclass `NodeDefinition`, give it a node type, display name, category and
pins, and implement the asynchronous `execute(ctx)`:

```python
from ngwa.core import NodeDefinition, NodeOutput, PinDefinition, PinType


class UpperNode(NodeDefinition):
    node_type = "upper"
    display_name = "Upper"
    category = "Data"

    def inputs(self):
        return [PinDefinition("text", PinType.STRING)]

    def outputs(self):
        return [PinDefinition("text", PinType.STRING)]

    async def execute(self, ctx):
        text = ctx.get_input("text", str)
        return NodeOutput().with_value("text", text.upper())
```

Register it with `NodeRegistry.register()` before handing the registry to a
`WorkflowExecutor`.

## Webhooks

```python
import asyncio

from ngwa.scheduler import WebhookServer

server = WebhookServer(executor, {workflow.id: workflow})
asyncio.run(server.start(8080))
```

A POST with a JSON body to `/webhook/<workflow id>` runs that workflow and
answers `{"success": ..., "workflow_id": ...}`; an unknown workflow gives 404
and a failed run 500. `WebhookServer.create_app()` returns the aiohttp
application for use in your own runner.

## Collaborative store

```python
from ngwa.collab import join_workflow, update_cursor
from ngwa.reducers import add_node, create_workflow
from ngwa.store import ReducerContext

ctx = ReducerContext()
create_workflow(ctx, "wf-1", "Shared")
add_node(ctx, "wf-1", "node-1", "set", "Set", 10.0, 20.0, "{}")
join_workflow(ctx, "wf-1", "alice", 0xFF0000FF)
update_cursor(ctx, 5.0, 6.0)
print(ctx.db.user_presence.find(ctx.sender).cursor_x)  # 5.0
```

Object locks taken with `try_acquire_lock()` expire after the given number of
milliseconds; only the physics owner of a workflow may replace its edge
vertices with `update_edge_vertices()`.

## Batching collaborative updates

```python
from ngwa.sync import SyncManager, VertexData

manager = SyncManager()
manager.physics_owner = True
manager.queue_cursor(10.0, 20.0)
manager.queue_edge_vertices(1, [VertexData(0, 0.0, 0.0, 0.0, 0.0)])

for update in manager.tick():
    print(update.update_type, update.x, update.y, update.vertices_json)
```

Only the latest cursor and drag positions are kept, and only the latest vertex
list per edge; vertex updates are dropped unless this client owns the physics
simulation.

## What the package does not do

- There is no command-line program and no graphical node editor; the package
  is a library.
- `CronScheduler` validates and records schedules but does not itself start
  workflows when a schedule comes due.
- The collaborative store lives in memory in one process: it is not persisted
  and is not served to other clients over the network. `SyncManager` produces
  batches but does not send them anywhere.