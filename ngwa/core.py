"""Domain models for workflows: nodes, edges, pins, execution context and errors."""

from __future__ import annotations

import abc
import enum
import uuid
from dataclasses import dataclass, field
from typing import Any, ClassVar


class ErrorHandling(enum.Enum):
    """How a workflow reacts when a node fails."""

    STOP_ON_ERROR = "StopOnError"
    CONTINUE_ON_ERROR = "ContinueOnError"


@dataclass
class WorkflowSettings:
    """Settings for a workflow."""

    timezone: str | None = None
    error_handling: ErrorHandling = ErrorHandling.STOP_ON_ERROR


@dataclass
class WorkflowNode:
    """A single node placed in a workflow."""

    node_type: str
    position: tuple[float, float] = (0.0, 0.0)
    name: str | None = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    config: dict[str, Any] = field(default_factory=dict)
    credentials: uuid.UUID | None = None
    disabled: bool = False

    def __post_init__(self) -> None:
        if self.name is None:
            self.name = self.node_type
        x, y = self.position
        self.position = (float(x), float(y))


@dataclass
class WorkflowEdge:
    """A connection from one node's output pin to another node's input pin."""

    from_node: uuid.UUID
    from_output: str
    to_node: uuid.UUID
    to_input: str


@dataclass
class Workflow:
    """A directed acyclic graph of nodes connected by edges."""

    name: str
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    nodes: list[WorkflowNode] = field(default_factory=list)
    edges: list[WorkflowEdge] = field(default_factory=list)
    settings: WorkflowSettings = field(default_factory=WorkflowSettings)

    def add_node(self, node: WorkflowNode) -> uuid.UUID:
        """Append a node and return its id."""
        self.nodes.append(node)
        return node.id

    def add_edge(self, edge: WorkflowEdge) -> None:
        self.edges.append(edge)

    def get_node(self, node_id: uuid.UUID) -> WorkflowNode | None:
        """Return the first node with the given id, or None."""
        return next((node for node in self.nodes if node.id == node_id), None)


class PinType(enum.Enum):
    """Kinds of data that flow through pins."""

    TRIGGER = "Trigger"
    STRING = "String"
    NUMBER = "Number"
    BOOLEAN = "Boolean"
    JSON = "Json"
    BINARY = "Binary"
    ANY = "Any"


@dataclass
class PinDefinition:
    """An input or output pin on a node type."""

    name: str
    pin_type: PinType
    required: bool = True
    description: str | None = None


@dataclass
class NodeOutput:
    """Values produced by one node execution, keyed by output pin name."""

    data: dict[str, Any] = field(default_factory=dict)

    def with_value(self, key: str, value: Any) -> NodeOutput:
        """Store a value under ``key`` and return this output for chaining."""
        self.data[key] = value
        return self

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)


class ExecutionError(Exception):
    """Base class for errors raised while executing a workflow."""


class MissingInputError(ExecutionError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Missing required input: {name}")


class InvalidInputError(ExecutionError):
    def __init__(self, name: str, reason: str) -> None:
        self.name = name
        self.reason = reason
        super().__init__(f"Invalid input '{name}': {reason}")


class MissingConfigError(ExecutionError):
    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Missing required config: {key}")


class InvalidConfigError(ExecutionError):
    def __init__(self, key: str, reason: str) -> None:
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid config '{key}': {reason}")


class ExecutionFailedError(ExecutionError):
    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Execution failed: {message}")


class NodeNotFoundError(ExecutionError):
    def __init__(self, node_id: uuid.UUID) -> None:
        self.node_id = node_id
        super().__init__(f"Node not found: {node_id}")


class CycleDetectedError(ExecutionError):
    def __init__(self) -> None:
        super().__init__("Cycle detected in workflow")


def _json_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _coerce(value: Any, kind: type | None) -> Any:
    """Check ``value`` against ``kind`` the way JSON deserialisation would."""
    if kind is None or kind is object:
        return value
    if kind is bool:
        if isinstance(value, bool):
            return value
    elif kind is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    elif kind is float:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    elif isinstance(value, kind):
        return value
    raise TypeError(f"expected {kind.__name__}, got {_json_type(value)}")


@dataclass
class ExecutionContext:
    """What a node sees while it runs: its inputs and its configuration."""

    workflow_id: uuid.UUID
    node_id: uuid.UUID
    inputs: dict[str, Any] = field(default_factory=dict)
    config: Any = field(default_factory=dict)

    def get_input(self, name: str, kind: type | None = None) -> Any:
        """Return input ``name``, raising if it is absent or of the wrong kind."""
        if name not in self.inputs:
            raise MissingInputError(name)
        try:
            return _coerce(self.inputs[name], kind)
        except TypeError as exc:
            raise InvalidInputError(name, str(exc)) from exc

    def get_input_optional(self, name: str, kind: type | None = None) -> Any:
        """Return input ``name``, or None if it is absent or of the wrong kind."""
        try:
            return self.get_input(name, kind)
        except ExecutionError:
            return None

    def get_config(self, key: str, kind: type | None = None) -> Any:
        """Return config entry ``key``, raising if it is absent or of the wrong kind."""
        if not isinstance(self.config, dict) or key not in self.config:
            raise MissingConfigError(key)
        try:
            return _coerce(self.config[key], kind)
        except TypeError as exc:
            raise InvalidConfigError(key, str(exc)) from exc


class NodeDefinition(abc.ABC):
    """A node type: its pins, configuration schema and behaviour."""

    node_type: ClassVar[str]
    display_name: ClassVar[str]
    description: ClassVar[str] = ""
    category: ClassVar[str] = "General"

    @abc.abstractmethod
    def inputs(self) -> list[PinDefinition]:
        """Input pins this node accepts."""

    @abc.abstractmethod
    def outputs(self) -> list[PinDefinition]:
        """Output pins this node produces."""

    def config_schema(self) -> dict[str, Any]:
        """JSON Schema for the node's configuration."""
        return {}

    @abc.abstractmethod
    async def execute(self, ctx: ExecutionContext) -> NodeOutput:
        """Run the node in the given context."""


class TriggerType(enum.Enum):
    MANUAL = "Manual"
    CRON = "Cron"
    WEBHOOK = "Webhook"


@dataclass
class TriggerData:
    """Data passed when a workflow execution is triggered."""

    trigger_type: TriggerType = TriggerType.MANUAL
    data: Any = None