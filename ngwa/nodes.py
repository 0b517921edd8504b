"""Built-in node types: manual trigger, HTTP request, conditional and set."""

from __future__ import annotations

import json
from typing import Any

import httpx

from ngwa.core import (
    ExecutionContext,
    ExecutionError,
    ExecutionFailedError,
    MissingConfigError,
    NodeDefinition,
    NodeOutput,
    PinDefinition,
    PinType,
)
from ngwa.executor import NodeRegistry

_HTTP_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH")
_MISSING = object()


class ManualTriggerNode(NodeDefinition):
    """Starts a workflow when it is triggered by hand."""

    node_type = "manual_trigger"
    display_name = "Manual Trigger"
    description = "Starts the workflow when manually triggered"
    category = "Triggers"

    def inputs(self) -> list[PinDefinition]:
        return []

    def outputs(self) -> list[PinDefinition]:
        return [PinDefinition("trigger", PinType.TRIGGER)]

    async def execute(self, ctx: ExecutionContext) -> NodeOutput:
        return NodeOutput().with_value("trigger", True)


class HttpRequestNode(NodeDefinition):
    """Makes an HTTP request and exposes the response body, status and headers."""

    node_type = "http_request"
    display_name = "HTTP Request"
    description = "Makes an HTTP request to a URL"
    category = "HTTP"

    def inputs(self) -> list[PinDefinition]:
        return [
            PinDefinition("trigger", PinType.TRIGGER),
            PinDefinition("url", PinType.STRING, required=False),
            PinDefinition("body", PinType.JSON, required=False),
            PinDefinition("headers", PinType.JSON, required=False),
        ]

    def outputs(self) -> list[PinDefinition]:
        return [
            PinDefinition("response", PinType.JSON),
            PinDefinition("status", PinType.NUMBER),
            PinDefinition("headers", PinType.JSON),
        ]

    def config_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "url": {"type": "string", "description": "Request URL"},
                "method": {
                    "type": "string",
                    "enum": list(_HTTP_METHODS),
                    "default": "GET",
                },
                "headers": {"type": "object"},
                "body": {"type": "object"},
            },
            "required": ["url"],
        }

    async def execute(self, ctx: ExecutionContext) -> NodeOutput:
        url = ctx.get_input_optional("url", str)
        if url is None:
            try:
                url = ctx.get_config("url", str)
            except ExecutionError:
                raise MissingConfigError("url") from None

        try:
            method = ctx.get_config("method", str).upper()
        except ExecutionError:
            method = "GET"
        if method not in _HTTP_METHODS:
            method = "GET"

        body: Any = _MISSING
        if "body" in ctx.inputs:
            body = ctx.inputs["body"]
        elif isinstance(ctx.config, dict) and "body" in ctx.config:
            body = ctx.config["body"]

        headers: dict[str, str] = {}
        content: bytes | None = None
        if body is not _MISSING:
            content = json.dumps(body).encode()
            headers["content-type"] = "application/json"

        input_headers = ctx.get_input_optional("headers", dict)
        if input_headers:
            headers.update(
                (str(key), value)
                for key, value in input_headers.items()
                if isinstance(value, str)
            )

        try:
            async with httpx.AsyncClient() as client:
                response = await client.request(
                    method, url, content=content, headers=headers
                )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise ExecutionFailedError(str(exc)) from exc

        response_headers = dict(response.headers.multi_items())
        try:
            response_body = response.json()
        except ValueError:
            response_body = None

        return (
            NodeOutput()
            .with_value("response", response_body)
            .with_value("status", response.status_code)
            .with_value("headers", response_headers)
        )


def _json_equal(a: Any, b: Any) -> bool:
    """Compare two JSON values, keeping integers, floats and booleans distinct."""
    if isinstance(a, bool) or isinstance(b, bool):
        return type(a) is type(b) and a == b
    if isinstance(a, dict) and isinstance(b, dict):
        return a.keys() == b.keys() and all(_json_equal(a[k], b[k]) for k in a)
    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        return len(a) == len(b) and all(_json_equal(x, y) for x, y in zip(a, b))
    if isinstance(a, (int, float)) and isinstance(b, (int, float)):
        return isinstance(a, int) == isinstance(b, int) and a == b
    return type(a) is type(b) and a == b


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, list, tuple, dict)):
        return len(value) == 0
    return False


class IfNode(NodeDefinition):
    """Routes its input to the ``true`` or ``false`` output by a condition."""

    node_type = "if"
    display_name = "If"
    description = "Branches execution based on a condition"
    category = "Logic"

    def inputs(self) -> list[PinDefinition]:
        return [
            PinDefinition("trigger", PinType.TRIGGER),
            PinDefinition("value", PinType.ANY),
        ]

    def outputs(self) -> list[PinDefinition]:
        return [
            PinDefinition("true", PinType.ANY),
            PinDefinition("false", PinType.ANY),
        ]

    def config_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "condition": {
                    "type": "string",
                    "enum": [
                        "equals",
                        "not_equals",
                        "greater",
                        "less",
                        "contains",
                        "is_empty",
                        "is_not_empty",
                    ],
                    "default": "equals",
                },
                "compare_value": {"type": "string"},
            },
        }

    async def execute(self, ctx: ExecutionContext) -> NodeOutput:
        value = ctx.get_input("value")
        try:
            condition = ctx.get_config("condition", str)
        except ExecutionError:
            condition = "is_not_empty"
        try:
            compare_value = ctx.get_config("compare_value")
        except ExecutionError:
            compare_value = _MISSING

        if condition == "equals":
            result = compare_value is not _MISSING and _json_equal(value, compare_value)
        elif condition == "not_equals":
            result = compare_value is _MISSING or not _json_equal(value, compare_value)
        elif condition == "is_empty":
            result = _is_empty(value)
        elif condition == "is_not_empty":
            result = not _is_empty(value)
        elif condition == "contains":
            result = (
                isinstance(value, str)
                and isinstance(compare_value, str)
                and compare_value in value
            )
        else:
            result = False

        return NodeOutput().with_value("true" if result else "false", value)


class SetNode(NodeDefinition):
    """Merges configured key-value pairs into its input object."""

    node_type = "set"
    display_name = "Set"
    description = "Sets or transforms data values"
    category = "Data"

    def inputs(self) -> list[PinDefinition]:
        return [
            PinDefinition("trigger", PinType.TRIGGER),
            PinDefinition("input", PinType.ANY, required=False),
        ]

    def outputs(self) -> list[PinDefinition]:
        return [PinDefinition("output", PinType.JSON)]

    def config_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "values": {
                    "type": "object",
                    "description": "Key-value pairs to set",
                }
            },
        }

    async def execute(self, ctx: ExecutionContext) -> NodeOutput:
        result = ctx.inputs.get("input", {})
        if isinstance(result, dict):
            result = dict(result)
            try:
                values = ctx.get_config("values", dict)
            except ExecutionError:
                values = {}
            result.update(values)
        return NodeOutput().with_value("output", result)


def create_default_registry() -> NodeRegistry:
    """Return a registry holding every built-in node type."""
    registry = NodeRegistry()
    for node in (ManualTriggerNode(), HttpRequestNode(), IfNode(), SetNode()):
        registry.register(node)
    return registry