"""Cron scheduling of workflows and a webhook server that triggers them."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import MutableMapping
from dataclasses import dataclass
from typing import Any

from aiohttp import web

from ngwa.core import ExecutionError, TriggerData, TriggerType, Workflow
from ngwa.executor import WorkflowExecutor

logger = logging.getLogger(__name__)


class SchedulerError(Exception):
    """Base class for scheduler errors."""


class InvalidCronExpressionError(SchedulerError):
    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Invalid cron expression: {reason}")


class WorkflowNotFoundError(SchedulerError):
    def __init__(self, workflow_id: uuid.UUID) -> None:
        self.workflow_id = workflow_id
        super().__init__(f"Workflow not found: {workflow_id}")


class SchedulerInternalError(SchedulerError):
    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Scheduler error: {message}")


_MONTHS = ["JAN", "FEB", "MAR", "APR", "MAY", "JUN", "JUL", "AUG", "SEP", "OCT", "NOV", "DEC"]
_MONTH_FULL = [
    "JANUARY", "FEBRUARY", "MARCH", "APRIL", "MAY", "JUNE",
    "JULY", "AUGUST", "SEPTEMBER", "OCTOBER", "NOVEMBER", "DECEMBER",
]
_DAYS = ["SUN", "MON", "TUE", "WED", "THU", "FRI", "SAT"]
_DAY_FULL = ["SUNDAY", "MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY", "SATURDAY"]

_MONTH_NAMES = {
    **{name: i for i, name in enumerate(_MONTHS, 1)},
    **{name: i for i, name in enumerate(_MONTH_FULL, 1)},
}
_DAY_NAMES = {
    **{name: i for i, name in enumerate(_DAYS, 1)},
    **{name: i for i, name in enumerate(_DAY_FULL, 1)},
}

# (field name, minimum, maximum, accepted names)
_FIELDS: list[tuple[str, int, int, dict[str, int]]] = [
    ("seconds", 0, 59, {}),
    ("minutes", 0, 59, {}),
    ("hours", 0, 23, {}),
    ("days of month", 1, 31, {}),
    ("months", 1, 12, _MONTH_NAMES),
    ("days of week", 1, 7, _DAY_NAMES),
    ("years", 1970, 2100, {}),
]

_SHORTHANDS = {
    "@yearly": "0 0 0 1 1 *",
    "@annually": "0 0 0 1 1 *",
    "@monthly": "0 0 0 1 * *",
    "@weekly": "0 0 0 * * 1",
    "@daily": "0 0 0 * * *",
    "@hourly": "0 0 * * * *",
}


def _parse_value(text: str, field: str, low: int, high: int, names: dict[str, int]) -> int:
    if text.isdigit():
        value = int(text)
    elif text.upper() in names:
        value = names[text.upper()]
    else:
        raise InvalidCronExpressionError(f"invalid value '{text}' for {field}")
    if not low <= value <= high:
        raise InvalidCronExpressionError(
            f"value {value} for {field} is outside {low}-{high}"
        )
    return value


def _parse_field(text: str, field: str, low: int, high: int, names: dict[str, int]) -> frozenset[int]:
    values: set[int] = set()
    for item in text.split(","):
        if not item:
            raise InvalidCronExpressionError(f"empty item in {field}")
        base, slash, step_text = item.partition("/")
        step = 1
        if slash:
            if not step_text.isdigit() or int(step_text) == 0:
                raise InvalidCronExpressionError(f"invalid step '{step_text}' for {field}")
            step = int(step_text)

        if base in ("*", "?"):
            start, end = low, high
        elif "-" in base:
            first, _, last = base.partition("-")
            start = _parse_value(first, field, low, high, names)
            end = _parse_value(last, field, low, high, names)
            if start > end:
                raise InvalidCronExpressionError(f"range {base} for {field} is backwards")
        else:
            start = _parse_value(base, field, low, high, names)
            end = high if slash else start
        values.update(range(start, end + 1, step))
    return frozenset(values)


def validate_cron_expression(expression: str) -> tuple[frozenset[int], ...]:
    """Parse a six- or seven-field cron expression (seconds first).

    Returns the set of matching values for each field given; raises
    InvalidCronExpressionError when the expression is malformed.
    """
    text = _SHORTHANDS.get(expression.strip().lower(), expression)
    parts = text.split()
    if len(parts) not in (6, 7):
        raise InvalidCronExpressionError(
            f"expected 6 or 7 fields, found {len(parts)} in '{expression}'"
        )
    return tuple(
        _parse_field(part, name, low, high, names)
        for part, (name, low, high, names) in zip(parts, _FIELDS)
    )


@dataclass
class CronJob:
    """A workflow scheduled on a cron expression."""

    workflow_id: uuid.UUID
    cron_expression: str
    enabled: bool = True


class CronScheduler:
    """Keeps the cron schedule of workflows."""

    def __init__(self, executor: WorkflowExecutor) -> None:
        self.executor = executor
        self._jobs: dict[uuid.UUID, CronJob] = {}
        self._lock = asyncio.Lock()

    async def schedule(self, workflow_id: uuid.UUID, cron_expression: str) -> None:
        """Schedule a workflow, replacing any earlier schedule for it."""
        validate_cron_expression(cron_expression)
        async with self._lock:
            self._jobs[workflow_id] = CronJob(workflow_id, cron_expression)

    async def unschedule(self, workflow_id: uuid.UUID) -> None:
        async with self._lock:
            self._jobs.pop(workflow_id, None)

    async def set_enabled(self, workflow_id: uuid.UUID, enabled: bool) -> None:
        """Enable or disable a scheduled job; unknown workflows are ignored."""
        async with self._lock:
            job = self._jobs.get(workflow_id)
            if job is not None:
                job.enabled = enabled

    def jobs(self) -> dict[uuid.UUID, CronJob]:
        """A snapshot of the scheduled jobs."""
        return dict(self._jobs)


class WebhookServer:
    """Serves ``POST /webhook/{workflow_id}`` to trigger workflows."""

    def __init__(
        self,
        executor: WorkflowExecutor,
        workflows: MutableMapping[uuid.UUID, Workflow],
    ) -> None:
        self.executor = executor
        self.workflows = workflows

    async def handle_webhook(self, workflow_id: uuid.UUID | str, body: Any) -> dict[str, Any]:
        """Run the workflow with ``body`` as webhook trigger data."""
        if isinstance(workflow_id, str):
            workflow_id = uuid.UUID(workflow_id)
        workflow = self.workflows.get(workflow_id)
        if workflow is None:
            raise WorkflowNotFoundError(workflow_id)

        trigger = TriggerData(trigger_type=TriggerType.WEBHOOK, data=body)
        try:
            result = await self.executor.execute(workflow, trigger)
        except ExecutionError as exc:
            raise SchedulerInternalError(str(exc)) from exc

        return {"success": result.success, "workflow_id": str(result.workflow_id)}

    def create_app(self) -> web.Application:
        """Build the aiohttp application exposing the webhook route."""

        async def handler(request: web.Request) -> web.Response:
            try:
                workflow_id = uuid.UUID(request.match_info["workflow_id"])
            except ValueError:
                raise web.HTTPBadRequest() from None
            try:
                body = await request.json()
            except ValueError:
                raise web.HTTPBadRequest() from None
            try:
                payload = await self.handle_webhook(workflow_id, body)
            except WorkflowNotFoundError:
                raise web.HTTPNotFound() from None
            except SchedulerInternalError:
                raise web.HTTPInternalServerError() from None
            return web.json_response(payload)

        app = web.Application()
        app.router.add_post("/webhook/{workflow_id}", handler)
        return app

    async def start(self, port: int) -> None:
        """Serve on all interfaces at ``port`` until cancelled."""
        runner = web.AppRunner(self.create_app())
        await runner.setup()
        try:
            site = web.TCPSite(runner, "0.0.0.0", port)
            logger.info("Starting webhook server on 0.0.0.0:%d", port)
            try:
                await site.start()
            except OSError as exc:
                raise SchedulerInternalError(str(exc)) from exc
            await asyncio.Event().wait()
        finally:
            await runner.cleanup()