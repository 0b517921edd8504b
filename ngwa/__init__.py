"""Workflow automation: DAG workflows, an async executor, cron and webhook triggers, and an in-memory collaborative editing store."""

__version__ = "0.1.0"