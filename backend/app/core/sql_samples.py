"""Capture the SQL a repository emits for a set of representative inputs.

Repository methods opt in with ``@generate_sql``; ``collect_sql`` replays the
recorded samples against a scratch database and returns the statements seen
on the wire. Nothing here runs as part of request handling.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable
from uuid import UUID

from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

SQL_SAMPLES_ATTR = "__sql_samples__"
logger = logging.getLogger(__name__)


class DummyValue:
    UUID = UUID("00000000-0000-4000-a000-000000000000")
    DATE = datetime(2024, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class SqlSample:
    params: tuple[Any, ...] = field(default_factory=tuple)
    name: str = "default"


def generate_sql(*samples: SqlSample):
    def decorator(func: Callable):
        setattr(func, SQL_SAMPLES_ATTR, list(samples) or [SqlSample()])
        return func

    return decorator


def sampled_methods(repository_cls: type) -> list[tuple[str, list[SqlSample]]]:
    methods = []
    for name, member in inspect.getmembers(repository_cls, inspect.isfunction):
        samples = getattr(member, SQL_SAMPLES_ATTR, None)
        if samples:
            methods.append((name, samples))
    return methods


async def collect_sql(
    repository_cls: type,
    engine: AsyncEngine,
) -> dict[str, list[tuple[str, list[str]]]]:
    """Run every sampled method of ``repository_cls`` and record its statements.

    Each sample gets a fresh session. Database errors raised by the dummy
    inputs (missing rows, foreign keys) are logged and the statements emitted
    up to that point are kept.
    """
    captured: list[str] = []

    def _capture(conn, cursor, statement, parameters, context, executemany):
        captured.append(statement.strip())

    event.listen(engine.sync_engine, "before_cursor_execute", _capture)
    results: dict[str, list[tuple[str, list[str]]]] = {}
    try:
        for method_name, samples in sampled_methods(repository_cls):
            for sample in samples:
                captured.clear()
                async with AsyncSession(engine, expire_on_commit=False) as session:
                    repository = repository_cls(session)
                    try:
                        await getattr(repository, method_name)(*sample.params)
                    except SQLAlchemyError as exc:
                        logger.warning(
                            "sql_samples method=%s sample=%s raised %s",
                            method_name,
                            sample.name,
                            type(exc).__name__,
                        )
                        await session.rollback()
                results.setdefault(method_name, []).append((sample.name, list(captured)))
    finally:
        event.remove(engine.sync_engine, "before_cursor_execute", _capture)

    return results


def render_sql_file(repository_name: str, queries: dict[str, list[tuple[str, list[str]]]]) -> str:
    lines = ["-- NOTE: This file is auto generated by app.scripts.generate_sql", ""]
    for method_name in sorted(queries):
        for sample_name, statements in queries[method_name]:
            label = method_name if sample_name == "default" else f"{method_name} ({sample_name})"
            lines.append(f"-- {repository_name}.{label}")
            for statement in statements:
                lines.append(statement.rstrip(";") + ";")
            lines.append("")
    return "\n".join(lines)
