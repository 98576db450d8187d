"""Maintenance mode: scoped suspension of audit side effects around a bulk run."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass

from sqlalchemy import text
from sqlalchemy.engine import Engine

from dealmatch.models.listeners import registered_listener_names, restore_listeners, suspend_listeners

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DbTrigger:
    table: str
    name: str

    @classmethod
    def parse(cls, value: str) -> "DbTrigger":
        table, _, name = value.partition(":")
        if not table or not name:
            raise ValueError(f"Trigger must be given as 'table:trigger', got {value!r}")
        return cls(table=table.strip(), name=name.strip())


def _set_db_triggers(engine: Engine, triggers: Sequence[DbTrigger], enabled: bool) -> None:
    verb = "ENABLE" if enabled else "DISABLE"
    preparer = engine.dialect.identifier_preparer
    # Own connection and transaction so per-record rollbacks never undo the toggle.
    with engine.begin() as conn:
        for trigger in triggers:
            conn.execute(
                text(f"ALTER TABLE {preparer.quote(trigger.table)} {verb} TRIGGER {preparer.quote(trigger.name)}")
            )


@contextmanager
def maintenance_mode(
    engine: Engine,
    listeners: Sequence[str] | None = None,
    db_triggers: Sequence[str] = (),
) -> Iterator[tuple[str, ...]]:
    """Suspend the named audit listeners (and optional PostgreSQL triggers) for the block.

    Only the explicitly listed listeners are touched; ``None`` means every
    registered audit listener. Everything suspended here is restored on every
    exit path. Yields the names of the suspended listeners.
    """
    names = tuple(registered_listener_names() if listeners is None else listeners)
    triggers = [DbTrigger.parse(value) for value in db_triggers]
    if triggers and engine.dialect.name != "postgresql":
        logger.warning(
            "maintenance.db_triggers.unsupported",
            extra={"event": "maintenance.db_triggers.unsupported", "status": engine.dialect.name},
        )
        triggers = []

    token = suspend_listeners(names)
    disabled: list[DbTrigger] = []
    try:
        if triggers:
            _set_db_triggers(engine, triggers, enabled=False)
            disabled = triggers
        logger.info(
            "maintenance.suspended",
            extra={"event": "maintenance.suspended", "status": ",".join(names)},
        )
        yield names
    finally:
        try:
            if disabled:
                _set_db_triggers(engine, disabled, enabled=True)
        finally:
            restore_listeners(token)
            logger.info(
                "maintenance.restored",
                extra={"event": "maintenance.restored", "status": ",".join(names)},
            )
