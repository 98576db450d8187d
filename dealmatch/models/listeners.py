"""Audit listeners on canonical entities.

Each listener writes an ``entity_audit`` row after a Company, Contact or Deal is
inserted or updated. They are registered by name so maintenance mode can
suspend an explicit subset of them for the current execution context.
"""

from __future__ import annotations

from contextvars import ContextVar, Token
from dataclasses import dataclass

from sqlalchemy import event, inspect

from dealmatch.core.enums import SYSTEM_ACTOR, AuditAction
from dealmatch.models.audit import EntityAudit
from dealmatch.models.company import Company
from dealmatch.models.contact import Contact
from dealmatch.models.deal import Deal

_suspended: ContextVar[frozenset[str]] = ContextVar("suspended_audit_listeners", default=frozenset())

_IGNORED_ATTRIBUTES = frozenset({"created_at", "updated_at"})


@dataclass(frozen=True)
class AuditListener:
    name: str
    model: type
    entity_type: str


AUDIT_LISTENERS: dict[str, AuditListener] = {
    listener.name: listener
    for listener in (
        AuditListener("companies.audit", Company, "company"),
        AuditListener("contacts.audit", Contact, "contact"),
        AuditListener("deals.audit", Deal, "deal"),
    )
}


def registered_listener_names() -> tuple[str, ...]:
    return tuple(sorted(AUDIT_LISTENERS))


def suspended_listeners() -> frozenset[str]:
    return _suspended.get()


def is_suspended(name: str) -> bool:
    return name in _suspended.get()


def suspend_listeners(names: tuple[str, ...] | list[str]) -> Token:
    unknown = [name for name in names if name not in AUDIT_LISTENERS]
    if unknown:
        raise KeyError(f"Unknown audit listener(s): {', '.join(unknown)}")
    return _suspended.set(_suspended.get() | frozenset(names))


def restore_listeners(token: Token) -> None:
    _suspended.reset(token)


def _jsonable(value):
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def _changed_columns(target) -> dict[str, list]:
    changes: dict[str, list] = {}
    state = inspect(target)
    for attr in state.mapper.column_attrs:
        if attr.key in _IGNORED_ATTRIBUTES:
            continue
        history = state.attrs[attr.key].history
        if history.has_changes():
            old = history.deleted[0] if history.deleted else None
            new = history.added[0] if history.added else None
            changes[attr.key] = [_jsonable(old), _jsonable(new)]
    return changes


def _write_audit(connection, listener: AuditListener, target, action: AuditAction, changes: dict | None) -> None:
    connection.execute(
        EntityAudit.__table__.insert().values(
            entity_type=listener.entity_type,
            entity_id=target.id,
            action=action.value,
            actor=SYSTEM_ACTOR,
            changes=changes,
        )
    )


def _install(listener: AuditListener) -> None:
    @event.listens_for(listener.model, "after_insert")
    def _after_insert(mapper, connection, target):
        if is_suspended(listener.name):
            return
        _write_audit(connection, listener, target, AuditAction.CREATED, None)

    @event.listens_for(listener.model, "after_update")
    def _after_update(mapper, connection, target):
        if is_suspended(listener.name):
            return
        changes = _changed_columns(target)
        if changes:
            _write_audit(connection, listener, target, AuditAction.UPDATED, changes)


for _listener in AUDIT_LISTENERS.values():
    _install(_listener)
