"""Canonical enum values for resolution state and review workflows."""

from __future__ import annotations

import enum


class ReviewReason(str, enum.Enum):
    NO_EMAIL = "no_email"
    INVALID_EMAIL = "invalid_email"
    FUZZY_MATCH_UNCERTAINTY = "fuzzy_match_uncertainty"
    ENTITY_CREATION_FAILED = "entity_creation_failed"


class ReviewStatus(str, enum.Enum):
    PENDING = "pending"
    RESOLVED = "resolved"
    ARCHIVED = "archived"


class RunStatus(str, enum.Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class AuditAction(str, enum.Enum):
    CREATED = "created"
    UPDATED = "updated"
    RELOCATED = "relocated"


SYSTEM_ACTOR = "system"
