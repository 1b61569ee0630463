"""Audit log helper: append-only writes to the audit_logs table."""
import json
import logging
import uuid
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.imports.engine import CommitSummary
from app.models.audit import AuditLog

logger = logging.getLogger(__name__)


async def log(
    db: AsyncSession,
    action: str,
    entity_type: str,
    entity_id: uuid.UUID | str | None = None,
    actor_id: uuid.UUID | str | None = None,
    actor_email: str | None = None,
    before: Any | None = None,
    after: Any | None = None,
    notes: str | None = None,
) -> AuditLog:
    """Write a single audit log entry.

    Args:
        db: Async session; the entry is flushed, the caller controls the commit.
        action: Short verb, e.g. 'user_login', 'import.committed'.
        entity_type: Domain name, e.g. 'user', 'clients'.
        entity_id: PK of the affected record, when there is a single one.
        actor_id: User who performed the action (None for system actions).
        actor_email: Denormalised email (preserved if user is later deleted).
        before: JSON-serialisable snapshot of state before the action.
        after: JSON-serialisable snapshot of state after the action.
        notes: Free-text annotation.
    """
    entry = AuditLog(
        actor_id=uuid.UUID(str(actor_id)) if actor_id else None,
        actor_email=actor_email,
        action=action,
        entity_type=entity_type,
        entity_id=uuid.UUID(str(entity_id)) if entity_id else None,
        before_state=json.dumps(before, default=str) if before is not None else None,
        after_state=json.dumps(after, default=str) if after is not None else None,
        notes=notes,
    )
    db.add(entry)
    await db.flush()
    logger.debug("Audit: %s %s/%s", action, entity_type, entity_id)
    return entry


def import_audit_hook(db: AsyncSession, actor_email: str | None = None):
    """Build the post-commit hook the import engine hands its summary to.

    The audit entry is written in its own commit, after the import batch has
    been committed.
    """
    async def hook(summary: CommitSummary) -> None:
        await log(
            db,
            action="import.committed",
            entity_type=summary.entity_type.value,
            actor_id=summary.actor_id,
            actor_email=actor_email,
            before={
                "updated": [
                    {"key": key, "values": values}
                    for key, values in zip(summary.updated_keys, summary.previous_values)
                ]
            },
            after={
                "created": summary.created,
                "updated": summary.updated,
                "created_keys": summary.created_keys,
                "updated_keys": summary.updated_keys,
            },
            notes=f"CSV import: {summary.created} created, {summary.updated} updated",
        )
        await db.commit()

    return hook
