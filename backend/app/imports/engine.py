"""Preview / commit orchestration for CSV bulk imports.

Both modes run the same pipeline, parse → validate → resolve, row by row in
input order. Preview stops there. Commit only proceeds when the whole file is
clean, then applies every row inside a single transaction: either all rows
are persisted or none are.
"""
import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from app.imports.errors import GLOBAL_FIELD, PersistenceError
from app.imports.fields import run_row_checks, validate_record
from app.imports.parser import parse
from app.imports.resolver import LookupCache, ReferenceResolver
from app.imports.rules import EntitySpec, get_spec
from app.imports.store import ImportStore
from app.schemas.imports import ImportResult, ImportRow, ImportRowError, ImportType

logger = logging.getLogger(__name__)


@dataclass
class CommitSummary:
    """What a successful commit changed; handed to the audit collaborator."""

    entity_type: ImportType
    actor_id: uuid.UUID | None
    created: int = 0
    updated: int = 0
    created_keys: list[dict[str, Any]] = field(default_factory=list)
    updated_keys: list[dict[str, Any]] = field(default_factory=list)
    # stored values of the overwritten fields, one entry per updated row
    previous_values: list[dict[str, Any]] = field(default_factory=list)


AuditHook = Callable[[CommitSummary], Awaitable[None]]


class ImportEngine:
    def __init__(
        self,
        store: ImportStore,
        audit_hook: AuditHook | None = None,
        max_rows: int | None = None,
        max_bytes: int | None = None,
    ):
        self.store = store
        self.audit_hook = audit_hook
        self.max_rows = max_rows
        self.max_bytes = max_bytes

    async def _run_pipeline(
        self, spec: EntitySpec, content: str | bytes
    ) -> tuple[list[ImportRow], list[ImportRowError]]:
        """Parse, validate and resolve; raises ParseError on structural problems."""
        records = parse(content, max_rows=self.max_rows, max_bytes=self.max_bytes)
        cache = LookupCache()
        resolver = ReferenceResolver(self.store, cache)

        rows: list[ImportRow] = []
        errors: list[ImportRowError] = []
        for row_num, record in enumerate(records, start=1):
            values, row_errors = validate_record(spec.fields, record, row_num)
            row_errors += run_row_checks(spec.checks, values, record, row_num)
            row_errors += await resolver.resolve(spec, values, row_num)
            if row_errors:
                errors.extend(row_errors)
            else:
                rows.append(spec.row_model(row=row_num, **values))

        logger.debug("Pipeline %s: %d records, %d lookup cache hits", spec.type.value, len(records), cache.hits)
        return rows, errors

    async def preview(self, entity_type: str | ImportType, content: str | bytes) -> ImportResult:
        spec = get_spec(entity_type)
        rows, errors = await self._run_pipeline(spec, content)
        logger.info(
            "Import preview %s: %d valid rows, %d errors", spec.type.value, len(rows), len(errors)
        )
        return ImportResult(success=not errors, errors=errors, preview=rows)

    async def commit(
        self,
        entity_type: str | ImportType,
        content: str | bytes,
        actor_id: uuid.UUID | None = None,
    ) -> ImportResult:
        spec = get_spec(entity_type)
        rows, errors = await self._run_pipeline(spec, content)
        if errors:
            logger.info("Import %s rejected: %d errors, nothing persisted", spec.type.value, len(errors))
            return ImportResult(success=False, errors=errors)

        summary = CommitSummary(entity_type=spec.type, actor_id=actor_id)
        current_row = 0
        try:
            async with self.store.transaction():
                for row in rows:
                    current_row = row.row
                    await self._apply_row(spec, row, summary)
        except PersistenceError as exc:
            logger.warning(
                "Import %s rolled back at row %d: %s", spec.type.value, current_row, exc.message
            )
            return ImportResult(
                success=False,
                rolled_back=True,
                errors=[
                    ImportRowError(
                        row=current_row,
                        field=GLOBAL_FIELD,
                        message=f"Échec de l'enregistrement, aucune ligne importée: {exc.message}",
                    )
                ],
            )

        logger.info(
            "Import %s committed: %d created, %d updated (actor=%s)",
            spec.type.value, summary.created, summary.updated, actor_id,
        )
        await self._notify_audit(summary)
        return ImportResult(success=True, created=summary.created, updated=summary.updated)

    async def _apply_row(self, spec: EntitySpec, row: ImportRow, summary: CommitSummary) -> None:
        """Explicit lookup-then-branch upsert on the row's natural key."""
        key = spec.natural_key(row)
        fields = spec.to_fields(row)
        existing = await self.store.find_by_natural_key(spec.type, key)

        if existing is not None:
            if spec.sparse_update:
                fields = {name: value for name, value in fields.items() if value is not None}
            summary.previous_values.append(
                {name: getattr(existing, name) for name in fields if hasattr(existing, name)}
            )
            await self.store.update(spec.type, existing.id, fields)
            summary.updated += 1
            summary.updated_keys.append(key)
        else:
            if spec.creator_field:
                fields[spec.creator_field] = summary.actor_id
            await self.store.create(spec.type, fields)
            summary.created += 1
            summary.created_keys.append(key)

    async def _notify_audit(self, summary: CommitSummary) -> None:
        if self.audit_hook is None:
            return
        try:
            await self.audit_hook(summary)
        except Exception as exc:
            # the import itself is already committed at this point
            logger.error("Audit hand-off failed for %s import: %s", summary.entity_type.value, exc, exc_info=True)
