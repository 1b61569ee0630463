"""Reference resolution: human-readable keys → stable identifiers.

Resolution is read-only, so preview and commit resolve identically and a
clean preview guarantees the commit will not hit a resolution error on the
same input.
"""
import logging
import uuid
from typing import Any

from app.imports.rules import EntitySpec, Reference
from app.imports.store import ImportStore, LookupMatch
from app.schemas.imports import ImportRowError

logger = logging.getLogger(__name__)

_LABELS = {
    "client": "Client",
    "contrat": "Contrat",
    "poste": "Poste",
}


class LookupCache:
    """Lookup results for one pipeline run, keyed by ``(kind, normalised key)``.

    Created per preview/commit call and discarded with it, so nothing
    outlives the request that filled it.
    """

    def __init__(self) -> None:
        self._entries: dict[tuple[str, str], list[LookupMatch]] = {}
        self.hits = 0

    def get(self, kind: str, key: str) -> list[LookupMatch] | None:
        entry = self._entries.get((kind, key.strip().lower()))
        if entry is not None:
            self.hits += 1
        return entry

    def put(self, kind: str, key: str, matches: list[LookupMatch]) -> None:
        self._entries[(kind, key.strip().lower())] = matches


class ReferenceResolver:
    def __init__(self, store: ImportStore, cache: LookupCache | None = None):
        self.store = store
        self.cache = cache if cache is not None else LookupCache()

    async def _matches(self, kind: str, key: str) -> list[LookupMatch]:
        cached = self.cache.get(kind, key)
        if cached is not None:
            return cached
        matches = await self.store.lookup(kind, key)
        self.cache.put(kind, key, matches)
        return matches

    async def _resolve_one(
        self,
        reference: Reference,
        key: str,
        row: int,
    ) -> tuple[LookupMatch | None, ImportRowError | None]:
        matches = await self._matches(reference.kind, key)
        label = _LABELS[reference.kind]
        if not matches:
            message = f"{label} inconnu: {key}" if reference.kind == "poste" else f"{label} non trouvé"
            return None, ImportRowError(row=row, field=reference.source, message=message, value=key)
        if len(matches) > 1:
            return None, ImportRowError(
                row=row,
                field=reference.source,
                message=f"{label} ambigu: {len(matches)} correspondances pour '{key}'",
                value=key,
            )
        return matches[0], None

    async def resolve(self, spec: EntitySpec, values: dict[str, Any], row: int) -> list[ImportRowError]:
        """Resolve every reference of ``spec`` in ``values``, writing ids in place.

        References whose source field is absent (blank optional value, or a
        field that already failed validation) are skipped.
        """
        errors: list[ImportRowError] = []
        for reference in spec.references:
            source = values.get(reference.source)
            if source is None:
                continue

            if isinstance(source, list):
                ids: list[uuid.UUID] = []
                for key in source:
                    match, error = await self._resolve_one(reference, key, row)
                    if error is not None:
                        errors.append(error)
                    else:
                        ids.append(match.id)
                if len(ids) == len(source):
                    values[reference.target] = ids
                continue

            match, error = await self._resolve_one(reference, source, row)
            if error is not None:
                errors.append(error)
                continue

            if reference.kind == "contrat":
                client_id = values.get("client_id")
                if client_id is not None and match.parent_id not in (None, client_id):
                    errors.append(
                        ImportRowError(
                            row=row,
                            field=reference.source,
                            message="Le contrat n'appartient pas à ce client",
                            value=source,
                        )
                    )
                    continue
            values[reference.target] = match.id

        return errors
