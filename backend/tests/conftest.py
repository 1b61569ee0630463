"""Shared fixtures: an in-memory ImportStore standing in for the database."""
import copy
import uuid
from contextlib import asynccontextmanager
from datetime import date
from types import SimpleNamespace
from typing import Any, Callable

import pytest

from app.imports.errors import PersistenceError
from app.imports.store import LookupMatch
from app.schemas.imports import ClientRow, ContratRow, EmployeRow, ImportType, InterventionRow


def _same(stored: Any, wanted: Any) -> bool:
    if isinstance(stored, str) and isinstance(wanted, str):
        return stored.lower() == wanted.lower()
    return stored == wanted


class InMemoryImportStore:
    """Dict-backed ImportStore.

    ``transaction()`` snapshots every table and restores the snapshot when
    the block raises, so rollback behaves like the SQL store. Set
    ``fail_on`` to make ``create`` raise PersistenceError for matching rows.
    """

    def __init__(self) -> None:
        self.tables: dict[ImportType, dict[uuid.UUID, dict[str, Any]]] = {t: {} for t in ImportType}
        self.postes: dict[uuid.UUID, str] = {}
        self.lookup_calls: list[tuple[str, str]] = []
        self.fail_on: Callable[[ImportType, dict[str, Any]], bool] | None = None
        self.commits = 0
        self.rollbacks = 0

    # ─── Seeding helpers ───

    def add_client(self, nom_entreprise: str, **fields) -> uuid.UUID:
        client_id = uuid.uuid4()
        self.tables[ImportType.clients][client_id] = {
            "nom_entreprise": nom_entreprise,
            "siege_nom": fields.pop("siege_nom", nom_entreprise),
            **fields,
        }
        return client_id

    def add_contrat(self, client_id: uuid.UUID, reference: str | None = None, **fields) -> uuid.UUID:
        contrat_id = uuid.uuid4()
        self.tables[ImportType.contrats][contrat_id] = {
            "reference": reference,
            "client_id": client_id,
            "type": "ANNUEL",
            "date_debut": date(2024, 1, 1),
            "prestations": ["Désinsectisation"],
            "statut": "ACTIF",
            **fields,
        }
        return contrat_id

    def add_poste(self, nom: str) -> uuid.UUID:
        poste_id = uuid.uuid4()
        self.postes[poste_id] = nom
        return poste_id

    def records(self, entity_type: ImportType) -> list[dict[str, Any]]:
        return list(self.tables[entity_type].values())

    # ─── ImportStore ───

    async def lookup(self, kind: str, key: str) -> list[LookupMatch]:
        self.lookup_calls.append((kind, key))
        needle = key.strip().lower()
        if kind == "client":
            return [
                LookupMatch(client_id)
                for client_id, record in self.tables[ImportType.clients].items()
                if record["nom_entreprise"].lower() == needle
            ]
        if kind == "contrat":
            contrats = self.tables[ImportType.contrats]
            try:
                contrat_id = uuid.UUID(key.strip())
            except ValueError:
                return [
                    LookupMatch(cid, record["client_id"])
                    for cid, record in contrats.items()
                    if (record.get("reference") or "").lower() == needle
                ]
            record = contrats.get(contrat_id)
            return [LookupMatch(contrat_id, record["client_id"])] if record else []
        if kind == "poste":
            return [LookupMatch(pid) for pid, nom in self.postes.items() if nom.lower() == needle]
        raise ValueError(kind)

    async def find_by_natural_key(self, entity_type: ImportType, key: dict[str, Any]):
        for entity_id, record in self.tables[entity_type].items():
            if all(_same(record.get(name), value) for name, value in key.items()):
                return SimpleNamespace(id=entity_id, **record)
        return None

    async def create(self, entity_type: ImportType, fields: dict[str, Any]):
        if self.fail_on is not None and self.fail_on(entity_type, fields):
            raise PersistenceError("duplicate key value violates unique constraint")
        entity_id = uuid.uuid4()
        self.tables[entity_type][entity_id] = dict(fields)
        return SimpleNamespace(id=entity_id, **fields)

    async def update(self, entity_type: ImportType, entity_id: uuid.UUID, fields: dict[str, Any]):
        self.tables[entity_type][entity_id].update(fields)
        return SimpleNamespace(id=entity_id, **self.tables[entity_type][entity_id])

    @asynccontextmanager
    async def transaction(self):
        snapshot = copy.deepcopy(self.tables)
        try:
            yield self
        except BaseException:
            self.tables = snapshot
            self.rollbacks += 1
            raise
        self.commits += 1

    async def load_rows(self, entity_type: ImportType, date_from: date | None = None, date_to: date | None = None):
        clients = self.tables[ImportType.clients]
        if entity_type == ImportType.clients:
            return [
                ClientRow(row=index, **{name: value for name, value in record.items() if name in ClientRow.model_fields})
                for index, record in enumerate(clients.values(), start=1)
            ]
        if entity_type == ImportType.contrats:
            return [
                ContratRow(
                    row=index,
                    reference=record.get("reference"),
                    client_nom=clients[record["client_id"]]["nom_entreprise"],
                    type=record["type"],
                    date_debut=record["date_debut"],
                    date_fin=record.get("date_fin"),
                    reconduction_auto=record.get("reconduction_auto", False),
                    prestations=record["prestations"],
                    frequence_operations=record.get("frequence_operations"),
                    jours_personnalises=record.get("frequence_operations_jours"),
                    frequence_controle=record.get("frequence_controle"),
                    premiere_date_operation=record.get("premiere_date_operation"),
                    premiere_date_controle=record.get("premiere_date_controle"),
                    statut=record.get("statut", "ACTIF"),
                    client_id=record["client_id"],
                )
                for index, record in enumerate(self.tables[ImportType.contrats].values(), start=1)
            ]
        if entity_type == ImportType.interventions:
            records = [
                record for record in self.tables[ImportType.interventions].values()
                if (date_from is None or record["date_prevue"] >= date_from)
                and (date_to is None or record["date_prevue"] <= date_to)
            ]
            contrats = self.tables[ImportType.contrats]
            return [
                InterventionRow(
                    row=index,
                    client_nom=clients[record["client_id"]]["nom_entreprise"],
                    contrat_ref=(
                        contrats[record["contrat_id"]].get("reference") or str(record["contrat_id"])
                        if record.get("contrat_id") else None
                    ),
                    type=record["type"],
                    prestation=record.get("prestation"),
                    date_prevue=record["date_prevue"],
                    heure_prevue=record.get("heure_prevue"),
                    duree_minutes=record.get("duree"),
                    statut=record.get("statut", "A_PLANIFIER"),
                    responsable=record.get("responsable"),
                    notes=record.get("notes_terrain"),
                )
                for index, record in enumerate(records, start=1)
            ]
        return [
            EmployeRow(
                row=index,
                prenom=record["prenom"],
                nom=record["nom"],
                postes=[self.postes[pid] for pid in record["poste_ids"]],
                poste_ids=record["poste_ids"],
            )
            for index, record in enumerate(self.tables[ImportType.employes].values(), start=1)
        ]


@pytest.fixture
def store() -> InMemoryImportStore:
    return InMemoryImportStore()
