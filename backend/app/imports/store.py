"""Storage contract used by the import engine, and its SQLAlchemy implementation.

The engine only ever talks to an ``ImportStore``: read-only lookups for
reference resolution, natural-key lookups and create/update calls for the
commit phase, and one transaction scope around the whole batch.
"""
import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from datetime import date
from typing import Any, NamedTuple, Protocol

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.imports.errors import PersistenceError
from app.models.client import Client, SiegeContact, Site
from app.models.contrat import Contrat
from app.models.employe import Employe, Poste
from app.models.intervention import Intervention
from app.schemas.imports import (
    ClientRow,
    ContratRow,
    EmployeRow,
    ImportRow,
    ImportType,
    InterventionRow,
)

logger = logging.getLogger(__name__)


class LookupMatch(NamedTuple):
    id: uuid.UUID
    parent_id: uuid.UUID | None = None  # owning client, for contracts


class ImportStore(Protocol):
    async def lookup(self, kind: str, key: str) -> list[LookupMatch]:
        """All entities of ``kind`` whose human key matches ``key`` (case-insensitive)."""
        ...

    async def find_by_natural_key(self, entity_type: ImportType, key: dict[str, Any]) -> Any | None:
        ...

    async def create(self, entity_type: ImportType, fields: dict[str, Any]) -> Any:
        ...

    async def update(self, entity_type: ImportType, entity_id: uuid.UUID, fields: dict[str, Any]) -> Any:
        ...

    def transaction(self) -> AbstractAsyncContextManager[Any]:
        ...

    async def load_rows(
        self,
        entity_type: ImportType,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[ImportRow]:
        ...


# ─── SQLAlchemy implementation ───

MODELS = {
    ImportType.clients: Client,
    ImportType.contrats: Contrat,
    ImportType.interventions: Intervention,
    ImportType.employes: Employe,
}

# client row column → Site attribute
SITE_COLUMNS = {
    "site_nom": "nom",
    "site_adresse": "adresse",
    "contact_nom": "contact_nom",
    "contact_fonction": "contact_fonction",
    "tel": "tel",
    "email": "email",
    "notes": "notes",
}

# client row column → SiegeContact attribute
SIEGE_CONTACT_COLUMNS = {
    "siege_contact_nom": "nom",
    "siege_contact_fonction": "fonction",
    "siege_contact_tel": "tel",
    "siege_contact_email": "email",
}


def _split_client_fields(fields: dict[str, Any]) -> tuple[dict, dict, dict]:
    client, site, contact = {}, {}, {}
    for column, value in fields.items():
        if column in SITE_COLUMNS:
            site[SITE_COLUMNS[column]] = value
        elif column in SIEGE_CONTACT_COLUMNS:
            contact[SIEGE_CONTACT_COLUMNS[column]] = value
        else:
            client[column] = value
    return client, site, contact


def _present(values: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}


class SqlImportStore:
    """``ImportStore`` over an ``AsyncSession``; one instance per request."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Reference lookups ───

    async def lookup(self, kind: str, key: str) -> list[LookupMatch]:
        needle = key.strip().lower()
        if kind == "client":
            stmt = select(Client.id).where(func.lower(Client.nom_entreprise) == needle)
            return [LookupMatch(row.id) for row in (await self.db.execute(stmt)).all()]
        if kind == "contrat":
            try:
                contrat_uuid = uuid.UUID(key.strip())
            except ValueError:
                stmt = select(Contrat.id, Contrat.client_id).where(func.lower(Contrat.reference) == needle)
            else:
                stmt = select(Contrat.id, Contrat.client_id).where(Contrat.id == contrat_uuid)
            return [LookupMatch(row.id, row.client_id) for row in (await self.db.execute(stmt)).all()]
        if kind == "poste":
            stmt = select(Poste.id).where(func.lower(Poste.nom) == needle)
            return [LookupMatch(row.id) for row in (await self.db.execute(stmt)).all()]
        raise ValueError(f"Unknown lookup kind: {kind}")

    # ─── Commit-phase operations ───

    async def find_by_natural_key(self, entity_type: ImportType, key: dict[str, Any]) -> Any | None:
        model = MODELS[entity_type]
        clauses = []
        for column_name, value in key.items():
            column = getattr(model, column_name)
            if value is None:
                clauses.append(column.is_(None))
            elif isinstance(value, str):
                clauses.append(func.lower(column) == value.lower())
            else:
                clauses.append(column == value)
        stmt = select(model).where(*clauses).order_by(model.created_at)
        if entity_type == ImportType.employes:
            stmt = stmt.options(selectinload(Employe.postes))
        try:
            return (await self.db.execute(stmt)).scalars().first()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Lecture impossible: {exc}") from exc

    async def create(self, entity_type: ImportType, fields: dict[str, Any]) -> Any:
        try:
            if entity_type == ImportType.clients:
                client_fields, site_fields, contact_fields = _split_client_fields(fields)
                entity = Client(**_present(client_fields))
                self.db.add(entity)
                await self.db.flush()
                await self._upsert_site(entity.id, site_fields)
                await self._upsert_siege_contact(entity.id, contact_fields)
            elif entity_type == ImportType.employes:
                fields = dict(fields)
                postes = await self._load_postes(fields.pop("poste_ids"))
                entity = Employe(**_present(fields), postes=postes)
                self.db.add(entity)
            else:
                entity = MODELS[entity_type](**_present(fields))
                self.db.add(entity)
            await self.db.flush()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Création impossible: {exc}") from exc
        return entity

    async def update(self, entity_type: ImportType, entity_id: uuid.UUID, fields: dict[str, Any]) -> Any:
        model = MODELS[entity_type]
        try:
            options = [selectinload(Employe.postes)] if entity_type == ImportType.employes else []
            entity = await self.db.get(model, entity_id, options=options)
            if entity is None:
                raise PersistenceError(f"{entity_type.value} {entity_id} introuvable")

            if entity_type == ImportType.clients:
                client_fields, site_fields, contact_fields = _split_client_fields(fields)
                for name, value in client_fields.items():
                    setattr(entity, name, value)
                await self._upsert_site(entity.id, site_fields)
                await self._upsert_siege_contact(entity.id, contact_fields)
            elif entity_type == ImportType.employes:
                fields = dict(fields)
                entity.postes = await self._load_postes(fields.pop("poste_ids"))
                for name, value in fields.items():
                    setattr(entity, name, value)
            else:
                for name, value in fields.items():
                    setattr(entity, name, value)
            await self.db.flush()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Mise à jour impossible: {exc}") from exc
        return entity

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["SqlImportStore"]:
        """Commit on clean exit; roll back on any exception, cancellation included."""
        try:
            yield self
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise PersistenceError(f"Transaction annulée: {exc}") from exc
        except BaseException:
            await self.db.rollback()
            raise

    # ─── Client children ───

    async def _upsert_site(self, client_id: uuid.UUID, site_fields: dict[str, Any]) -> None:
        values = _present(site_fields)
        if not values:
            return
        nom = values.setdefault("nom", "Site")
        existing = (
            await self.db.execute(
                select(Site).where(Site.client_id == client_id, func.lower(Site.nom) == nom.lower())
            )
        ).scalars().first()
        if existing is None:
            self.db.add(Site(client_id=client_id, **values))
        else:
            for name, value in values.items():
                setattr(existing, name, value)

    async def _upsert_siege_contact(self, client_id: uuid.UUID, contact_fields: dict[str, Any]) -> None:
        values = _present(contact_fields)
        if not values:
            return
        nom = values.setdefault("nom", "Contact")
        existing = (
            await self.db.execute(
                select(SiegeContact).where(
                    SiegeContact.client_id == client_id,
                    func.lower(SiegeContact.nom) == nom.lower(),
                )
            )
        ).scalars().first()
        if existing is None:
            self.db.add(SiegeContact(client_id=client_id, **values))
        else:
            for name, value in values.items():
                setattr(existing, name, value)

    async def _load_postes(self, poste_ids: list[uuid.UUID]) -> list[Poste]:
        if not poste_ids:
            return []
        result = await self.db.execute(select(Poste).where(Poste.id.in_(poste_ids)))
        return list(result.scalars().all())

    # ─── Export ───

    async def load_rows(
        self,
        entity_type: ImportType,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[ImportRow]:
        if entity_type == ImportType.clients:
            return await self._client_rows()
        if entity_type == ImportType.contrats:
            return await self._contrat_rows()
        if entity_type == ImportType.interventions:
            return await self._intervention_rows(date_from, date_to)
        return await self._employe_rows()

    async def _client_rows(self) -> list[ClientRow]:
        stmt = (
            select(Client)
            .options(selectinload(Client.sites), selectinload(Client.siege_contacts))
            .order_by(Client.nom_entreprise.asc())
        )
        clients = (await self.db.execute(stmt)).scalars().all()

        rows: list[ClientRow] = []
        for client in clients:
            contact = client.siege_contacts[0] if client.siege_contacts else None
            base = {
                "nom_entreprise": client.nom_entreprise,
                "siege_nom": client.siege_nom or client.nom_entreprise,
                "siege_adresse": client.siege_adresse,
                "siege_contact_nom": contact.nom if contact else None,
                "siege_contact_fonction": contact.fonction if contact else None,
                "siege_contact_tel": contact.tel if contact else None,
                "siege_contact_email": contact.email if contact else None,
                "siege_tel": client.siege_tel,
                "siege_email": client.siege_email,
                "siege_notes": client.siege_notes,
                "siege_rc": client.siege_rc,
                "siege_nif": client.siege_nif,
                "siege_ai": client.siege_ai,
                "siege_nis": client.siege_nis,
                "siege_tin": client.siege_tin,
                "secteur": client.secteur,
                "actif": client.actif,
            }
            # one line per site; a client without sites still gets one line
            for site in client.sites or [None]:
                site_values = {
                    column: getattr(site, attr) if site else None
                    for column, attr in SITE_COLUMNS.items()
                }
                rows.append(ClientRow(row=len(rows) + 1, **base, **site_values))
        return rows

    async def _contrat_rows(self) -> list[ContratRow]:
        stmt = (
            select(Contrat, Client.nom_entreprise)
            .join(Client, Client.id == Contrat.client_id)
            .order_by(Contrat.date_debut.desc(), Client.nom_entreprise.asc())
        )
        result = await self.db.execute(stmt)
        return [
            ContratRow(
                row=index,
                reference=contrat.reference,
                client_nom=client_nom,
                type=contrat.type,
                date_debut=contrat.date_debut,
                date_fin=contrat.date_fin,
                reconduction_auto=contrat.reconduction_auto,
                prestations=list(contrat.prestations or []),
                frequence_operations=contrat.frequence_operations,
                jours_personnalises=contrat.frequence_operations_jours,
                frequence_controle=contrat.frequence_controle,
                premiere_date_operation=contrat.premiere_date_operation,
                premiere_date_controle=contrat.premiere_date_controle,
                statut=contrat.statut,
                client_id=contrat.client_id,
            )
            for index, (contrat, client_nom) in enumerate(result.all(), start=1)
        ]

    async def _intervention_rows(self, date_from: date | None, date_to: date | None) -> list[InterventionRow]:
        stmt = (
            select(Intervention, Client.nom_entreprise, Contrat.reference, Contrat.id)
            .join(Client, Client.id == Intervention.client_id)
            .outerjoin(Contrat, Contrat.id == Intervention.contrat_id)
        )
        if date_from is not None:
            stmt = stmt.where(Intervention.date_prevue >= date_from)
        if date_to is not None:
            stmt = stmt.where(Intervention.date_prevue <= date_to)
        stmt = stmt.order_by(Intervention.date_prevue.asc(), Intervention.heure_prevue.asc())

        result = await self.db.execute(stmt)
        rows: list[InterventionRow] = []
        for index, (intervention, client_nom, contrat_reference, contrat_id) in enumerate(result.all(), start=1):
            # contracts without a reference are exported by id, which resolves back on import
            contrat_ref = contrat_reference or (str(contrat_id) if contrat_id else None)
            rows.append(
                InterventionRow(
                    row=index,
                    client_nom=client_nom,
                    contrat_ref=contrat_ref,
                    type=intervention.type,
                    prestation=intervention.prestation,
                    date_prevue=intervention.date_prevue,
                    heure_prevue=intervention.heure_prevue,
                    duree_minutes=intervention.duree,
                    statut=intervention.statut,
                    responsable=intervention.responsable,
                    notes=intervention.notes_terrain,
                    client_id=intervention.client_id,
                    contrat_id=intervention.contrat_id,
                )
            )
        return rows

    async def _employe_rows(self) -> list[EmployeRow]:
        stmt = (
            select(Employe)
            .options(selectinload(Employe.postes))
            .order_by(Employe.nom.asc(), Employe.prenom.asc())
        )
        employes = (await self.db.execute(stmt)).scalars().all()
        return [
            EmployeRow(
                row=index,
                prenom=employe.prenom,
                nom=employe.nom,
                postes=[poste.nom for poste in employe.postes],
                poste_ids=[poste.id for poste in employe.postes],
            )
            for index, employe in enumerate(employes, start=1)
        ]
