"""Pydantic schemas for CSV bulk import/export.

Each entity kind has its own row model; a row is what one CSV line becomes
once validated and resolved. Fields serialize with camelCase aliases for the
frontend, resolved identifiers are kept on the row but never serialized.
"""
import enum
import uuid
from datetime import date
from typing import Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ImportType(str, enum.Enum):
    clients = "clients"
    contrats = "contrats"
    interventions = "interventions"
    employes = "employes"


# ─── Row models ───

class ImportRow(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    row: int


class ClientRow(ImportRow):
    nom_entreprise: str
    siege_nom: str
    siege_adresse: str | None = None
    siege_contact_nom: str | None = None
    siege_contact_fonction: str | None = None
    siege_contact_tel: str | None = None
    siege_contact_email: str | None = None
    siege_tel: str | None = None
    siege_email: str | None = None
    siege_notes: str | None = None
    siege_rc: str | None = None
    siege_nif: str | None = None
    siege_ai: str | None = None
    siege_nis: str | None = None
    siege_tin: str | None = None
    site_nom: str | None = None
    site_adresse: str | None = None
    secteur: str | None = None
    contact_nom: str | None = None
    contact_fonction: str | None = None
    tel: str | None = None
    email: str | None = None
    notes: str | None = None
    actif: bool | None = None


class ContratRow(ImportRow):
    reference: str | None = None
    client_nom: str
    type: str
    date_debut: date
    date_fin: date | None = None
    reconduction_auto: bool = False
    prestations: list[str]
    frequence_operations: str | None = None
    jours_personnalises: int | None = None
    frequence_controle: str | None = None
    premiere_date_operation: date | None = None
    premiere_date_controle: date | None = None
    statut: str = "ACTIF"

    client_id: uuid.UUID | None = Field(default=None, exclude=True)


class InterventionRow(ImportRow):
    client_nom: str
    contrat_ref: str | None = None
    type: str
    prestation: str | None = None
    date_prevue: date
    heure_prevue: str | None = None
    duree_minutes: int | None = None
    statut: str = "A_PLANIFIER"
    responsable: str | None = None
    notes: str | None = None

    client_id: uuid.UUID | None = Field(default=None, exclude=True)
    contrat_id: uuid.UUID | None = Field(default=None, exclude=True)


class EmployeRow(ImportRow):
    prenom: str
    nom: str
    postes: list[str]

    poste_ids: list[uuid.UUID] = Field(default_factory=list, exclude=True)


AnyImportRow = Union[ClientRow, ContratRow, InterventionRow, EmployeRow]


# ─── Results ───

class ImportRowError(BaseModel):
    row: int
    field: str
    message: str
    value: str | None = None


class ImportResult(BaseModel):
    success: bool
    created: int = 0
    updated: int = 0
    errors: list[ImportRowError] = []
    preview: list[AnyImportRow] | None = None
    rolled_back: bool = False


# ─── Requests / responses ───

class ImportRequest(BaseModel):
    type: str
    content: str


class ImportExecuteResponse(BaseModel):
    message: str
    created: int
    updated: int
