"""Per-entity import rule sets.

The rule tables below are the single source of truth for each CSV template:
column order (used by templates and exports), coercion and constraints
(used by preview and commit), references to resolve, and how a valid row
maps onto the stored entity.
"""
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from app.imports.errors import UnknownImportType
from app.imports.fields import (
    FieldRule,
    RowCheck,
    as_boolean,
    as_date,
    as_email,
    as_integer,
    as_list,
    as_time,
    enum_of,
    max_length,
)
from app.models.contrat import Frequence, StatutContrat, TypeContrat
from app.models.intervention import StatutIntervention, TypeIntervention
from app.schemas.imports import (
    ClientRow,
    ContratRow,
    EmployeRow,
    ImportRow,
    ImportType,
    InterventionRow,
)


def _values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


@dataclass(frozen=True)
class Reference:
    """A human-readable column resolved to an identifier on the row."""

    source: str
    target: str
    kind: str  # client | contrat | poste


@dataclass(frozen=True)
class EntitySpec:
    type: ImportType
    row_model: type[ImportRow]
    fields: tuple[FieldRule, ...]
    natural_key: Callable[[Any], dict[str, Any]]
    to_fields: Callable[[Any], dict[str, Any]]
    checks: tuple[RowCheck, ...] = ()
    references: tuple[Reference, ...] = ()
    # on update, blank imported values leave stored values untouched
    sparse_update: bool = False
    # column receiving the acting user's id on create
    creator_field: str | None = None

    @property
    def columns(self) -> tuple[str, ...]:
        return tuple(rule.name for rule in self.fields)


# ─── Clients ───

CLIENT_FIELDS = (
    FieldRule("nom_entreprise", "Nom d'entreprise", required=True, validate=max_length(255)),
    FieldRule("siege_nom", "Nom du siège", required=True, validate=max_length(255)),
    FieldRule("siege_adresse", "Adresse du siège"),
    FieldRule("siege_contact_nom", "Contact du siège"),
    FieldRule("siege_contact_fonction", "Fonction du contact du siège"),
    FieldRule("siege_contact_tel", "Téléphone du contact du siège"),
    FieldRule("siege_contact_email", "Email du contact du siège", coerce=as_email),
    FieldRule("siege_tel", "Téléphone du siège"),
    FieldRule("siege_email", "Email du siège", coerce=as_email),
    FieldRule("siege_notes", "Notes du siège"),
    FieldRule("siege_rc", "RC"),
    FieldRule("siege_nif", "NIF"),
    FieldRule("siege_ai", "AI"),
    FieldRule("siege_nis", "NIS"),
    FieldRule("siege_tin", "TIN"),
    FieldRule("site_nom", "Nom du site", validate=max_length(255)),
    FieldRule("site_adresse", "Adresse du site"),
    FieldRule("secteur", "Secteur"),
    FieldRule("contact_nom", "Contact du site"),
    FieldRule("contact_fonction", "Fonction du contact du site"),
    FieldRule("tel", "Téléphone du site"),
    FieldRule("email", "Email du site", coerce=as_email),
    FieldRule("notes", "Notes"),
    FieldRule("actif", "Actif", coerce=as_boolean),
)


def _client_fields(row: ClientRow) -> dict[str, Any]:
    return row.model_dump(exclude={"row"})


# ─── Contrats ───

CONTRAT_FIELDS = (
    FieldRule("reference", "Référence", validate=max_length(100)),
    FieldRule("client_nom", "Nom du client", required=True),
    FieldRule("type", "Type", required=True, coerce=enum_of(_values(TypeContrat))),
    FieldRule("date_debut", "Date de début", required=True, coerce=as_date),
    FieldRule("date_fin", "Date de fin", coerce=as_date),
    FieldRule("reconduction_auto", "Reconduction automatique", coerce=as_boolean, default=False),
    FieldRule(
        "prestations", "Prestations", required=True, coerce=as_list,
        required_message="Au moins une prestation requise",
    ),
    FieldRule("frequence_operations", "Fréquence des opérations", coerce=enum_of(_values(Frequence))),
    FieldRule("jours_personnalises", "Jours personnalisés", coerce=as_integer(min_value=1, max_value=366)),
    FieldRule("frequence_controle", "Fréquence des contrôles", coerce=enum_of(_values(Frequence))),
    FieldRule("premiere_date_operation", "Première date d'opération", coerce=as_date),
    FieldRule("premiere_date_controle", "Première date de contrôle", coerce=as_date),
    FieldRule(
        "statut", "Statut",
        coerce=enum_of(_values(StatutContrat)),
        default=StatutContrat.ACTIF.value,
    ),
)

CONTRAT_CHECKS = (
    RowCheck(
        fields=("date_debut", "date_fin"),
        column="date_fin",
        message="La date de fin précède la date de début",
        predicate=lambda v: v["date_fin"] is None or v["date_fin"] >= v["date_debut"],
    ),
    RowCheck(
        fields=("frequence_operations", "jours_personnalises"),
        column="jours_personnalises",
        message="Jours personnalisés requis pour une fréquence PERSONNALISEE",
        predicate=lambda v: (
            v["frequence_operations"] != Frequence.PERSONNALISEE.value
            or v["jours_personnalises"] is not None
        ),
    ),
)


def _contrat_key(row: ContratRow) -> dict[str, Any]:
    if row.reference:
        return {"reference": row.reference}
    return {"client_id": row.client_id, "type": row.type, "date_debut": row.date_debut}


def _contrat_fields(row: ContratRow) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "client_id": row.client_id,
        "type": row.type,
        "date_debut": row.date_debut,
        "date_fin": row.date_fin,
        "reconduction_auto": row.reconduction_auto,
        "prestations": list(row.prestations),
        "frequence_operations": row.frequence_operations,
        "frequence_operations_jours": row.jours_personnalises,
        "frequence_controle": row.frequence_controle,
        "premiere_date_operation": row.premiere_date_operation,
        "premiere_date_controle": row.premiere_date_controle,
        "statut": row.statut,
    }
    # a blank reference keeps the one already stored
    if row.reference:
        fields["reference"] = row.reference
    return fields


# ─── Interventions ───

INTERVENTION_FIELDS = (
    FieldRule("client_nom", "Nom du client", required=True),
    FieldRule("contrat_ref", "Référence du contrat"),
    FieldRule("type", "Type", required=True, coerce=enum_of(_values(TypeIntervention))),
    FieldRule("prestation", "Prestation"),
    FieldRule("date_prevue", "Date prévue", required=True, coerce=as_date),
    FieldRule("heure_prevue", "Heure prévue", coerce=as_time),
    FieldRule("duree_minutes", "Durée", coerce=as_integer(min_value=1, max_value=24 * 60)),
    FieldRule(
        "statut", "Statut",
        coerce=enum_of(_values(StatutIntervention)),
        default=StatutIntervention.A_PLANIFIER.value,
    ),
    FieldRule("responsable", "Responsable"),
    FieldRule("notes", "Notes"),
)


def _intervention_key(row: InterventionRow) -> dict[str, Any]:
    return {
        "client_id": row.client_id,
        "type": row.type,
        "date_prevue": row.date_prevue,
        "heure_prevue": row.heure_prevue,
    }


def _intervention_fields(row: InterventionRow) -> dict[str, Any]:
    return {
        "client_id": row.client_id,
        "contrat_id": row.contrat_id,
        "type": row.type,
        "prestation": row.prestation,
        "date_prevue": row.date_prevue,
        "heure_prevue": row.heure_prevue,
        "duree": row.duree_minutes,
        "statut": row.statut,
        "responsable": row.responsable,
        "notes_terrain": row.notes,
    }


# ─── Employés ───

EMPLOYE_FIELDS = (
    FieldRule("prenom", "Prénom", required=True, validate=max_length(100)),
    FieldRule("nom", "Nom", required=True, validate=max_length(100)),
    FieldRule("postes", "Postes", required=True, coerce=as_list, required_message="Au moins un poste requis"),
)


ENTITY_SPECS: dict[ImportType, EntitySpec] = {
    ImportType.clients: EntitySpec(
        type=ImportType.clients,
        row_model=ClientRow,
        fields=CLIENT_FIELDS,
        natural_key=lambda row: {"nom_entreprise": row.nom_entreprise},
        to_fields=_client_fields,
        sparse_update=True,
    ),
    ImportType.contrats: EntitySpec(
        type=ImportType.contrats,
        row_model=ContratRow,
        fields=CONTRAT_FIELDS,
        checks=CONTRAT_CHECKS,
        references=(Reference("client_nom", "client_id", "client"),),
        natural_key=_contrat_key,
        to_fields=_contrat_fields,
    ),
    ImportType.interventions: EntitySpec(
        type=ImportType.interventions,
        row_model=InterventionRow,
        fields=INTERVENTION_FIELDS,
        references=(
            Reference("client_nom", "client_id", "client"),
            Reference("contrat_ref", "contrat_id", "contrat"),
        ),
        natural_key=_intervention_key,
        to_fields=_intervention_fields,
        creator_field="created_by_id",
    ),
    ImportType.employes: EntitySpec(
        type=ImportType.employes,
        row_model=EmployeRow,
        fields=EMPLOYE_FIELDS,
        references=(Reference("postes", "poste_ids", "poste"),),
        natural_key=lambda row: {"prenom": row.prenom, "nom": row.nom},
        to_fields=lambda row: {"prenom": row.prenom, "nom": row.nom, "poste_ids": list(row.poste_ids)},
    ),
}


def get_spec(entity_type: str | ImportType) -> EntitySpec:
    try:
        return ENTITY_SPECS[ImportType(entity_type)]
    except ValueError:
        raise UnknownImportType(
            f"Type invalide '{entity_type}' ({', '.join(t.value for t in ImportType)})"
        ) from None


def template(entity_type: str | ImportType) -> str:
    """Canonical header line for an import template."""
    return ",".join(get_spec(entity_type).columns) + "\r\n"
