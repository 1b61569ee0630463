"""Tests for the import engine: preview, atomic commit, upsert counting, audit hand-off."""
import uuid
from datetime import date
from unittest.mock import AsyncMock

import pytest

from app.imports import CommitSummary, ImportEngine, ParseError, UnknownImportType
from app.imports.exporter import export_entities
from app.schemas.imports import ImportType

ACTOR_ID = uuid.UUID("f96955d0-752f-4e0c-b1dc-d26d8dd1460e")


# ─── Preview ──────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_preview_reports_errors_and_keeps_valid_rows(store):
    content = "nom_entreprise,siege_nom\n,Siège A\nAcme,Siège B"

    result = await ImportEngine(store).preview("clients", content)

    assert result.success is False
    assert result.created == 0 and result.updated == 0
    assert [(e.row, e.field) for e in result.errors] == [(1, "nom_entreprise")]
    assert result.errors[0].message == "Champ obligatoire: Nom d'entreprise"

    preview = result.model_dump(by_alias=True)["preview"]
    assert len(preview) == 1
    assert preview[0]["nomEntreprise"] == "Acme"
    assert preview[0]["siegeNom"] == "Siège B"
    assert preview[0]["row"] == 2


@pytest.mark.asyncio
async def test_preview_is_deterministic_and_side_effect_free(store):
    store.add_client("Acme")
    content = (
        "reference,client_nom,type,date_debut,date_fin,prestations\n"
        "CT-1,Acme,annuel,01/01/2024,31/12/2024,\"Dératisation, Désinsectisation\"\n"
        "CT-2,Inconnu,ANNUEL,2024-01-01,,Dératisation\n"
    )
    engine = ImportEngine(store)

    first = await engine.preview("contrats", content)
    second = await engine.preview("contrats", content)

    assert first.model_dump() == second.model_dump()
    assert len(store.records(ImportType.contrats)) == 0
    assert store.commits == 0


@pytest.mark.asyncio
async def test_preview_resolved_ids_are_not_serialised(store):
    store.add_client("Acme")
    content = "client_nom,type,date_debut,prestations\nAcme,PONCTUEL,2024-06-01,Désinfection\n"

    result = await ImportEngine(store).preview("contrats", content)

    assert result.success is True
    row = result.model_dump(by_alias=True)["preview"][0]
    assert "clientId" not in row and "client_id" not in row
    assert row["clientNom"] == "Acme"
    assert row["prestations"] == ["Désinfection"]
    assert row["statut"] == "ACTIF"


@pytest.mark.asyncio
async def test_row_numbers_match_between_preview_and_commit(store):
    content = (
        "prenom,nom,postes\n"
        "Yacine,Benali,Chauffeur\n"
        "\n"
        ",Haddad,Technicien\n"
        "Sami,Kaci,\n"
    )
    store.add_poste("CHAUFFEUR")
    engine = ImportEngine(store)

    preview = await engine.preview("employes", content)
    commit = await engine.commit("employes", content, actor_id=ACTOR_ID)

    expected = [(2, "prenom"), (2, "postes"), (3, "postes")]
    assert [(e.row, e.field) for e in preview.errors] == expected
    assert [(e.row, e.field) for e in commit.errors] == expected
    assert commit.preview is None


@pytest.mark.asyncio
async def test_row_level_check_runs_after_field_coercion(store):
    store.add_client("Acme")
    content = (
        "client_nom,type,date_debut,date_fin,prestations,frequence_operations\n"
        "Acme,ANNUEL,2024-06-01,2024-01-01,Dératisation,\n"
        "Acme,ANNUEL,pas une date,2024-01-01,Dératisation,\n"
        "Acme,ANNUEL,2024-01-01,,Dératisation,personnalisee\n"
    )

    result = await ImportEngine(store).preview("contrats", content)

    assert [(e.row, e.field) for e in result.errors] == [
        (1, "date_fin"),
        (2, "date_debut"),
        (3, "jours_personnalises"),
    ]


@pytest.mark.asyncio
async def test_parse_error_aborts_before_validation(store):
    with pytest.raises(ParseError) as exc_info:
        await ImportEngine(store).preview("clients", "nom_entreprise,siege_nom\nAcme\n")
    assert exc_info.value.row == 0
    assert store.lookup_calls == []


@pytest.mark.asyncio
async def test_unknown_type_is_rejected(store):
    with pytest.raises(UnknownImportType):
        await ImportEngine(store).preview("factures", "a\n1\n")


# ─── Commit ───────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_commit_with_one_invalid_row_persists_nothing(store):
    content = (
        "nom_entreprise,siege_nom,siege_email\n"
        "Acme,Siège A,\n"
        "Beta,Siège B,contact@beta.dz\n"
        "Gamma,Siège C,pas-un-email\n"
    )

    result = await ImportEngine(store).commit("clients", content, actor_id=ACTOR_ID)

    assert result.success is False
    assert result.created == 0 and result.updated == 0
    assert len(result.errors) == 1
    assert result.errors[0].row == 3
    assert store.records(ImportType.clients) == []
    assert store.commits == 0


@pytest.mark.asyncio
async def test_importing_same_client_twice_updates_it(store):
    engine = ImportEngine(store)

    first = await engine.commit("clients", "nom_entreprise,siege_nom,secteur\nAcme,Siège,Agro\n")
    second = await engine.commit("clients", "nom_entreprise,siege_nom,secteur\nACME,Siège,Pharma\n")

    assert (first.success, first.created, first.updated) == (True, 1, 0)
    assert (second.success, second.created, second.updated) == (True, 0, 1)
    clients = store.records(ImportType.clients)
    assert len(clients) == 1
    assert clients[0]["secteur"] == "Pharma"
    assert first.preview is None and second.preview is None


@pytest.mark.asyncio
async def test_client_update_keeps_values_left_blank(store):
    engine = ImportEngine(store)
    await engine.commit("clients", "nom_entreprise,siege_nom,secteur,siege_tel\nAcme,Siège,Agro,021000000\n")

    await engine.commit("clients", "nom_entreprise,siege_nom,secteur,siege_tel\nAcme,Siège,,021111111\n")

    client = store.records(ImportType.clients)[0]
    assert client["secteur"] == "Agro"
    assert client["siege_tel"] == "021111111"


@pytest.mark.asyncio
async def test_persistence_failure_rolls_back_whole_batch(store):
    store.fail_on = lambda entity_type, fields: fields.get("nom_entreprise") == "Beta"
    content = "nom_entreprise,siege_nom\nAcme,Siège A\nBeta,Siège B\nGamma,Siège C\n"
    hook = AsyncMock()

    result = await ImportEngine(store, audit_hook=hook).commit("clients", content, actor_id=ACTOR_ID)

    assert result.success is False
    assert result.rolled_back is True
    assert result.created == 0 and result.updated == 0
    assert len(result.errors) == 1
    assert result.errors[0].row == 2
    assert result.errors[0].field == "*"
    assert "aucune ligne importée" in result.errors[0].message
    assert store.records(ImportType.clients) == []
    assert store.rollbacks == 1
    hook.assert_not_awaited()


@pytest.mark.asyncio
async def test_contract_natural_key_falls_back_to_client_type_and_start(store):
    client_id = store.add_client("Acme")
    engine = ImportEngine(store)
    content = "client_nom,type,date_debut,prestations\nAcme,ANNUEL,2024-01-01,Dératisation\n"

    first = await engine.commit("contrats", content)
    second = await engine.commit("contrats", content.replace("Dératisation", "Désinfection"))

    assert (first.created, second.updated) == (1, 1)
    contrats = store.records(ImportType.contrats)
    assert len(contrats) == 1
    assert contrats[0]["client_id"] == client_id
    assert contrats[0]["prestations"] == ["Désinfection"]


@pytest.mark.asyncio
async def test_contract_update_without_reference_keeps_stored_reference(store):
    client_id = store.add_client("Acme")
    contrat_id = store.add_contrat(client_id, reference="CT-1")

    result = await ImportEngine(store).commit(
        "contrats", "client_nom,type,date_debut,prestations\nAcme,ANNUEL,2024-01-01,Dératisation\n"
    )

    assert (result.created, result.updated) == (0, 1)
    contrat = store.tables[ImportType.contrats][contrat_id]
    assert contrat["reference"] == "CT-1"
    assert contrat["prestations"] == ["Dératisation"]


@pytest.mark.asyncio
async def test_intervention_create_records_the_actor(store):
    client_id = store.add_client("Acme")
    contrat_id = store.add_contrat(client_id, reference="CT-1")
    content = (
        "client_nom,contrat_ref,type,date_prevue,heure_prevue,duree_minutes,notes\n"
        "Acme,CT-1,operation,15/03/2024,9h00,90,Portail bleu\n"
    )

    result = await ImportEngine(store).commit("interventions", content, actor_id=ACTOR_ID)

    assert (result.success, result.created) == (True, 1)
    intervention = store.records(ImportType.interventions)[0]
    assert intervention["contrat_id"] == contrat_id
    assert intervention["heure_prevue"] == "09:00"
    assert intervention["duree"] == 90
    assert intervention["notes_terrain"] == "Portail bleu"
    assert intervention["statut"] == "A_PLANIFIER"
    assert intervention["created_by_id"] == ACTOR_ID


@pytest.mark.asyncio
async def test_employe_commit_stores_resolved_postes(store):
    chauffeur = store.add_poste("CHAUFFEUR")
    applicateur = store.add_poste("APPLICATEUR")
    engine = ImportEngine(store)

    result = await engine.commit("employes", 'prenom,nom,postes\nYacine,Benali,"chauffeur, applicateur"\n')
    again = await engine.commit("employes", "prenom,nom,postes\nyacine,BENALI,applicateur\n")

    assert (result.created, again.updated) == (1, 1)
    employes = store.records(ImportType.employes)
    assert len(employes) == 1
    assert employes[0]["poste_ids"] == [applicateur]
    assert chauffeur in store.postes


# ─── Audit hand-off ───────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_audit_hook_receives_summary_after_commit(store):
    store.add_client("Acme", secteur="Agro")
    hook = AsyncMock()
    content = "nom_entreprise,siege_nom\nAcme,Siège\nBeta,Siège B\n"

    result = await ImportEngine(store, audit_hook=hook).commit("clients", content, actor_id=ACTOR_ID)

    assert (result.created, result.updated) == (1, 1)
    hook.assert_awaited_once()
    summary = hook.await_args.args[0]
    assert isinstance(summary, CommitSummary)
    assert summary.entity_type == ImportType.clients
    assert summary.actor_id == ACTOR_ID
    assert summary.updated_keys == [{"nom_entreprise": "Acme"}]
    assert summary.previous_values == [{"nom_entreprise": "Acme", "siege_nom": "Acme"}]
    assert summary.created_keys == [{"nom_entreprise": "Beta"}]


@pytest.mark.asyncio
async def test_audit_hook_failure_does_not_undo_the_import(store):
    hook = AsyncMock(side_effect=RuntimeError("audit down"))

    result = await ImportEngine(store, audit_hook=hook).commit("clients", "nom_entreprise,siege_nom\nAcme,Siège\n")

    assert result.success is True
    assert len(store.records(ImportType.clients)) == 1


# ─── Export round trip ────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_exported_contracts_preview_back_unchanged(store):
    client_id = store.add_client("Acme, SARL")
    store.add_contrat(
        client_id,
        reference="CT-7",
        date_fin=date(2024, 12, 31),
        reconduction_auto=True,
        prestations=["Dératisation", "Désinsectisation"],
        frequence_operations="PERSONNALISEE",
        frequence_operations_jours=45,
    )
    original = await store.load_rows(ImportType.contrats)

    csv_text = await export_entities(store, "contrats")
    result = await ImportEngine(store).preview("contrats", csv_text)

    assert result.success is True
    assert [r.model_dump(exclude={"row"}) for r in result.preview] == [
        r.model_dump(exclude={"row"}) for r in original
    ]


@pytest.mark.asyncio
async def test_exported_clients_preview_back_unchanged(store):
    store.add_client("Acme", siege_nom="Siège", notes='Dit "urgent",\nrappeler', actif=True)
    store.add_client("Beta", siege_email="contact@beta.dz")
    original = await store.load_rows(ImportType.clients)

    result = await ImportEngine(store).preview("clients", await export_entities(store, "clients"))

    assert result.success is True
    assert [r.model_dump(exclude={"row"}) for r in result.preview] == [
        r.model_dump(exclude={"row"}) for r in original
    ]
