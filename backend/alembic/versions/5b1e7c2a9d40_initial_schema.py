"""initial_schema

Revision ID: 5b1e7c2a9d40
Revises:
Create Date: 2026-10-12 09:14:03.511207

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '5b1e7c2a9d40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id_column() -> sa.Column:
    return sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS pgcrypto')

    op.create_table(
        'users',
        _id_column(),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('role', sa.String(50), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_users'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # ─── Clients ───
    op.create_table(
        'clients',
        _id_column(),
        sa.Column('nom_entreprise', sa.String(255), nullable=False),
        sa.Column('secteur', sa.String(255), nullable=True),
        sa.Column('siege_nom', sa.String(255), nullable=True),
        sa.Column('siege_adresse', sa.Text(), nullable=True),
        sa.Column('siege_tel', sa.String(50), nullable=True),
        sa.Column('siege_email', sa.String(255), nullable=True),
        sa.Column('siege_notes', sa.Text(), nullable=True),
        sa.Column('siege_rc', sa.String(100), nullable=True),
        sa.Column('siege_nif', sa.String(100), nullable=True),
        sa.Column('siege_ai', sa.String(100), nullable=True),
        sa.Column('siege_nis', sa.String(100), nullable=True),
        sa.Column('siege_tin', sa.String(100), nullable=True),
        sa.Column('actif', sa.Boolean(), nullable=False, server_default='true'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_clients'),
    )
    op.create_index(
        'uq_clients_nom_entreprise_lower', 'clients', [sa.text('lower(nom_entreprise)')], unique=True
    )

    op.create_table(
        'sites',
        _id_column(),
        sa.Column('client_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('nom', sa.String(255), nullable=False),
        sa.Column('adresse', sa.Text(), nullable=True),
        sa.Column('contact_nom', sa.String(255), nullable=True),
        sa.Column('contact_fonction', sa.String(255), nullable=True),
        sa.Column('tel', sa.String(50), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], name='fk_sites_client_id_clients', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name='pk_sites'),
    )
    op.create_index('ix_sites_client_id', 'sites', ['client_id'])

    op.create_table(
        'siege_contacts',
        _id_column(),
        sa.Column('client_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('nom', sa.String(255), nullable=False),
        sa.Column('fonction', sa.String(255), nullable=True),
        sa.Column('tel', sa.String(50), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ['client_id'], ['clients.id'], name='fk_siege_contacts_client_id_clients', ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id', name='pk_siege_contacts'),
    )
    op.create_index('ix_siege_contacts_client_id', 'siege_contacts', ['client_id'])

    # ─── Contrats / interventions ───
    op.create_table(
        'contrats',
        _id_column(),
        sa.Column('reference', sa.String(100), nullable=True),
        sa.Column('client_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('date_debut', sa.Date(), nullable=False),
        sa.Column('date_fin', sa.Date(), nullable=True),
        sa.Column('reconduction_auto', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('prestations', postgresql.ARRAY(sa.String(255)), nullable=False, server_default='{}'),
        sa.Column('frequence_operations', sa.String(20), nullable=True),
        sa.Column('frequence_operations_jours', sa.Integer(), nullable=True),
        sa.Column('frequence_controle', sa.String(20), nullable=True),
        sa.Column('premiere_date_operation', sa.Date(), nullable=True),
        sa.Column('premiere_date_controle', sa.Date(), nullable=True),
        sa.Column('statut', sa.String(20), nullable=False, server_default='ACTIF'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], name='fk_contrats_client_id_clients'),
        sa.PrimaryKeyConstraint('id', name='pk_contrats'),
    )
    op.create_index('uq_contrats_reference_lower', 'contrats', [sa.text('lower(reference)')], unique=True)
    op.create_index('ix_contrats_client_id', 'contrats', ['client_id'])

    op.create_table(
        'interventions',
        _id_column(),
        sa.Column('client_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('contrat_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('type', sa.String(30), nullable=False),
        sa.Column('prestation', sa.String(255), nullable=True),
        sa.Column('date_prevue', sa.Date(), nullable=False),
        sa.Column('heure_prevue', sa.String(5), nullable=True),
        sa.Column('duree', sa.Integer(), nullable=True),
        sa.Column('statut', sa.String(20), nullable=False, server_default='A_PLANIFIER'),
        sa.Column('responsable', sa.String(255), nullable=True),
        sa.Column('notes_terrain', sa.Text(), nullable=True),
        sa.Column('created_by_id', postgresql.UUID(as_uuid=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], name='fk_interventions_client_id_clients'),
        sa.ForeignKeyConstraint(['contrat_id'], ['contrats.id'], name='fk_interventions_contrat_id_contrats'),
        sa.ForeignKeyConstraint(['created_by_id'], ['users.id'], name='fk_interventions_created_by_id_users'),
        sa.PrimaryKeyConstraint('id', name='pk_interventions'),
    )
    op.create_index('ix_interventions_client_id', 'interventions', ['client_id'])
    op.create_index('ix_interventions_contrat_id', 'interventions', ['contrat_id'])
    op.create_index('ix_interventions_date_prevue', 'interventions', ['date_prevue'])

    # ─── Employés ───
    op.create_table(
        'postes',
        _id_column(),
        sa.Column('nom', sa.String(100), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_postes'),
    )
    op.create_index('uq_postes_nom_lower', 'postes', [sa.text('lower(nom)')], unique=True)

    op.create_table(
        'employes',
        _id_column(),
        sa.Column('prenom', sa.String(100), nullable=False),
        sa.Column('nom', sa.String(100), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_employes'),
    )
    op.create_index(
        'uq_employes_identity_lower', 'employes', [sa.text('lower(prenom)'), sa.text('lower(nom)')], unique=True
    )

    op.create_table(
        'employe_postes',
        sa.Column('employe_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('poste_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.ForeignKeyConstraint(
            ['employe_id'], ['employes.id'], name='fk_employe_postes_employe_id_employes', ondelete='CASCADE'
        ),
        sa.ForeignKeyConstraint(
            ['poste_id'], ['postes.id'], name='fk_employe_postes_poste_id_postes', ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('employe_id', 'poste_id', name='pk_employe_postes'),
    )

    # ─── Audit ───
    op.create_table(
        'audit_logs',
        _id_column(),
        sa.Column('actor_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('actor_email', sa.String(255), nullable=True),
        sa.Column('action', sa.String(100), nullable=False),
        sa.Column('entity_type', sa.String(100), nullable=False),
        sa.Column('entity_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('before_state', sa.Text(), nullable=True),
        sa.Column('after_state', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['actor_id'], ['users.id'], name='fk_audit_logs_actor_id_users'),
        sa.PrimaryKeyConstraint('id', name='pk_audit_logs'),
    )
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_entity_type', 'audit_logs', ['entity_type'])
    op.create_index('ix_audit_logs_entity_id', 'audit_logs', ['entity_id'])


def downgrade() -> None:
    op.drop_table('audit_logs')
    op.drop_table('employe_postes')
    op.drop_index('uq_employes_identity_lower', table_name='employes')
    op.drop_table('employes')
    op.drop_index('uq_postes_nom_lower', table_name='postes')
    op.drop_table('postes')
    op.drop_table('interventions')
    op.drop_index('uq_contrats_reference_lower', table_name='contrats')
    op.drop_table('contrats')
    op.drop_table('siege_contacts')
    op.drop_table('sites')
    op.drop_index('uq_clients_nom_entreprise_lower', table_name='clients')
    op.drop_table('clients')
    op.drop_table('users')
