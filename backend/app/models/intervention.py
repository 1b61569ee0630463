import enum
import uuid
from datetime import date

from sqlalchemy import Date, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, TimestampMixin, UUIDMixin


class TypeIntervention(str, enum.Enum):
    OPERATION = "OPERATION"
    CONTROLE = "CONTROLE"
    RECLAMATION = "RECLAMATION"
    PREMIERE_VISITE = "PREMIERE_VISITE"
    DEPLACEMENT_COMMERCIAL = "DEPLACEMENT_COMMERCIAL"


class StatutIntervention(str, enum.Enum):
    A_PLANIFIER = "A_PLANIFIER"
    PLANIFIEE = "PLANIFIEE"
    REALISEE = "REALISEE"
    REPORTEE = "REPORTEE"
    ANNULEE = "ANNULEE"


class Intervention(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "interventions"

    client_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("clients.id"), nullable=False, index=True
    )
    contrat_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("contrats.id"), nullable=True, index=True
    )
    type: Mapped[str] = mapped_column(String(30), nullable=False)  # TypeIntervention
    prestation: Mapped[str | None] = mapped_column(String(255), nullable=True)
    date_prevue: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    heure_prevue: Mapped[str | None] = mapped_column(String(5), nullable=True)  # HH:MM
    duree: Mapped[int | None] = mapped_column(Integer, nullable=True)  # minutes
    statut: Mapped[str] = mapped_column(
        String(20), nullable=False, default=StatutIntervention.A_PLANIFIER.value
    )
    responsable: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notes_terrain: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=True
    )

    client = relationship("Client")
    contrat = relationship("Contrat")
