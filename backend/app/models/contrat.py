import enum
import uuid
from datetime import date

from sqlalchemy import Boolean, Date, ForeignKey, Index, Integer, String, func
from sqlalchemy.dialects.postgresql import ARRAY, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, TimestampMixin, UUIDMixin


class TypeContrat(str, enum.Enum):
    ANNUEL = "ANNUEL"
    PONCTUEL = "PONCTUEL"


class StatutContrat(str, enum.Enum):
    ACTIF = "ACTIF"
    SUSPENDU = "SUSPENDU"
    TERMINE = "TERMINE"


class Frequence(str, enum.Enum):
    HEBDOMADAIRE = "HEBDOMADAIRE"
    MENSUELLE = "MENSUELLE"
    TRIMESTRIELLE = "TRIMESTRIELLE"
    SEMESTRIELLE = "SEMESTRIELLE"
    ANNUELLE = "ANNUELLE"
    PERSONNALISEE = "PERSONNALISEE"


class Contrat(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "contrats"

    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    client_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("clients.id"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False)  # TypeContrat
    date_debut: Mapped[date] = mapped_column(Date, nullable=False)
    date_fin: Mapped[date | None] = mapped_column(Date, nullable=True)
    reconduction_auto: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    prestations: Mapped[list[str]] = mapped_column(ARRAY(String(255)), nullable=False, default=list)
    frequence_operations: Mapped[str | None] = mapped_column(String(20), nullable=True)  # Frequence
    frequence_operations_jours: Mapped[int | None] = mapped_column(Integer, nullable=True)
    frequence_controle: Mapped[str | None] = mapped_column(String(20), nullable=True)  # Frequence
    premiere_date_operation: Mapped[date | None] = mapped_column(Date, nullable=True)
    premiere_date_controle: Mapped[date | None] = mapped_column(Date, nullable=True)
    statut: Mapped[str] = mapped_column(
        String(20), nullable=False, default=StatutContrat.ACTIF.value
    )  # StatutContrat

    client = relationship("Client")


# references are matched case-insensitively on import
Index("uq_contrats_reference_lower", func.lower(Contrat.reference), unique=True)
