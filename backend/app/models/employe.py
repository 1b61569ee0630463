from sqlalchemy import Column, ForeignKey, Index, String, Table, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, TimestampMixin, UUIDMixin

employe_postes = Table(
    "employe_postes",
    Base.metadata,
    Column("employe_id", UUID(as_uuid=True), ForeignKey("employes.id", ondelete="CASCADE"), primary_key=True),
    Column("poste_id", UUID(as_uuid=True), ForeignKey("postes.id", ondelete="CASCADE"), primary_key=True),
)


class Poste(Base, UUIDMixin, TimestampMixin):
    """Controlled vocabulary of staff roles (CHAUFFEUR, APPLICATEUR, ...)."""

    __tablename__ = "postes"

    nom: Mapped[str] = mapped_column(String(100), nullable=False)


class Employe(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "employes"

    prenom: Mapped[str] = mapped_column(String(100), nullable=False)
    nom: Mapped[str] = mapped_column(String(100), nullable=False)

    postes: Mapped[list["Poste"]] = relationship("Poste", secondary=employe_postes, order_by="Poste.nom")


Index("uq_postes_nom_lower", func.lower(Poste.nom), unique=True)

Index("uq_employes_identity_lower", func.lower(Employe.prenom), func.lower(Employe.nom), unique=True)
