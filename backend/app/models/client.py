import uuid

from sqlalchemy import Boolean, ForeignKey, Index, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, TimestampMixin, UUIDMixin


class Client(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "clients"

    nom_entreprise: Mapped[str] = mapped_column(String(255), nullable=False)
    secteur: Mapped[str | None] = mapped_column(String(255), nullable=True)
    siege_nom: Mapped[str | None] = mapped_column(String(255), nullable=True)
    siege_adresse: Mapped[str | None] = mapped_column(Text, nullable=True)
    siege_tel: Mapped[str | None] = mapped_column(String(50), nullable=True)
    siege_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    siege_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Algerian company registry identifiers
    siege_rc: Mapped[str | None] = mapped_column(String(100), nullable=True)
    siege_nif: Mapped[str | None] = mapped_column(String(100), nullable=True)
    siege_ai: Mapped[str | None] = mapped_column(String(100), nullable=True)
    siege_nis: Mapped[str | None] = mapped_column(String(100), nullable=True)
    siege_tin: Mapped[str | None] = mapped_column(String(100), nullable=True)
    actif: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    sites: Mapped[list["Site"]] = relationship(
        "Site", back_populates="client", order_by="Site.nom"
    )
    siege_contacts: Mapped[list["SiegeContact"]] = relationship(
        "SiegeContact", back_populates="client", order_by="SiegeContact.created_at"
    )


class Site(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "sites"

    client_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    nom: Mapped[str] = mapped_column(String(255), nullable=False)
    adresse: Mapped[str | None] = mapped_column(Text, nullable=True)
    contact_nom: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_fonction: Mapped[str | None] = mapped_column(String(255), nullable=True)
    tel: Mapped[str | None] = mapped_column(String(50), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    client: Mapped["Client"] = relationship("Client", back_populates="sites")


class SiegeContact(Base, UUIDMixin, TimestampMixin):
    """Head-office contact person; a client may have several."""

    __tablename__ = "siege_contacts"

    client_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    nom: Mapped[str] = mapped_column(String(255), nullable=False)
    fonction: Mapped[str | None] = mapped_column(String(255), nullable=True)
    tel: Mapped[str | None] = mapped_column(String(50), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    client: Mapped["Client"] = relationship("Client", back_populates="siege_contacts")


# natural key: company name, unique regardless of case
Index("uq_clients_nom_entreprise_lower", func.lower(Client.nom_entreprise), unique=True)
