"""Seed default data into the database."""
import asyncio
import logging
import os

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import hash_password
from app.db.session import AsyncSessionLocal
from app.models.employe import Poste
from app.models.user import User

logger = logging.getLogger(__name__)

# Staff roles referenced by the employés import
DEFAULT_POSTES = [
    "ADMINISTRATION",
    "APPLICATEUR",
    "CHAUFFEUR",
    "COMMERCIAL",
    "TECHNICIEN",
]


async def seed_postes(db: AsyncSession) -> None:
    """Insert default postes that do not exist yet (case-insensitive on nom)."""
    for nom in DEFAULT_POSTES:
        existing = await db.execute(select(Poste).where(func.lower(Poste.nom) == nom.lower()))
        if existing.scalars().first() is None:
            db.add(Poste(nom=nom))
            logger.info("Seeded poste: %s", nom)
        else:
            logger.info("Poste already exists: %s, skipping", nom)

    await db.commit()


async def seed_admin(db: AsyncSession, email: str, password: str) -> None:
    existing = await db.execute(select(User).where(User.email == email))
    if existing.scalars().first() is not None:
        logger.info("User %s already exists, skipping", email)
        return
    db.add(
        User(
            email=email,
            name="Direction",
            password_hash=hash_password(password),
            role="DIRECTION",
            is_active=True,
        )
    )
    await db.commit()
    logger.info("Seeded DIRECTION user %s", email)


async def run_seed() -> None:
    async with AsyncSessionLocal() as db:
        await seed_postes(db)
        admin_email = os.environ.get("SEED_ADMIN_EMAIL")
        admin_password = os.environ.get("SEED_ADMIN_PASSWORD")
        if admin_email and admin_password:
            await seed_admin(db, admin_email, admin_password)
    logger.info("Seeding complete.")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(run_seed())
