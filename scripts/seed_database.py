"""
Seed database with reference data and a test author.

Usage: python scripts/seed_database.py
"""

import asyncio
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from app.core.security import hash_password
from app.database import AsyncSessionLocal, engine
from app.models import Base, SensitiveSite, User
from app.models.user import UserRole
from app.services.reference_data import seed_reference_data

SENSITIVE_DOMAINS = ["example-adult.com"]


async def create_tables():
    """Create all database tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    print("Database tables created")


async def create_reference_data():
    """Create locales, browsers, licenses and sensitive sites."""
    async with AsyncSessionLocal() as db:
        created = await seed_reference_data(db)
        for domain in SENSITIVE_DOMAINS:
            result = await db.execute(
                select(SensitiveSite).where(SensitiveSite.domain == domain)
            )
            if result.scalar_one_or_none() is None:
                db.add(SensitiveSite(domain=domain))
                created.append(f"sensitive site {domain}")
        await db.commit()
    print(f"Created {len(created)} reference rows")


async def create_test_user():
    """Create a test author."""
    async with AsyncSessionLocal() as db:
        result = await db.execute(select(User).where(User.email == "admin@example.com"))
        if result.scalar_one_or_none():
            print("Test user already exists")
            return

        user = User(
            email="admin@example.com",
            name="admin",
            password_hash=hash_password("admin123"),
            role=UserRole.ADMIN,
        )
        db.add(user)
        await db.commit()
        print("Created test user: admin@example.com / admin123")


async def main():
    """Run all seed operations."""
    print("=" * 50)
    print("Seeding database...")
    print("=" * 50)

    await create_tables()
    await create_reference_data()
    await create_test_user()

    print("=" * 50)
    print("Database seeding complete!")
    print("=" * 50)


if __name__ == "__main__":
    asyncio.run(main())
