import asyncio
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

import app.database as database
from app.models.category import Category

DEFAULT_CATEGORIES = ("Music", "Sports", "Food & Drinks", "Workshop", "Networking")


async def seed_categories(session: AsyncSession, names: Iterable[str] = DEFAULT_CATEGORIES) -> int:
    """Insert the categories that do not exist yet; return how many were added."""

    existing = set((await session.execute(select(Category.name))).scalars().all())
    added = 0
    for name in names:
        if name in existing:
            continue
        session.add(Category(name=name))
        existing.add(name)
        added += 1
    await session.commit()
    return added


async def main() -> None:
    """Create base tables and seed a few default categories."""

    await database.init_models()
    async with database.SessionLocal() as session:
        added = await seed_categories(session)
    print(f"Seeded {added} default categories.")


if __name__ == "__main__":
    asyncio.run(main())
