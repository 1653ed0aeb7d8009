import asyncio
import os
import sys
from pathlib import Path

"""
Seed demo data (admin user, two locations, a few items) into the DB.

This script can be run from either:
- backend/: `python scripts/seed_demo_data.py`
- repo root: `python backend/scripts/seed_demo_data.py`

Re-running it is safe: existing rows are matched and left as they are.
"""

# Allow running from repo root by ensuring `backend/` is on sys.path
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from sqlalchemy import func, select

from db.database import async_session_maker, create_db_and_tables
from db.inventory.item import InventoryItem
from db.location import Location
from db.users import User

from fastapi_users.password import PasswordHelper


password_helper = PasswordHelper()

DEMO_ITEMS = [
    # name, category, language, price, stock, description
    ("Bhagavad Gita As It Is", "books", "english", 350.00, 45, "Hardcover, complete edition"),
    ("Bhagavad Gita As It Is", "books", "bengali", 300.00, 20, None),
    ("Bhagavad Gita As It Is", "books", "hindi", 300.00, 8, None),
    ("Sri Isopanisad", "books", "english", 90.00, 30, None),
    ("Sandalwood Incense", "incense", "none", 60.00, 120, "Pack of 20 sticks"),
    ("Tulasi Japa Mala", "jewelry", "none", 250.00, 6, "108 beads"),
]


async def get_or_create_user(session, email: str, password: str) -> User:
    result = await session.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if user:
        return user

    user = User(
        email=email,
        hashed_password=password_helper.hash(password),
        name="Stall Admin",
        role="superAdmin",
        is_active=True,
        is_superuser=True,
        is_verified=True,
    )
    session.add(user)
    await session.flush()
    return user


async def get_or_create_location(session, name: str, *, is_default: bool, description: str | None = None) -> Location:
    result = await session.execute(select(Location).where(func.lower(Location.name) == name.strip().lower()))
    location = result.scalar_one_or_none()
    if location:
        return location

    if is_default:
        # keep an existing default; there is only ever one
        existing = await session.execute(select(Location.id).where(Location.is_default.is_(True)))
        is_default = existing.first() is None

    location = Location(name=name.strip(), description=description, is_active=True, is_default=is_default)
    session.add(location)
    await session.flush()
    return location


async def get_or_create_item(session, location_id, name, category, language, price, stock, description) -> InventoryItem:
    result = await session.execute(
        select(InventoryItem).where(
            InventoryItem.location_id == location_id,
            InventoryItem.name == name,
            InventoryItem.category == category,
            InventoryItem.language == language,
        )
    )
    item = result.scalar_one_or_none()
    if item:
        return item

    item = InventoryItem(
        location_id=location_id,
        name=name,
        category=category,
        language=language,
        price_minor=int(round(price * 100)),
        stock=stock,
        description=description,
    )
    session.add(item)
    await session.flush()
    return item


async def seed():
    await create_db_and_tables()
    async with async_session_maker() as session:
        async with session.begin():
            await get_or_create_user(
                session,
                os.getenv("SEED_ADMIN_EMAIL", "admin@bookstall.org"),
                os.getenv("SEED_ADMIN_PASSWORD", "admin"),
            )

            main_stall = await get_or_create_location(
                session, "Main Temple Stall", is_default=True, description="Inside the temple hall"
            )
            await get_or_create_location(session, "Festival Booth", is_default=False, description="Seasonal outdoor booth")

            for name, category, language, price, stock, description in DEMO_ITEMS:
                await get_or_create_item(session, main_stall.id, name, category, language, price, stock, description)


if __name__ == "__main__":
    asyncio.run(seed())
