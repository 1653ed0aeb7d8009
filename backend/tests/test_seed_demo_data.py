import pytest
from sqlalchemy import select

from db.location import Location
from scripts.seed_demo_data import get_or_create_location
from tests.factories import make_location


@pytest.mark.asyncio
async def test_seeded_default_does_not_steal_existing_default(session):
    await make_location(session, "Downtown Shop", is_default=True)

    stall = await get_or_create_location(session, "Main Temple Stall", is_default=True)
    await session.commit()

    assert stall.is_default is False
    defaults = (await session.execute(select(Location.name).where(Location.is_default.is_(True)))).scalars().all()
    assert defaults == ["Downtown Shop"]


@pytest.mark.asyncio
async def test_seeded_default_on_empty_database(session):
    stall = await get_or_create_location(session, "Main Temple Stall", is_default=True)
    await session.commit()

    assert stall.is_default is True
    again = await get_or_create_location(session, "main temple stall", is_default=True)
    assert again.id == stall.id
