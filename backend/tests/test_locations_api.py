import pytest

from tests.factories import make_item, make_location, make_user


@pytest.mark.asyncio
async def test_first_location_becomes_default(client, session, login_as):
    login_as(await make_user(session, "admin"))

    r = await client.post("/locations/", json={"name": "Main Temple Stall", "address": "Temple hall"})
    assert r.status_code == 201, r.text
    assert r.json()["is_default"] is True

    r = await client.post("/locations/", json={"name": "Festival Booth"})
    assert r.status_code == 201
    assert r.json()["is_default"] is False

    r = await client.post("/locations/", json={"name": "festival booth"})
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_switching_default_clears_previous(client, session, login_as):
    login_as(await make_user(session, "admin"))
    main = await make_location(session, "Main", is_default=True)
    booth = await make_location(session, "Booth")

    r = await client.patch(f"/locations/{booth.id}", json={"is_default": True})
    assert r.status_code == 200
    assert r.json()["is_default"] is True

    r = await client.get("/locations/")
    listed = r.json()
    assert [loc["name"] for loc in listed] == ["Booth", "Main"]
    assert [loc["is_default"] for loc in listed] == [True, False]

    r = await client.patch(f"/locations/{booth.id}", json={"is_default": False})
    assert r.status_code == 400
    r = await client.patch(f"/locations/{booth.id}", json={"is_active": False})
    assert r.status_code == 400

    r = await client.get(f"/locations/{main.id}")
    assert r.json()["is_default"] is False


@pytest.mark.asyncio
async def test_inactive_locations_are_hidden_by_default(client, session, login_as):
    login_as(await make_user(session, "seller"))
    await make_location(session, "Main", is_default=True)
    await make_location(session, "Old Shop", is_active=False)

    r = await client.get("/locations/")
    assert [loc["name"] for loc in r.json()] == ["Main"]

    r = await client.get("/locations/", params={"include_inactive": True})
    assert [loc["name"] for loc in r.json()] == ["Main", "Old Shop"]


@pytest.mark.asyncio
async def test_delete_rules(client, session, login_as):
    login_as(await make_user(session, "superAdmin"))
    main = await make_location(session, "Main", is_default=True)
    booth = await make_location(session, "Booth")
    empty = await make_location(session, "Empty")
    await make_item(session, booth)

    r = await client.delete(f"/locations/{main.id}")
    assert r.status_code == 400

    r = await client.delete(f"/locations/{booth.id}")
    assert r.status_code == 409

    r = await client.delete(f"/locations/{empty.id}")
    assert r.status_code == 200
    r = await client.get(f"/locations/{empty.id}")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_managers_cannot_manage_locations(client, session, login_as):
    login_as(await make_user(session, "manager"))
    main = await make_location(session, "Main", is_default=True)

    r = await client.post("/locations/", json={"name": "Another"})
    assert r.status_code == 403
    r = await client.patch(f"/locations/{main.id}", json={"name": "Renamed"})
    assert r.status_code == 403
