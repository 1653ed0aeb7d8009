import pytest

from core.auth import UserManager
from tests.factories import make_location, make_user


@pytest.mark.asyncio
async def test_register_assigns_seller_until_owner_verifies(client, monkeypatch):
    tokens = []

    async def _capture_token(self, user, token, request=None):
        tokens.append(token)

    monkeypatch.setattr(UserManager, "on_after_request_verify", _capture_token)

    r = await client.post("/auth/register", json={"email": "OWNER@bookstall.org", "password": "s3cret-pass"})
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["role"] == "seller"
    assert body["is_superuser"] is False
    assert body["is_verified"] is False

    r = await client.post("/auth/register", json={"email": "volunteer@bookstall.org", "password": "s3cret-pass", "name": "Gopal"})
    assert r.status_code == 201
    assert r.json()["role"] == "seller"
    assert r.json()["name"] == "Gopal"

    r = await client.post("/auth/request-verify-token", json={"email": "owner@bookstall.org"})
    assert r.status_code == 202
    r = await client.post("/auth/verify", json={"token": tokens[-1]})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["is_verified"] is True
    assert body["role"] == "superAdmin"
    assert body["is_superuser"] is True


@pytest.mark.asyncio
async def test_jwt_login_gives_access(client, session):
    await make_location(session, "Main", is_default=True)
    r = await client.post("/auth/register", json={"email": "volunteer@bookstall.org", "password": "s3cret-pass"})
    assert r.status_code == 201

    r = await client.get("/locations/")
    assert r.status_code == 401

    r = await client.post("/auth/jwt/login", data={"username": "volunteer@bookstall.org", "password": "s3cret-pass"})
    assert r.status_code == 200, r.text
    token = r.json()["access_token"]

    r = await client.get("/locations/", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert [loc["name"] for loc in r.json()] == ["Main"]


@pytest.mark.asyncio
async def test_admin_manages_roles(client, session, login_as):
    admin = login_as(await make_user(session, "admin"))
    seller = await make_user(session, "seller")

    r = await client.get("/users/")
    assert r.status_code == 200
    assert {u["email"] for u in r.json()} == {admin.email, seller.email}

    r = await client.patch(f"/users/{seller.id}/role", json={"role": "manager"})
    assert r.status_code == 200
    assert r.json()["role"] == "manager"

    r = await client.patch(f"/users/{seller.id}/role", json={"role": "superAdmin"})
    assert r.status_code == 403

    r = await client.patch(f"/users/{admin.id}/role", json={"role": "seller"})
    assert r.status_code == 400

    r = await client.patch(f"/users/{seller.id}/status", json={"is_active": False})
    assert r.status_code == 200
    assert r.json()["is_active"] is False


@pytest.mark.asyncio
async def test_super_admin_can_grant_super_admin(client, session, login_as):
    login_as(await make_user(session, "superAdmin"))
    manager = await make_user(session, "manager")

    r = await client.patch(f"/users/{manager.id}/role", json={"role": "superAdmin"})
    assert r.status_code == 200
    body = r.json()
    assert body["role"] == "superAdmin"
    assert body["is_superuser"] is True


@pytest.mark.asyncio
async def test_sellers_cannot_list_users(client, session, login_as):
    login_as(await make_user(session, "seller"))

    r = await client.get("/users/")
    assert r.status_code == 403
