import pytest
from sqlalchemy import func, select

from apps.auth.schemas import UserLogin, UserRegister
from apps.auth.service import authenticate_user, register_user
from common.exceptions import AuthenticationError, ConflictError, ValidationError
from constants.roles import ADMIN
from models.user import Profile, User
from models.workspace import Workspace, WorkspaceMember

from conftest import PASSWORD, api_user, failing_insert


async def _count(db, model):
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()


def _registration(email="new@example.com", full_name=None, password=PASSWORD, confirm=None):
    return UserRegister(email=email, password=password, confirm_password=confirm or password, full_name=full_name)


async def test_registration_onboards_user(db):
    profile, workspace = await register_user(db, _registration("New@Example.com", full_name="Nadia"))

    assert profile.email == "new@example.com"
    assert profile.full_name == "Nadia"
    assert workspace.name == "Nadia's Workspace"
    assert workspace.created_by == profile.user_id

    members = (await db.execute(select(WorkspaceMember).where(WorkspaceMember.workspace_id == workspace.id))).scalars().all()
    assert [(m.user_id, m.role) for m in members] == [(profile.user_id, ADMIN)]


async def test_display_name_falls_back_to_email_local_part(db):
    profile, workspace = await register_user(db, _registration("robin@example.com"))
    assert profile.full_name == "robin"
    assert workspace.name == "robin's Workspace"


async def test_onboarding_is_all_or_nothing(db):
    with failing_insert(WorkspaceMember):
        with pytest.raises(RuntimeError):
            await register_user(db, _registration())

    assert await _count(db, User) == 0
    assert await _count(db, Profile) == 0
    assert await _count(db, Workspace) == 0


async def test_duplicate_email_conflicts(db):
    await register_user(db, _registration())
    with pytest.raises(ConflictError):
        await register_user(db, _registration("NEW@example.com"))
    assert await _count(db, User) == 1


async def test_weak_password_is_rejected(db):
    with pytest.raises(ValidationError):
        await register_user(db, _registration(password="password123"))
    with pytest.raises(ValidationError):
        await register_user(db, _registration(password=PASSWORD, confirm="Password124"))
    assert await _count(db, User) == 0


async def test_login_with_wrong_password(db):
    await register_user(db, _registration())
    with pytest.raises(AuthenticationError):
        await authenticate_user(db, UserLogin(email="new@example.com", password="Wrong12345"))

    tokens, profile = await authenticate_user(db, UserLogin(email="NEW@example.com", password=PASSWORD))
    assert tokens["token"] and tokens["refreshToken"]
    assert profile.email == "new@example.com"


class TestAuthRoutes:
    async def test_register_login_and_me(self, client):
        headers, workspace_id = await api_user(client, "owner@example.com", full_name="Olive Owner")

        res = await client.get("/api/auth/me", headers=headers)
        assert res.status_code == 200
        me = res.json()
        assert me["email"] == "owner@example.com"
        assert me["fullName"] == "Olive Owner"

        res = await client.get(f"/api/workspaces/{workspace_id}/role", headers=headers)
        assert res.json()["role"] == ADMIN

    async def test_update_me(self, client):
        headers, _ = await api_user(client, "owner@example.com")
        res = await client.patch("/api/auth/me", json={"full_name": "Renamed"}, headers=headers)
        assert res.status_code == 200
        assert res.json()["fullName"] == "Renamed"

    async def test_refresh(self, client):
        await api_user(client, "owner@example.com")
        login = (await client.post("/api/auth/login", json={"email": "owner@example.com", "password": PASSWORD})).json()

        res = await client.post("/api/auth/refresh", json={"refreshToken": login["refreshToken"]})
        assert res.status_code == 200
        assert set(res.json()) == {"token", "refreshToken"}

        res = await client.post("/api/auth/refresh", json={"refreshToken": login["token"]})
        assert res.status_code == 401

    async def test_bad_login(self, client):
        await api_user(client, "owner@example.com")
        res = await client.post("/api/auth/login", json={"email": "owner@example.com", "password": "Nope12345"})
        assert res.status_code == 401
        assert res.json()["error"] == "authentication_error"

    async def test_duplicate_registration(self, client):
        await api_user(client, "owner@example.com")
        res = await client.post(
            "/api/auth/register",
            json={"email": "owner@example.com", "password": PASSWORD, "confirm_password": PASSWORD},
        )
        assert res.status_code == 409

    async def test_oauth_token_endpoint(self, client):
        await api_user(client, "owner@example.com")
        res = await client.post("/api/auth/token", data={"username": "owner@example.com", "password": PASSWORD})
        assert res.status_code == 200
        assert res.json()["token_type"] == "bearer"

        res = await client.post("/api/auth/token", data={"username": "not-an-email", "password": PASSWORD})
        assert res.status_code == 401
