import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio

AUTH_URL = "/api/v1/auth"


async def test_register_starts_trial(test_client: AsyncClient):
    """L'inscription crée le compte, le profil et une période d'essai."""
    response = await test_client.post(f"{AUTH_URL}/register", json={
        "email": "Nouvel.Artisan@Example.com", "password": "motdepasse123", "raison_sociale": "Paysages Durand",
    })
    assert response.status_code == 201, response.text
    assert response.json()["email"] == "nouvel.artisan@example.com"

    token = await test_client.post(f"{AUTH_URL}/token", data={
        "username": "nouvel.artisan@example.com", "password": "motdepasse123",
    })
    assert token.status_code == 200
    headers = {"Authorization": f"Bearer {token.json()['access_token']}"}

    overview = (await test_client.get("/api/v1/subscriptions/me", headers=headers)).json()
    assert overview["main_plan"]["status"] == "trial"
    assert overview["entitlement"]["trial_active"] is True
    assert overview["entitlement"]["has_access"] is True
    assert overview["premium_option"]["active"] is False

    profile = (await test_client.get("/api/v1/profiles/me", headers=headers)).json()
    assert profile["raison_sociale"] == "Paysages Durand"


async def test_register_duplicate_email(test_client: AsyncClient, trial_user):
    response = await test_client.post(f"{AUTH_URL}/register", json={
        "email": "essai@example.com", "password": "motdepasse123",
    })
    assert response.status_code == 409


async def test_register_short_password(test_client: AsyncClient):
    response = await test_client.post(f"{AUTH_URL}/register", json={"email": "a@example.com", "password": "court"})
    assert response.status_code == 400


async def test_login_wrong_password(test_client: AsyncClient, trial_user):
    response = await test_client.post(f"{AUTH_URL}/token", data={"username": "essai@example.com", "password": "faux"})
    assert response.status_code == 401


async def test_me_with_invalid_token(test_client: AsyncClient):
    response = await test_client.get(f"{AUTH_URL}/me", headers={"Authorization": "Bearer invalide"})
    assert response.status_code == 401
