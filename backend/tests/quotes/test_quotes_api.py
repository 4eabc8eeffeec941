from decimal import Decimal

import pytest
from httpx import AsyncClient

from devisfacture.clients.models import Client

pytestmark = pytest.mark.asyncio

QUOTES_URL = "/api/v1/quotes/"


async def test_create_quote_numbers_and_totals(
    test_client: AsyncClient, auth_headers_active: dict, client_of_active_user: Client, accepted_quote_payload
):
    """Le premier devis est DEV-0001, brouillon, avec totaux HT/TVA/TTC calculés."""
    response = await test_client.post(QUOTES_URL, json=accepted_quote_payload(client_of_active_user.id),
                                      headers=auth_headers_active)
    assert response.status_code == 201, response.text
    data = response.json()
    assert data["number"] == "DEV-0001"
    assert data["status"] == "draft"
    assert Decimal(data["total_ht"]) == Decimal("200")
    assert Decimal(data["total_tva"]) == Decimal("40")
    assert Decimal(data["total_ttc"]) == Decimal("240")
    assert data["locked"] is False
    assert len(data["lines"]) == 1
    assert Decimal(data["lines"][0]["total_ht"]) == Decimal("200")

    second = await test_client.post(QUOTES_URL, json=accepted_quote_payload(client_of_active_user.id),
                                    headers=auth_headers_active)
    assert second.json()["number"] == "DEV-0002"


async def test_create_quote_rejects_unknown_tax_rate(
    test_client: AsyncClient, auth_headers_active: dict, client_of_active_user: Client
):
    payload = {
        "client_id": client_of_active_user.id,
        "lines": [{"designation": "Pose", "quantity": "1", "unit_price_ht": "10", "tax_rate": "7"}],
    }
    response = await test_client.post(QUOTES_URL, json=payload, headers=auth_headers_active)
    assert response.status_code == 400
    assert "error" in response.json()


async def test_create_quote_for_foreign_client_is_404(
    test_client: AsyncClient, auth_headers_premium: dict, client_of_active_user: Client, accepted_quote_payload
):
    response = await test_client.post(QUOTES_URL, json=accepted_quote_payload(client_of_active_user.id),
                                      headers=auth_headers_premium)
    assert response.status_code == 404


async def test_update_quote_recomputes_totals(
    test_client: AsyncClient, auth_headers_active: dict, client_of_active_user: Client, accepted_quote_payload
):
    created = (await test_client.post(QUOTES_URL, json=accepted_quote_payload(client_of_active_user.id),
                                      headers=auth_headers_active)).json()
    new_lines = {"lines": [
        {"designation": "Tonte", "quantity": "1", "unit_price_ht": "50", "tax_rate": "10"},
        {"designation": "Évacuation", "quantity": "3", "unit_price_ht": "10", "tax_rate": "20"},
    ]}
    response = await test_client.patch(f"{QUOTES_URL}{created['id']}", json=new_lines, headers=auth_headers_active)
    assert response.status_code == 200, response.text
    data = response.json()
    assert Decimal(data["total_ht"]) == Decimal("80")
    assert Decimal(data["total_tva"]) == Decimal("11")
    assert Decimal(data["total_ttc"]) == Decimal("91")
    assert [line["designation"] for line in data["lines"]] == ["Tonte", "Évacuation"]


async def test_quote_status_change_and_filter(
    test_client: AsyncClient, auth_headers_active: dict, client_of_active_user: Client, accepted_quote_payload
):
    first = (await test_client.post(QUOTES_URL, json=accepted_quote_payload(client_of_active_user.id),
                                    headers=auth_headers_active)).json()
    await test_client.post(QUOTES_URL, json=accepted_quote_payload(client_of_active_user.id),
                           headers=auth_headers_active)

    response = await test_client.patch(f"{QUOTES_URL}{first['id']}/status", json={"status": "sent"},
                                       headers=auth_headers_active)
    assert response.status_code == 200
    assert response.json()["status"] == "sent"

    listing = await test_client.get(QUOTES_URL, params={"status": "sent"}, headers=auth_headers_active)
    assert listing.status_code == 200
    assert listing.json()["total"] == 1
    assert listing.headers["Content-Range"] == "quotes 0-0/1"


async def test_invalid_status_is_rejected(
    test_client: AsyncClient, auth_headers_active: dict, client_of_active_user: Client, accepted_quote_payload
):
    created = (await test_client.post(QUOTES_URL, json=accepted_quote_payload(client_of_active_user.id),
                                      headers=auth_headers_active)).json()
    response = await test_client.patch(f"{QUOTES_URL}{created['id']}/status", json={"status": "archived"},
                                       headers=auth_headers_active)
    assert response.status_code == 400


async def test_delete_draft_quote(
    test_client: AsyncClient, auth_headers_active: dict, client_of_active_user: Client, accepted_quote_payload
):
    created = (await test_client.post(QUOTES_URL, json=accepted_quote_payload(client_of_active_user.id),
                                      headers=auth_headers_active)).json()
    response = await test_client.delete(f"{QUOTES_URL}{created['id']}", headers=auth_headers_active)
    assert response.status_code == 204
    missing = await test_client.get(f"{QUOTES_URL}{created['id']}", headers=auth_headers_active)
    assert missing.status_code == 404


async def test_quotes_require_access(test_client: AsyncClient, auth_headers_expired: dict):
    response = await test_client.get(QUOTES_URL, headers=auth_headers_expired)
    assert response.status_code == 403
    assert "Abonnement requis" in response.json()["error"]


async def test_quotes_require_authentication(test_client: AsyncClient):
    response = await test_client.get(QUOTES_URL)
    assert response.status_code == 401
