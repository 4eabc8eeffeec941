from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from devisfacture.clients.models import Client
from devisfacture.invoices.exceptions import InvoiceAlreadyExistsException
from devisfacture.invoices.models import Invoice
from devisfacture.invoices.repositories import SQLAlchemyInvoiceRepository
from devisfacture.users.models import User

pytestmark = pytest.mark.asyncio

QUOTES_URL = "/api/v1/quotes/"
INVOICES_URL = "/api/v1/invoices/"


async def _accepted_quote(test_client: AsyncClient, headers: dict, payload: dict) -> dict:
    quote = (await test_client.post(QUOTES_URL, json=payload, headers=headers)).json()
    response = await test_client.patch(f"{QUOTES_URL}{quote['id']}/status", json={"status": "accepted"},
                                       headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


async def test_convert_accepted_quote(
    test_client: AsyncClient, auth_headers_active: dict, client_of_active_user: Client, accepted_quote_payload
):
    """DEV-0001 devient FA-0001 avec les mêmes lignes et les mêmes totaux."""
    quote = await _accepted_quote(test_client, auth_headers_active, accepted_quote_payload(client_of_active_user.id))

    response = await test_client.post(f"{INVOICES_URL}from-quote", json={"quote_id": quote["id"]},
                                      headers=auth_headers_active)
    assert response.status_code == 201, response.text
    invoice = response.json()
    assert invoice["number"] == "FA-0001"
    assert invoice["quote_id"] == quote["id"]
    assert invoice["status"] == "unpaid"
    assert invoice["locked"] is True
    assert Decimal(invoice["total_ttc"]) == Decimal("240")
    assert Decimal(invoice["remaining_balance"]) == Decimal("240")
    assert [line["designation"] for line in invoice["lines"]] == ["Taille de haie"]

    # Le devis facturé est verrouillé
    locked_quote = (await test_client.get(f"{QUOTES_URL}{quote['id']}", headers=auth_headers_active)).json()
    assert locked_quote["locked"] is True
    assert locked_quote["invoice_id"] == invoice["id"]
    edit = await test_client.patch(f"{QUOTES_URL}{quote['id']}", json={"lines": []}, headers=auth_headers_active)
    assert edit.status_code == 400
    delete = await test_client.delete(f"{QUOTES_URL}{quote['id']}", headers=auth_headers_active)
    assert delete.status_code == 400


async def test_convert_twice_is_conflict(
    test_client: AsyncClient, auth_headers_active: dict, client_of_active_user: Client, accepted_quote_payload
):
    quote = await _accepted_quote(test_client, auth_headers_active, accepted_quote_payload(client_of_active_user.id))
    first = await test_client.post(f"{QUOTES_URL}{quote['id']}/invoice", headers=auth_headers_active)
    assert first.status_code == 201
    second = await test_client.post(f"{QUOTES_URL}{quote['id']}/invoice", headers=auth_headers_active)
    assert second.status_code == 409
    assert second.json()["error"] == "Une facture existe déjà pour ce devis."


async def test_convert_draft_quote_is_refused(
    test_client: AsyncClient, auth_headers_active: dict, client_of_active_user: Client, accepted_quote_payload
):
    quote = (await test_client.post(QUOTES_URL, json=accepted_quote_payload(client_of_active_user.id),
                                    headers=auth_headers_active)).json()
    response = await test_client.post(f"{INVOICES_URL}from-quote", json={"quote_id": quote["id"]},
                                      headers=auth_headers_active)
    assert response.status_code == 400
    assert response.json()["error"] == "Le devis doit être accepté pour facturer."


async def test_convert_unknown_quote_is_404(test_client: AsyncClient, auth_headers_active: dict):
    response = await test_client.post(f"{INVOICES_URL}from-quote", json={"quote_id": 999},
                                      headers=auth_headers_active)
    assert response.status_code == 404


async def test_duplicate_insert_maps_to_already_exists(
    db_session: AsyncSession, test_client: AsyncClient, auth_headers_active: dict, active_user: User,
    client_of_active_user: Client, accepted_quote_payload
):
    """La contrainte d'unicité sur quote_id couvre une conversion concurrente."""
    quote = await _accepted_quote(test_client, auth_headers_active, accepted_quote_payload(client_of_active_user.id))
    await test_client.post(f"{QUOTES_URL}{quote['id']}/invoice", headers=auth_headers_active)

    repository = SQLAlchemyInvoiceRepository(db_session=db_session)
    duplicate = Invoice(user_id=active_user.id, client_id=client_of_active_user.id, quote_id=quote["id"],
                        number="FA-9999")
    with pytest.raises(InvoiceAlreadyExistsException):
        await repository.add(duplicate)


async def test_cancel_invoice_without_payment(
    test_client: AsyncClient, auth_headers_active: dict, client_of_active_user: Client, accepted_quote_payload
):
    quote = await _accepted_quote(test_client, auth_headers_active, accepted_quote_payload(client_of_active_user.id))
    invoice = (await test_client.post(f"{QUOTES_URL}{quote['id']}/invoice", headers=auth_headers_active)).json()

    response = await test_client.post(f"{INVOICES_URL}{invoice['id']}/cancel", headers=auth_headers_active)
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"

    again = await test_client.post(f"{INVOICES_URL}{invoice['id']}/cancel", headers=auth_headers_active)
    assert again.status_code == 200

    listing = await test_client.get(INVOICES_URL, params={"status": "cancelled"}, headers=auth_headers_active)
    assert listing.json()["total"] == 1
    assert listing.headers["Content-Range"] == "invoices 0-0/1"


async def test_invoice_of_other_user_is_404(
    test_client: AsyncClient, auth_headers_active: dict, auth_headers_premium: dict,
    client_of_active_user: Client, accepted_quote_payload
):
    quote = await _accepted_quote(test_client, auth_headers_active, accepted_quote_payload(client_of_active_user.id))
    invoice = (await test_client.post(f"{QUOTES_URL}{quote['id']}/invoice", headers=auth_headers_active)).json()
    response = await test_client.get(f"{INVOICES_URL}{invoice['id']}", headers=auth_headers_premium)
    assert response.status_code == 404
