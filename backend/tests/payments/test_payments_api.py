from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import AsyncClient

from devisfacture.clients.models import Client

pytestmark = pytest.mark.asyncio

QUOTES_URL = "/api/v1/quotes/"
INVOICES_URL = "/api/v1/invoices/"


@pytest_asyncio.fixture(scope="function")
async def invoice(test_client: AsyncClient, auth_headers_active: dict, client_of_active_user: Client,
                  accepted_quote_payload) -> dict:
    """Facture FA-0001 de 240 € TTC issue d'un devis accepté."""
    quote = (await test_client.post(QUOTES_URL, json=accepted_quote_payload(client_of_active_user.id),
                                    headers=auth_headers_active)).json()
    await test_client.patch(f"{QUOTES_URL}{quote['id']}/status", json={"status": "accepted"},
                            headers=auth_headers_active)
    response = await test_client.post(f"{QUOTES_URL}{quote['id']}/invoice", headers=auth_headers_active)
    assert response.status_code == 201, response.text
    return response.json()


async def _pay(test_client: AsyncClient, headers: dict, invoice_id: int, amount: str, mode: str = "transfer"):
    return await test_client.post(f"{INVOICES_URL}{invoice_id}/payments", json={"amount": amount, "mode": mode},
                                  headers=headers)


async def test_deposit_then_balance_settles_invoice(test_client: AsyncClient, auth_headers_active: dict, invoice: dict):
    """100 € d'acompte, puis 140 € de solde ; un centime de plus est refusé."""
    first = await _pay(test_client, auth_headers_active, invoice["id"], "100")
    assert first.status_code == 201, first.text
    assert first.json()["mode"] == "transfer"
    assert first.json()["mode_label"] == "Virement"

    state = (await test_client.get(f"{INVOICES_URL}{invoice['id']}", headers=auth_headers_active)).json()
    assert state["status"] == "partially_paid"
    assert Decimal(state["remaining_balance"]) == Decimal("140")

    prefill = await test_client.get(f"{INVOICES_URL}{invoice['id']}/payments/prefill", params={"intent": "balance"},
                                    headers=auth_headers_active)
    assert Decimal(prefill.json()["amount"]) == Decimal("140")

    second = await _pay(test_client, auth_headers_active, invoice["id"], "140", mode="check")
    assert second.status_code == 201

    state = (await test_client.get(f"{INVOICES_URL}{invoice['id']}", headers=auth_headers_active)).json()
    assert state["status"] == "paid"
    assert Decimal(state["paid_total"]) == Decimal("240")
    assert Decimal(state["remaining_balance"]) == Decimal("0")

    extra = await _pay(test_client, auth_headers_active, invoice["id"], "0.01")
    assert extra.status_code == 400
    assert extra.json()["error"] == "Le montant ne peut pas dépasser le reste à payer (0.00 €)."


async def test_payment_exceeding_balance_is_refused(test_client: AsyncClient, auth_headers_active: dict,
                                                    invoice: dict):
    response = await _pay(test_client, auth_headers_active, invoice["id"], "240.01")
    assert response.status_code == 400
    assert response.json()["error"] == "Le montant ne peut pas dépasser le reste à payer (240.00 €)."


@pytest.mark.parametrize("amount", ["0", "-10"])
async def test_non_positive_payment_is_refused(test_client: AsyncClient, auth_headers_active: dict, invoice: dict,
                                               amount: str):
    response = await _pay(test_client, auth_headers_active, invoice["id"], amount)
    assert response.status_code == 400
    assert response.json()["error"] == "Montant invalide."


async def test_unknown_payment_mode_is_refused(test_client: AsyncClient, auth_headers_active: dict, invoice: dict):
    response = await _pay(test_client, auth_headers_active, invoice["id"], "10", mode="bitcoin")
    assert response.status_code == 400


async def test_deposit_prefill_is_empty(test_client: AsyncClient, auth_headers_active: dict, invoice: dict):
    response = await test_client.get(f"{INVOICES_URL}{invoice['id']}/payments/prefill", params={"intent": "deposit"},
                                     headers=auth_headers_active)
    assert response.status_code == 200
    assert response.json()["amount"] is None
    assert Decimal(response.json()["remaining_balance"]) == Decimal("240")


async def test_reversal_reopens_balance(test_client: AsyncClient, auth_headers_active: dict, invoice: dict):
    payment = (await _pay(test_client, auth_headers_active, invoice["id"], "240")).json()

    reversal = await test_client.post(f"{INVOICES_URL}{invoice['id']}/payments/{payment['id']}/reverse",
                                      headers=auth_headers_active)
    assert reversal.status_code == 201, reversal.text
    assert Decimal(reversal.json()["amount"]) == Decimal("-240")
    assert reversal.json()["reverses_payment_id"] == payment["id"]

    state = (await test_client.get(f"{INVOICES_URL}{invoice['id']}", headers=auth_headers_active)).json()
    assert state["status"] == "unpaid"
    assert Decimal(state["remaining_balance"]) == Decimal("240")
    assert len(state["payments"]) == 2

    again = await test_client.post(f"{INVOICES_URL}{invoice['id']}/payments/{payment['id']}/reverse",
                                   headers=auth_headers_active)
    assert again.status_code == 409

    of_reversal = await test_client.post(
        f"{INVOICES_URL}{invoice['id']}/payments/{reversal.json()['id']}/reverse", headers=auth_headers_active
    )
    assert of_reversal.status_code == 400


async def test_paid_invoice_cannot_be_cancelled(test_client: AsyncClient, auth_headers_active: dict, invoice: dict):
    await _pay(test_client, auth_headers_active, invoice["id"], "50")
    response = await test_client.post(f"{INVOICES_URL}{invoice['id']}/cancel", headers=auth_headers_active)
    assert response.status_code == 400


async def test_cancelled_invoice_refuses_payments(test_client: AsyncClient, auth_headers_active: dict, invoice: dict):
    await test_client.post(f"{INVOICES_URL}{invoice['id']}/cancel", headers=auth_headers_active)
    response = await _pay(test_client, auth_headers_active, invoice["id"], "10")
    assert response.status_code == 400
    assert "annulée" in response.json()["error"]


async def test_list_payments(test_client: AsyncClient, auth_headers_active: dict, invoice: dict):
    await _pay(test_client, auth_headers_active, invoice["id"], "60", mode="cash")
    response = await test_client.get(f"{INVOICES_URL}{invoice['id']}/payments", headers=auth_headers_active)
    assert response.status_code == 200
    assert [p["mode"] for p in response.json()] == ["cash"]
