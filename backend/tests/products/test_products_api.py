from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from devisfacture.products.models import Product, ProductKind

pytestmark = pytest.mark.asyncio

PRODUCTS_URL = "/api/v1/products/"


async def test_create_product_with_initial_stock(test_client: AsyncClient, auth_headers_premium: dict):
    """Le stock initial est enregistré comme une première entrée du journal."""
    response = await test_client.post(PRODUCTS_URL, json={
        "designation": "Paillage écorces", "default_price_ht": "8.50", "default_tax_rate": "10",
        "stock_tracked": True, "minimum_stock": "5", "initial_stock": "3",
    }, headers=auth_headers_premium)
    assert response.status_code == 201, response.text
    product = response.json()
    assert Decimal(product["current_stock"]) == Decimal("3")
    assert product["low_stock"] is True

    movements = await test_client.get("/api/v1/stock-movements/", params={"product_id": product["id"]},
                                      headers=auth_headers_premium)
    assert movements.json()["total"] == 1
    assert movements.json()["items"][0]["notes"] == "Stock initial"


async def test_create_product_invalid_tax_rate(test_client: AsyncClient, auth_headers_active: dict):
    response = await test_client.post(PRODUCTS_URL, json={"designation": "Gravier", "default_tax_rate": "19.6"},
                                      headers=auth_headers_active)
    assert response.status_code == 400


async def test_standard_products_are_shared_and_read_only(
    test_client: AsyncClient, db_session: AsyncSession, auth_headers_active: dict
):
    standard = Product(designation="Main d'oeuvre", kind=ProductKind.STANDARD.value, default_price_ht=Decimal("45"))
    db_session.add(standard)
    await db_session.commit()
    await db_session.refresh(standard)

    listing = await test_client.get(PRODUCTS_URL, headers=auth_headers_active)
    assert [p["designation"] for p in listing.json()["items"]] == ["Main d'oeuvre"]

    response = await test_client.patch(f"{PRODUCTS_URL}{standard.id}", json={"default_price_ht": "50"},
                                       headers=auth_headers_active)
    assert response.status_code == 400


async def test_deactivated_product_is_hidden(test_client: AsyncClient, auth_headers_active: dict):
    created = (await test_client.post(PRODUCTS_URL, json={"designation": "Bordure"},
                                      headers=auth_headers_active)).json()
    response = await test_client.delete(f"{PRODUCTS_URL}{created['id']}", headers=auth_headers_active)
    assert response.status_code == 200
    assert response.json()["active"] is False

    assert (await test_client.get(PRODUCTS_URL, headers=auth_headers_active)).json()["total"] == 0
    with_inactive = await test_client.get(PRODUCTS_URL, params={"include_inactive": True}, headers=auth_headers_active)
    assert with_inactive.json()["total"] == 1


async def test_reference_is_unique_per_user_ignoring_case(test_client: AsyncClient, auth_headers_active: dict,
                                                          auth_headers_premium: dict):
    first = await test_client.post(PRODUCTS_URL, json={"designation": "Gazon", "reference": " gaz-10 "},
                                   headers=auth_headers_active)
    assert first.status_code == 201
    assert first.json()["reference"] == "GAZ-10"

    duplicate = await test_client.post(PRODUCTS_URL, json={"designation": "Gazon bis", "reference": "Gaz-10"},
                                       headers=auth_headers_active)
    assert duplicate.status_code == 409
    assert duplicate.json()["error"] == "Référence déjà utilisée : GAZ-10."

    # Un autre artisan peut utiliser la même référence
    other = await test_client.post(PRODUCTS_URL, json={"designation": "Gazon", "reference": "GAZ-10"},
                                   headers=auth_headers_premium)
    assert other.status_code == 201


async def test_update_rejects_reference_of_another_product(test_client: AsyncClient, auth_headers_active: dict):
    await test_client.post(PRODUCTS_URL, json={"designation": "Dalle", "reference": "DAL-1"}, headers=auth_headers_active)
    second = (await test_client.post(PRODUCTS_URL, json={"designation": "Pavé", "reference": "PAV-1"},
                                     headers=auth_headers_active)).json()

    conflict = await test_client.patch(f"{PRODUCTS_URL}{second['id']}", json={"reference": "dal-1"},
                                       headers=auth_headers_active)
    assert conflict.status_code == 409

    # Conserver sa propre référence n'est pas un doublon
    same = await test_client.patch(f"{PRODUCTS_URL}{second['id']}", json={"reference": "pav-1", "designation": "Pavé granit"},
                                   headers=auth_headers_active)
    assert same.status_code == 200
    assert same.json()["reference"] == "PAV-1"
