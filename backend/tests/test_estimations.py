"""Estimations with stock-priced line items, and the companies that issue proformas"""
import pytest
from httpx import AsyncClient

MISSING_ID = "00000000-0000-0000-0000-000000000000"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


async def create_estimation(client: AsyncClient, headers: dict, **overrides) -> dict:
    payload = {"name": "Server room", "date": "2026-03-01", "client_name": "Globex"}
    payload.update(overrides)
    response = await client.post("/api/v1/estimations", json=payload, headers=headers)
    assert response.status_code == 201
    return response.json()


async def add_item(client: AsyncClient, headers: dict, estimation_id: str, stock_item_id: str, quantity: int):
    return await client.post(
        f"/api/v1/estimations/{estimation_id}/items",
        json={"stock_item_id": stock_item_id, "quantity": quantity},
        headers=headers
    )


async def create_company(client: AsyncClient, headers: dict, logo: bool = False, **fields) -> dict:
    data = {"name": "Initech", "address": "4120 Freidrich Ln"}
    data.update(fields)
    files = {"logo": ("logo.png", PNG_BYTES, "image/png")} if logo else None
    response = await client.post("/api/v1/companies", data=data, files=files, headers=headers)
    assert response.status_code == 201
    return response.json()


class TestEstimations:

    @pytest.mark.asyncio
    async def test_create_starts_empty(self, client: AsyncClient, test_user, auth_headers):
        estimation = await create_estimation(client, auth_headers)

        assert estimation["total_cost"] == 0
        assert estimation["items"] == []
        assert estimation["created_by_id"] == test_user.id

    @pytest.mark.asyncio
    async def test_requires_login(self, client: AsyncClient):
        response = await client.get("/api/v1/estimations")

        assert response.status_code in (401, 403)

    @pytest.mark.asyncio
    async def test_update_and_list(self, client: AsyncClient, auth_headers):
        estimation = await create_estimation(client, auth_headers)

        updated = await client.put(
            f"/api/v1/estimations/{estimation['id']}",
            json={"client_name": "Initrode", "name": None},
            headers=auth_headers
        )
        listed = await client.get("/api/v1/estimations", headers=auth_headers)

        assert updated.json()["client_name"] == "Initrode"
        assert updated.json()["name"] == "Server room"
        assert [e["id"] for e in listed.json()] == [estimation["id"]]

    @pytest.mark.asyncio
    async def test_unknown_estimation(self, client: AsyncClient, auth_headers):
        response = await client.get(f"/api/v1/estimations/{MISSING_ID}", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "ESTIMATION_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_delete_unused(self, client: AsyncClient, auth_headers, stock_items):
        estimation = await create_estimation(client, auth_headers)
        await add_item(client, auth_headers, estimation["id"], stock_items["laptop"].id, 1)

        response = await client.delete(f"/api/v1/estimations/{estimation['id']}", headers=auth_headers)
        assert response.status_code == 204

        missing = await client.get(f"/api/v1/estimations/{estimation['id']}", headers=auth_headers)
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_while_priced_by_proforma(self, client: AsyncClient, admin_auth_headers):
        estimation = await create_estimation(client, admin_auth_headers)
        await client.post(
            "/api/v1/proformas",
            json={"proforma_number": "PF-1", "estimation_id": estimation["id"]},
            headers=admin_auth_headers
        )

        response = await client.delete(f"/api/v1/estimations/{estimation['id']}", headers=admin_auth_headers)

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "CONFLICT"
        assert response.json()["error"]["details"]["proformas"] == 1


class TestEstimationItems:

    @pytest.mark.asyncio
    async def test_line_uses_stock_cost(self, client: AsyncClient, auth_headers, stock_items):
        estimation = await create_estimation(client, auth_headers)

        response = await add_item(client, auth_headers, estimation["id"], stock_items["laptop"].id, 3)

        assert response.status_code == 201
        item = response.json()
        assert item["stock_item_name"] == "Laptop"
        assert item["unit_cost"] == 950.0
        assert item["total_cost"] == 2850.0
        assert item["estimation_id"] == estimation["id"]

    @pytest.mark.asyncio
    async def test_total_follows_every_change(self, client: AsyncClient, auth_headers, stock_items):
        estimation = await create_estimation(client, auth_headers)
        url = f"/api/v1/estimations/{estimation['id']}"
        laptop = (await add_item(client, auth_headers, estimation["id"], stock_items["laptop"].id, 1)).json()
        mouse = (await add_item(client, auth_headers, estimation["id"], stock_items["mouse"].id, 2)).json()

        assert (await client.get(url, headers=auth_headers)).json()["total_cost"] == 1000.0

        changed = await client.put(f"{url}/items/{mouse['id']}", json={"quantity": 6}, headers=auth_headers)
        assert changed.json()["total_cost"] == 150.0
        assert (await client.get(url, headers=auth_headers)).json()["total_cost"] == 1100.0

        removed = await client.delete(f"{url}/items/{laptop['id']}", headers=auth_headers)
        assert removed.status_code == 204
        after = (await client.get(url, headers=auth_headers)).json()
        assert after["total_cost"] == 150.0
        assert [i["id"] for i in after["items"]] == [mouse["id"]]

    @pytest.mark.asyncio
    async def test_unknown_stock_item(self, client: AsyncClient, auth_headers):
        estimation = await create_estimation(client, auth_headers)

        response = await add_item(client, auth_headers, estimation["id"], MISSING_ID, 1)

        assert response.status_code == 400
        assert response.json()["error"]["details"]["field"] == "stock_item_id"

    @pytest.mark.asyncio
    async def test_quantity_must_be_positive(self, client: AsyncClient, auth_headers, stock_items):
        estimation = await create_estimation(client, auth_headers)

        response = await add_item(client, auth_headers, estimation["id"], stock_items["mouse"].id, 0)

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_item_from_another_estimation(self, client: AsyncClient, auth_headers, stock_items):
        first = await create_estimation(client, auth_headers)
        second = await create_estimation(client, auth_headers, name="Lobby")
        item = (await add_item(client, auth_headers, first["id"], stock_items["mouse"].id, 1)).json()

        response = await client.put(
            f"/api/v1/estimations/{second['id']}/items/{item['id']}", json={"quantity": 2}, headers=auth_headers
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "ESTIMATION_ITEM_NOT_FOUND"


class TestCompanies:

    @pytest.mark.asyncio
    async def test_create_with_logo(self, client: AsyncClient, auth_headers, upload_dir):
        company = await create_company(client, auth_headers, logo=True, email="billing@initech.com")

        assert company["logo"].endswith("-logo.png")
        assert company["email"] == "billing@initech.com"
        assert (upload_dir / company["logo"]).read_bytes() == PNG_BYTES

        served = await client.get(f"/api/v1/uploads/file/{company['logo']}")
        assert served.status_code == 200
        assert served.content == PNG_BYTES

    @pytest.mark.asyncio
    async def test_invalid_email(self, client: AsyncClient, auth_headers):
        response = await client.post(
            "/api/v1/companies", data={"name": "Bad", "address": "Nowhere", "email": "not-an-email"},
            headers=auth_headers
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_single_default(self, client: AsyncClient, auth_headers):
        first = await create_company(client, auth_headers, is_default="true")
        second = await create_company(client, auth_headers, name="Initrode", is_default="true")

        listed = await client.get("/api/v1/companies", headers=auth_headers)

        defaults = [c["id"] for c in listed.json() if c["is_default"]]
        assert defaults == [second["id"]]
        assert first["id"] in [c["id"] for c in listed.json()]

    @pytest.mark.asyncio
    async def test_update_replaces_logo(self, client: AsyncClient, auth_headers, upload_dir):
        company = await create_company(client, auth_headers, logo=True)

        response = await client.put(
            f"/api/v1/companies/{company['id']}",
            data={"name": "Initech Corp", "address": "4120 Freidrich Ln"},
            files={"logo": ("new.png", PNG_BYTES, "image/png")},
            headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["name"] == "Initech Corp"
        assert response.json()["logo"].endswith("-new.png")
        assert not (upload_dir / company["logo"]).exists()

    @pytest.mark.asyncio
    async def test_delete_keeps_proforma_copy(self, client: AsyncClient, admin_auth_headers, upload_dir):
        company = await create_company(client, admin_auth_headers, logo=True)
        estimation = await create_estimation(client, admin_auth_headers)
        proforma = await client.post("/api/v1/proformas", json={
            "proforma_number": "PF-9",
            "estimation_id": estimation["id"],
            "company_id": company["id"],
        }, headers=admin_auth_headers)

        response = await client.delete(f"/api/v1/companies/{company['id']}", headers=admin_auth_headers)
        assert response.status_code == 204
        assert not (upload_dir / company["logo"]).exists()

        kept = await client.get(f"/api/v1/proformas/{proforma.json()['id']}", headers=admin_auth_headers)
        assert kept.json()["company_id"] is None
        assert kept.json()["company_name"] == "Initech"

    @pytest.mark.asyncio
    async def test_unknown_company(self, client: AsyncClient, auth_headers):
        response = await client.get(f"/api/v1/companies/{MISSING_ID}", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Company not found"
