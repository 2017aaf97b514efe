"""Clients, the service catalog and services assigned to clients"""
import pytest
from httpx import AsyncClient


async def create_client(client: AsyncClient, headers: dict, **overrides) -> dict:
    payload = {
        "name": "Acme Corp",
        "type": "company",
        "contact_info": {"phone": "+1 555 0100", "email": "office@acme.com"},
    }
    payload.update(overrides)
    response = await client.post("/api/v1/clients", json=payload, headers=headers)
    assert response.status_code == 201
    return response.json()


async def create_service(client: AsyncClient, headers: dict, name: str = "Hosting") -> dict:
    response = await client.post("/api/v1/services", json={"name": name, "type": "software"}, headers=headers)
    assert response.status_code == 201
    return response.json()


class TestClientGate:

    @pytest.mark.asyncio
    async def test_denied_without_record(self, client: AsyncClient, auth_headers):
        response = await client.get("/api/v1/clients", headers=auth_headers)

        assert response.status_code == 403
        assert response.json()["detail"] == "Access denied. You do not have permission to view clients."

    @pytest.mark.asyncio
    async def test_access_manager_can_grant(self, client: AsyncClient, test_user, other_user,
                                            auth_headers, other_auth_headers, admin_auth_headers):
        granted = await client.post(
            f"/api/v1/clients/permissions/{test_user.id}",
            json={"can_manage_access": True},
            headers=admin_auth_headers
        )
        assert granted.status_code == 200

        response = await client.post(
            f"/api/v1/clients/permissions/{other_user.id}",
            json={"can_view_clients": True},
            headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json()["granted_by_id"] == test_user.id

        listed = await client.get("/api/v1/clients", headers=other_auth_headers)
        assert listed.status_code == 200

    @pytest.mark.asyncio
    async def test_grant_for_unknown_user(self, client: AsyncClient, admin_auth_headers):
        response = await client.post(
            "/api/v1/clients/permissions/00000000-0000-0000-0000-000000000000",
            json={"can_view_clients": True},
            headers=admin_auth_headers
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_view_only_cannot_delete(self, client: AsyncClient, test_user, auth_headers, admin_auth_headers):
        await client.post(
            f"/api/v1/clients/permissions/{test_user.id}",
            json={"can_view_clients": True, "can_manage_clients": True},
            headers=admin_auth_headers
        )
        acme = await create_client(client, auth_headers)

        response = await client.delete(f"/api/v1/clients/{acme['id']}", headers=auth_headers)

        assert response.status_code == 403
        assert response.json()["detail"] == "Access denied. You do not have permission to delete clients."


class TestClients:

    @pytest.mark.asyncio
    async def test_create_and_update(self, client: AsyncClient, admin_user, admin_auth_headers):
        acme = await create_client(client, admin_auth_headers)
        assert acme["created_by_id"] == admin_user.id
        assert acme["contact_info"]["phone"] == "+1 555 0100"

        updated = await client.put(
            f"/api/v1/clients/{acme['id']}", json={"is_active": False, "name": None}, headers=admin_auth_headers
        )
        assert updated.json()["is_active"] is False
        assert updated.json()["name"] == "Acme Corp"

        active = await client.get("/api/v1/clients", params={"is_active": True}, headers=admin_auth_headers)
        assert active.json() == []

    @pytest.mark.asyncio
    async def test_invalid_type(self, client: AsyncClient, admin_auth_headers):
        response = await client.post("/api/v1/clients", json={"name": "X", "type": "partner"}, headers=admin_auth_headers)

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_delete_removes_assigned_services(self, client: AsyncClient, admin_auth_headers):
        acme = await create_client(client, admin_auth_headers)
        hosting = await create_service(client, admin_auth_headers)
        assigned = await client.post("/api/v1/client-services", json={
            "client_id": acme["id"],
            "service_id": hosting["id"],
            "price": 20,
            "frequency": "monthly",
            "start_date": "2026-01-01",
        }, headers=admin_auth_headers)

        await client.delete(f"/api/v1/clients/{acme['id']}", headers=admin_auth_headers)

        response = await client.get(f"/api/v1/client-services/{assigned.json()['id']}", headers=admin_auth_headers)
        assert response.status_code == 404


class TestClientServices:

    @pytest.mark.asyncio
    async def test_assign_service(self, client: AsyncClient, admin_auth_headers):
        acme = await create_client(client, admin_auth_headers)
        hosting = await create_service(client, admin_auth_headers)

        response = await client.post("/api/v1/client-services", json={
            "client_id": acme["id"],
            "service_id": hosting["id"],
            "characteristics": ["remote", "long_term"],
            "price": 49.5,
            "frequency": "monthly",
            "start_date": "2026-01-01",
            "contract_file": "contracts/acme.pdf",
        }, headers=admin_auth_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["characteristics"] == ["remote", "long_term"]
        assert data["service"]["name"] == "Hosting"
        assert data["contract_file_upload_date"] is not None

        for_client = await client.get(f"/api/v1/client-services/client/{acme['id']}", headers=admin_auth_headers)
        assert [s["id"] for s in for_client.json()] == [data["id"]]

    @pytest.mark.asyncio
    async def test_end_before_start(self, client: AsyncClient, admin_auth_headers):
        acme = await create_client(client, admin_auth_headers)
        hosting = await create_service(client, admin_auth_headers)

        response = await client.post("/api/v1/client-services", json={
            "client_id": acme["id"],
            "service_id": hosting["id"],
            "price": 10,
            "frequency": "yearly",
            "start_date": "2026-06-01",
            "end_date": "2026-01-01",
        }, headers=admin_auth_headers)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_service(self, client: AsyncClient, admin_auth_headers):
        acme = await create_client(client, admin_auth_headers)

        response = await client.post("/api/v1/client-services", json={
            "client_id": acme["id"],
            "service_id": "00000000-0000-0000-0000-000000000000",
            "price": 10,
            "frequency": "weekly",
            "start_date": "2026-06-01",
        }, headers=admin_auth_headers)

        assert response.status_code == 400
        assert response.json()["detail"] == "Service not found"

    @pytest.mark.asyncio
    async def test_services_for_unknown_client(self, client: AsyncClient, admin_auth_headers):
        response = await client.get(
            "/api/v1/client-services/client/00000000-0000-0000-0000-000000000000", headers=admin_auth_headers
        )

        assert response.status_code == 404


class TestServiceCatalog:

    @pytest.mark.asyncio
    async def test_catalog_crud(self, client: AsyncClient, auth_headers):
        hosting = await create_service(client, auth_headers)

        updated = await client.put(
            f"/api/v1/services/{hosting['id']}", json={"description": "Managed VPS"}, headers=auth_headers
        )
        assert updated.json()["description"] == "Managed VPS"
        assert updated.json()["type"] == "software"

        deleted = await client.delete(f"/api/v1/services/{hosting['id']}", headers=auth_headers)
        assert deleted.status_code == 204

        listed = await client.get("/api/v1/services", headers=auth_headers)
        assert listed.json() == []
