"""Direct messages and group channels"""
import pytest
from httpx import AsyncClient
from sqlalchemy import select

from teamdesk.models import EmailNotification


class TestDirectMessages:

    @pytest.mark.asyncio
    async def test_send_and_read_thread(self, client: AsyncClient, test_user, other_user,
                                        auth_headers, other_auth_headers):
        sent = await client.post(
            f"/api/v1/messages/{other_user.id}", json={"content": "Hello"}, headers=auth_headers
        )
        assert sent.status_code == 201
        assert sent.json()["sender"]["id"] == test_user.id

        await client.post(f"/api/v1/messages/{test_user.id}", json={"content": "Hi back"}, headers=other_auth_headers)

        thread = await client.get(f"/api/v1/messages/{other_user.id}", headers=auth_headers)
        assert [m["content"] for m in thread.json()] == ["Hello", "Hi back"]

    @pytest.mark.asyncio
    async def test_send_to_unknown_user(self, client: AsyncClient, auth_headers):
        response = await client.post(
            "/api/v1/messages/00000000-0000-0000-0000-000000000000", json={"content": "?"}, headers=auth_headers
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_empty_message_rejected(self, client: AsyncClient, other_user, auth_headers):
        response = await client.post(f"/api/v1/messages/{other_user.id}", json={"content": ""}, headers=auth_headers)

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_unread_count_and_mark_read(self, client: AsyncClient, test_user, other_user,
                                              auth_headers, other_auth_headers):
        for text in ("one", "two"):
            await client.post(f"/api/v1/messages/{other_user.id}", json={"content": text}, headers=auth_headers)

        unread = await client.get("/api/v1/messages/unread", headers=other_auth_headers)
        assert unread.json() == {"count": 2}

        marked = await client.post(f"/api/v1/messages/{test_user.id}/read", headers=other_auth_headers)
        assert marked.json() == {"updated": 2}

        unread = await client.get("/api/v1/messages/unread", headers=other_auth_headers)
        assert unread.json() == {"count": 0}

    @pytest.mark.asyncio
    async def test_conversations(self, client: AsyncClient, test_user, other_user, admin_user,
                                 auth_headers, other_auth_headers):
        await client.post(f"/api/v1/messages/{test_user.id}", json={"content": "from other"}, headers=other_auth_headers)
        await client.post(f"/api/v1/messages/{admin_user.id}", json={"content": "to admin"}, headers=auth_headers)

        response = await client.get("/api/v1/messages/conversations", headers=auth_headers)

        assert response.status_code == 200
        by_user = {c["user"]["id"]: c for c in response.json()}
        assert set(by_user) == {other_user.id, admin_user.id}
        assert by_user[other_user.id]["unread_count"] == 1
        assert by_user[other_user.id]["last_message"]["content"] == "from other"
        assert by_user[admin_user.id]["unread_count"] == 0

    @pytest.mark.asyncio
    async def test_message_email_follows_preference(self, client: AsyncClient, db_session, other_user, auth_headers):
        await client.post(f"/api/v1/messages/{other_user.id}", json={"content": "ping"}, headers=auth_headers)

        other_user.notification_preferences = {"private_message": False}
        await db_session.commit()
        await client.post(f"/api/v1/messages/{other_user.id}", json={"content": "ping again"}, headers=auth_headers)

        rows = (await db_session.execute(
            select(EmailNotification).where(EmailNotification.type == "private_message")
        )).scalars().all()
        assert len(rows) == 1
        assert rows[0].user_id == other_user.id


async def make_channel(client: AsyncClient, headers: dict, name: str = "general") -> dict:
    response = await client.post("/api/v1/channels", json={"name": name}, headers=headers)
    assert response.status_code == 201
    return response.json()


class TestChannels:

    @pytest.mark.asyncio
    async def test_creator_becomes_admin_member(self, client: AsyncClient, test_user, auth_headers):
        channel = await make_channel(client, auth_headers)

        members = await client.get(f"/api/v1/channels/{channel['id']}/members", headers=auth_headers)

        assert [(m["user_id"], m["is_admin"]) for m in members.json()] == [(test_user.id, True)]

        mine = await client.get("/api/v1/channels", headers=auth_headers)
        assert [c["id"] for c in mine.json()] == [channel["id"]]

    @pytest.mark.asyncio
    async def test_non_member_cannot_read(self, client: AsyncClient, auth_headers, other_auth_headers):
        channel = await make_channel(client, auth_headers)

        response = await client.get(f"/api/v1/channels/{channel['id']}/messages", headers=other_auth_headers)

        assert response.status_code == 403
        assert response.json()["detail"] == "Not a member of this channel"

    @pytest.mark.asyncio
    async def test_add_member_and_post(self, client: AsyncClient, other_user, auth_headers, other_auth_headers):
        channel = await make_channel(client, auth_headers)

        added = await client.post(
            f"/api/v1/channels/{channel['id']}/members", json={"user_id": other_user.id}, headers=auth_headers
        )
        assert added.status_code == 201
        assert added.json()["user"]["id"] == other_user.id

        posted = await client.post(
            f"/api/v1/channels/{channel['id']}/messages", json={"content": "hello all"}, headers=other_auth_headers
        )
        assert posted.status_code == 201
        assert posted.json()["sender"]["id"] == other_user.id

        messages = await client.get(f"/api/v1/channels/{channel['id']}/messages", headers=auth_headers)
        assert [m["content"] for m in messages.json()] == ["hello all"]

    @pytest.mark.asyncio
    async def test_duplicate_member(self, client: AsyncClient, test_user, auth_headers):
        channel = await make_channel(client, auth_headers)

        response = await client.post(
            f"/api/v1/channels/{channel['id']}/members", json={"user_id": test_user.id}, headers=auth_headers
        )

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_plain_member_cannot_add_members(self, client: AsyncClient, other_user, admin_user,
                                                   auth_headers, other_auth_headers):
        channel = await make_channel(client, auth_headers)
        await client.post(
            f"/api/v1/channels/{channel['id']}/members", json={"user_id": other_user.id}, headers=auth_headers
        )

        response = await client.post(
            f"/api/v1/channels/{channel['id']}/members", json={"user_id": admin_user.id}, headers=other_auth_headers
        )

        assert response.status_code == 403
        assert response.json()["detail"] == "Channel admin access required"

    @pytest.mark.asyncio
    async def test_member_can_leave(self, client: AsyncClient, other_user, auth_headers, other_auth_headers):
        channel = await make_channel(client, auth_headers)
        await client.post(
            f"/api/v1/channels/{channel['id']}/members", json={"user_id": other_user.id}, headers=auth_headers
        )

        left = await client.delete(
            f"/api/v1/channels/{channel['id']}/members/{other_user.id}", headers=other_auth_headers
        )
        assert left.status_code == 204

        again = await client.delete(
            f"/api/v1/channels/{channel['id']}/members/{other_user.id}", headers=auth_headers
        )
        assert again.status_code == 404

    @pytest.mark.asyncio
    async def test_update_channel(self, client: AsyncClient, auth_headers):
        channel = await make_channel(client, auth_headers)

        response = await client.put(
            f"/api/v1/channels/{channel['id']}", json={"description": "All hands"}, headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["description"] == "All hands"
        assert response.json()["name"] == "general"
