"""
Task API tests: creation with children, updates with history, toggles,
deletion and assignment notifications.
"""
import pytest
from httpx import AsyncClient
from sqlalchemy import select

from teamdesk.models import EmailNotification, NotificationStatus, TaskHistory


async def create_task(client: AsyncClient, headers: dict, **overrides) -> dict:
    payload = {"title": "Write release notes", "description": "For 1.0", **overrides}
    response = await client.post("/api/v1/tasks", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestTaskCreation:

    @pytest.mark.asyncio
    async def test_create_task_with_children(self, client: AsyncClient, test_user, other_user, auth_headers):
        task = await create_task(
            client, auth_headers,
            priority="high",
            responsible_id=other_user.id,
            participant_ids=[other_user.id],
            subtasks=[{"title": "Draft"}, {"title": "Review", "completed": True}],
            steps=[{"title": "First"}, {"title": "Second"}],
        )

        assert task["status"] == "todo"
        assert task["priority"] == "high"
        assert task["creator_id"] == test_user.id
        assert task["responsible"]["id"] == other_user.id
        assert [p["id"] for p in task["participants"]] == [other_user.id]
        assert {s["title"]: s["completed"] for s in task["subtasks"]} == {"Draft": False, "Review": True}
        assert [(s["title"], s["order"]) for s in task["steps"]] == [("First", 0), ("Second", 1)]

    @pytest.mark.asyncio
    async def test_status_is_forced_to_todo(self, client: AsyncClient, auth_headers):
        task = await create_task(client, auth_headers, status="done")

        assert task["status"] == "todo"

    @pytest.mark.asyncio
    async def test_unknown_participant_rejected(self, client: AsyncClient, auth_headers):
        response = await client.post(
            "/api/v1/tasks",
            json={"title": "x", "participant_ids": ["00000000-0000-0000-0000-000000000000"]},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert "Unknown user id" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_invalid_stage_rejected(self, client: AsyncClient, auth_headers):
        response = await client.post(
            "/api/v1/tasks",
            json={"title": "x", "stage_id": "00000000-0000-0000-0000-000000000000"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid stage"

    @pytest.mark.asyncio
    async def test_creation_records_history(self, client: AsyncClient, auth_headers):
        task = await create_task(client, auth_headers)

        response = await client.get(f"/api/v1/tasks/{task['id']}/history", headers=auth_headers)

        assert response.status_code == 200
        history = response.json()
        assert [h["action"] for h in history] == ["created"]

    @pytest.mark.asyncio
    async def test_assignment_creates_notification_rows(
        self, client: AsyncClient, db_session, test_user, other_user, auth_headers
    ):
        """SMTP is unconfigured in tests, so rows exist but end up failed"""
        task = await create_task(client, auth_headers, responsible_id=other_user.id, participant_ids=[test_user.id])

        rows = (await db_session.execute(select(EmailNotification))).scalars().all()

        assert [r.user_id for r in rows] == [other_user.id]
        assert rows[0].subject == "New Task Assignment: Write release notes"
        assert rows[0].related_entity_id == task["id"]
        assert rows[0].status == NotificationStatus.FAILED

    @pytest.mark.asyncio
    async def test_assignment_respects_preference(self, client: AsyncClient, db_session, other_user, auth_headers):
        other_user.notification_preferences = {"task_assigned": False}
        await db_session.commit()

        await create_task(client, auth_headers, responsible_id=other_user.id)

        rows = (await db_session.execute(select(EmailNotification))).scalars().all()
        assert rows == []


class TestTaskUpdates:

    @pytest.mark.asyncio
    async def test_update_records_changes(self, client: AsyncClient, db_session, auth_headers):
        task = await create_task(client, auth_headers)

        response = await client.put(
            f"/api/v1/tasks/{task['id']}",
            json={"title": "Renamed", "priority": "low"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["title"] == "Renamed"

        history = (await client.get(f"/api/v1/tasks/{task['id']}/history", headers=auth_headers)).json()
        assert history[0]["action"] == "updated"
        assert history[0]["details"]["changes"]["title"] == {"from": "Write release notes", "to": "Renamed"}
        assert history[0]["details"]["changes"]["priority"] == {"from": "medium", "to": "low"}

    @pytest.mark.asyncio
    async def test_update_replaces_participants(self, client: AsyncClient, test_user, other_user, auth_headers):
        task = await create_task(client, auth_headers, participant_ids=[test_user.id])

        response = await client.put(
            f"/api/v1/tasks/{task['id']}",
            json={"participant_ids": [other_user.id]},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert [p["id"] for p in response.json()["participants"]] == [other_user.id]

    @pytest.mark.asyncio
    async def test_status_change(self, client: AsyncClient, auth_headers):
        task = await create_task(client, auth_headers)

        response = await client.patch(
            f"/api/v1/tasks/{task['id']}/status", json={"status": "in-progress"}, headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["status"] == "in-progress"

        history = (await client.get(f"/api/v1/tasks/{task['id']}/history", headers=auth_headers)).json()
        assert history[0]["action"] == "status_changed"
        assert history[0]["details"] == {"from": "todo", "to": "in-progress"}

    @pytest.mark.asyncio
    async def test_invalid_status_rejected(self, client: AsyncClient, auth_headers):
        task = await create_task(client, auth_headers)

        response = await client.patch(
            f"/api/v1/tasks/{task['id']}/status", json={"status": "blocked"}, headers=auth_headers
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_toggle_subtask_and_step(self, client: AsyncClient, auth_headers):
        task = await create_task(client, auth_headers, subtasks=[{"title": "a"}], steps=[{"title": "b"}])
        subtask_id = task["subtasks"][0]["id"]
        step_id = task["steps"][0]["id"]

        subtask = await client.patch(
            f"/api/v1/tasks/subtasks/{subtask_id}/status", json={"completed": True}, headers=auth_headers
        )
        step = await client.patch(
            f"/api/v1/tasks/steps/{step_id}/status", json={"completed": True}, headers=auth_headers
        )

        assert subtask.status_code == 200 and subtask.json()["completed"] is True
        assert step.status_code == 200 and step.json()["completed"] is True

        detail = (await client.get(f"/api/v1/tasks/{task['id']}", headers=auth_headers)).json()
        assert detail["subtasks"][0]["completed"] is True
        assert detail["steps"][0]["completed"] is True

    @pytest.mark.asyncio
    async def test_toggle_requires_completed(self, client: AsyncClient, auth_headers):
        task = await create_task(client, auth_headers, subtasks=[{"title": "a"}])

        response = await client.patch(
            f"/api/v1/tasks/subtasks/{task['subtasks'][0]['id']}/status", json={}, headers=auth_headers
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_toggle_unknown_subtask(self, client: AsyncClient, auth_headers):
        response = await client.patch(
            "/api/v1/tasks/subtasks/00000000-0000-0000-0000-000000000000/status",
            json={"completed": True},
            headers=auth_headers,
        )

        assert response.status_code == 404


class TestTaskDeletion:

    @pytest.mark.asyncio
    async def test_delete_removes_task_and_children(self, client: AsyncClient, db_session, auth_headers):
        task = await create_task(client, auth_headers, subtasks=[{"title": "a"}])
        await client.post("/api/v1/comments", json={"task_id": task["id"], "content": "hi"}, headers=auth_headers)

        response = await client.delete(f"/api/v1/tasks/{task['id']}", headers=auth_headers)

        assert response.status_code == 204
        assert (await client.get(f"/api/v1/tasks/{task['id']}", headers=auth_headers)).status_code == 404

        history = (await db_session.execute(
            select(TaskHistory).where(TaskHistory.task_id == task["id"])
        )).scalars().all()
        assert history == []

    @pytest.mark.asyncio
    async def test_delete_unknown_task(self, client: AsyncClient, auth_headers):
        response = await client.delete(
            "/api/v1/tasks/00000000-0000-0000-0000-000000000000", headers=auth_headers
        )

        assert response.status_code == 404


@pytest.mark.asyncio
async def test_list_tasks_newest_first(client: AsyncClient, auth_headers):
    first = await create_task(client, auth_headers, title="first")
    second = await create_task(client, auth_headers, title="second")

    response = await client.get("/api/v1/tasks", headers=auth_headers)

    assert response.status_code == 200
    ids = [t["id"] for t in response.json()]
    assert set(ids) == {first["id"], second["id"]}
