"""Integration tests for the project, sprint and task HTTP API.

Repositories are replaced with AsyncMocks through ``app.dependency_overrides``;
the response cache, auth, audit and error handling run for real.
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from app.main import app
from app.providers import (
    get_project_repository,
    get_sprint_repository,
    get_task_repository,
)
from tests.conftest import (
    _auth_headers,
    _make_project_model,
    _make_sprint_model,
    _make_task_model,
)

pytestmark = pytest.mark.asyncio

OWNER_ID = "owner-1"


@pytest.fixture
def project_repo():
    repo = AsyncMock()
    app.dependency_overrides[get_project_repository] = lambda: repo
    return repo


@pytest.fixture
def sprint_repo():
    repo = AsyncMock()
    app.dependency_overrides[get_sprint_repository] = lambda: repo
    return repo


@pytest.fixture
def task_repo():
    repo = AsyncMock()
    app.dependency_overrides[get_task_repository] = lambda: repo
    return repo


def _mock_session():
    return app.state.session_factory.return_value.__aenter__.return_value


def _owner_headers(role: str = "student") -> dict[str, str]:
    return _auth_headers(role, "owner", user_id=OWNER_ID)


# ======================================================================
# Health probes
# ======================================================================


class TestHealthProbes:
    async def test_liveness(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {
            "status": "healthy",
            "service": "project-tracker-service",
            "version": "1.0.0",
        }

    async def test_readiness(self, client):
        resp = await client.get("/ready")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ready", "checks": {"database": "ok", "redis": "ok"}}

    async def test_readiness_degraded_without_redis(self, client):
        redis = app.state.redis
        redis.ping = AsyncMock(side_effect=ConnectionError("refused"))

        resp = await client.get("/ready")

        assert resp.status_code == 503
        assert resp.json()["checks"]["redis"] == "unavailable"

    async def test_request_id_and_security_headers(self, client):
        resp = await client.get("/health", headers={"X-Request-ID": "req-42"})
        assert resp.headers["x-request-id"] == "req-42"
        assert resp.headers["x-content-type-options"] == "nosniff"
        assert resp.headers["x-frame-options"] == "DENY"


# ======================================================================
# Projects
# ======================================================================


class TestProjects:
    async def test_requires_token(self, client, project_repo):  # noqa: ARG002
        resp = await client.get("/api/v1/projects")
        assert resp.status_code == 401

    async def test_list_scoped_to_caller(self, client, project_repo):
        project_repo.list_for_user.return_value = [_make_project_model(owner_id=OWNER_ID)]

        resp = await client.get("/api/v1/projects", headers=_owner_headers())

        assert resp.status_code == 200
        assert resp.json()[0]["owner_id"] == OWNER_ID
        project_repo.list_for_user.assert_awaited_once_with(OWNER_ID, include_all=False)

    async def test_admin_lists_everything(self, admin_client, project_repo):
        project_repo.list_for_user.return_value = []

        await admin_client.get("/api/v1/projects")

        assert project_repo.list_for_user.call_args.kwargs["include_all"] is True

    async def test_create_sets_owner(self, client, project_repo):
        project_repo.create.return_value = _make_project_model(name="Thesis", owner_id=OWNER_ID)

        resp = await client.post(
            "/api/v1/projects", json={"name": "Thesis"}, headers=_owner_headers()
        )

        assert resp.status_code == 201
        assert resp.json()["name"] == "Thesis"
        _, kwargs = project_repo.create.call_args
        assert kwargs["owner_id"] == OWNER_ID

    async def test_get_missing_returns_404(self, client, project_repo):
        project_repo.get_by_id.return_value = None
        resp = await client.get("/api/v1/projects/nope", headers=_owner_headers())
        assert resp.status_code == 404

    async def test_get_by_non_member_forbidden(self, student_client, project_repo):
        project_repo.get_by_id.return_value = _make_project_model(owner_id="someone-else")
        resp = await student_client.get("/api/v1/projects/p-1")
        assert resp.status_code == 403

    async def test_mentor_can_read_mentored_project(self, client, project_repo):
        project_repo.get_by_id.return_value = _make_project_model(mentor_id="mentor-9")

        resp = await client.get(
            "/api/v1/projects/p-1", headers=_auth_headers("mentor", "m", user_id="mentor-9")
        )

        assert resp.status_code == 200

    async def test_owner_deletes_and_action_is_audited(self, client, project_repo):
        project_repo.get_by_id.return_value = _make_project_model(
            id="p-1", name="Capstone", owner_id=OWNER_ID
        )

        resp = await client.delete("/api/v1/projects/p-1", headers=_owner_headers())

        assert resp.status_code == 204
        project_repo.delete.assert_awaited_once_with("p-1")
        entry = _mock_session().add.call_args.args[0]
        assert entry.action == "DELETE_PROJECT"
        assert entry.actor_id == OWNER_ID
        assert entry.details == {"name": "Capstone"}

    async def test_non_owner_cannot_delete(self, student_client, project_repo):
        project_repo.get_by_id.return_value = _make_project_model(owner_id="someone-else")

        resp = await student_client.delete("/api/v1/projects/p-1")

        assert resp.status_code == 403
        project_repo.delete.assert_not_awaited()


class TestResponseCache:
    async def test_repeat_get_is_served_from_cache(self, client, project_repo):
        project_repo.list_for_user.return_value = [_make_project_model(owner_id=OWNER_ID)]
        headers = _owner_headers()

        first = await client.get("/api/v1/projects", headers=headers)
        second = await client.get("/api/v1/projects", headers=headers)

        assert first.headers["x-cache"] == "MISS"
        assert second.headers["x-cache"] == "HIT"
        assert second.json() == first.json()
        assert project_repo.list_for_user.await_count == 1
        # Outer middlewares still decorate cached replies
        assert "x-request-id" in second.headers

    async def test_write_invalidates_cached_reads(self, client, project_repo):
        project_repo.list_for_user.return_value = []
        project_repo.create.return_value = _make_project_model(owner_id=OWNER_ID)
        headers = _owner_headers()

        await client.get("/api/v1/projects", headers=headers)
        await client.post("/api/v1/projects", json={"name": "New"}, headers=headers)
        resp = await client.get("/api/v1/projects", headers=headers)

        assert resp.headers["x-cache"] == "MISS"
        assert project_repo.list_for_user.await_count == 2

    async def test_users_get_separate_entries(self, client, project_repo):
        project_repo.list_for_user.return_value = []

        await client.get("/api/v1/projects", headers=_auth_headers("student", "a", "user-a"))
        resp = await client.get(
            "/api/v1/projects", headers=_auth_headers("student", "b", "user-b")
        )

        assert resp.headers["x-cache"] == "MISS"

    async def test_disabled_cache_is_bypassed(self, client, project_repo):
        project_repo.list_for_user.return_value = []
        app.state.response_cache.set_enabled(False)
        headers = _owner_headers()

        await client.get("/api/v1/projects", headers=headers)
        resp = await client.get("/api/v1/projects", headers=headers)

        assert "x-cache" not in resp.headers
        assert project_repo.list_for_user.await_count == 2


# ======================================================================
# Sprints and burndown
# ======================================================================


class TestSprints:
    def _sprint_payload(self, **overrides):
        data = {
            "name": "Sprint 1",
            "project_id": "p-1",
            "start_date": "2024-01-01T00:00:00Z",
            "end_date": "2024-01-14T00:00:00Z",
        }
        data.update(overrides)
        return data

    async def test_create_sprint(self, student_client, project_repo, sprint_repo):
        project_repo.get_by_id.return_value = _make_project_model(id="p-1")
        sprint_repo.create.return_value = _make_sprint_model(id="s-1", project_id="p-1")

        resp = await student_client.post("/api/v1/sprints", json=self._sprint_payload())

        assert resp.status_code == 201
        assert resp.json()["status"] == "Planned"
        entry = _mock_session().add.call_args.args[0]
        assert entry.action == "CREATE_SPRINT"
        assert entry.resource == "Sprint: s-1"

    async def test_create_for_missing_project_returns_404(
        self, student_client, project_repo, sprint_repo
    ):
        project_repo.get_by_id.return_value = None

        resp = await student_client.post("/api/v1/sprints", json=self._sprint_payload())

        assert resp.status_code == 404
        sprint_repo.create.assert_not_awaited()

    async def test_end_before_start_returns_422(
        self, student_client, project_repo, sprint_repo  # noqa: ARG002
    ):
        resp = await student_client.post(
            "/api/v1/sprints", json=self._sprint_payload(end_date="2023-12-01T00:00:00Z")
        )
        assert resp.status_code == 422

    async def test_list_for_project(self, student_client, sprint_repo):
        sprint_repo.list_for_project.return_value = [_make_sprint_model(project_id="p-1")]

        resp = await student_client.get("/api/v1/sprints/project/p-1")

        assert resp.status_code == 200
        assert len(resp.json()) == 1
        sprint_repo.list_for_project.assert_awaited_once_with("p-1")

    async def test_update_status(self, student_client, sprint_repo):
        sprint_repo.set_status.return_value = _make_sprint_model(id="s-1", status="Active")

        resp = await student_client.put("/api/v1/sprints/s-1/status", json={"status": "Active"})

        assert resp.status_code == 200
        assert resp.json()["status"] == "Active"
        entry = _mock_session().add.call_args.args[0]
        assert entry.action == "UPDATE_SPRINT_STATUS"
        assert entry.details == {"status": "Active"}

    async def test_update_status_missing_returns_404(self, student_client, sprint_repo):
        sprint_repo.set_status.return_value = None
        resp = await student_client.put("/api/v1/sprints/s-1/status", json={"status": "Active"})
        assert resp.status_code == 404


class TestBurndown:
    async def test_burndown_payload(self, student_client, sprint_repo):
        today = datetime.now(UTC).replace(hour=0, minute=0, second=0, microsecond=0)
        start = today - timedelta(days=2)
        sprint_repo.get_by_id.return_value = _make_sprint_model(
            start_date=start, end_date=start + timedelta(days=4)
        )
        sprint_repo.get_tasks.return_value = [
            _make_task_model(story_points=4, is_verified=True, verified_at=start),
            _make_task_model(story_points=6),
        ]

        resp = await student_client.get("/api/v1/sprints/s-1/burndown")

        assert resp.status_code == 200
        body = resp.json()
        assert body["totalPoints"] == 10
        assert body["securedPoints"] == 4
        assert [p["ideal"] for p in body["data"]] == [0, 2, 4, 6, 8]
        assert [p["actual"] for p in body["data"]] == [4, 4, 4, None, None]
        assert body["data"][0]["date"] == start.date().isoformat()

    async def test_missing_sprint_returns_404(self, student_client, sprint_repo):
        sprint_repo.get_by_id.return_value = None
        resp = await student_client.get("/api/v1/sprints/nope/burndown")
        assert resp.status_code == 404


# ======================================================================
# Tasks
# ======================================================================


class TestTasks:
    async def test_list_with_filters(self, student_client, task_repo):
        task_repo.get_all.return_value = [_make_task_model(status="Completed")]

        resp = await student_client.get(
            "/api/v1/tasks", params={"status": "Completed", "is_verified": "false"}
        )

        assert resp.status_code == 200
        filters = task_repo.get_all.call_args.args[0]
        assert filters.status == "Completed"
        assert filters.is_verified is False

    async def test_create_task(self, student_client, project_repo, task_repo):
        project_repo.get_by_id.return_value = _make_project_model(id="p-1")
        task_repo.create.return_value = _make_task_model(project_id="p-1", story_points=5)

        resp = await student_client.post(
            "/api/v1/tasks", json={"title": "Survey", "project_id": "p-1", "story_points": 5}
        )

        assert resp.status_code == 201
        assert resp.json()["story_points"] == 5

    async def test_create_for_missing_project_returns_404(
        self, student_client, project_repo, task_repo
    ):
        project_repo.get_by_id.return_value = None

        resp = await student_client.post("/api/v1/tasks", json={"title": "x", "project_id": "p"})

        assert resp.status_code == 404
        task_repo.create.assert_not_awaited()

    async def test_update_missing_returns_404(self, student_client, task_repo):
        task_repo.update.return_value = None
        resp = await student_client.put("/api/v1/tasks/t-1", json={"status": "Completed"})
        assert resp.status_code == 404

    async def test_student_cannot_verify(self, student_client, task_repo):
        resp = await student_client.post("/api/v1/tasks/t-1/verify")

        assert resp.status_code == 403
        task_repo.verify.assert_not_awaited()

    async def test_mentor_verifies_and_action_is_audited(self, client, task_repo):
        now = datetime.now(UTC)
        task_repo.verify.return_value = _make_task_model(
            id="t-1", is_verified=True, verified_at=now, verified_by="mentor-1"
        )

        resp = await client.post(
            "/api/v1/tasks/t-1/verify", headers=_auth_headers("mentor", "m", user_id="mentor-1")
        )

        assert resp.status_code == 200
        assert resp.json()["is_verified"] is True
        task_repo.verify.assert_awaited_once_with("t-1", verifier_id="mentor-1")
        entry = _mock_session().add.call_args.args[0]
        assert entry.action == "VERIFY_TASK"
        assert entry.resource == "/api/v1/tasks/t-1/verify"

    async def test_delete_task(self, student_client, task_repo):
        task_repo.get_by_id.return_value = _make_task_model(id="t-1", title="Survey")

        resp = await student_client.delete("/api/v1/tasks/t-1")

        assert resp.status_code == 204
        entry = _mock_session().add.call_args.args[0]
        assert entry.action == "DELETE_TASK"
        assert entry.details == {"title": "Survey"}

    async def test_delete_missing_returns_404(self, student_client, task_repo):
        task_repo.get_by_id.return_value = None
        resp = await student_client.delete("/api/v1/tasks/t-1")
        assert resp.status_code == 404
