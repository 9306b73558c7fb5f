import httpx
import pytest
from fastapi.testclient import TestClient

from main import app
from testrail_sync.core.config import Settings
from testrail_sync.core.dependencies import get_settings, get_testrail_client
from testrail_sync.services.testrail_client import TestRailClient as Client
from testrail_sync.utils.retry import RateLimitPolicy
from tests.fakes import FakeTestRail


def make_settings(**overrides) -> Settings:
    values = {
        "testrail_host": FakeTestRail.HOST,
        "testrail_user": FakeTestRail.USER,
        "testrail_password": FakeTestRail.PASSWORD,
        "testrail_project_id": 1,
        "testrail_suite_id": 10,
        "extra_parameters": "",
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def app_settings():
    return make_settings()


@pytest.fixture
def transport(fake_testrail):
    return fake_testrail.transport


@pytest.fixture
def api(transport, app_settings, recording_sleep):
    async def testrail_client():
        testrail = Client(
            app_settings.testrail_host,
            app_settings.testrail_user,
            app_settings.testrail_password,
            retry_policy=RateLimitPolicy(interval=60.0, sleep=recording_sleep),
            transport=transport,
        )
        try:
            yield testrail
        finally:
            await testrail.close()

    app.dependency_overrides[get_testrail_client] = testrail_client
    app.dependency_overrides[get_settings] = lambda: app_settings
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_health(api):
    response = api.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_list_projects(api):
    response = api.get("/api/testrail/projects")
    assert response.status_code == 200
    assert response.json() == [{"id": 1, "name": "Demo"}, {"id": 2, "name": "Other"}]
    assert "X-Process-Time" in response.headers


def test_list_suites(api):
    response = api.get("/api/testrail/projects/1/suites")
    assert [s["name"] for s in response.json()] == ["Master", "Nightly"]


def test_list_milestones(api, fake_testrail):
    milestone_id = fake_testrail.seed_milestone("Release 3.0")
    response = api.get("/api/testrail/projects/1/milestones")
    assert response.json() == [{"id": str(milestone_id), "name": "Release 3.0"}]


def test_unreadable_runs_are_not_found(api, fake_testrail):
    fake_testrail.overrides["get_runs"] = (200, "garbage")

    response = api.get("/api/testrail/projects/1/runs")

    assert response.status_code == 404
    body = response.json()
    assert body["code"] == "NOT_FOUND"
    assert body["details"] == "garbage"


class TestUnreachableTestRail:
    @pytest.fixture
    def transport(self):
        def refuse(request):
            raise httpx.ConnectError("Connection refused", request=request)

        return httpx.MockTransport(refuse)

    def test_listing_reports_unavailable(self, api):
        response = api.get("/api/testrail/projects")
        assert response.status_code == 503
        assert response.json()["code"] == "TESTRAIL_UNAVAILABLE"

    def test_check_reports_unreachable_host(self, api):
        body = api.get("/api/testrail/check").json()
        assert body["ok"] is False
        assert body["reachable"] is False
        assert [m["message"] for m in body["messages"]] == ["Host is not reachable."]


def test_check_configuration_ok(api):
    body = api.get("/api/testrail/check").json()
    assert body == {"ok": True, "reachable": True, "authenticated": True, "messages": []}


class TestBadConfiguration:
    @pytest.fixture
    def app_settings(self):
        return make_settings(testrail_password="wrong", extra_parameters="[1, 2]")

    def test_check_lists_every_problem(self, api):
        body = api.get("/api/testrail/check").json()
        assert body["ok"] is False
        assert body["authenticated"] is False
        assert [(m["field"], m["level"]) for m in body["messages"]] == [
            ("testrail_user", "error"),
            ("extra_parameters", "error"),
        ]


def test_sync_end_to_end(api, fake_testrail):
    payload = {
        "create_missing_cases": True,
        "source": "CI #7",
        "suites": [{
            "name": "Checkout",
            "cases": [
                {"name": "pays by card", "time": 0.4},
                {"name": "rejects expired card", "failure": {"message": "expected 402", "text": "trace"}},
            ],
            "suites": [{"name": "Vouchers", "cases": [{"name": "later", "skipped": True}]}],
        }],
    }

    response = api.post("/api/sync", json=payload)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["results_submitted"] == 2
    run_id = body["run_id"]
    assert fake_testrail.calls("add_run")[0][1]["description"] == "Automated results from CI #7"
    assert [r["comment"] for r in fake_testrail.submitted[run_id]] == [None, "expected 402\ntrace"]
    assert fake_testrail.closed_runs == [run_id]


def test_sync_reports_failure_in_body(api, fake_testrail):
    fake_testrail.overrides["add_results_for_cases"] = (400, '{"error": "Run is completed"}')

    response = api.post("/api/sync", json={"suites": [], "use_existing_run": True, "test_run": "42"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert body["status_code"] == 400
    assert body["body"] == '{"error": "Run is completed"}'


def test_sync_rejects_reuse_without_run_id(api, fake_testrail):
    response = api.post("/api/sync", json={"suites": [], "use_existing_run": True})

    assert response.status_code == 422
    assert response.json()["error"].startswith("Invalid sync options")
    assert fake_testrail.requests == []


def test_sync_rejects_non_object_extra_parameters(api):
    response = api.post("/api/sync", json={"suites": [], "extra_parameters": '"just a string"'})
    assert response.status_code == 422


def test_sync_rejects_malformed_report(api):
    response = api.post("/api/sync", json={"suites": [{"name": "", "cases": []}]})
    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"
