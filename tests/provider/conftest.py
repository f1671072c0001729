"""Fixtures for provider tests: declared configs, an in-memory API fake and a mock Druid router."""

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from provider.schemas.resource import ResourceConfig
from provider.schemas.status import SupervisorStatus

SUPERVISOR_ROUTE = "/druid/indexer/v1/supervisor"


def make_config(**overrides) -> ResourceConfig:
    """Smallest config that passes validation."""
    declaration = {
        "datasource": "test-datasource",
        "timestamp_spec": {"column": "__time", "format": "iso"},
        "topic": "test-topic",
        "input_format": {"type": "json"},
        "consumer_properties": {"bootstrap.servers": "localhost:9092"},
    }
    declaration.update(overrides)
    return ResourceConfig.model_validate(declaration)


@pytest.fixture
def valid_config() -> ResourceConfig:
    return make_config()


@pytest.fixture
def orders_config() -> ResourceConfig:
    return ResourceConfig(
        datasource="orders",
        topic="orders-topic",
        consumer_properties={"bootstrap.servers": "kafka:9092"},
        task_count=1,
    )


@pytest.fixture
def advanced_config() -> ResourceConfig:
    return make_config(
        datasource="advanced-datasource",
        timestamp_spec={
            "column": "timestamp",
            "format": "auto",
            "missing_value": "2010-01-01T00:00:00Z",
        },
        dimensions_spec={
            "dimensions": [
                {"name": "user_id", "type": "string"},
                {"name": "categories", "type": "string", "multi_value_handling": "sorted_array"},
            ],
            "dimension_exclusions": ["__time", "kafka.timestamp"],
        },
        metrics_spec=[
            {"name": "count", "type": "count"},
            {"name": "revenue", "type": "doubleSum", "field_name": "price"},
        ],
        topic=None,
        topic_pattern="events-.*",
        consumer_properties={
            "bootstrap.servers": "kafka1:9092,kafka2:9092",
            "security.protocol": "SASL_SSL",
        },
        task_count=2,
        task_duration="PT2H",
        use_earliest_offset=True,
        completion_timeout="PT1H",
        context={"priority": "75"},
    )


# =============================================================================
# In-memory SupervisorApi
# =============================================================================


class FakeSupervisorApi:
    """SupervisorApi backed by a dict; records every call in order."""

    def __init__(self):
        self.supervisors: dict[str, dict] = {}
        self.calls: list[tuple[str, object]] = []

    async def create_or_update(self, spec: dict) -> str:
        self.calls.append(("create_or_update", spec))
        supervisor_id = f"{spec['spec']['dataSchema']['dataSource']}-supervisor"
        state = "SUSPENDED" if spec["spec"].get("suspended") else "RUNNING"
        self.supervisors[supervisor_id] = {"spec": spec, "state": state}
        return supervisor_id

    async def get_status(self, supervisor_id: str) -> SupervisorStatus | None:
        self.calls.append(("get_status", supervisor_id))
        entry = self.supervisors.get(supervisor_id)
        if entry is None:
            return None
        return SupervisorStatus(id=supervisor_id, state=entry["state"])

    async def terminate(self, supervisor_id: str) -> None:
        self.calls.append(("terminate", supervisor_id))
        self.supervisors.pop(supervisor_id, None)

    async def suspend(self, supervisor_id: str) -> None:
        self.calls.append(("suspend", supervisor_id))
        self.supervisors[supervisor_id]["state"] = "SUSPENDED"

    async def resume(self, supervisor_id: str) -> None:
        self.calls.append(("resume", supervisor_id))
        self.supervisors[supervisor_id]["state"] = "RUNNING"

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]


@pytest.fixture
def fake_api() -> FakeSupervisorApi:
    return FakeSupervisorApi()


# =============================================================================
# Mock Druid router
# =============================================================================


def build_mock_druid_app() -> web.Application:
    """
    Minimal stand-in for the supervisor endpoints of a Druid router.

    ``app["supervisors"]`` holds id -> {"spec", "state"}; ``app["requests"]``
    records (method, path, json body or None, Authorization header);
    ``app["fail_next"]`` can hold (status, body) to fail the next request.
    """
    app = web.Application()
    app["supervisors"] = {}
    app["requests"] = []
    app["fail_next"] = None

    @web.middleware
    async def record(request: web.Request, handler):
        body = await request.json() if request.can_read_body else None
        request.app["requests"].append(
            (request.method, request.path, body, request.headers.get("Authorization"))
        )
        failure = request.app["fail_next"]
        if failure is not None:
            request.app["fail_next"] = None
            status, text = failure
            return web.Response(status=status, text=text)
        return await handler(request)

    app.middlewares.append(record)

    def lookup(request: web.Request) -> tuple[str, dict]:
        supervisor_id = request.match_info["supervisor_id"]
        entry = request.app["supervisors"].get(supervisor_id)
        if entry is None:
            raise web.HTTPNotFound(
                text=f'{{"error":"Cannot find any supervisor with id: [{supervisor_id}]"}}',
                content_type="application/json",
            )
        return supervisor_id, entry

    async def submit(request: web.Request) -> web.Response:
        spec = await request.json()
        supervisor_id = f"{spec['spec']['dataSchema']['dataSource']}-supervisor"
        state = "SUSPENDED" if spec["spec"].get("suspended") else "RUNNING"
        request.app["supervisors"][supervisor_id] = {"spec": spec, "state": state}
        return web.json_response({"id": supervisor_id})

    async def status(request: web.Request) -> web.Response:
        supervisor_id, entry = lookup(request)
        return web.json_response(
            {
                "id": supervisor_id,
                "generationTime": "2024-01-01T00:00:00.000Z",
                "payload": {
                    "dataSource": entry["spec"]["spec"]["dataSchema"]["dataSource"],
                    "state": entry["state"],
                    "detailedState": entry["state"],
                    "healthy": True,
                    "suspended": entry["state"] == "SUSPENDED",
                },
            }
        )

    async def suspend(request: web.Request) -> web.Response:
        supervisor_id, entry = lookup(request)
        entry["state"] = "SUSPENDED"
        return web.json_response({"id": supervisor_id})

    async def resume(request: web.Request) -> web.Response:
        supervisor_id, entry = lookup(request)
        entry["state"] = "RUNNING"
        return web.json_response({"id": supervisor_id})

    async def terminate(request: web.Request) -> web.Response:
        supervisor_id, _ = lookup(request)
        del request.app["supervisors"][supervisor_id]
        return web.json_response({"id": supervisor_id})

    app.router.add_post(SUPERVISOR_ROUTE, submit)
    app.router.add_get(SUPERVISOR_ROUTE + "/{supervisor_id}/status", status)
    app.router.add_post(SUPERVISOR_ROUTE + "/{supervisor_id}/suspend", suspend)
    app.router.add_post(SUPERVISOR_ROUTE + "/{supervisor_id}/resume", resume)
    app.router.add_post(SUPERVISOR_ROUTE + "/{supervisor_id}/terminate", terminate)
    return app


@pytest.fixture
async def druid_server():
    async with TestServer(build_mock_druid_app()) as server:
        yield server


@pytest.fixture
def druid_endpoint(druid_server) -> str:
    return str(druid_server.make_url("")).rstrip("/")
