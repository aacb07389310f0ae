"""
Tests for the client link pipeline and token storage.
"""

import json

import httpx
import pytest
from structlog.testing import capture_logs

from campus_hub.client import (
    AuthLink,
    ErrorLink,
    ExecutionResult,
    FileTokenStorage,
    HttpLink,
    Link,
    MemoryTokenStorage,
    NetworkError,
    Operation,
    SplitLink,
    execute,
    from_links,
)

TOKEN_KEY = "ldce_auth_token"


class RecordingLink(Link):
    """Terminating link that records operations and replays canned results."""

    def __init__(self, *results):
        self.results = results
        self.operations = []

    async def request(self, operation, forward=None):
        self.operations.append(operation)
        for result in self.results:
            if isinstance(result, Exception):
                raise result
            yield result


class BrokenStorage:
    def get_item(self, key):
        raise OSError("disk on fire")

    def set_item(self, key, value):
        raise OSError("disk on fire")

    def remove_item(self, key):
        raise OSError("disk on fire")


async def collect(link, operation):
    return [result async for result in execute(link, operation)]


@pytest.mark.parametrize(
    "source, kind",
    [
        ("{ faculties { id } }", "query"),
        ("query Q { me { id } }", "query"),
        ("mutation { login(email: \"a\", password: \"b\") { token } }", "mutation"),
        ("subscription { broadcastCreated { id } }", "subscription"),
    ],
)
def test_operation_kind_is_static(source, kind):
    assert Operation.from_string(source).kind == kind


@pytest.mark.asyncio
async def test_split_link_routes_by_operation_kind():
    ws = RecordingLink(ExecutionResult(data={"ws": True}))
    http = RecordingLink(ExecutionResult(data={"http": True}))
    link = SplitLink(ws, http)

    subscription = Operation.from_string("subscription { broadcastCreated { id } }")
    query = Operation.from_string("{ faculties { id } }")
    mutation = Operation.from_string("mutation { markNotificationRead(id: 1) { id } }")

    assert (await collect(link, subscription))[0].data == {"ws": True}
    assert (await collect(link, query))[0].data == {"http": True}
    assert (await collect(link, mutation))[0].data == {"http": True}
    assert ws.operations == [subscription]
    assert http.operations == [query, mutation]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "stored, expected",
    [
        ({TOKEN_KEY: "abc.def.ghi"}, "Bearer abc.def.ghi"),
        ({}, ""),
        ({TOKEN_KEY: ""}, ""),
    ],
)
async def test_auth_link_sets_authorization(stored, expected):
    terminal = RecordingLink(ExecutionResult(data={}))
    link = AuthLink(MemoryTokenStorage(stored), TOKEN_KEY).concat(terminal)

    operation = Operation.from_string("{ me { id } }").with_context(headers={"x-trace": "1"})
    await collect(link, operation)

    assert terminal.operations[0].context["headers"] == {"x-trace": "1", "authorization": expected}
    assert operation.context["headers"] == {"x-trace": "1"}


@pytest.mark.asyncio
async def test_auth_link_reads_storage_on_every_request():
    storage = MemoryTokenStorage()
    terminal = RecordingLink(ExecutionResult(data={}))
    link = AuthLink(storage, TOKEN_KEY).concat(terminal)
    operation = Operation.from_string("{ me { id } }")

    await collect(link, operation)
    storage.set_item(TOKEN_KEY, "rotated")
    await collect(link, operation)

    headers = [op.context["headers"]["authorization"] for op in terminal.operations]
    assert headers == ["", "Bearer rotated"]


@pytest.mark.asyncio
async def test_storage_failure_degrades_to_anonymous():
    terminal = RecordingLink(ExecutionResult(data={}))
    link = AuthLink(BrokenStorage(), TOKEN_KEY).concat(terminal)

    with capture_logs() as logs:
        await collect(link, Operation.from_string("{ me { id } }"))

    assert terminal.operations[0].context["headers"]["authorization"] == ""
    assert logs[0]["event"] == "token_storage_read_failed"
    assert logs[0]["log_level"] == "warning"


@pytest.mark.asyncio
async def test_error_link_logs_field_errors_without_changing_results():
    result = ExecutionResult.from_payload(
        {
            "data": {"faculties": [], "myAppointments": None},
            "errors": [{"message": "Authentication required", "path": ["myAppointments"]}],
        }
    )
    link = ErrorLink().concat(RecordingLink(result))

    with capture_logs() as logs:
        results = await collect(link, Operation.from_string("{ faculties { id } myAppointments { id } }"))

    assert results == [result]
    assert logs == [
        {
            "event": "graphql_error",
            "log_level": "error",
            "message": "Authentication required",
            "path": ["myAppointments"],
            "operation": None,
        }
    ]


@pytest.mark.asyncio
async def test_error_link_logs_and_reraises_network_errors():
    failure = NetworkError("connection refused")
    link = ErrorLink().concat(RecordingLink(failure))

    with capture_logs() as logs:
        with pytest.raises(NetworkError) as excinfo:
            await collect(link, Operation.from_string("query Q { me { id } }", operation_name="Q"))

    assert excinfo.value is failure
    assert [(log["event"], log["error"], log["operation"]) for log in logs] == [
        ("network_error", "connection refused", "Q")
    ]


@pytest.mark.asyncio
async def test_http_link_posts_operation():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(
            200,
            json={"data": {"me": None}, "errors": [{"message": "Authentication required", "path": ["me"]}]},
        )

    http = HttpLink("http://campus.test/graphql", client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    link = from_links([AuthLink(MemoryTokenStorage({TOKEN_KEY: "t0k"}), TOKEN_KEY), http])
    operation = Operation.from_string("query Me($x: Int) { me { id } }", {"x": 1}, "Me")

    (result,) = await collect(link, operation)

    assert result.data == {"me": None}
    assert result.errors[0].path == ("me",)
    request = seen[0]
    assert request.headers["authorization"] == "Bearer t0k"
    body = json.loads(request.content)
    assert body["variables"] == {"x": 1}
    assert body["operationName"] == "Me"
    assert "me {" in body["query"]


@pytest.mark.asyncio
async def test_http_link_keeps_graphql_errors_on_error_status():
    def handler(request):
        return httpx.Response(400, json={"data": None, "errors": [{"message": "Syntax Error"}]})

    http = HttpLink("http://campus.test/graphql", client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    (result,) = await collect(http, Operation.from_string("{ me { id } }"))
    assert result.errors[0].message == "Syntax Error"


@pytest.mark.asyncio
async def test_http_link_raises_network_error_for_non_graphql_responses():
    def handler(request):
        return httpx.Response(502, text="Bad Gateway")

    http = HttpLink("http://campus.test/graphql", client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    with pytest.raises(NetworkError) as excinfo:
        await collect(http, Operation.from_string("{ me { id } }"))
    assert excinfo.value.status_code == 502


@pytest.mark.asyncio
async def test_http_link_wraps_transport_failures():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    http = HttpLink("http://campus.test/graphql", client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    with pytest.raises(NetworkError):
        await collect(http, Operation.from_string("{ me { id } }"))


def test_file_storage_round_trip(tmp_path):
    storage = FileTokenStorage(tmp_path / "nested" / "storage.json")
    assert storage.get_item(TOKEN_KEY) is None

    storage.set_item(TOKEN_KEY, "abc")
    storage.set_item("theme", "dark")
    assert FileTokenStorage(storage.path).get_item(TOKEN_KEY) == "abc"

    storage.remove_item(TOKEN_KEY)
    assert storage.get_item(TOKEN_KEY) is None
    assert storage.get_item("theme") == "dark"


def test_file_storage_tolerates_corrupt_files(tmp_path):
    path = tmp_path / "storage.json"
    path.write_text("{not json", encoding="utf-8")

    with capture_logs() as logs:
        assert FileTokenStorage(path).get_item(TOKEN_KEY) is None
    assert logs[0]["event"] == "token_storage_read_failed"
