"""Tests for the generic mock HTTP server."""

import socket

import httpx
import pytest

from ironic_mock.config import MockServerConfig
from ironic_mock.models import Node
from ironic_mock.server import MockServer


@pytest.fixture
def mock():
    with MockServer("test") as server:
        yield server


@pytest.fixture
def client(mock):
    with httpx.Client(base_url=mock.endpoint(), trust_env=False, timeout=5) as c:
        yield c


def test_endpoint_is_local_url(mock):
    """The server binds an ephemeral port on localhost right away."""
    url = mock.endpoint()
    assert url.startswith("http://127.0.0.1:")
    assert url.endswith("/")
    assert mock.running


def test_registered_response_returned_verbatim(mock, client):
    mock.response_with_code("/v1/things:GET", '{"a": 1}', 202)

    resp = client.get("/v1/things")

    assert resp.status_code == 202
    assert resp.text == '{"a": 1}'
    assert resp.headers["content-type"] == "application/json"


def test_response_defaults_to_200(mock, client):
    mock.response("/v1/ping", "{}")

    resp = client.post("/v1/ping")

    assert resp.status_code == 200
    assert resp.json() == {}


def test_response_json_serialises_models(mock, client):
    mock.response_json("/v1/nodes/abc", Node(uuid="abc", name="worker-0"))

    data = client.get("/v1/nodes/abc").json()

    assert data["uuid"] == "abc"
    assert data["name"] == "worker-0"


def test_method_bound_response_ignores_other_methods(mock, client):
    mock.response("/v1/nodes/abc:GET", "{}")

    assert client.get("/v1/nodes/abc").status_code == 200
    assert client.delete("/v1/nodes/abc").status_code == 404


def test_last_registration_wins(mock, client):
    mock.response_with_code("/v1/x", '{"v": 1}', 200)
    mock.response_with_code("/v1/x", '{"v": 2}', 201)

    resp = client.get("/v1/x")

    assert resp.status_code == 201
    assert resp.json() == {"v": 2}


def test_query_string_ignored_for_matching(mock, client):
    mock.response("/v1/nodes", '{"nodes": []}')

    resp = client.get("/v1/nodes", params={"fields": "uuid"})

    assert resp.status_code == 200
    assert mock.requests[-1].path == "/v1/nodes"


def test_error_response_has_empty_body(mock, client):
    mock.error_response("/v1/broken", 409)

    resp = client.get("/v1/broken")

    assert resp.status_code == 409
    assert resp.text == ""


def test_error_response_rejects_success_code(mock):
    with pytest.raises(ValueError):
        mock.error_response("/v1/broken", 204)


def test_default_response_wildcard(mock, client):
    """Without a placeholder value {id} matches any single segment."""
    mock.add_default_response_json("/v1/nodes/{id}", "", 200, {"uuid": "{id}"})

    assert client.get("/v1/nodes/n1").json() == {"uuid": "n1"}
    assert client.put("/v1/nodes/n2").json() == {"uuid": "n2"}
    assert client.get("/v1/nodes/n1/extra").status_code == 404


def test_default_response_with_placeholder_value(mock, client):
    """A placeholder value is substituted at registration time."""
    mock.add_default_response("/v1/nodes/{id}/validate", "fixed", 200, '{"node": "{id}"}')

    assert client.get("/v1/nodes/fixed/validate").json() == {"node": "fixed"}
    assert client.get("/v1/nodes/other/validate").status_code == 404


def test_unconfigured_path_returns_404_and_keeps_serving(mock, client):
    resp = client.get("/nowhere")

    assert resp.status_code == 404
    assert "no response configured" in resp.json()["error"]
    assert [r.path for r in mock.unexpected_requests] == ["/nowhere"]

    mock.response("/somewhere", "{}")
    assert client.get("/somewhere").status_code == 200
    assert len(mock.unexpected_requests) == 1


def test_handler_takes_precedence(mock, client):
    """A dynamic handler beats a static response for the same path."""
    mock.response("/v1/echo", "static")

    def echo(request):
        request.send_body(200, f"{request.command} {request.body}", content_type="text/plain")

    mock.handler("/v1/echo", echo)

    resp = client.post("/v1/echo", content="hello")

    assert resp.status_code == 200
    assert resp.text == "POST hello"


def test_handler_exception_returns_500(mock, client):
    def boom(request):
        raise RuntimeError("kaboom")

    mock.handler("/v1/boom", boom)

    resp = client.get("/v1/boom")

    assert resp.status_code == 500
    assert resp.json()["error"] == "kaboom"
    assert mock.requests[-1].status_code == 500


def test_handler_without_response_returns_500(mock, client):
    mock.handler("/v1/silent", lambda request: None)

    resp = client.get("/v1/silent")

    assert resp.status_code == 500


def test_handler_rejects_relative_pattern(mock):
    with pytest.raises(ValueError):
        mock.handler("v1/nodes", lambda request: None)


def test_undecodable_body_returns_500(mock, client):
    mock.response("/v1/upload", "{}")

    resp = client.post("/v1/upload", content=b"\xff\xfe\xfd")

    assert resp.status_code == 500
    assert "failed to read request body" in resp.json()["error"]


def test_malformed_content_length_returns_500(mock):
    mock.response("/v1/upload", "{}")
    host, port = mock.endpoint()[len("http://"):-1].split(":")

    with socket.create_connection((host, int(port)), timeout=5) as sock:
        sock.sendall(b"POST /v1/upload HTTP/1.0\r\nContent-Length: lots\r\n\r\n")
        status_line = sock.makefile("rb").readline()

    assert b" 500 " in status_line


def test_requests_are_logged_in_order(mock, client):
    mock.response("/v1/a", '{"a": true}')
    mock.response("/v1/b", "{}")

    client.get("/v1/a")
    client.post("/v1/b", content='{"x": 1}')
    client.get("/v1/missing")

    log = mock.requests
    assert [(r.method, r.path, r.status_code) for r in log] == [
        ("GET", "/v1/a", 200),
        ("POST", "/v1/b", 200),
        ("GET", "/v1/missing", 404),
    ]
    assert log[0].response_body == '{"a": true}'
    assert log[1].body == '{"x": 1}'


def test_requests_for_filters_by_path_and_method(mock, client):
    mock.response("/v1/a", "{}")

    client.get("/v1/a")
    client.put("/v1/a")
    client.get("/v1/a")

    assert len(mock.requests_for("/v1/a")) == 3
    assert len(mock.requests_for("/v1/a", "GET")) == 2
    assert len(mock.requests_for("/v1/a:PUT")) == 1


def test_clear_requests(mock, client):
    client.get("/v1/missing")
    mock.clear_requests()

    assert mock.requests == []
    assert mock.unexpected_requests == []


def test_start_twice_raises(mock):
    with pytest.raises(RuntimeError):
        mock.start()


def test_stop_and_restart():
    server = MockServer("restart")
    server.stop()
    assert not server.running
    server.stop()  # no-op

    server.start()
    try:
        server.response("/v1", "{}")
        with httpx.Client(trust_env=False, timeout=5) as c:
            assert c.get(server.endpoint() + "v1").status_code == 200
    finally:
        server.stop()


def test_not_started_has_no_endpoint():
    server = MockServer("idle", start=False)
    with pytest.raises(RuntimeError):
        server.endpoint()


def test_config_name_used_when_no_name_given():
    server = MockServer(config=MockServerConfig(name="from-config"), start=False)
    assert server.name == "from-config"


def test_add_response_registers_literal_path(mock, client):
    mock.add_response("/v1/things/a:delete", 200, '{"ok": true}')
    mock.add_error_response("/v1/things/b:get", 410, method="GET")

    assert client.get("/v1/things/a:delete").json() == {"ok": True}
    assert client.delete("/v1/things/a").status_code == 404
    assert client.get("/v1/things/b:get").status_code == 410


def test_add_error_response_rejects_success_code(mock):
    with pytest.raises(ValueError):
        mock.add_error_response("/v1/x", 200)


def test_percent_encoded_path_is_decoded(mock, client):
    mock.response("/v1/nodes/worker 0", "{}")
    mock.add_default_response("/v1/items/{id}", "", 200, '{"id": "{id}"}')

    assert client.get("/v1/nodes/worker%200").status_code == 200
    assert client.get("/v1/items/caf%C3%A9").json() == {"id": "café"}
    assert [r.path for r in mock.requests] == ["/v1/nodes/worker 0", "/v1/items/café"]
