"""Ironic flavoured mock server.

Wraps :class:`~ironic_mock.server.MockServer` with the endpoints of the
bare-metal provisioning API and fluent helpers to configure them::

    with IronicMock().with_default_responses().create_nodes() as ironic:
        client = make_client(ironic.endpoint())
        ...
        assert ironic.created_nodes[0].uuid == "node-0"
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, Union

from .config import MockServerConfig
from .models import CreatedNode, Node
from .server import MockRequestHandler, MockServer, to_json

logger = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_ENDPOINT",
    "DRIVERS_RESPONSE",
    "IronicMock",
    "endpoint_for",
]

# Returned by endpoint_for() when a test does not run a mock at all.
DEFAULT_ENDPOINT = "https://ironic.test/"

DRIVERS_RESPONSE = """
{
    "drivers": [{
        "hosts": [
            "master-2.ostest.test.metalkube.org"
        ],
        "links": [
            {
                "href": "http://[fd00:1101::3]:6385/v1/drivers/fake-hardware",
                "rel": "self"
            },
            {
                "href": "http://[fd00:1101::3]:6385/drivers/fake-hardware",
                "rel": "bookmark"
            }
        ],
        "name": "fake-hardware"
    }]
}
"""

NodeLike = Union[Node, dict[str, Any]]


def endpoint_for(mock: "IronicMock | None") -> str:
    """Endpoint of ``mock``, or a placeholder URL when there is no mock."""
    if mock is None:
        return DEFAULT_ENDPOINT
    return mock.endpoint()


class IronicMock(MockServer):
    """Mock server implementing the Ironic API surface used by the provisioner."""

    def __init__(self, name: str | None = None, *, config: MockServerConfig | None = None, start: bool = True):
        self._nodes_lock = threading.Lock()
        self._created_nodes: list[CreatedNode] = []
        super().__init__(name, config=config, start=start)

    @property
    def created_nodes(self) -> list[CreatedNode]:
        with self._nodes_lock:
            return list(self._created_nodes)

    def with_default_responses(self) -> "IronicMock":
        """Give every node-level call a successful answer."""
        self.add_default_response_json("/v1/nodes/{id}", "", 200, Node(uuid="{id}"))
        self.add_default_response("/v1/nodes/{id}/states/provision", "", 202, "{}")
        self.add_default_response("/v1/nodes/{id}/states/power", "", 202, "{}")
        self.add_default_response("/v1/nodes/{id}/validate", "", 200, "{}")
        return self.ready()

    def ready(self) -> "IronicMock":
        self.response("/v1", "{}")
        return self

    def not_ready(self, error_code: int) -> "IronicMock":
        self.error_response("/v1", error_code)
        return self

    def with_drivers(self) -> "IronicMock":
        self.response("/v1/drivers", DRIVERS_RESPONSE)
        return self

    def _with_node(self, node: NodeLike, method: str) -> "IronicMock":
        if not isinstance(node, Node):
            node = Node.model_validate(node)
        for key in (node.uuid, node.name):
            if key:
                self.add_response(f"/v1/nodes/{key}", 200, to_json(node), method=method)
        return self

    def with_node(self, node: NodeLike) -> "IronicMock":
        """Answer GET /v1/nodes/<uuid> and /v1/nodes/<name> with ``node``."""
        return self._with_node(node, "GET")

    def with_node_update(self, node: NodeLike) -> "IronicMock":
        """Answer PATCH /v1/nodes/<uuid> and /v1/nodes/<name> with ``node``."""
        return self._with_node(node, "PATCH")

    def _with_node_states_provision(self, node_uuid: str, method: str) -> "IronicMock":
        self.add_response(f"/v1/nodes/{node_uuid}/states/provision", 202, "{}", method=method)
        return self

    def with_node_states_provision(self, node_uuid: str) -> "IronicMock":
        return self._with_node_states_provision(node_uuid, "GET")

    def with_node_states_provision_update(self, node_uuid: str) -> "IronicMock":
        return self._with_node_states_provision(node_uuid, "PUT")

    def _with_node_states_power(self, node_uuid: str, code: int, method: str) -> "IronicMock":
        self.add_response(f"/v1/nodes/{node_uuid}/states/power", code, "{}", method=method)
        return self

    def with_node_states_power(self, node_uuid: str, code: int) -> "IronicMock":
        return self._with_node_states_power(node_uuid, code, "GET")

    def with_node_states_power_update(self, node_uuid: str, code: int) -> "IronicMock":
        return self._with_node_states_power(node_uuid, code, "PUT")

    def with_node_validate(self, node_uuid: str) -> "IronicMock":
        self.add_response(f"/v1/nodes/{node_uuid}/validate", 200, "{}")
        return self

    def no_node(self, name: str) -> "IronicMock":
        return self.node_error(name, 404)

    def node_error(self, name: str, error_code: int) -> "IronicMock":
        self.add_error_response(f"/v1/nodes/{name}", error_code)
        return self

    def create_nodes(self) -> "IronicMock":
        """Accept POST /v1/nodes and record what was sent."""
        self.handler("/v1/nodes", self._handle_create_node)
        return self

    def _handle_create_node(self, request: MockRequestHandler) -> None:
        if request.command != "POST":
            request.send_json(405, {"error": f"{request.command} not supported on /v1/nodes"})
            return

        body = request.read_body()
        logger.info(f"{self.name}: create nodes request {body}")

        try:
            fields = json.loads(body)
        except ValueError as e:
            logger.error(f"{self.name}: create nodes body is not JSON: {e}")
            request.send_json(400, {"error": f"invalid JSON body: {e}"})
            return
        if not isinstance(fields, dict):
            logger.error(f"{self.name}: create nodes body is not a JSON object")
            request.send_json(400, {"error": "request body must be a JSON object"})
            return

        # Any string works as the uuid, so derive it from the number of nodes
        # created so far.
        with self._nodes_lock:
            uuid = f"node-{len(self._created_nodes)}"
            self._created_nodes.append(CreatedNode(body=body, uuid=uuid))
        logger.info(f"{self.name}: uuid {uuid}")

        created = {"uuid": uuid}
        created.update((k, v) for k, v in fields.items() if k != "uuid")
        request.send_json(201, created)
