"""Example of driving the Ironic mock programmatically."""

import logging

import httpx

from ironic_mock import IronicMock, Node

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main():
    """Example usage of IronicMock."""
    node = Node(uuid="33ce8659-7400-4c68-9535-d10766f07a58", name="worker-0", provision_state="available")

    with IronicMock().with_default_responses().with_node(node).create_nodes() as ironic:
        logger.info(f"Mock running at {ironic.endpoint()}")

        with httpx.Client(base_url=ironic.endpoint()) as client:
            # Example 1: Readiness
            resp = client.get("/v1")
            print(f"\nExample 1 - GET /v1: {resp.status_code} {resp.text}")

            # Example 2: Node lookup by name
            resp = client.get("/v1/nodes/worker-0")
            print(f"\nExample 2 - GET node by name: {resp.status_code}")
            print(f"Provision state: {resp.json()['provision_state']}")

            # Example 3: Unknown node falls back to the default response
            resp = client.get("/v1/nodes/some-other-node")
            print(f"\nExample 3 - GET unknown node: {resp.status_code} uuid={resp.json()['uuid']}")

            # Example 4: Create a node
            resp = client.post("/v1/nodes", json={"name": "worker-1", "driver": "ipmi"})
            print(f"\nExample 4 - POST /v1/nodes: {resp.status_code} {resp.json()}")

        print(f"\nCreated nodes: {ironic.created_nodes}")
        print(f"Recorded requests: {len(ironic.requests)}")


if __name__ == "__main__":
    main()
