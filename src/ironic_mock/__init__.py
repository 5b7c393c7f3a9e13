"""Programmable HTTP mock of the Ironic bare-metal provisioning API."""

__version__ = "0.1.0"

from .config import MockServerConfig
from .ironic import DEFAULT_ENDPOINT, IronicMock, endpoint_for
from .models import CreatedNode, Node, RegisteredResponse, RequestLogEntry
from .server import MockRequestHandler, MockServer

__all__ = [
    "CreatedNode",
    "DEFAULT_ENDPOINT",
    "IronicMock",
    "MockRequestHandler",
    "MockServer",
    "MockServerConfig",
    "Node",
    "RegisteredResponse",
    "RequestLogEntry",
    "endpoint_for",
]
