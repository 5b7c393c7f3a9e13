"""Run an Ironic mock server from the command line.

Useful to poke at a client by hand or from a shell-based test:

  ironic-mock --port 6385 --defaults --drivers --create-nodes
"""

from __future__ import annotations

import argparse
import logging
import threading

from .config import MockServerConfig
from .ironic import IronicMock

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="ironic-mock", description="Mock Ironic API server for tests")
    ap.add_argument("--host", help="Address to bind (env IRONIC_MOCK_HOST, default 127.0.0.1)")
    ap.add_argument("--port", type=int, help="Port to bind (env IRONIC_MOCK_PORT, default ephemeral)")
    ap.add_argument("--name", help="Name used in log messages (env IRONIC_MOCK_NAME)")
    ap.add_argument("--log-level", help="Logging level (env IRONIC_MOCK_LOG_LEVEL, default INFO)")
    ap.add_argument("--defaults", action="store_true", help="Answer node calls successfully and mark /v1 ready")
    ap.add_argument("--drivers", action="store_true", help="Serve the fake driver list on /v1/drivers")
    ap.add_argument("--create-nodes", action="store_true", help="Accept POST /v1/nodes")
    ap.add_argument("--not-ready", type=int, metavar="CODE", help="Answer /v1 with this error code")
    return ap


def load_config(args: argparse.Namespace) -> MockServerConfig:
    """Environment config, overridden by whatever was given on the command line."""
    cfg = MockServerConfig.from_env()
    overrides = {
        k: v
        for k, v in (("host", args.host), ("port", args.port), ("name", args.name), ("log_level", args.log_level))
        if v is not None
    }
    if overrides:
        cfg = MockServerConfig(**{**cfg.model_dump(), **overrides})
    return cfg


def configure(mock: IronicMock, args: argparse.Namespace) -> IronicMock:
    if args.defaults:
        mock.with_default_responses()
    if args.drivers:
        mock.with_drivers()
    if args.create_nodes:
        mock.create_nodes()
    if args.not_ready is not None:
        mock.not_ready(args.not_ready)
    return mock


def wait_for_interrupt() -> None:
    threading.Event().wait()


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    cfg = load_config(args)

    logging.basicConfig(
        level=getattr(logging, cfg.log_level),
        format="%(asctime)s %(levelname)s %(name)s :: %(message)s",
    )

    mock = configure(IronicMock(cfg.name, config=cfg), args)
    print(f"Mock Ironic API server on {mock.endpoint()}")
    print("Press Ctrl+C to stop")
    try:
        wait_for_interrupt()
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
    finally:
        mock.stop()


if __name__ == "__main__":
    main()
