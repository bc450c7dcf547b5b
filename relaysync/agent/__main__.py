"""
Run a device agent: ``python -m relaysync.agent --device-id 1 --server-url http://coordinator:3000``.
"""

import argparse
import logging

import uvicorn

from .client import CoordinatorClient
from .config import load_agent_config
from .device_agent import DeviceAgent
from .relay import InMemoryRelay, ShellyRpcRelay
from .server import create_agent_app


def parse_args(argv=None) -> argparse.Namespace:
    config = load_agent_config()
    parser = argparse.ArgumentParser(description="RelaySync device agent")
    parser.add_argument("--device-id", default=config.device_id, help="Device id registered at the coordinator")
    parser.add_argument("--server-url", default=config.server_url, help="Coordinator base URL")
    parser.add_argument("--relay-host", default=None,
                        help="Host of a Gen2 relay to drive over RPC (simulated relay when omitted)")
    parser.add_argument("--host", default=config.listen_host, help="Listen address of the local API")
    parser.add_argument("--port", type=int, default=config.listen_port, help="Listen port of the local API")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    config = load_agent_config().model_copy(update={
        "device_id": args.device_id,
        "server_url": args.server_url,
        "listen_host": args.host,
        "listen_port": args.port,
    })
    client = CoordinatorClient(config.server_url, config.sync_timeout, config.heartbeat_timeout)
    relay = ShellyRpcRelay(args.relay_host) if args.relay_host else InMemoryRelay()
    agent = DeviceAgent(config, client, relay)

    uvicorn.run(create_agent_app(agent), host=config.listen_host, port=config.listen_port)


if __name__ == "__main__":
    main()
