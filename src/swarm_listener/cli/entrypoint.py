#!/usr/bin/env python3
"""
entrypoint.py
- Manual entrypoint for running listener tasks via `docker exec`.
- Usage:
    docker exec <container> swarm-listener [listen|services]
- Route changes only ever come from the running listener loop.
"""

import json
import signal
import sys

from swarm_listener import main as daemon
from swarm_listener.core.docker_client import get_client
from swarm_listener.lib.swarm_services import SwarmServiceSource


def usage():
    print("Usage: swarm-listener <command>")
    print("Available commands:")
    print("  listen     Run the listener loop and the inbound API")
    print("  services   Print the current Swarm services as JSON")
    sys.exit(1)


def handle_exit(signum, frame):
    print("Received shutdown signal. Exiting...")
    sys.exit(0)


def print_services(source=None):
    source = source or SwarmServiceSource(get_client)
    services = source.get_services()
    print(json.dumps([{"serviceName": s.name, **s.params()} for s in services], indent=2))


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    if len(argv) != 1:
        usage()

    signal.signal(signal.SIGINT, handle_exit)
    signal.signal(signal.SIGTERM, handle_exit)

    command = argv[0]
    if command == "listen":
        daemon.main()
    elif command == "services":
        print_services()
    else:
        print(f"Unknown command: {command}")
        usage()


if __name__ == "__main__":
    main()
