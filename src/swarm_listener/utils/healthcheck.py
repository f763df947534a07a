#!/usr/bin/env python3
"""
healthcheck.py
- Basic healthcheck script for Docker HEALTHCHECK.
- Returns exit code 0 if the inbound API answers its ping, 1 if not.
"""

import sys

import requests

from swarm_listener.core.config import LISTENER_PORT
from swarm_listener.core.constants import API_PREFIX


def check(port=LISTENER_PORT):
    try:
        response = requests.get(f"http://localhost:{port}{API_PREFIX}/ping", timeout=3)
    except requests.RequestException as e:
        print(f"Healthcheck failed: {e}")
        return False
    if response.status_code != 200:
        print(f"Healthcheck failed: ping returned {response.status_code}")
        return False
    return True


def main():
    sys.exit(0 if check() else 1)


if __name__ == "__main__":
    main()
