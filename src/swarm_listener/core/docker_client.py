"""
docker_client.py
- Provides a shared, preconfigured Docker SDK client for the service snapshot source.
- Honors DF_DOCKER_HOST and falls back to the standard Docker environment.
"""

import docker
from loguru import logger

from swarm_listener.core.config import DOCKER_HOST

_client = None


def get_client():
    """
    Return the shared Docker client, creating it on first use.

    Raises:
        docker.errors.DockerException: If the daemon cannot be reached.
    """
    global _client
    if _client is None:
        if DOCKER_HOST:
            _client = docker.DockerClient(base_url=DOCKER_HOST)
        else:
            _client = docker.from_env()
        logger.debug(f"[docker] Connected to Docker daemon (SDK {docker.__version__})")
    return _client
