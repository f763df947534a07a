#!/usr/bin/env python3
"""
main.py
- Main entrypoint for the swarm-listener container.
- Launches:
    - Inbound API: ping, cached services, on-demand re-notification, metrics
    - Listener loop: polls Swarm services, notifies the proxy, syncs BIG-IP routes
- Missing or broken BIG-IP configuration is fatal at start-up.
"""
import asyncio
import sys
from threading import Thread

import sentry_sdk
import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.responses import PlainTextResponse
from loguru import logger

from swarm_listener.core import config
from swarm_listener.core.constants import API_PREFIX
from swarm_listener.core.docker_client import get_client
from swarm_listener.core.errors import ConfigurationError, SwarmListenerError
from swarm_listener.lib import metrics
from swarm_listener.lib.bigip import BigIp
from swarm_listener.lib.notifications import Notifier
from swarm_listener.lib.service_cache import ServiceCache
from swarm_listener.lib.swarm_services import SwarmServiceSource
from swarm_listener.runner.listener import Listener


# --- FastAPI Server ---
def create_app(cache, source, notifier, retry=None, retry_interval=None):
    """
    Build the inbound API around the shared service cache.

    Args:
        cache (ServiceCache): Cache shared with the listener loop.
        source: Service snapshot source.
        notifier (Notifier): Used to re-send create notifications on demand.
    """
    retry = config.RETRY if retry is None else retry
    retry_interval = config.RETRY_INTERVAL if retry_interval is None else retry_interval
    api = FastAPI(title="swarm-listener")

    @api.get(f"{API_PREFIX}/ping")
    def ping():
        return {"status": "OK"}

    @api.get(f"{API_PREFIX}/get-services")
    def get_services():
        return [{**s.params(), "serviceName": s.name} for s in cache.values()]

    @api.get(f"{API_PREFIX}/notify-services")
    def notify_services():
        try:
            services = source.get_services()
        except Exception as e:
            logger.error(f"[api] Failed to get services: {e}")
            metrics.record_error("GetServices")
            raise HTTPException(status_code=500, detail="Unable to get services")

        # Unseen services stay out of the cache so the listener loop still routes them.
        for service in services:
            cache.replace_if_present(service)
        logger.info(f"[api] Re-sending create notifications for {len(services)} service(s)")
        Thread(target=_notify_create, args=(notifier, services, retry, retry_interval), daemon=True).start()
        return {"status": "OK"}

    @api.get("/metrics")
    def get_metrics():
        return PlainTextResponse(metrics.render(len(cache)), media_type="text/plain")

    return api


def _notify_create(notifier, services, retry, retry_interval):
    try:
        notifier.services_create(services, retry, retry_interval)
    except SwarmListenerError as e:
        logger.error(f"[api] {e}")
        metrics.record_error("ServicesCreate")


def start_api(api):
    uvicorn.run(api, host="0.0.0.0", port=config.LISTENER_PORT)


def build_bigip():
    """
    Build the route synchronizer, or None when BIG-IP sync is switched off.

    Raises:
        ConfigurationError: If BIG-IP sync is on and its configuration is unusable.
    """
    if not config.CONFIG_API and not config.BIGIP_ENABLED:
        logger.warning("[bigip] DF_CONFIG_API not set and DF_BIGIP_ENABLED=false, route sync disabled.")
        return None
    return BigIp.from_env()


def build_listener():
    cache = ServiceCache()
    source = SwarmServiceSource(get_client)
    notifier = Notifier.from_env(cache)
    bigip = build_bigip()
    if not notifier.create_addrs:
        logger.warning("[listener] No create notification URL configured.")
    return Listener(source, cache, notifier, bigip)


def main():
    config.configure_logging()
    if config.SENTRY_DSN:
        sentry_sdk.init(dsn=config.SENTRY_DSN, traces_sample_rate=1.0)

    logger.info("Starting Docker Flow: Swarm Listener")
    try:
        listener = build_listener()
    except ConfigurationError as e:
        logger.critical(f"[swarm-listener] Fatal configuration error: {e}")
        sys.exit(1)

    api = create_app(listener.cache, listener.source, listener.notifier)
    Thread(target=start_api, args=(api,), daemon=True).start()

    try:
        asyncio.run(listener.run())
    except KeyboardInterrupt:
        logger.info("KeyboardInterrupt received. Exiting.")


if __name__ == "__main__":
    main()
