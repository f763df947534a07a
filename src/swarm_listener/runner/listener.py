#!/usr/bin/env python3
"""
listener.py
- Reconciliation loop of the swarm listener.
- Each iteration: snapshot services -> diff against the cache -> notify + sync routes
  for new services -> notify + sync routes for removed services -> sleep.
- Iterations run strictly one after another so BIG-IP GET-modify-PUT cycles never overlap.
- Failures are logged and counted; they never stop the loop.
"""

import asyncio
import time

from loguru import logger

from swarm_listener.core import config
from swarm_listener.lib import metrics
from swarm_listener.lib.sync.service_diff import get_new_services, get_removed_services


class Listener:
    """
    Drives one snapshot-diff-notify-sync cycle at a time.

    Args:
        source: Object with get_services() returning the current services.
        cache (ServiceCache): Shared service cache.
        notifier (Notifier): Proxy notification dispatcher.
        bigip (BigIp | None): Route synchronizer, or None when disabled.
    """

    def __init__(self, source, cache, notifier, bigip=None,
                 retry=None, retry_interval=None, interval=None):
        self.source = source
        self.cache = cache
        self.notifier = notifier
        self.bigip = bigip
        self.retry = config.RETRY if retry is None else retry
        self.retry_interval = config.RETRY_INTERVAL if retry_interval is None else retry_interval
        self.interval = config.INTERVAL if interval is None else interval
        self.should_run = True

    def reconcile_once(self):
        """Run a single iteration. Returns (new_services, removed_names)."""
        start_time = time.time()
        new_services, removed = [], []

        try:
            snapshot = self.source.get_services()
        except Exception as e:
            logger.error(f"[listener] Failed to get services: {e}")
            metrics.record_error("GetServices")
            snapshot = None

        if snapshot is not None:
            try:
                new_services = get_new_services(snapshot, self.cache)
            except Exception as e:
                logger.error(f"[listener] Failed to compute new services: {e}")
                metrics.record_error("GetNewServices")
            try:
                removed = get_removed_services(snapshot, self.cache)
            except Exception as e:
                logger.error(f"[listener] Failed to compute removed services: {e}")
                metrics.record_error("GetRemovedServices")

        self._step("ServicesCreate", self.notifier.services_create, new_services, self.retry, self.retry_interval)
        if self.bigip is not None:
            self._step("AddRoutes", self.bigip.add_routes, new_services)

        self._step("ServicesRemove", self.notifier.services_remove, removed, self.retry, self.retry_interval)
        if self.bigip is not None:
            self._step("RemoveRoutes", self.bigip.remove_routes, removed)

        metrics.record_iteration(time.time() - start_time)
        logger.debug(f"[listener] Iteration done, {len(self.cache)} service(s) cached")
        return new_services, removed

    def _step(self, operation, func, *args):
        if not args[0]:
            return
        try:
            func(*args)
        except Exception as e:
            logger.error(f"[listener] {operation} failed: {e}")
            metrics.record_error(operation)

    async def run(self):
        logger.info(f"[listener] Starting iterations every {self.interval} seconds...")
        while self.should_run:
            self.reconcile_once()
            await asyncio.sleep(self.interval)

    def stop(self):
        self.should_run = False
