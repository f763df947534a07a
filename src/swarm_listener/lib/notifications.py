"""
notifications.py
- Notifies the proxy about created and removed services.
- Every request is retried a bounded number of times with a fixed interval.
- A failing service never stops the rest of the batch; failures are raised together
  once the batch is done.
"""

import time

import requests
from loguru import logger
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from swarm_listener.core import config
from swarm_listener.core.errors import NotificationError


def _log_retry(retry_state):
    error = retry_state.outcome.exception()
    logger.warning(f"[notify] Attempt {retry_state.attempt_number} failed: {error}")


class Notifier:
    """
    Sends create/remove notifications for services.

    Args:
        create_addrs (list[str]): URLs notified when a service appears.
        remove_addrs (list[str]): URLs notified when a service disappears.
        cache (ServiceCache): Removed services are retired from it once delivered.
        timeout (int): Per-request timeout in seconds.
        session: Optional requests.Session.
        sleep: Callable used between attempts.
    """

    def __init__(self, create_addrs, remove_addrs, cache, timeout=None, session=None, sleep=time.sleep):
        self.create_addrs = list(create_addrs)
        self.remove_addrs = list(remove_addrs)
        self.cache = cache
        self.timeout = timeout if timeout is not None else config.NOTIFY_TIMEOUT
        self.session = session or requests.Session()
        self.sleep = sleep

    @classmethod
    def from_env(cls, cache):
        return cls(config.CREATE_SERVICE_URLS, config.REMOVE_SERVICE_URLS, cache)

    def services_create(self, services, retries, interval):
        """
        Send a create notification for each service to every create URL.

        Raises:
            NotificationError: If at least one service could not be delivered.
        """
        if not self.create_addrs:
            return
        failed = []
        for service in services:
            params = {**service.params(), "serviceName": service.name}
            if not self._notify_all(self.create_addrs, params, retries, interval):
                failed.append(service.name)
        if failed:
            raise NotificationError(f"Create notifications failed for {failed}", failed)

    def services_remove(self, names, retries, interval):
        """
        Send a remove notification for each service name to every remove URL.

        Delivered names are removed from the service cache; failed ones stay cached
        so the next poll detects them again.

        Raises:
            NotificationError: If at least one service could not be delivered.
        """
        failed = []
        for name in names:
            cached = self.cache.get(name)
            params = {**(cached.params() if cached else {}), "serviceName": name}
            if self.remove_addrs and not self._notify_all(self.remove_addrs, params, retries, interval):
                failed.append(name)
                continue
            self.cache.pop(name)
        if failed:
            raise NotificationError(f"Remove notifications failed for {failed}", failed)

    def _notify_all(self, addrs, params, retries, interval):
        ok = True
        for addr in addrs:
            if not self._send(addr, params, retries, interval):
                ok = False
        return ok

    def _send(self, addr, params, retries, interval):
        """GET `addr` with `params`, retrying up to `retries` more times on failure."""
        retrying = Retrying(
            stop=stop_after_attempt(max(retries, 0) + 1),
            wait=wait_fixed(interval),
            retry=retry_if_exception_type(requests.RequestException),
            before_sleep=_log_retry,
            sleep=self.sleep,
            reraise=True,
        )
        try:
            for attempt in retrying:
                with attempt:
                    logger.debug(f"[notify] Sending {addr} {params}")
                    response = self.session.get(addr, params=params, timeout=self.timeout)
                    response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"[notify] Giving up on {addr} for {params.get('serviceName')}: {e}")
            return False
        logger.info(f"[notify] Sent {params.get('serviceName')} to {addr}")
        return True
