"""
service_diff.py
- Diffs a fresh service snapshot against the ServiceCache.
- New services are inserted into the cache here; removed services are only reported.
  The notifier retires a removed service from the cache once its removal is delivered,
  so a failed removal is detected again on the next poll.
"""

from loguru import logger


def get_new_services(snapshot, cache):
    """
    Return the services whose names are not cached yet, caching each of them.

    Args:
        snapshot (list[Service]): Current services, in daemon order.
        cache (ServiceCache): Shared service cache.

    Returns:
        list[Service]: New services, in snapshot order.
    """
    new_services = []
    for service in snapshot:
        if cache.put_if_absent(service):
            new_services.append(service)
    if new_services:
        logger.info(f"[listener] New services: {[s.name for s in new_services]}")
    return new_services


def get_removed_services(snapshot, cache):
    """
    Return the cached service names that no longer appear in the snapshot.

    The cache is left untouched.
    """
    current = {service.name for service in snapshot}
    removed = [name for name in cache.names() if name not in current]
    if removed:
        logger.info(f"[listener] Removed services: {removed}")
    return removed
