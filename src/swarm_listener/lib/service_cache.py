"""
service_cache.py
- Process-wide cache of the last observed Service per name.
- Shared by the reconciliation loop and the inbound API thread, so every access
  goes through a single lock.
"""

from threading import Lock


class ServiceCache:
    """Lock-guarded mapping of service name -> Service."""

    def __init__(self):
        self._lock = Lock()
        self._services = {}

    def get(self, name):
        with self._lock:
            return self._services.get(name)

    def put(self, service):
        with self._lock:
            self._services[service.name] = service

    def put_if_absent(self, service):
        """Insert `service` unless its name is cached. Returns True if inserted."""
        with self._lock:
            if service.name in self._services:
                return False
            self._services[service.name] = service
            return True

    def replace_if_present(self, service):
        """Refresh the entry for an already cached name. Returns True if replaced."""
        with self._lock:
            if service.name not in self._services:
                return False
            self._services[service.name] = service
            return True

    def pop(self, name):
        """Remove and return the cached service, or None if it was not cached."""
        with self._lock:
            return self._services.pop(name, None)

    def names(self):
        with self._lock:
            return list(self._services)

    def values(self):
        with self._lock:
            return list(self._services.values())

    def __contains__(self, name):
        with self._lock:
            return name in self._services

    def __len__(self):
        with self._lock:
            return len(self._services)
