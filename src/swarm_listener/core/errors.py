"""
errors.py
- Exception types raised by the swarm listener.
- ConfigurationError is fatal at start-up; the others are reported per iteration.
"""


class SwarmListenerError(Exception):
    pass


class ConfigurationError(SwarmListenerError):
    """Required start-up configuration is missing, unreadable or malformed."""


class BatchError(SwarmListenerError):
    """
    At least one item of a batch failed after the whole batch was processed.

    Attributes:
        failed (list[str]): Names of the services that failed.
    """

    def __init__(self, message, failed=None):
        super().__init__(message)
        self.failed = list(failed or [])


class NotificationError(BatchError):
    pass


class RouteSyncError(BatchError):
    pass
