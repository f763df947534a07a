"""
swarm_services.py
- Service snapshot source: lists the Swarm services that opted in to notifications.
- Converts Docker SDK service objects into plain Service records.
- Derives notification parameters from `com.df.*` labels.
"""

from dataclasses import dataclass, field

from loguru import logger

from swarm_listener.core.constants import LABEL_PREFIX, NOTIFY_LABEL


@dataclass(frozen=True)
class Service:
    name: str
    labels: dict = field(default_factory=dict, compare=False)
    id: str = field(default="", compare=False)

    @classmethod
    def from_swarm(cls, service):
        """
        Build a Service from a Docker SDK service object.

        Args:
            service: docker.models.services.Service

        Returns:
            Service: name, labels and ID taken from the service spec.
        """
        spec = service.attrs.get("Spec", {})
        return cls(
            name=spec.get("Name", ""),
            labels=dict(spec.get("Labels") or {}),
            id=service.attrs.get("ID", ""),
        )

    def params(self):
        """Notification parameters: `com.df.*` labels with the prefix stripped."""
        params = {}
        for key, value in self.labels.items():
            if not key.startswith(LABEL_PREFIX) or key == NOTIFY_LABEL:
                continue
            params[key[len(LABEL_PREFIX):]] = value
        return params


class SwarmServiceSource:
    """Fetches the current set of notify-enabled Swarm services."""

    def __init__(self, client_factory):
        self.client_factory = client_factory

    def get_services(self):
        """
        Return all services labelled `com.df.notify=true`, in daemon order.

        Raises:
            docker.errors.DockerException, requests.RequestException: On daemon failure.
        """
        client = self.client_factory()
        swarm_services = client.services.list(filters={"label": f"{NOTIFY_LABEL}=true"})
        services = [Service.from_swarm(s) for s in swarm_services]
        logger.debug(f"[services] Snapshot contains {len(services)} service(s)")
        return services
