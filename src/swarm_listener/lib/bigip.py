"""
bigip.py
- Keeps a BIG-IP internal data group in sync with `com.df.servicePath` labels.
- Each update is a full GET-modify-PUT of the data group. There is no concurrency
  control on the store, so only one writer (the listener loop) may use a BigIp.
- Tracks which paths were registered for which service; removal trusts that cache
  and never re-reads the store to find a service's paths.
"""

import json
from dataclasses import asdict, dataclass

import requests
import urllib3
from loguru import logger

from swarm_listener.core import config
from swarm_listener.core.constants import BIGIP_HEADER, DG_PATH, SERVICE_PATH_LABEL
from swarm_listener.core.errors import ConfigurationError, RouteSyncError


@dataclass
class Record:
    name: str = ""
    data: str = ""

    def to_dict(self):
        return {k: v for k, v in asdict(self).items() if v}


@dataclass
class DataGroup:
    records: list

    @classmethod
    def from_json(cls, body):
        """
        Decode a data group document.

        Raises:
            ValueError: If the body is not a JSON object with a records list.
        """
        document = json.loads(body)
        if not isinstance(document, dict):
            raise ValueError("data group document is not an object")
        raw_records = document.get("records") or []
        if not isinstance(raw_records, list):
            raise ValueError("data group records is not a list")
        return cls([Record(name=r.get("name", ""), data=r.get("data", "")) for r in raw_records])

    def to_json(self):
        return json.dumps({"records": [r.to_dict() for r in self.records]})


def service_paths(service):
    """
    Return the lower-cased, non-empty paths declared by the service path label.

    Returns:
        list[str]: Empty if the label is missing or holds no paths.
    """
    label = service.labels.get(SERVICE_PATH_LABEL)
    if label is None:
        return []
    return [p.strip() for p in label.lower().split(",") if p.strip()]


class BigIp:
    """
    Route synchronizer for a single BIG-IP data group.

    Attributes:
        url (str): Full data group URL.
        key (str): Secret forwarded in the X-f5key header.
        pattern (str): Data stored with every record.
        services (dict[str, list[str]]): Paths registered per service name.
    """

    def __init__(self, url, key, pattern, session=None, timeout=None):
        self.url = url
        self.key = key
        self.pattern = pattern
        self.services = {}
        self.timeout = timeout if timeout is not None else config.BIGIP_TIMEOUT
        if session is None:
            # The BIG-IP management API serves a self-signed certificate
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
            session = requests.Session()
            session.verify = False
        self.session = session

    # --- Construction ---
    @classmethod
    def from_config(cls, config_api, key_file):
        """
        Build a BigIp from the configuration document and the secret file.

        Raises:
            ConfigurationError: If either one is unavailable or malformed.
        """
        key = read_key(key_file)
        bigip_config = read_config(config_api)
        url = f"{bigip_config['BIGIP_HOST']}{DG_PATH}{bigip_config['BIGIP_DG']}"
        logger.info(f"[bigip] Syncing routes to {url}")
        return cls(url, key, bigip_config["BIGIP_RWP"])

    @classmethod
    def from_env(cls):
        if not config.CONFIG_API:
            raise ConfigurationError("BigIp: Missing Config API Url (DF_CONFIG_API)")
        return cls.from_config(config.CONFIG_API, config.BIGIP_KEY_FILE)

    # --- Public API ---
    def add_routes(self, services):
        """
        Register the label paths of every service and cache them on success.

        Raises:
            RouteSyncError: If at least one service failed; the rest are still processed.
        """
        failed = []
        for service in services:
            paths = service_paths(service)
            if not paths:
                continue
            logger.info(f"[bigip] Adding {paths} to {self.url}")
            try:
                self._update_data_group(paths, remove=False)
            except RouteSyncError as e:
                logger.error(f"[bigip] {e}")
                failed.append(service.name)
                continue
            self.services[service.name] = paths
        if failed:
            raise RouteSyncError("Adding routes for at least one of the services failed", failed)

    def remove_routes(self, names):
        """
        Unregister the cached paths of every named service and drop it from the cache.

        Names without cached paths are skipped.

        Raises:
            RouteSyncError: If at least one service failed; the rest are still processed.
        """
        failed = []
        for name in names:
            paths = self.services.get(name)
            if paths is None:
                continue
            logger.info(f"[bigip] Removing {paths} from {self.url}")
            try:
                self._update_data_group(paths, remove=True)
            except RouteSyncError as e:
                logger.error(f"[bigip] {e}")
                failed.append(name)
                continue
            del self.services[name]
        if failed:
            raise RouteSyncError("Removing routes for at least one of the services failed", failed)

    # --- Data Group Update ---
    def _update_data_group(self, paths, remove):
        try:
            response = self.session.get(self.url, headers=self.new_request_headers(), timeout=self.timeout)
        except requests.RequestException as e:
            raise RouteSyncError(f"Unable to get details of data group from url {self.url}: {e}")
        if not 200 <= response.status_code < 300:
            raise RouteSyncError(f"Request {self.url} returned status code {response.status_code}: {response.text}")

        try:
            data_group = DataGroup.from_json(response.text)
        except (ValueError, AttributeError) as e:
            raise RouteSyncError(f"Unable to decode response from {self.url}: {e}")

        records = self.get_records(paths)
        if remove:
            data_group.records = self.remove_records(data_group.records, records)
        else:
            # Same-named records are not de-duplicated; removal drops all of them
            data_group.records.extend(records)

        try:
            response = self.session.put(
                self.url,
                data=data_group.to_json(),
                headers=self.new_request_headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise RouteSyncError(f"Unable to update data group at url {self.url}: {e}")
        if not 200 <= response.status_code < 300:
            raise RouteSyncError(f"Request {self.url} returned status code {response.status_code}: {response.text}")

    def new_request_headers(self):
        return {"Content-Type": "application/json", BIGIP_HEADER: self.key}

    def get_records(self, paths):
        return [Record(name=path, data=self.pattern) for path in paths if path]

    @staticmethod
    def contains_record(target, candidate):
        return any(t.name == candidate.name for t in target)

    def remove_records(self, records, remove):
        return [r for r in records if not self.contains_record(remove, r)]


def read_key(key_file):
    """Read the BIG-IP secret, trimmed of surrounding whitespace."""
    try:
        with open(key_file, "r") as f:
            return f.read().strip()
    except OSError as e:
        raise ConfigurationError(f"Unable to read BIG-IP key file {key_file}: {e}")


def read_config(config_api):
    """
    Fetch the BIG-IP configuration document.

    Returns:
        dict: BIGIP_HOST, BIGIP_DG and BIGIP_RWP values.

    Raises:
        ConfigurationError: On transport failure, non-200 status or a malformed document.
    """
    try:
        response = requests.get(config_api, timeout=config.BIGIP_TIMEOUT)
    except requests.RequestException as e:
        raise ConfigurationError(f"Unable to reach Config API at {config_api}: {e}")
    if not 200 <= response.status_code < 300:
        raise ConfigurationError(f"Config API at {config_api} returned a non-2xx response")
    try:
        document = response.json()
    except ValueError as e:
        raise ConfigurationError(f"Config API at {config_api} returned invalid JSON: {e}")
    if not isinstance(document, dict):
        raise ConfigurationError(f"Config API at {config_api} returned a non-object document")
    missing = [k for k in ("BIGIP_HOST", "BIGIP_DG", "BIGIP_RWP") if k not in document]
    if missing:
        raise ConfigurationError(f"Config API at {config_api} is missing {missing}")
    return document
