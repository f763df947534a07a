"""
constants.py
- Project-wide constants shared across the listener, notifier and BIG-IP sync.
- Includes label names, the data group API path and the secret header.
"""

# --- Service Labels ---
LABEL_PREFIX = "com.df."
NOTIFY_LABEL = "com.df.notify"
SERVICE_PATH_LABEL = "com.df.servicePath"

# --- BIG-IP Data Group API ---
DG_PATH = "/mgmt/tm/ltm/data-group/internal/"
BIGIP_HEADER = "X-f5key"
DEFAULT_BIGIP_KEY_FILE = "/run/secrets/bigip-key"

# --- Inbound API ---
API_PREFIX = "/v1/docker-flow-swarm-listener"
