"""Centralized defaults for the HANA check service.

Unit names, database control settings and timing bounds live here rather
than being scattered across the runtime adapters.
"""

from __future__ import annotations

from pathlib import Path

# ---------------------------------------------------------------------------
# Tracked systemd units, in start order.
# Later units depend on earlier ones being up. The database support unit
# (sapinit) is tracked too so its autostart flag is reconciled with the rest.
# ---------------------------------------------------------------------------
DEFAULT_SERVICES: list[str] = [
    "sapinit",
    "sapb1servertools",
    "sapb1servertools-authentication",
]

# ---------------------------------------------------------------------------
# Database control interface
# ---------------------------------------------------------------------------
DEFAULT_DB_USER = "hdbadm"
DEFAULT_DB_INSTANCE = "00"
DEFAULT_SUPPORT_UNIT = "sapinit"
DEFAULT_CONTROL_COMMAND = "sapcontrol"
# GetProcessList reports GREEN for every running process once the DB is up.
DEFAULT_HEALTHY_TOKEN = "GREEN"

# ---------------------------------------------------------------------------
# Timing (seconds)
# ---------------------------------------------------------------------------
DEFAULT_MAX_RETRIES = 20
DEFAULT_RETRY_INTERVAL = 20
DEFAULT_DATABASE_SETTLE = 30
DEFAULT_STABILIZE_SETTLE = 30
DEFAULT_SERVICE_SETTLE = 5
COMMAND_TIMEOUT = 120

# ---------------------------------------------------------------------------
# Persistent watcher registration
# ---------------------------------------------------------------------------
WATCHER_UNIT_NAME = "hana-checkservice.service"
WATCHER_DESCRIPTION = "SAP HANA and B1 Services Check and Start"
SYSTEMD_UNIT_DIR = Path("/etc/systemd/system")
DEFAULT_LOG_FILE = Path("/var/log/hana-checkservice.log")

CONFIG_FILENAME = "checkservice.yaml"
CONFIG_DIR_ENV = "CHECKSERVICE_HOME"
DEFAULT_CONFIG_DIR = Path("/etc/checkservice")
