"""Loading of client configuration from YAML files and the environment.

A YAML configuration file looks like::

    hosts:
      - http://node1:8080
      - http://node2:8080
    timeout: 5000
    max_connections: 20

Environment variables:
    TERRASTORE_CONFIG: Path of a YAML configuration file
    TERRASTORE_HOSTS: Comma-separated server hosts
    TERRASTORE_TIMEOUT: Transport timeout in milliseconds
"""

import logging
import os
from typing import Any, Mapping, Optional

import yaml

from terrastore.types import ClientConfig

logger = logging.getLogger(__name__)

CONFIG_ENV = "TERRASTORE_CONFIG"
HOSTS_ENV = "TERRASTORE_HOSTS"
TIMEOUT_ENV = "TERRASTORE_TIMEOUT"

_KNOWN_KEYS = {"hosts", "timeout", "max_connections"}


def _positive_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"{name} must be an integer, got {value!r}") from e
    if number <= 0:
        raise ValueError(f"{name} must be positive, got {number}")
    return number


def config_from_mapping(data: Mapping[str, Any]) -> ClientConfig:
    """Build a ClientConfig from a plain mapping.

    Raises:
        ValueError: If keys are unknown or values are invalid
    """
    if not isinstance(data, Mapping):
        raise ValueError("Configuration must be a mapping")

    unknown = set(data) - _KNOWN_KEYS
    if unknown:
        raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

    hosts = data.get("hosts")
    if isinstance(hosts, str):
        hosts = [hosts]
    if not hosts or not all(isinstance(host, str) and host for host in hosts):
        raise ValueError("hosts must be a non-empty list of host URLs")

    config = ClientConfig(hosts=list(hosts))
    if data.get("timeout") is not None:
        config.timeout = _positive_int("timeout", data["timeout"])
    if data.get("max_connections") is not None:
        config.max_connections = _positive_int("max_connections", data["max_connections"])
    return config


def load_config(path: str) -> ClientConfig:
    """Load a ClientConfig from a YAML file.

    Args:
        path: Path of the YAML file

    Raises:
        ValueError: If the file is not valid YAML or holds invalid settings
        OSError: If the file cannot be read
    """
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e

    logger.debug("Loaded configuration from %s", path)
    return config_from_mapping(data or {})


def config_from_env(environ: Optional[Mapping[str, str]] = None) -> ClientConfig:
    """Build a ClientConfig from environment variables.

    ``TERRASTORE_CONFIG`` takes precedence; otherwise ``TERRASTORE_HOSTS``
    is required and ``TERRASTORE_TIMEOUT`` is optional.

    Raises:
        ValueError: If no configuration is found or it is invalid
    """
    env = os.environ if environ is None else environ

    path = env.get(CONFIG_ENV)
    if path:
        return load_config(path)

    hosts = [host.strip() for host in env.get(HOSTS_ENV, "").split(",") if host.strip()]
    if not hosts:
        raise ValueError(f"Neither {CONFIG_ENV} nor {HOSTS_ENV} is set")

    data: dict = {"hosts": hosts}
    if env.get(TIMEOUT_ENV):
        data["timeout"] = env[TIMEOUT_ENV]
    return config_from_mapping(data)
