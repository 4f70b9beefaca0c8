"""Terrastore Python client implementation."""

import logging
from typing import List, Optional

import httpx

from terrastore._internal.connection import HTTPConnection
from terrastore._internal.hosts import HostManager, OrderedHostManager, SingleHostManager
from terrastore.operations import BucketOperation, BucketsOperation, StatsOperation
from terrastore.types import ClientConfig

logger = logging.getLogger(__name__)


def host_manager_for(hosts: List[str]) -> HostManager:
    """Pick the host manager for a list of hosts.

    A single host is used as is; several hosts are used in order, demoting
    those that cannot be reached.
    """
    if not hosts:
        raise ValueError("At least one server host is required")
    if len(hosts) == 1:
        return SingleHostManager(hosts[0])
    return OrderedHostManager(hosts)


class TerrastoreClient:
    """Synchronous Terrastore client for Python.

    Example:
        >>> with TerrastoreClient(ClientConfig(hosts=["http://localhost:8080"])) as client:
        ...     client.bucket("customers").key("alice").put({"name": "Alice"})
        ...     alice = client.bucket("customers").key("alice").get(dict)
        ...     print(alice["name"])
    """

    def __init__(
        self,
        config: ClientConfig,
        host_manager: Optional[HostManager] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        """Initialize the Terrastore client.

        Args:
            config: Client configuration
            host_manager: Host manager to use instead of one built from
                ``config.hosts``
            http_client: HTTP client to use instead of a pooled default one;
                it is not closed by the client

        Raises:
            ValueError: If no host is configured and no host manager is given
        """
        if host_manager is None:
            host_manager = host_manager_for(config.hosts)

        self._config = config
        self._host_manager = host_manager
        self._connection = HTTPConnection(
            host_manager,
            descriptors=config.descriptors,
            http_client=http_client,
            timeout=config.timeout,
            max_connections=config.max_connections,
        )
        logger.debug("Created Terrastore client using %r", host_manager)

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def host_manager(self) -> HostManager:
        return self._host_manager

    def bucket(self, name: str) -> BucketOperation:
        """Start an operation on a bucket.

        Args:
            name: The bucket name

        Raises:
            ValueError: If the name is empty
        """
        return BucketOperation(self._connection, name)

    def buckets(self) -> BucketsOperation:
        return BucketsOperation(self._connection)

    def stats(self) -> StatsOperation:
        return StatsOperation(self._connection)

    def close(self) -> None:
        """Close all connections to the servers."""
        self._connection.close()

    def is_closed(self) -> bool:
        return self._connection.is_closed()

    def __enter__(self) -> "TerrastoreClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore
        self.close()
