"""Terrastore Python Client SDK.

A Python client for Terrastore - a distributed, elastic document store
speaking JSON over HTTP.

Example:
    >>> from terrastore import TerrastoreClient, ClientConfig
    >>>
    >>> config = ClientConfig(hosts=["http://localhost:8080"])
    >>> with TerrastoreClient(config) as client:
    ...     customers = client.bucket("customers")
    ...
    ...     # Put a value
    ...     customers.key("alice").put({"name": "Alice", "age": 31})
    ...
    ...     # Get a value
    ...     alice = customers.key("alice").get(dict)
    ...     print(alice["name"])  # Alice
    ...
    ...     # Query a key range
    ...     values = customers.range().from_key("a").to_key("m").get(dict)
    ...
    ...     # Remove a value
    ...     customers.key("alice").remove()
"""

__version__ = "0.1.0"

from terrastore._internal.hosts import HostManager, OrderedHostManager, SingleHostManager
from terrastore.client import TerrastoreClient
from terrastore.config import config_from_env, load_config
from terrastore.errors import (
    ClusterUnavailableError,
    ConnectionError,
    MapReduceQueryError,
    NoSuchKeyError,
    RequestError,
    ServerError,
    TerrastoreClientError,
    UnsatisfiedConditionError,
)
from terrastore.mapping import JsonMapper, JsonMappingError, JsonObjectDescriptor
from terrastore.mapreduce import MapReduceQuery, Range, Task
from terrastore.merge import MergeDescriptor
from terrastore.types import (
    ClientConfig,
    ClusterInfo,
    ClusterStats,
    ErrorMessage,
    NodeStats,
    Values,
)

__all__ = [
    "__version__",
    # Client
    "TerrastoreClient",
    # Configuration
    "ClientConfig",
    "load_config",
    "config_from_env",
    # Host managers
    "HostManager",
    "SingleHostManager",
    "OrderedHostManager",
    # JSON mapping
    "JsonMapper",
    "JsonObjectDescriptor",
    "JsonMappingError",
    # Documents and queries
    "Values",
    "MergeDescriptor",
    "MapReduceQuery",
    "Range",
    "Task",
    "ClusterStats",
    "ClusterInfo",
    "NodeStats",
    "ErrorMessage",
    # Errors
    "TerrastoreClientError",
    "ConnectionError",
    "RequestError",
    "NoSuchKeyError",
    "UnsatisfiedConditionError",
    "MapReduceQueryError",
    "ServerError",
    "ClusterUnavailableError",
]
