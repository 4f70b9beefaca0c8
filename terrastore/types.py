"""Type definitions for the Terrastore Python client."""

from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING,
    Any,
    Dict,
    FrozenSet,
    Iterator,
    List,
    Mapping,
    Optional,
    TypeVar,
)

from terrastore.mapreduce import MapReduceQuery
from terrastore.merge import MergeDescriptor

if TYPE_CHECKING:
    from terrastore.mapping import JsonObjectDescriptor

T = TypeVar("T")


class Values(Mapping[str, T]):
    """Ordered, read-only mapping of document keys to decoded values.

    Returned by every operation yielding several documents. Iteration order is
    the order in which keys appeared in the server response.
    """

    def __init__(self, values: Optional[Mapping[str, T]] = None):
        self._values: Dict[str, T] = dict(values) if values else {}

    def __getitem__(self, key: str) -> T:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"Values({self._values!r})"


@dataclass(frozen=True)
class ErrorMessage:
    """Error payload returned by the server on failed requests."""

    message: Optional[str]
    """Human readable failure description."""

    code: Optional[int]
    """Error code, mirroring the HTTP status."""


# =========================================================================
# Operation contexts
# =========================================================================


@dataclass(frozen=True)
class BucketContext:
    """Parameters of a whole-bucket operation."""

    bucket: str


@dataclass(frozen=True)
class KeyContext:
    """Parameters of a single key get/put/remove."""

    bucket: str
    key: str


@dataclass(frozen=True)
class ConditionalContext:
    """Parameters of a conditional get/put."""

    bucket: str
    key: str
    predicate: str
    """Server-side predicate gating the operation, e.g. ``jxpath:/name``."""


@dataclass(frozen=True)
class ValuesContext:
    """Parameters of an all-values query."""

    bucket: str
    limit: int = 0
    """Maximum number of values to return, 0 meaning no limit."""


@dataclass(frozen=True)
class PredicateContext:
    """Parameters of a predicate query."""

    bucket: str
    predicate: str


@dataclass(frozen=True)
class RangeContext:
    """Parameters of a range query or range removal."""

    bucket: str
    start_key: Optional[str] = None
    """First key of the range (inclusive)."""

    end_key: Optional[str] = None
    """Last key of the range (inclusive), None for an open range."""

    comparator: Optional[str] = None
    """Name of the server-side key comparator."""

    limit: int = 0
    """Maximum number of values to return, 0 meaning no limit."""

    time_to_live: int = 0
    """Max age in milliseconds of cached range results accepted by the server."""

    predicate: Optional[str] = None
    """Optional predicate filtering the values in range."""


@dataclass(frozen=True)
class UpdateContext:
    """Parameters of a server-side atomic update."""

    bucket: str
    key: str
    function: str
    """Name of the server-side update function."""

    parameters: Mapping[str, Any] = field(default_factory=dict)
    """Parameters handed to the update function."""

    timeout: int = 0
    """Milliseconds the server may hold the key lock, interpreted server-side."""


@dataclass(frozen=True)
class MergeContext:
    """Parameters of a merge operation."""

    bucket: str
    key: str
    descriptor: MergeDescriptor


@dataclass(frozen=True)
class BulkContext:
    """Parameters of a bulk get (keys) or bulk put (values)."""

    bucket: str
    keys: Optional[FrozenSet[str]] = None
    values: Optional[Mapping[str, Any]] = None


@dataclass(frozen=True)
class BackupContext:
    """Parameters of a backup export/import."""

    bucket: str
    file: Optional[str] = None
    """Server-side backup file name."""

    secret_key: Optional[str] = None
    """Secret key required by the server to run backups."""


@dataclass(frozen=True)
class MapReduceContext:
    """Parameters of a map-reduce query."""

    bucket: str
    query: MapReduceQuery


# =========================================================================
# Cluster statistics
# =========================================================================


@dataclass(frozen=True)
class NodeStats:
    """A single server node."""

    name: str
    host: str
    port: int


@dataclass(frozen=True)
class ClusterInfo:
    """A Terrastore cluster and its nodes."""

    name: str
    status: str
    """Cluster status as reported by the server, e.g. ``AVAILABLE``."""

    nodes: List[NodeStats] = field(default_factory=list)


@dataclass(frozen=True)
class ClusterStats:
    """Statistics for all clusters known to the contacted server."""

    clusters: List[ClusterInfo] = field(default_factory=list)


# =========================================================================
# Configuration
# =========================================================================


@dataclass
class ClientConfig:
    """Configuration for TerrastoreClient."""

    hosts: List[str]
    """Base URLs of the servers to use, e.g. ``http://localhost:8080``.

    A single host is always used as is; several hosts are tried in order,
    moving failed ones to the back of the list.
    """

    timeout: int = 5000
    """Transport timeout in milliseconds."""

    max_connections: Optional[int] = None
    """Size of the HTTP connection pool, defaults to ten per available CPU."""

    descriptors: List["JsonObjectDescriptor"] = field(default_factory=list)
    """Custom JSON encoders/decoders, keyed by exact value type."""
