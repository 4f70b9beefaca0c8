"""HTTP connection to a Terrastore server cluster."""

import logging
import os
from typing import Any, Callable, Dict, Iterable, Optional, Set, Type, TypeVar

import httpx

from terrastore._internal.hosts import HostManager
from terrastore._internal.request import OperationKind, build_request
from terrastore.errors import ConnectionError as TerrastoreConnectionError
from terrastore.errors import TerrastoreClientError, from_response
from terrastore.mapping import JsonMapper, JsonObjectDescriptor
from terrastore.types import (
    BackupContext,
    BucketContext,
    BulkContext,
    ClusterStats,
    ConditionalContext,
    KeyContext,
    MapReduceContext,
    MergeContext,
    PredicateContext,
    RangeContext,
    UpdateContext,
    Values,
    ValuesContext,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

JSON_CONTENT_TYPE = "application/json"


def default_max_connections() -> int:
    """Connection pool size used when none is configured."""
    return (os.cpu_count() or 1) * 10


class HTTPConnection:
    """Executes Terrastore operations over HTTP.

    Every operation is a single blocking round trip: a host is taken from the
    host manager, the request is built and sent, and the response is either
    decoded or translated into a TerrastoreClientError. Hosts that cannot be
    reached are reported to the host manager; nothing is retried.
    """

    def __init__(
        self,
        host_manager: HostManager,
        descriptors: Iterable[JsonObjectDescriptor] = (),
        http_client: Optional[httpx.Client] = None,
        timeout: int = 5000,
        max_connections: Optional[int] = None,
    ):
        """Initialize the connection.

        Args:
            host_manager: Chooses the server host for each request
            descriptors: Custom JSON encoders/decoders for value types
            http_client: HTTP client to use instead of a pooled default one
            timeout: Transport timeout in milliseconds
            max_connections: Size of the default client's connection pool
        """
        self._host_manager = host_manager
        self._mapper = JsonMapper(descriptors)
        self._owns_client = http_client is None
        if http_client is None:
            pool_size = max_connections or default_max_connections()
            http_client = httpx.Client(
                timeout=timeout / 1000.0,
                limits=httpx.Limits(
                    max_connections=pool_size,
                    max_keepalive_connections=pool_size,
                ),
            )
        self._http = http_client
        self._closed = False

    @property
    def mapper(self) -> JsonMapper:
        return self._mapper

    def close(self) -> None:
        """Release the HTTP connection pool."""
        if self._closed:
            return

        self._closed = True
        if self._owns_client:
            self._http.close()

    def is_closed(self) -> bool:
        return self._closed

    def __enter__(self) -> "HTTPConnection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore
        self.close()

    # =========================================================================
    # Operations
    # =========================================================================

    def get_cluster_stats(self) -> ClusterStats:
        """Get statistics about the server clusters."""
        return self._execute(
            OperationKind.CLUSTER_STATS,
            decode=lambda body: self._mapper.loads(body, ClusterStats),
        )

    def clear_bucket(self, context: BucketContext) -> None:
        """Remove a bucket and all its values."""
        self._execute(OperationKind.CLEAR_BUCKET, context)

    def get_buckets(self) -> Set[str]:
        """Get the names of all buckets."""
        return self._execute(OperationKind.LIST_BUCKETS, decode=self._mapper.read_keys)

    def put_value(self, context: KeyContext, value: Any) -> None:
        """Store a value under a key."""
        self._execute(OperationKind.PUT_VALUE, context, value)

    def conditional_put_value(self, context: ConditionalContext, value: Any) -> None:
        """Store a value if the stored one satisfies the context predicate."""
        self._execute(OperationKind.CONDITIONAL_PUT, context, value)

    def remove_value(self, context: KeyContext) -> None:
        """Remove a key and its value."""
        self._execute(OperationKind.REMOVE_VALUE, context)

    def get_value(self, context: KeyContext, value_type: Type[T]) -> T:
        """Get the value stored under a key, decoded as ``value_type``."""
        return self._execute(
            OperationKind.GET_VALUE, context, decode=self._read_value(value_type)
        )

    def conditional_get_value(self, context: ConditionalContext, value_type: Type[T]) -> T:
        """Get a value if it satisfies the context predicate."""
        return self._execute(
            OperationKind.CONDITIONAL_GET, context, decode=self._read_value(value_type)
        )

    def get_all_values(self, context: ValuesContext, value_type: Type[T]) -> Values:
        """Get all values in a bucket, up to the context limit."""
        return self._execute(
            OperationKind.GET_ALL_VALUES, context, decode=self._read_values(value_type)
        )

    def query_by_range(self, context: RangeContext, value_type: Type[T]) -> Values:
        """Get the values whose keys fall in the context range."""
        return self._execute(
            OperationKind.QUERY_BY_RANGE, context, decode=self._read_values(value_type)
        )

    def remove_by_range(self, context: RangeContext) -> Set[str]:
        """Remove the values in the context range, returning the removed keys."""
        return self._execute(
            OperationKind.REMOVE_BY_RANGE, context, decode=self._mapper.read_keys
        )

    def query_by_predicate(self, context: PredicateContext, value_type: Type[T]) -> Values:
        """Get the values satisfying the context predicate."""
        return self._execute(
            OperationKind.QUERY_BY_PREDICATE, context, decode=self._read_values(value_type)
        )

    def query_by_map_reduce(self, context: MapReduceContext, value_type: Type[T]) -> T:
        """Run a map-reduce query and return its aggregated result."""
        return self._execute(
            OperationKind.MAP_REDUCE, context, decode=self._read_value(value_type)
        )

    def export_backup(self, context: BackupContext) -> None:
        """Export a bucket to a server-side backup file."""
        self._execute(OperationKind.EXPORT_BACKUP, context)

    def import_backup(self, context: BackupContext) -> None:
        """Import a bucket from a server-side backup file."""
        self._execute(OperationKind.IMPORT_BACKUP, context)

    def execute_update(self, context: UpdateContext, value_type: Type[T]) -> T:
        """Run a server-side update function and return the updated value."""
        return self._execute(
            OperationKind.UPDATE, context, decode=self._read_value(value_type)
        )

    def execute_merge(self, context: MergeContext, value_type: Type[T]) -> T:
        """Merge the context descriptor into a value and return the result."""
        return self._execute(
            OperationKind.MERGE, context, decode=self._read_value(value_type)
        )

    def bulk_put(self, context: BulkContext) -> Set[str]:
        """Store several values, returning the keys actually written."""
        return self._execute(OperationKind.BULK_PUT, context, decode=self._mapper.read_keys)

    def bulk_get(self, context: BulkContext, value_type: Type[T]) -> Values:
        """Get the values stored under several keys."""
        return self._execute(
            OperationKind.BULK_GET, context, decode=self._read_values(value_type)
        )

    # =========================================================================
    # Request execution
    # =========================================================================

    def _read_value(self, value_type: Any) -> Callable[[bytes], Any]:
        return lambda body: self._mapper.loads(body, value_type)

    def _read_values(self, value_type: Any) -> Callable[[bytes], Values]:
        return lambda body: self._mapper.read_values(body, value_type)

    def _headers(self, has_body: bool) -> Dict[str, str]:
        headers = {"Accept": JSON_CONTENT_TYPE}
        if has_body:
            headers["Content-Type"] = JSON_CONTENT_TYPE
        return headers

    def _execute(
        self,
        kind: OperationKind,
        context: Any = None,
        value: Any = None,
        decode: Optional[Callable[[bytes], Any]] = None,
    ) -> Any:
        """Run one operation against the current host.

        Raises:
            ConnectionError: If the host could not be reached
            TerrastoreClientError: If the server answered with a failure, or
                the request could not be serviced
        """
        if self._closed:
            raise TerrastoreClientError("Connection is closed")

        host = self._host_manager.get_host()
        response: Optional[httpx.Response] = None
        try:
            wire = build_request(host, kind, context, value)
            content = wire.content
            if content is None and wire.has_body:
                content = self._mapper.dumps(wire.body)
            request = self._http.build_request(
                wire.method,
                wire.url,
                params=wire.params,
                content=content,
                headers=self._headers(wire.has_body),
            )
            response = self._http.send(request, stream=True)
            body = response.read()
            logger.debug(
                "%s %s -> %d", wire.method, request.url, response.status_code
            )

            if not response.is_success:
                raise from_response(kind.family, response.status_code, body)

            return decode(body) if decode is not None else None

        except TerrastoreClientError:
            raise

        except (httpx.ConnectError, httpx.ConnectTimeout) as e:
            logger.error("Unable to connect to %s: %s", host, e)
            self._host_manager.suspect(host)
            raise TerrastoreConnectionError(f"Unable to connect to: {host}", host) from e

        except Exception as e:
            raise TerrastoreClientError(f"Could not service your request: {e}") from e

        finally:
            if response is not None:
                response.close()
