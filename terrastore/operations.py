"""Fluent, immutable builders for Terrastore operations.

Every builder method returning a builder returns a new instance; instances are
never modified, so they can be shared freely between threads.

Example:
    >>> bucket = client.bucket("customers")
    >>> bucket.key("alice").put({"name": "Alice"})
    >>> recent = bucket.range().from_key("a").to_key("c").limit(10).get(dict)
"""

from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Mapping, Optional, Set

from terrastore._internal.connection import HTTPConnection
from terrastore.mapreduce import MapReduceQuery
from terrastore.merge import MergeDescriptor
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


@dataclass(frozen=True)
class BucketOperation:
    """Operations on a single bucket.

    Buckets are created implicitly by the server on first write.
    """

    connection: HTTPConnection = field(repr=False, compare=False)
    bucket: str

    def __post_init__(self) -> None:
        if not self.bucket:
            raise ValueError("Bucket name cannot be empty.")

    def clear(self) -> None:
        """Remove the bucket and all its values."""
        self.connection.clear_bucket(BucketContext(self.bucket))

    def key(self, key: str) -> "KeyOperation":
        return KeyOperation(self.connection, KeyContext(self.bucket, key))

    def values(self) -> "ValuesOperation":
        return ValuesOperation(self.connection, ValuesContext(self.bucket))

    def predicate(self, predicate: str) -> "PredicateOperation":
        if not predicate:
            raise ValueError("Predicate cannot be empty.")
        return PredicateOperation(self.connection, PredicateContext(self.bucket, predicate))

    def range(self, comparator: Optional[str] = None) -> "RangeOperation":
        """Start a range operation, optionally using a named key comparator."""
        return RangeOperation(
            self.connection, RangeContext(self.bucket, comparator=comparator)
        )

    def backup(self) -> "BackupOperation":
        return BackupOperation(self.connection, BackupContext(self.bucket))

    def map_reduce(self, query: MapReduceQuery) -> "MapReduceOperation":
        return MapReduceOperation(self.connection, MapReduceContext(self.bucket, query))

    def bulk(self) -> "BulkOperation":
        return BulkOperation(self.connection, self.bucket)


@dataclass(frozen=True)
class KeyOperation:
    """Operations on the value stored under a single key."""

    connection: HTTPConnection = field(repr=False, compare=False)
    context: KeyContext

    def put(self, value: Any) -> None:
        self.connection.put_value(self.context, value)

    def remove(self) -> None:
        self.connection.remove_value(self.context)

    def get(self, value_type: Any = Any) -> Any:
        """Get the stored value.

        Raises:
            NoSuchKeyError: If no value is stored under the key
        """
        return self.connection.get_value(self.context, value_type)

    def update(self, function: str) -> "UpdateOperation":
        return UpdateOperation(
            self.connection,
            UpdateContext(self.context.bucket, self.context.key, function),
        )

    def merge(self, descriptor: MergeDescriptor) -> "MergeOperation":
        return MergeOperation(
            self.connection,
            MergeContext(self.context.bucket, self.context.key, descriptor),
        )

    def conditional(self, predicate: str) -> "ConditionalOperation":
        return ConditionalOperation(
            self.connection,
            ConditionalContext(self.context.bucket, self.context.key, predicate),
        )


@dataclass(frozen=True)
class ConditionalOperation:
    """Get or put gated by a predicate on the stored value."""

    connection: HTTPConnection = field(repr=False, compare=False)
    context: ConditionalContext

    def put(self, value: Any) -> None:
        """Put the value if the stored one satisfies the predicate.

        Raises:
            UnsatisfiedConditionError: If the predicate does not hold
        """
        self.connection.conditional_put_value(self.context, value)

    def get(self, value_type: Any = Any) -> Any:
        """Get the value if it satisfies the predicate.

        Raises:
            UnsatisfiedConditionError: If the predicate does not hold
        """
        return self.connection.conditional_get_value(self.context, value_type)


@dataclass(frozen=True)
class ValuesOperation:
    """Retrieval of all values in a bucket."""

    connection: HTTPConnection = field(repr=False, compare=False)
    context: ValuesContext

    def limit(self, limit: int) -> "ValuesOperation":
        return replace(self, context=replace(self.context, limit=limit))

    def get(self, value_type: Any = Any) -> Values:
        return self.connection.get_all_values(self.context, value_type)


@dataclass(frozen=True)
class PredicateOperation:
    """Query of the values satisfying a predicate."""

    connection: HTTPConnection = field(repr=False, compare=False)
    context: PredicateContext

    def get(self, value_type: Any = Any) -> Values:
        return self.connection.query_by_predicate(self.context, value_type)


@dataclass(frozen=True)
class RangeOperation:
    """Query or removal of the values in a key range."""

    connection: HTTPConnection = field(repr=False, compare=False)
    context: RangeContext

    def _with(self, **changes: Any) -> "RangeOperation":
        return replace(self, context=replace(self.context, **changes))

    def from_key(self, key: str) -> "RangeOperation":
        return self._with(start_key=key)

    def to_key(self, key: str) -> "RangeOperation":
        return self._with(end_key=key)

    def predicate(self, predicate: str) -> "RangeOperation":
        return self._with(predicate=predicate)

    def limit(self, limit: int) -> "RangeOperation":
        return self._with(limit=limit)

    def time_to_live(self, time_to_live: int) -> "RangeOperation":
        return self._with(time_to_live=time_to_live)

    def get(self, value_type: Any = Any) -> Values:
        self._check_start_key()
        return self.connection.query_by_range(self.context, value_type)

    def remove(self) -> Set[str]:
        """Remove the values in range, returning the removed keys."""
        self._check_start_key()
        return self.connection.remove_by_range(self.context)

    def _check_start_key(self) -> None:
        if self.context.start_key is None:
            raise ValueError("Range start key is required.")


@dataclass(frozen=True)
class UpdateOperation:
    """Atomic server-side update of a value."""

    connection: HTTPConnection = field(repr=False, compare=False)
    context: UpdateContext

    def timeout(self, timeout: int) -> "UpdateOperation":
        """Max milliseconds the server may spend on the update."""
        return replace(self, context=replace(self.context, timeout=timeout))

    def parameters(self, parameters: Mapping[str, Any]) -> "UpdateOperation":
        return replace(self, context=replace(self.context, parameters=dict(parameters)))

    def execute_and_get(self, value_type: Any = Any) -> Any:
        """Run the update and return the updated value."""
        return self.connection.execute_update(self.context, value_type)


@dataclass(frozen=True)
class MergeOperation:
    connection: HTTPConnection = field(repr=False, compare=False)
    context: MergeContext

    def execute_and_get(self, value_type: Any = Any) -> Any:
        return self.connection.execute_merge(self.context, value_type)


@dataclass(frozen=True)
class BulkOperation:
    """Retrieval and storage of several values in one request."""

    connection: HTTPConnection = field(repr=False, compare=False)
    bucket: str

    def get(self, keys: Iterable[str], value_type: Any = Any) -> Values:
        return self.connection.bulk_get(
            BulkContext(self.bucket, keys=frozenset(keys)), value_type
        )

    def put(self, values: Mapping[str, Any]) -> Set[str]:
        """Store the given values, returning the keys actually written."""
        return self.connection.bulk_put(BulkContext(self.bucket, values=dict(values)))


@dataclass(frozen=True)
class BackupOperation:
    """Export or import of a bucket backup on the server."""

    connection: HTTPConnection = field(repr=False, compare=False)
    context: BackupContext

    def file(self, file: str) -> "BackupOperation":
        return replace(self, context=replace(self.context, file=file))

    def secret_key(self, secret_key: str) -> "BackupOperation":
        return replace(self, context=replace(self.context, secret_key=secret_key))

    def execute_export(self) -> None:
        self.connection.export_backup(self.context)

    def execute_import(self) -> None:
        self.connection.import_backup(self.context)


@dataclass(frozen=True)
class MapReduceOperation:
    connection: HTTPConnection = field(repr=False, compare=False)
    context: MapReduceContext

    def execute(self, value_type: Any = Any) -> Any:
        """Run the query and return the reducer result.

        Raises:
            MapReduceQueryError: If the query is missing its task or functions
        """
        return self.connection.query_by_map_reduce(self.context, value_type)


@dataclass(frozen=True)
class BucketsOperation:
    connection: HTTPConnection = field(repr=False, compare=False)

    def list(self) -> Set[str]:
        """Names of all buckets on the server."""
        return self.connection.get_buckets()


@dataclass(frozen=True)
class StatsOperation:
    connection: HTTPConnection = field(repr=False, compare=False)

    def cluster(self) -> ClusterStats:
        return self.connection.get_cluster_stats()
