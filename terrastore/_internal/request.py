"""Translation of Terrastore operations into HTTP requests."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Type
from urllib.parse import quote

from terrastore.errors import OperationFamily
from terrastore.types import (
    BackupContext,
    BucketContext,
    BulkContext,
    ConditionalContext,
    KeyContext,
    MapReduceContext,
    MergeContext,
    PredicateContext,
    RangeContext,
    UpdateContext,
    ValuesContext,
)


class OperationKind(str, Enum):
    """Every remote operation supported by the client."""

    CLUSTER_STATS = "cluster_stats"
    LIST_BUCKETS = "list_buckets"
    CLEAR_BUCKET = "clear_bucket"
    GET_VALUE = "get_value"
    PUT_VALUE = "put_value"
    REMOVE_VALUE = "remove_value"
    CONDITIONAL_GET = "conditional_get"
    CONDITIONAL_PUT = "conditional_put"
    GET_ALL_VALUES = "get_all_values"
    QUERY_BY_PREDICATE = "query_by_predicate"
    QUERY_BY_RANGE = "query_by_range"
    REMOVE_BY_RANGE = "remove_by_range"
    MAP_REDUCE = "map_reduce"
    UPDATE = "update"
    MERGE = "merge"
    BULK_GET = "bulk_get"
    BULK_PUT = "bulk_put"
    EXPORT_BACKUP = "export_backup"
    IMPORT_BACKUP = "import_backup"

    @property
    def family(self) -> OperationFamily:
        """Failure translation family of this operation."""
        return _FAMILIES.get(self, OperationFamily.GENERAL)


_FAMILIES: Dict[OperationKind, OperationFamily] = {
    OperationKind.GET_VALUE: OperationFamily.GET,
    OperationKind.CONDITIONAL_GET: OperationFamily.CONDITIONAL,
    OperationKind.CONDITIONAL_PUT: OperationFamily.CONDITIONAL,
    OperationKind.MAP_REDUCE: OperationFamily.MAP_REDUCE,
    OperationKind.UPDATE: OperationFamily.UPDATE,
    OperationKind.MERGE: OperationFamily.MERGE,
}

_CONTEXT_TYPES: Dict[OperationKind, Optional[Type[Any]]] = {
    OperationKind.CLUSTER_STATS: None,
    OperationKind.LIST_BUCKETS: None,
    OperationKind.CLEAR_BUCKET: BucketContext,
    OperationKind.GET_VALUE: KeyContext,
    OperationKind.PUT_VALUE: KeyContext,
    OperationKind.REMOVE_VALUE: KeyContext,
    OperationKind.CONDITIONAL_GET: ConditionalContext,
    OperationKind.CONDITIONAL_PUT: ConditionalContext,
    OperationKind.GET_ALL_VALUES: ValuesContext,
    OperationKind.QUERY_BY_PREDICATE: PredicateContext,
    OperationKind.QUERY_BY_RANGE: RangeContext,
    OperationKind.REMOVE_BY_RANGE: RangeContext,
    OperationKind.MAP_REDUCE: MapReduceContext,
    OperationKind.UPDATE: UpdateContext,
    OperationKind.MERGE: MergeContext,
    OperationKind.BULK_GET: BulkContext,
    OperationKind.BULK_PUT: BulkContext,
    OperationKind.EXPORT_BACKUP: BackupContext,
    OperationKind.IMPORT_BACKUP: BackupContext,
}


@dataclass(frozen=True)
class WireRequest:
    """An HTTP request ready to be sent to a Terrastore server.

    ``body`` is JSON-encoded by the connection; ``content``, when set, is sent
    as is.
    """

    method: str
    url: str
    params: Dict[str, str] = field(default_factory=dict)
    body: Any = None
    has_body: bool = False
    content: Optional[bytes] = None


def build_url(host: str, *segments: str) -> str:
    """Join ``host`` and path segments, escaping each segment."""
    path = "/".join(quote(str(segment), safe="") for segment in segments)
    return f"{host.rstrip('/')}/{path}"


def _params(*pairs: Tuple[str, Any]) -> Dict[str, str]:
    return {name: str(value) for name, value in pairs if value is not None}


def build_request(
    host: str,
    kind: OperationKind,
    context: Any = None,
    value: Any = None,
) -> WireRequest:
    """Build the HTTP request for an operation.

    Args:
        host: Base URL of the target server
        kind: The operation to perform
        context: Operation parameters, of the context type matching ``kind``
        value: Document to store, for put operations only

    Returns:
        The request to send; ``body`` still needs JSON encoding

    Raises:
        TypeError: If the context does not match the operation
    """
    expected = _CONTEXT_TYPES[kind]
    if expected is not None and not isinstance(context, expected):
        raise TypeError(
            f"{kind.value} expects {expected.__name__}, got {type(context).__name__}"
        )

    if kind == OperationKind.CLUSTER_STATS:
        return WireRequest("GET", build_url(host, "_stats", "cluster"))

    if kind == OperationKind.LIST_BUCKETS:
        return WireRequest("GET", build_url(host))

    if kind == OperationKind.CLEAR_BUCKET:
        return WireRequest("DELETE", build_url(host, context.bucket))

    if kind == OperationKind.GET_VALUE:
        return WireRequest("GET", build_url(host, context.bucket, context.key))

    if kind == OperationKind.PUT_VALUE:
        return WireRequest(
            "PUT", build_url(host, context.bucket, context.key), body=value, has_body=True
        )

    if kind == OperationKind.REMOVE_VALUE:
        return WireRequest("DELETE", build_url(host, context.bucket, context.key))

    if kind == OperationKind.CONDITIONAL_GET:
        return WireRequest(
            "GET",
            build_url(host, context.bucket, context.key),
            _params(("predicate", context.predicate)),
        )

    if kind == OperationKind.CONDITIONAL_PUT:
        return WireRequest(
            "PUT",
            build_url(host, context.bucket, context.key),
            _params(("predicate", context.predicate)),
            body=value,
            has_body=True,
        )

    if kind == OperationKind.GET_ALL_VALUES:
        return WireRequest(
            "GET", build_url(host, context.bucket), _params(("limit", context.limit))
        )

    if kind == OperationKind.QUERY_BY_PREDICATE:
        return WireRequest(
            "GET",
            build_url(host, context.bucket, "predicate"),
            _params(("predicate", context.predicate)),
        )

    if kind in (OperationKind.QUERY_BY_RANGE, OperationKind.REMOVE_BY_RANGE):
        return WireRequest(
            "GET" if kind == OperationKind.QUERY_BY_RANGE else "DELETE",
            build_url(host, context.bucket, "range"),
            _params(
                ("startKey", context.start_key),
                ("endKey", context.end_key),
                ("comparator", context.comparator),
                ("limit", context.limit),
                ("timeToLive", context.time_to_live),
                ("predicate", context.predicate),
            ),
        )

    if kind == OperationKind.MAP_REDUCE:
        return WireRequest(
            "POST",
            build_url(host, context.bucket, "mapReduce"),
            body=context.query,
            has_body=True,
        )

    if kind == OperationKind.UPDATE:
        return WireRequest(
            "POST",
            build_url(host, context.bucket, context.key, "update"),
            _params(("function", context.function), ("timeout", context.timeout)),
            body=dict(context.parameters),
            has_body=True,
        )

    if kind == OperationKind.MERGE:
        return WireRequest(
            "POST",
            build_url(host, context.bucket, context.key, "merge"),
            body=context.descriptor,
            has_body=True,
        )

    if kind == OperationKind.BULK_GET:
        return WireRequest(
            "POST",
            build_url(host, context.bucket, "bulk", "get"),
            body=sorted(context.keys or ()),
            has_body=True,
        )

    if kind == OperationKind.BULK_PUT:
        return WireRequest(
            "POST",
            build_url(host, context.bucket, "bulk", "put"),
            body=dict(context.values or {}),
            has_body=True,
        )

    if kind == OperationKind.EXPORT_BACKUP:
        return WireRequest(
            "POST",
            build_url(host, context.bucket, "export"),
            _params(("destination", context.file), ("secret", context.secret_key)),
            content=b"",
            has_body=True,
        )

    if kind == OperationKind.IMPORT_BACKUP:
        return WireRequest(
            "POST",
            build_url(host, context.bucket, "import"),
            _params(("source", context.file), ("secret", context.secret_key)),
            content=b"",
            has_body=True,
        )

    raise ValueError(f"Unsupported operation: {kind!r}")
