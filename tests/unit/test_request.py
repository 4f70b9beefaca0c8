"""Unit tests for request translation."""

import pytest
from terrastore._internal.request import OperationKind, build_request, build_url
from terrastore.errors import OperationFamily
from terrastore.mapreduce import MapReduceQuery, Task
from terrastore.merge import MergeDescriptor
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

HOST = "http://localhost:8080"


class TestBuildUrl:
    """Tests for URL building."""

    def test_root(self):
        """Should end the root URL with a slash."""
        assert build_url(HOST) == "http://localhost:8080/"
        assert build_url(HOST + "/") == "http://localhost:8080/"

    def test_segments_are_escaped(self):
        """Should escape each segment, slashes included."""
        assert build_url(HOST, "my bucket", "a/b?c") == (
            "http://localhost:8080/my%20bucket/a%2Fb%3Fc"
        )


class TestBuildRequest:
    """Tests for the operation to HTTP request table."""

    def test_cluster_stats(self):
        """Should get the cluster statistics resource."""
        request = build_request(HOST, OperationKind.CLUSTER_STATS)
        assert (request.method, request.url) == ("GET", HOST + "/_stats/cluster")
        assert not request.has_body

    def test_list_buckets(self):
        """Should get the root resource."""
        request = build_request(HOST, OperationKind.LIST_BUCKETS)
        assert (request.method, request.url) == ("GET", HOST + "/")

    def test_clear_bucket(self):
        """Should delete the bucket resource."""
        request = build_request(HOST, OperationKind.CLEAR_BUCKET, BucketContext("b"))
        assert (request.method, request.url) == ("DELETE", HOST + "/b")

    def test_key_operations(self):
        """Should address the key resource."""
        context = KeyContext("b", "k")
        get = build_request(HOST, OperationKind.GET_VALUE, context)
        put = build_request(HOST, OperationKind.PUT_VALUE, context, {"a": 1})
        remove = build_request(HOST, OperationKind.REMOVE_VALUE, context)

        assert (get.method, get.url, get.has_body) == ("GET", HOST + "/b/k", False)
        assert (put.method, put.url, put.body, put.has_body) == ("PUT", HOST + "/b/k", {"a": 1}, True)
        assert (remove.method, remove.url) == ("DELETE", HOST + "/b/k")

    def test_conditional_operations(self):
        """Should pass the predicate as a query parameter."""
        context = ConditionalContext("b", "k", "jxpath:/a")
        get = build_request(HOST, OperationKind.CONDITIONAL_GET, context)
        put = build_request(HOST, OperationKind.CONDITIONAL_PUT, context, 1)

        assert get.params == {"predicate": "jxpath:/a"}
        assert (put.method, put.params, put.body) == ("PUT", {"predicate": "jxpath:/a"}, 1)

    def test_get_all_values(self):
        """Should pass the limit."""
        request = build_request(HOST, OperationKind.GET_ALL_VALUES, ValuesContext("b", 5))
        assert (request.method, request.url, request.params) == ("GET", HOST + "/b", {"limit": "5"})

    def test_query_by_predicate(self):
        """Should get the predicate resource."""
        request = build_request(
            HOST, OperationKind.QUERY_BY_PREDICATE, PredicateContext("b", "jxpath:/a")
        )
        assert request.url == HOST + "/b/predicate"
        assert request.params == {"predicate": "jxpath:/a"}

    def test_range_omits_missing_parameters(self):
        """Should leave out unset range bounds and options."""
        request = build_request(HOST, OperationKind.QUERY_BY_RANGE, RangeContext("b"))
        assert request.url == HOST + "/b/range"
        assert request.params == {"limit": "0", "timeToLive": "0"}

    def test_range_parameters(self):
        """Should pass every range option."""
        context = RangeContext(
            "b",
            start_key="a",
            end_key="z",
            comparator="lexical-asc",
            limit=10,
            time_to_live=500,
            predicate="jxpath:/x",
        )
        query = build_request(HOST, OperationKind.QUERY_BY_RANGE, context)
        remove = build_request(HOST, OperationKind.REMOVE_BY_RANGE, context)

        assert query.method == "GET"
        assert remove.method == "DELETE"
        assert query.params == {
            "startKey": "a",
            "endKey": "z",
            "comparator": "lexical-asc",
            "limit": "10",
            "timeToLive": "500",
            "predicate": "jxpath:/x",
        }

    def test_map_reduce(self):
        """Should post the query document."""
        query = MapReduceQuery(task=Task(mapper="m", reducer="r", timeout=1))
        request = build_request(HOST, OperationKind.MAP_REDUCE, MapReduceContext("b", query))
        assert (request.method, request.url, request.body) == ("POST", HOST + "/b/mapReduce", query)

    def test_update(self):
        """Should post the parameters with function and timeout."""
        context = UpdateContext("b", "k", "counter", {"n": 1}, 100)
        request = build_request(HOST, OperationKind.UPDATE, context)
        assert (request.method, request.url) == ("POST", HOST + "/b/k/update")
        assert request.params == {"function": "counter", "timeout": "100"}
        assert request.body == {"n": 1}

    def test_merge(self):
        """Should post the merge descriptor."""
        descriptor = MergeDescriptor().add({"a": 1})
        request = build_request(HOST, OperationKind.MERGE, MergeContext("b", "k", descriptor))
        assert (request.method, request.url, request.body) == ("POST", HOST + "/b/k/merge", descriptor)

    def test_bulk(self):
        """Should post keys or values to the bulk resources."""
        get = build_request(
            HOST, OperationKind.BULK_GET, BulkContext("b", keys=frozenset({"y", "x"}))
        )
        put = build_request(HOST, OperationKind.BULK_PUT, BulkContext("b", values={"x": 1}))

        assert (get.url, get.body) == (HOST + "/b/bulk/get", ["x", "y"])
        assert (put.url, put.body) == (HOST + "/b/bulk/put", {"x": 1})

    def test_backup(self):
        """Should post an empty body with file and secret parameters."""
        context = BackupContext("b", file="f.bak", secret_key="s")
        export = build_request(HOST, OperationKind.EXPORT_BACKUP, context)
        imported = build_request(HOST, OperationKind.IMPORT_BACKUP, context)

        assert (export.url, export.params) == (HOST + "/b/export", {"destination": "f.bak", "secret": "s"})
        assert (imported.url, imported.params) == (HOST + "/b/import", {"source": "f.bak", "secret": "s"})
        assert export.content == b"" and export.has_body
        assert imported.content == b"" and imported.body is None

    def test_context_mismatch(self):
        """Should reject a context of the wrong type."""
        with pytest.raises(TypeError):
            build_request(HOST, OperationKind.GET_VALUE, BucketContext("b"))


class TestOperationFamily:
    """Tests for operation failure families."""

    @pytest.mark.parametrize(
        "kind,family",
        [
            (OperationKind.GET_VALUE, OperationFamily.GET),
            (OperationKind.CONDITIONAL_GET, OperationFamily.CONDITIONAL),
            (OperationKind.CONDITIONAL_PUT, OperationFamily.CONDITIONAL),
            (OperationKind.MAP_REDUCE, OperationFamily.MAP_REDUCE),
            (OperationKind.UPDATE, OperationFamily.UPDATE),
            (OperationKind.MERGE, OperationFamily.MERGE),
            (OperationKind.PUT_VALUE, OperationFamily.GENERAL),
            (OperationKind.BULK_GET, OperationFamily.GENERAL),
        ],
    )
    def test_family(self, kind, family):
        """Should map each operation to its failure family."""
        assert kind.family == family
