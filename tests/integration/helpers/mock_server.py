"""Mock Terrastore server for integration testing.

Serves an in-memory emulation of the Terrastore HTTP API through
``httpx.MockTransport``, so clients run their real request path without
opening sockets.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Set
from urllib.parse import unquote

import httpx

SECRET_KEY = "SECRET-KEY"

_JXPATH = re.compile(r"^jxpath:/(\w+)\[\.='(.*)'\]$")


class TrackingStream(httpx.SyncByteStream):
    """Response body that records whether it was closed."""

    def __init__(self, content: bytes, server: "MockServer"):
        self._content = content
        self._server = server
        self.closed = False
        server.open_streams += 1

    def __iter__(self) -> Iterator[bytes]:
        yield self._content

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._server.open_streams -= 1


@dataclass
class RecordedRequest:
    """Request received by the mock server."""

    method: str
    host: str
    path: List[str]
    params: Dict[str, str]
    body: Any = None


@dataclass
class MockTerrastore:
    """In-memory buckets and backups of the mock server."""

    buckets: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    backups: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def bucket(self, name: str) -> Dict[str, Any]:
        return self.buckets.setdefault(name, {})


class HTTPFailure(Exception):
    """Failure answered with a Terrastore error payload."""

    def __init__(self, status: int, message: str):
        super().__init__(message)
        self.status = status
        self.message = message


def _matches(predicate: Optional[str], value: Any) -> bool:
    if not predicate:
        return True
    match = _JXPATH.match(predicate)
    if match is None:
        raise HTTPFailure(400, f"Unsupported predicate: {predicate}")
    name, expected = match.groups()
    return isinstance(value, dict) and str(value.get(name)) == expected


class MockServer:
    """Mock Terrastore cluster reachable under one or more hosts.

    Example:
        >>> server = MockServer(["http://node1:8080"])
        >>> http_client = server.http_client()
    """

    def __init__(self, hosts: Optional[List[str]] = None):
        self.hosts = hosts or ["http://localhost:8080"]
        self.store = MockTerrastore()
        self.requests: List[RecordedRequest] = []
        self.open_streams = 0
        self._unreachable: Set[str] = set()
        self._forced_status: Optional[int] = None
        self._forced_body: bytes = b""

    # -------------------------------------------------------------------
    # Control
    # -------------------------------------------------------------------

    def set_unreachable(self, host: str, unreachable: bool = True) -> None:
        """Refuse connections to ``host``."""
        if unreachable:
            self._unreachable.add(host)
        else:
            self._unreachable.discard(host)

    def set_failure(self, status: Optional[int], body: bytes = b"") -> None:
        """Answer every request with ``status`` and a raw body."""
        self._forced_status = status
        self._forced_body = body

    def clear(self) -> None:
        """Clear all stored data and recorded requests."""
        self.store = MockTerrastore()
        self.requests.clear()
        self._unreachable.clear()
        self._forced_status = None

    def http_client(self) -> httpx.Client:
        """Create an HTTP client routed to this server."""
        return httpx.Client(transport=httpx.MockTransport(self.handle))

    # -------------------------------------------------------------------
    # Request handling
    # -------------------------------------------------------------------

    def handle(self, request: httpx.Request) -> httpx.Response:
        host = f"{request.url.scheme}://{request.url.netloc.decode('ascii')}"
        if host in self._unreachable or host not in self.hosts:
            raise httpx.ConnectError(f"Connection refused: {host}", request=request)

        raw_path = request.url.raw_path.decode("ascii").split("?", 1)[0]
        path = [unquote(segment) for segment in raw_path.strip("/").split("/") if segment]
        body = json.loads(request.content) if request.content else None
        self.requests.append(
            RecordedRequest(request.method, host, path, dict(request.url.params), body)
        )

        if self._forced_status is not None:
            return self._respond(self._forced_status, self._forced_body)

        try:
            result = self._route(request.method, path, request.url.params, body)
        except HTTPFailure as e:
            payload = {"message": e.message, "code": e.status}
            return self._respond(e.status, json.dumps(payload).encode("utf-8"))

        if result is None:
            return self._respond(204, b"")
        return self._respond(200, json.dumps(result).encode("utf-8"))

    def _respond(self, status: int, content: bytes) -> httpx.Response:
        headers = {"Content-Type": "application/json"} if content else {}
        return httpx.Response(status, headers=headers, stream=TrackingStream(content, self))

    def _route(self, method: str, path: List[str], params: Any, body: Any) -> Any:
        if not path:
            return sorted(self.store.buckets)
        if path == ["_stats", "cluster"]:
            return self._stats()

        bucket, rest = path[0], path[1:]
        if not rest:
            if method == "DELETE":
                self.store.buckets.pop(bucket, None)
                return None
            return self._limited(self.store.bucket(bucket), int(params.get("limit", 0)))

        if rest == ["predicate"]:
            values = self.store.bucket(bucket)
            predicate = params.get("predicate")
            return {k: v for k, v in values.items() if _matches(predicate, v)}
        if rest == ["range"]:
            return self._range(method, bucket, params)
        if rest == ["mapReduce"]:
            return self._map_reduce(bucket, body)
        if rest == ["bulk", "get"]:
            values = self.store.bucket(bucket)
            return {k: values[k] for k in body if k in values}
        if rest == ["bulk", "put"]:
            self.store.bucket(bucket).update(body)
            return sorted(body)
        if rest in (["export"], ["import"]):
            return self._backup(rest[0], bucket, params)

        key, action = rest[0], rest[1:]
        if action == ["update"]:
            return self._update(bucket, key, params, body)
        if action == ["merge"]:
            return self._merge(bucket, key, body)
        if not action:
            return self._value(method, bucket, key, params, body)
        raise HTTPFailure(404, "Unknown resource")

    def _stats(self) -> Dict[str, Any]:
        nodes = []
        for index, host in enumerate(self.hosts):
            address, _, port = host.split("://", 1)[1].partition(":")
            nodes.append({"name": f"node-{index + 1}", "host": address, "port": int(port or 80)})
        return {"clusters": [{"name": "cluster-1", "status": "AVAILABLE", "nodes": nodes}]}

    @staticmethod
    def _limited(values: Dict[str, Any], limit: int) -> Dict[str, Any]:
        items = list(values.items())
        if limit > 0:
            items = items[:limit]
        return dict(items)

    def _value(self, method: str, bucket: str, key: str, params: Any, body: Any) -> Any:
        values = self.store.bucket(bucket)
        predicate = params.get("predicate")

        if method == "GET":
            if key not in values:
                raise HTTPFailure(404, "Key not found")
            if predicate and not _matches(predicate, values[key]):
                raise HTTPFailure(404, "Unsatisfied condition")
            return values[key]

        if method == "PUT":
            if predicate and key in values and not _matches(predicate, values[key]):
                raise HTTPFailure(409, "Unsatisfied condition")
            values[key] = body
            return None

        if method == "DELETE":
            values.pop(key, None)
            return None

        raise HTTPFailure(405, f"Method not allowed: {method}")

    def _range(self, method: str, bucket: str, params: Any) -> Any:
        values = self.store.bucket(bucket)
        keys = sorted(values, reverse=params.get("comparator") == "lexical-desc")
        start, end = params.get("startKey"), params.get("endKey")
        predicate = params.get("predicate")
        limit = int(params.get("limit", 0))

        selected = [
            k
            for k in keys
            if (start is None or k >= start)
            and (end is None or k <= end)
            and _matches(predicate, values[k])
        ]
        if limit > 0:
            selected = selected[:limit]

        if method == "DELETE":
            for k in selected:
                del values[k]
            return selected
        return {k: values[k] for k in selected}

    def _map_reduce(self, bucket: str, query: Any) -> Any:
        task = (query or {}).get("task")
        if not task or not task.get("mapper") or not task.get("reducer"):
            raise HTTPFailure(400, "Map-reduce query requires mapper and reducer")
        if task["mapper"] != "size" or task["reducer"] != "size":
            raise HTTPFailure(400, f"Unknown map-reduce function: {task['mapper']}")

        values = self.store.bucket(bucket)
        selection = (query or {}).get("range") or {}
        start, end = selection.get("startKey"), selection.get("endKey")
        count = sum(
            1 for k in values if (start is None or k >= start) and (end is None or k <= end)
        )
        return {"size": count}

    def _update(self, bucket: str, key: str, params: Any, body: Any) -> Any:
        values = self.store.bucket(bucket)
        if key not in values:
            raise HTTPFailure(404, "Key not found")
        if params.get("function") != "counter":
            raise HTTPFailure(400, f"Unknown update function: {params.get('function')}")

        updated = dict(values[key])
        for name, increment in (body or {}).items():
            updated[name] = int(updated.get(name, 0)) + int(increment)
        values[key] = updated
        return updated

    def _merge(self, bucket: str, key: str, descriptor: Any) -> Any:
        values = self.store.bucket(bucket)
        if key not in values:
            raise HTTPFailure(404, "Key not found")
        values[key] = _apply_merge(dict(values[key]), descriptor or {})
        return values[key]

    def _backup(self, direction: str, bucket: str, params: Any) -> None:
        if params.get("secret") != SECRET_KEY:
            raise HTTPFailure(400, "Bad secret key")
        if direction == "export":
            self.store.backups[params["destination"]] = dict(self.store.bucket(bucket))
            return None
        source = params.get("source")
        if source not in self.store.backups:
            raise HTTPFailure(400, f"No such backup: {source}")
        self.store.bucket(bucket).update(self.store.backups[source])
        return None


def _apply_merge(document: Dict[str, Any], descriptor: Dict[str, Any]) -> Dict[str, Any]:
    for name, change in descriptor.items():
        if name == "+":
            document.update(change)
        elif name == "*":
            document.update({k: v for k, v in change.items() if k in document})
        elif name == "-":
            for removed in change:
                document.pop(removed, None)
        elif isinstance(change, list) and change and change[0] in ("+", "-"):
            current = list(document.get(name, []))
            if change[0] == "+":
                current.extend(change[1:])
            else:
                current = [item for item in current if item not in change[1:]]
            document[name] = current
        else:
            document[name] = _apply_merge(dict(document.get(name, {})), change)
    return document
