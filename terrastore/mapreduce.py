"""Map-reduce query documents."""

from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping, Optional


@dataclass(frozen=True)
class Range:
    """Key range a map-reduce task runs over."""

    start_key: Optional[str] = None
    end_key: Optional[str] = None
    comparator: Optional[str] = None
    time_to_live: Optional[int] = None

    def from_key(self, key: str) -> "Range":
        return replace(self, start_key=key)

    def to_key(self, key: str) -> "Range":
        return replace(self, end_key=key)

    def to_dict(self) -> Dict[str, Any]:
        document = {
            "startKey": self.start_key,
            "endKey": self.end_key,
            "comparator": self.comparator,
            "timeToLive": self.time_to_live,
        }
        return {name: value for name, value in document.items() if value is not None}


@dataclass(frozen=True)
class Task:
    """Server-side functions making up a map-reduce task.

    ``mapper``, ``reducer`` and ``timeout`` are required by the server, which
    answers with a 400 status when any of them is missing.
    """

    mapper: Optional[str] = None
    combiner: Optional[str] = None
    reducer: Optional[str] = None
    timeout: Optional[int] = None
    parameters: Optional[Mapping[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        document = {
            "mapper": self.mapper,
            "combiner": self.combiner,
            "reducer": self.reducer,
            "timeout": self.timeout,
            "parameters": dict(self.parameters) if self.parameters is not None else None,
        }
        return {name: value for name, value in document.items() if value is not None}


@dataclass(frozen=True)
class MapReduceQuery:
    """A map-reduce query: an optional key range plus the task to run.

    Example:
        >>> query = MapReduceQuery(
        ...     range=Range(start_key="a", end_key="c"),
        ...     task=Task(mapper="size", reducer="size", timeout=10000),
        ... )
    """

    range: Optional[Range] = None
    task: Optional[Task] = None

    def with_range(self, range: Range) -> "MapReduceQuery":
        return replace(self, range=range)

    def with_task(self, task: Task) -> "MapReduceQuery":
        return replace(self, task=task)

    def to_dict(self) -> Dict[str, Any]:
        document: Dict[str, Any] = {}
        if self.range is not None:
            document["range"] = self.range.to_dict()
        if self.task is not None:
            document["task"] = self.task.to_dict()
        return document
