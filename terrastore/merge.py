"""Merge descriptors for partial document updates."""

from typing import Any, Dict, Iterable, Mapping, Optional


class MergeDescriptor:
    """Describes changes to merge atomically into a stored JSON document.

    Instances are immutable: every method returns a new descriptor.

    Example:
        >>> descriptor = (
        ...     MergeDescriptor()
        ...     .add({"city": "Rome"})
        ...     .remove({"zip"})
        ...     .add_to_array("tags", ["new"])
        ... )
    """

    def __init__(self, entries: Optional[Mapping[str, Any]] = None):
        self._entries: Dict[str, Any] = dict(entries) if entries else {}

    def _with(self, key: str, value: Any) -> "MergeDescriptor":
        entries = dict(self._entries)
        entries[key] = value
        return MergeDescriptor(entries)

    def add(self, entries: Mapping[str, Any]) -> "MergeDescriptor":
        """Add the given fields to the document."""
        return self._with("+", dict(entries))

    def replace(self, entries: Mapping[str, Any]) -> "MergeDescriptor":
        """Replace the values of the given fields."""
        return self._with("*", dict(entries))

    def remove(self, keys: Iterable[str]) -> "MergeDescriptor":
        """Remove the given fields."""
        return self._with("-", sorted(set(keys)))

    def add_to_array(self, array_key: str, values: Iterable[Any]) -> "MergeDescriptor":
        """Append values to the array stored under ``array_key``."""
        return self._with(array_key, ["+", *values])

    def remove_from_array(self, array_key: str, values: Iterable[Any]) -> "MergeDescriptor":
        """Remove values from the array stored under ``array_key``."""
        return self._with(array_key, ["-", *values])

    def merge(self, key: str, descriptor: "MergeDescriptor") -> "MergeDescriptor":
        """Merge a nested descriptor into the object stored under ``key``."""
        return self._with(key, descriptor)

    def export_as_map(self) -> Dict[str, Any]:
        """Return the wire representation, nested descriptors included."""
        return {
            key: value.export_as_map() if isinstance(value, MergeDescriptor) else value
            for key, value in self._entries.items()
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MergeDescriptor):
            return NotImplemented
        return self.export_as_map() == other.export_as_map()

    def __repr__(self) -> str:
        return f"MergeDescriptor({self.export_as_map()!r})"
