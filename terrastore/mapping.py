"""JSON mapping between Python objects and Terrastore documents.

Values are converted through a registry of :class:`JsonObjectDescriptor`
instances keyed by exact type. Types without a descriptor are handled by
pydantic: JSON scalars, lists, sets and mappings are walked directly, and
anything else (dataclasses, enums, tuples, unions, pydantic models) is
validated and dumped through a :class:`pydantic.TypeAdapter` built once per
type.

Example:
    >>> descriptor = JsonObjectDescriptor(
    ...     Money,
    ...     encoder=lambda money: {"amount": str(money.amount)},
    ...     decoder=lambda data: Money(Decimal(data["amount"])),
    ... )
    >>> mapper = JsonMapper([descriptor])
"""

import functools
import json
from dataclasses import dataclass
from typing import (
    Any,
    Callable,
    Dict,
    Generic,
    Iterable,
    List,
    Mapping,
    Optional,
    Set,
    Type,
    TypeVar,
    Union,
)

from pydantic import PydanticSchemaGenerationError, TypeAdapter, ValidationError

from terrastore.mapreduce import MapReduceQuery
from terrastore.merge import MergeDescriptor
from terrastore.types import ErrorMessage, Values

T = TypeVar("T")

_SCALARS = (str, int, float, bool)


class JsonMappingError(ValueError):
    """Raised when a value cannot be converted to or from JSON."""


@dataclass(frozen=True)
class JsonObjectDescriptor(Generic[T]):
    """Custom encoder and decoder for one exact Python type.

    The encoder turns an instance into JSON-compatible data (dicts, lists,
    scalars); the decoder builds an instance from parsed JSON data. A missing
    encoder or decoder leaves that direction to pydantic.
    """

    object_type: Type[T]
    encoder: Optional[Callable[[T], Any]] = None
    decoder: Optional[Callable[[Any], T]] = None


def _encode_error_message(message: ErrorMessage) -> Any:
    raise JsonMappingError("ErrorMessage is read-only and cannot be serialized")


def _decode_error_message(data: Any) -> ErrorMessage:
    if not isinstance(data, dict):
        raise JsonMappingError(f"Expected an error object, got {type(data).__name__}")

    message = data.get("message")
    code = data.get("code")
    if message is not None and not isinstance(message, str):
        message = str(message)
    if code is not None and (isinstance(code, bool) or not isinstance(code, int)):
        raise JsonMappingError(f"Invalid error code: {code!r}")

    return ErrorMessage(message=message, code=code)


ERROR_MESSAGE_DESCRIPTOR: JsonObjectDescriptor[ErrorMessage] = JsonObjectDescriptor(
    ErrorMessage,
    encoder=_encode_error_message,
    decoder=_decode_error_message,
)

MERGE_DESCRIPTOR_DESCRIPTOR: JsonObjectDescriptor[MergeDescriptor] = JsonObjectDescriptor(
    MergeDescriptor,
    encoder=MergeDescriptor.export_as_map,
)

MAP_REDUCE_QUERY_DESCRIPTOR: JsonObjectDescriptor[MapReduceQuery] = JsonObjectDescriptor(
    MapReduceQuery,
    encoder=MapReduceQuery.to_dict,
)

BUILTIN_DESCRIPTORS: List[JsonObjectDescriptor] = [
    ERROR_MESSAGE_DESCRIPTOR,
    MERGE_DESCRIPTOR_DESCRIPTOR,
    MAP_REDUCE_QUERY_DESCRIPTOR,
]


class _JsonPairs(list):
    """Fields of one JSON object, in document order, duplicates included."""


def _to_plain(value: Any) -> Any:
    if isinstance(value, _JsonPairs):
        return {name: _to_plain(item) for name, item in value}
    if isinstance(value, list):
        return [_to_plain(item) for item in value]
    return value


_PAIRS_DECODER = json.JSONDecoder(object_pairs_hook=_JsonPairs)


def _parse(text: Union[str, bytes]) -> Any:
    try:
        return json.loads(text)
    except (TypeError, ValueError) as e:
        raise JsonMappingError(f"Invalid JSON document: {e}") from e


@functools.lru_cache(maxsize=None)
def _adapter(target_type: Any) -> TypeAdapter:
    return TypeAdapter(target_type)


def _type_name(target_type: Any) -> str:
    return getattr(target_type, "__name__", repr(target_type))


class JsonMapper:
    """Registry-backed JSON encoder/decoder.

    Descriptors are fixed at construction; user descriptors take precedence
    over the built-in ones for the same type.
    """

    def __init__(self, descriptors: Iterable[JsonObjectDescriptor] = ()):
        self._descriptors: Dict[type, JsonObjectDescriptor] = {}
        for descriptor in [*BUILTIN_DESCRIPTORS, *descriptors]:
            self._descriptors[descriptor.object_type] = descriptor

    def descriptor_for(self, object_type: type) -> Optional[JsonObjectDescriptor]:
        """Return the descriptor registered for exactly ``object_type``."""
        return self._descriptors.get(object_type)

    # -------------------------------------------------------------------
    # Encoding
    # -------------------------------------------------------------------

    def encode(self, value: Any) -> Any:
        """Convert ``value`` to JSON-compatible data."""
        descriptor = self._descriptors.get(type(value))
        if descriptor is not None and descriptor.encoder is not None:
            return self.encode(descriptor.encoder(value))

        if value is None or isinstance(value, _SCALARS):
            return value
        if isinstance(value, Mapping):
            return {str(name): self.encode(item) for name, item in value.items()}
        if isinstance(value, (list, tuple, set, frozenset)):
            return [self.encode(item) for item in value]

        try:
            return _adapter(type(value)).dump_python(value, mode="json")
        except (PydanticSchemaGenerationError, ValueError) as e:
            raise JsonMappingError(
                f"Cannot encode value of type {type(value).__name__}"
            ) from e

    def dumps(self, value: Any) -> str:
        """Serialize ``value`` to a JSON string."""
        return json.dumps(self.encode(value))

    # -------------------------------------------------------------------
    # Decoding
    # -------------------------------------------------------------------

    def decode(self, data: Any, target_type: Any = Any) -> Any:
        """Build an instance of ``target_type`` from parsed JSON data."""
        descriptor = self._descriptors.get(target_type)
        if descriptor is not None and descriptor.decoder is not None:
            return descriptor.decoder(data)
        return self._decode_typed(data, target_type)

    def loads(self, text: Union[str, bytes], target_type: Any = Any) -> Any:
        """Parse a JSON document and decode it as ``target_type``."""
        return self.decode(_parse(text), target_type)

    def read_values(self, text: Union[str, bytes], target_type: Any = Any) -> Values:
        """Decode a JSON object of documents keyed by document key.

        Fields are visited in document order and each value is decoded as
        ``target_type``. When a key appears more than once the last value
        wins.
        """
        try:
            document = _PAIRS_DECODER.decode(
                text.decode("utf-8") if isinstance(text, bytes) else text
            )
        except ValueError as e:
            raise JsonMappingError(f"Invalid JSON document: {e}") from e

        if not isinstance(document, _JsonPairs):
            raise JsonMappingError(
                f"Expected a JSON object of values, got {type(document).__name__}"
            )

        values: Dict[str, Any] = {}
        for key, item in document:
            values[key] = self.decode(_to_plain(item), target_type)
        return Values(values)

    def read_keys(self, text: Union[str, bytes]) -> Set[str]:
        """Decode a JSON array of keys or bucket names."""
        document = _parse(text)
        if not isinstance(document, list):
            raise JsonMappingError(
                f"Expected a JSON array of keys, got {type(document).__name__}"
            )
        return {str(key) for key in document}

    def _decode_typed(self, data: Any, target_type: Any) -> Any:
        if target_type is Any or target_type is object or target_type is None:
            return data
        try:
            return _adapter(target_type).validate_python(data)
        except PydanticSchemaGenerationError as e:
            raise JsonMappingError(f"Unsupported target type: {target_type!r}") from e
        except ValidationError as e:
            raise JsonMappingError(f"Cannot decode {_type_name(target_type)}: {e}") from e
