"""Custom error classes for the Terrastore client."""

from enum import Enum
from typing import Optional, Union

from terrastore.mapping import JsonMapper
from terrastore.types import ErrorMessage

_ERROR_MAPPER = JsonMapper()


class TerrastoreClientError(Exception):
    """Base error class for all Terrastore client errors.

    Raised as is when a request could not be serviced for an unexpected
    reason, with the original exception as ``__cause__``.
    """

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status

    def __repr__(self) -> str:
        if self.status is not None:
            return f"{self.__class__.__name__}(message={self.message!r}, status={self.status!r})"
        return f"{self.__class__.__name__}(message={self.message!r})"


class ConnectionError(TerrastoreClientError):
    """Error indicating the server host could not be reached.

    The host is moved behind the other known hosts before this is raised.
    """

    def __init__(self, message: str, host: Optional[str] = None):
        super().__init__(message)
        self.host = host

    def __repr__(self) -> str:
        return f"ConnectionError(message={self.message!r}, host={self.host!r})"


class RequestError(TerrastoreClientError):
    """Error indicating the server rejected the request.

    Carries the status code and message of the server error payload.
    """

    def __init__(self, error_message: ErrorMessage, status: Optional[int] = None):
        code = error_message.code if error_message.code is not None else status
        super().__init__(error_message.message or "", code)
        self.error_message = error_message


class NoSuchKeyError(RequestError):
    """Error indicating the requested key does not exist."""


class UnsatisfiedConditionError(RequestError):
    """Error indicating the predicate of a conditional operation did not hold."""


class MapReduceQueryError(RequestError):
    """Error indicating a malformed map-reduce query (missing task, mapper, ...)."""


class ServerError(TerrastoreClientError):
    """Error indicating an internal server failure without error details."""

    def __init__(self, message: str = "Unexpected server error.", status: int = 500):
        super().__init__(message, status)


class ClusterUnavailableError(TerrastoreClientError):
    """Error indicating the server cluster, or part of it, is unavailable."""

    def __init__(
        self,
        message: str = "The server cluster, or parts of the cluster, is not available.",
        status: int = 503,
    ):
        super().__init__(message, status)


class OperationFamily(str, Enum):
    """Groups of operations sharing the same failure translation."""

    GET = "get"
    CONDITIONAL = "conditional"
    MAP_REDUCE = "map_reduce"
    MERGE = "merge"
    UPDATE = "update"
    GENERAL = "general"


def _decode_error_message(body: Union[str, bytes, None]) -> ErrorMessage:
    return _ERROR_MAPPER.loads(body or b"", ErrorMessage)


def _request_error(status: int, body: Union[str, bytes, None]) -> ErrorMessage:
    try:
        return _decode_error_message(body)
    except ValueError:
        return ErrorMessage(message=f"Request failed with status {status}", code=status)


def general_error(status: int, body: Union[str, bytes, None] = None) -> TerrastoreClientError:
    """Translate a failed response for operations with no specific mapping.

    Args:
        status: HTTP status code of the response
        body: Raw response body, if any

    Returns:
        Appropriate TerrastoreClientError subclass
    """
    if status == 500:
        try:
            return RequestError(_decode_error_message(body), status)
        except ValueError:
            return ServerError()

    if status == 503:
        return ClusterUnavailableError()

    return RequestError(_request_error(status, body), status)


def from_response(
    family: OperationFamily,
    status: int,
    body: Union[str, bytes, None] = None,
) -> TerrastoreClientError:
    """Convert a failed HTTP response to a Terrastore error.

    Args:
        family: Family of the operation that failed
        status: HTTP status code of the response
        body: Raw response body, if any

    Returns:
        Appropriate TerrastoreClientError subclass
    """
    if family == OperationFamily.GET or family == OperationFamily.UPDATE:
        if status == 404:
            return NoSuchKeyError(_request_error(status, body), status)

    elif family == OperationFamily.CONDITIONAL:
        if status == 400:
            return RequestError(_request_error(status, body), status)
        if status in (404, 409):
            return UnsatisfiedConditionError(_request_error(status, body), status)

    elif family == OperationFamily.MAP_REDUCE:
        if status == 400:
            return MapReduceQueryError(_request_error(status, body), status)

    return general_error(status, body)
