"""Host managers choosing which Terrastore server handles a request."""

import logging
import threading
from typing import List, Protocol, Sequence, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class HostManager(Protocol):
    """Chooses the server host for the next request.

    Implementations must be safe to call from several threads.
    """

    def get_host(self) -> str:
        """Return the host to send the next request to."""
        ...

    def suspect(self, host: str) -> None:
        """Report that ``host`` could not be reached."""
        ...


class SingleHostManager:
    """Always uses the same host, leaving routing to the server cluster."""

    def __init__(self, host: str):
        if not host:
            raise ValueError("A server host is required")
        self._host = host

    def get_host(self) -> str:
        return self._host

    def suspect(self, host: str) -> None:
        pass

    def __repr__(self) -> str:
        return f"SingleHostManager(host={self._host!r})"


class OrderedHostManager:
    """Uses the first host of an ordered list, demoting hosts that fail.

    A suspected host is moved to the end of the list, so it is used again only
    after every other host has been suspected as well.
    """

    def __init__(self, hosts: Sequence[str]):
        """Initialize the host manager.

        Args:
            hosts: Server hosts in order of preference (at least one required)
        """
        if not hosts:
            raise ValueError("At least one server host is required")

        self._hosts: List[str] = list(hosts)
        self._lock = threading.Lock()

    def get_host(self) -> str:
        with self._lock:
            return self._hosts[0]

    def suspect(self, host: str) -> None:
        with self._lock:
            if host not in self._hosts:
                return
            self._hosts.remove(host)
            self._hosts.append(host)
            next_host = self._hosts[0]

        logger.warning("Suspected host %s, next host is %s", host, next_host)

    @property
    def hosts(self) -> List[str]:
        """Snapshot of the hosts in their current order."""
        with self._lock:
            return list(self._hosts)

    def __repr__(self) -> str:
        return f"OrderedHostManager(hosts={self.hosts!r})"
