import logging
from typing import Callable

from notes_sync.sync.errors import IdentityUnavailable

logger = logging.getLogger(__name__)

IdentityListener = Callable[[str | None], None]


class IdentityProvider:
    """Holds the connected wallet address, if any."""

    def __init__(self, address: str | None = None) -> None:
        self._address = address or None
        self._listeners: list[IdentityListener] = []

    @property
    def address(self) -> str | None:
        return self._address

    @property
    def is_connected(self) -> bool:
        return self._address is not None

    def require(self) -> str:
        if self._address is None:
            raise IdentityUnavailable("connect a wallet before sending mutations")
        return self._address

    def connect(self, address: str) -> None:
        if not address or not address.strip():
            raise ValueError("address is required")
        self._set(address.strip())

    def disconnect(self) -> None:
        self._set(None)

    def add_listener(self, listener: IdentityListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _set(self, address: str | None) -> None:
        if address == self._address:
            return
        self._address = address
        logger.info("identity changed: %s", address or "disconnected")
        for listener in list(self._listeners):
            listener(address)
