"""Registry of named AppSheet clients."""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor

from .client import AppSheetClient
from .config import ClientConfig
from .errors import AppSheetError, ConfigurationError
from .protocol import AppSheetClientProtocol

logger = logging.getLogger(__name__)

ClientFactory = Callable[[ClientConfig], AppSheetClientProtocol]


class ConnectionManager:
    """Holds one client per connection name.

    ``client_factory`` builds the client for a registered config; pass
    ``MockAppSheetClient`` to run a whole schema against memory.
    """

    def __init__(self, client_factory: ClientFactory = AppSheetClient):
        self.client_factory = client_factory
        self._connections: dict[str, AppSheetClientProtocol] = {}

    def register(self, name: str, config: ClientConfig | dict) -> AppSheetClientProtocol:
        if name in self._connections:
            raise ConfigurationError(f'Connection "{name}" is already registered')
        if isinstance(config, dict):
            config = ClientConfig.model_validate(config)
        client = self.client_factory(config)
        self._connections[name] = client
        return client

    def get(self, name: str) -> AppSheetClientProtocol:
        try:
            return self._connections[name]
        except KeyError:
            available = ", ".join(self._connections) or "none"
            raise ConfigurationError(
                f'Connection "{name}" not found. Available connections: {available}'
            ) from None

    def has(self, name: str) -> bool:
        return name in self._connections

    def remove(self, name: str) -> bool:
        return self._connections.pop(name, None) is not None

    def list(self) -> list[str]:
        return list(self._connections)

    def clear(self) -> None:
        self._connections.clear()

    def ping(self, name: str) -> bool:
        """True if a minimal Find through the connection succeeds."""
        try:
            self.get(name).find("_system", "1=0")
        except AppSheetError as exc:
            logger.warning("ping failed for connection %s: %s", name, exc)
            return False
        return True

    def health_check(self) -> dict[str, bool]:
        """Ping every registered connection concurrently."""
        names = self.list()
        if not names:
            return {}
        with ThreadPoolExecutor(max_workers=len(names)) as executor:
            results = executor.map(self.ping, names)
            return dict(zip(names, results))
