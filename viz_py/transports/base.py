"""Reference-counted transport base shared by every vehicle."""

from __future__ import annotations

import logging
from abc import abstractmethod

from ..core.interfaces import TelemetryTransport

logger = logging.getLogger(__name__)


class SharedTransport(TelemetryTransport):
    """
    Transport whose ``connect()`` may be called once per vehicle.

    The first successful call opens the underlying connection; later calls
    reuse it. The connection closes when the last reference disconnects.
    """

    name = "transport"

    def __init__(self) -> None:
        self._refs = 0
        self._open = False
        self._declared: set[tuple[str, str]] = set()

    @property
    def is_connected(self) -> bool:
        return self._open

    @property
    def references(self) -> int:
        return self._refs

    def connect(self) -> bool:
        if self._open:
            self._refs += 1
            logger.info("[%s] already connected, reuse (refs=%d)", self.name, self._refs)
            return True
        if not self._open_connection():
            return False
        self._open = True
        self._refs = 1
        logger.info("[%s] connected", self.name)
        return True

    def disconnect(self) -> None:
        if not self._open:
            return
        self._refs = max(0, self._refs - 1)
        if self._refs > 0:
            return
        self._close_connection()
        self._open = False
        self._declared.clear()
        logger.info("[%s] disconnected", self.name)

    def mark_lost(self) -> None:
        """Record that the peer went away without a local disconnect."""
        if self._open:
            logger.warning("[%s] connection lost", self.name)
        self._open = False
        self._refs = 0

    def declare_readable(self, entity_id: str, channel: str) -> None:
        self._declared.add((entity_id, channel))

    def is_declared(self, entity_id: str, channel: str) -> bool:
        return (entity_id, channel) in self._declared

    @abstractmethod
    def _open_connection(self) -> bool:
        """Open the underlying connection."""

    @abstractmethod
    def _close_connection(self) -> None:
        """Close the underlying connection."""
