"""In-process transport used for replay, demos and tests."""

from __future__ import annotations

import logging

from .base import SharedTransport

logger = logging.getLogger(__name__)


class MemoryTransport(SharedTransport):
    """Holds the latest published buffer per ``(entity_id, channel)``."""

    name = "memory"

    def __init__(self, available: bool = True) -> None:
        super().__init__()
        self.available = available
        self._buffers: dict[tuple[str, str], bytes] = {}
        self.open_count = 0

    def publish(self, entity_id: str, channel: str, payload: bytes) -> None:
        self._buffers[(entity_id, channel)] = bytes(payload)

    def clear(self, entity_id: str | None = None, channel: str | None = None) -> None:
        if entity_id is None:
            self._buffers.clear()
            return
        for key in [k for k in self._buffers if k[0] == entity_id and (channel is None or k[1] == channel)]:
            del self._buffers[key]

    def read_raw_buffer(self, entity_id: str, channel: str) -> bytes | None:
        if not self.is_connected or not self.is_declared(entity_id, channel):
            return None
        return self._buffers.get((entity_id, channel))

    def mark_lost(self) -> None:
        if self.is_connected:
            self._close_connection()
        super().mark_lost()

    def _open_connection(self) -> bool:
        if not self.available:
            logger.warning("[memory] transport marked unavailable")
            return False
        self.open_count += 1
        return True

    def _close_connection(self) -> None:
        self._buffers.clear()
