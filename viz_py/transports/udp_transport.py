"""UDP datagram transport: each datagram carries one framed channel buffer."""

from __future__ import annotations

import logging
import socket

from ..codec import unpack_frame
from .base import SharedTransport

logger = logging.getLogger(__name__)


class UdpTransport(SharedTransport):
    """
    Non-blocking UDP listener.

    Reads drain every pending datagram and keep only the newest buffer for
    each ``(entity_id, channel)``, so a read never blocks the frame callback.
    """

    name = "udp"

    def __init__(self, host: str = "0.0.0.0", port: int = 54001, max_datagram: int = 65535) -> None:
        super().__init__()
        self.host = host
        self.port = int(port)
        self.max_datagram = int(max_datagram)
        self._sock: socket.socket | None = None
        self._latest: dict[tuple[str, str], bytes] = {}

    @property
    def bound_port(self) -> int | None:
        if self._sock is None:
            return None
        return int(self._sock.getsockname()[1])

    def _open_connection(self) -> bool:
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.host, self.port))
            sock.setblocking(False)
        except OSError as exc:
            logger.warning("[udp] bind %s:%d failed: %s", self.host, self.port, exc)
            return False
        self._sock = sock
        logger.info("[udp] listening on %s:%d", self.host, self.port)
        return True

    def _close_connection(self) -> None:
        if self._sock is not None:
            self._sock.close()
        self._sock = None
        self._latest.clear()

    def _drain(self) -> None:
        if self._sock is None:
            return
        while True:
            try:
                data, _addr = self._sock.recvfrom(self.max_datagram)
            except BlockingIOError:
                return
            except OSError as exc:
                logger.warning("[udp] receive failed: %s", exc)
                self._close_connection()
                self.mark_lost()
                return
            frame = unpack_frame(data)
            if frame is None:
                logger.debug("[udp] dropped malformed datagram (%d bytes)", len(data))
                continue
            entity_id, channel, payload = frame
            if self.is_declared(entity_id, channel):
                self._latest[(entity_id, channel)] = payload

    def read_raw_buffer(self, entity_id: str, channel: str) -> bytes | None:
        if not self.is_connected:
            return None
        self._drain()
        return self._latest.get((entity_id, channel))
