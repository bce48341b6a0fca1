"""Telemetry transport implementations."""

from .base import SharedTransport
from .memory_transport import MemoryTransport
from .udp_transport import UdpTransport

__all__ = ["SharedTransport", "MemoryTransport", "UdpTransport"]
