"""Component registries for telemetry transports and renderers."""

from __future__ import annotations

from collections.abc import Callable

from .config import TransportConfig
from .interfaces import Renderer, TelemetryTransport

TransportFactory = Callable[[TransportConfig], TelemetryTransport]
RendererFactory = Callable[[], Renderer]

TRANSPORTS: dict[str, TransportFactory] = {}
RENDERERS: dict[str, RendererFactory] = {}

_BUILTINS_REGISTERED = False


def _normalize_name(name: str) -> str:
    return str(name).lower().strip()


def register_transport(name: str, factory: TransportFactory) -> None:
    TRANSPORTS[_normalize_name(name)] = factory


def register_renderer(name: str, factory: RendererFactory) -> None:
    RENDERERS[_normalize_name(name)] = factory


def create_transport(cfg: TransportConfig) -> TelemetryTransport | None:
    """Create the configured transport; ``kind: none`` disables telemetry."""
    key = _normalize_name(cfg.kind)
    if key == "none":
        return None
    if key not in TRANSPORTS:
        available = ", ".join(sorted(TRANSPORTS)) or "none"
        raise ValueError(f"Unknown transport '{cfg.kind}'. Available: {available}")
    return TRANSPORTS[key](cfg)


def create_renderer(name: str) -> Renderer:
    key = _normalize_name(name)
    if key not in RENDERERS:
        available = ", ".join(sorted(RENDERERS)) or "none"
        raise ValueError(f"Unknown renderer '{name}'. Available: {available}")
    return RENDERERS[key]()


def register_builtin_components() -> None:
    """Register built-in transports/renderers once."""
    global _BUILTINS_REGISTERED
    if _BUILTINS_REGISTERED:
        return

    from ..transports import MemoryTransport, UdpTransport
    from ..viewer import HeadlessRenderer, MatplotlibRenderer

    register_transport("udp", lambda cfg: UdpTransport(host=cfg.host, port=cfg.port))
    register_transport("memory", lambda cfg: MemoryTransport())

    register_renderer("matplotlib", MatplotlibRenderer)
    register_renderer("headless", HeadlessRenderer)

    _BUILTINS_REGISTERED = True
