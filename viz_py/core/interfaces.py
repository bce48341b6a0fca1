"""Abstract interfaces for the viewer's external collaborators."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING

from .types import PixelRect, ViewSpec, VisualMesh

if TYPE_CHECKING:
    from ..entity import SceneNode


class TelemetryTransport(ABC):
    """Delivers raw telemetry buffers keyed by entity id and channel name."""

    @abstractmethod
    def connect(self) -> bool:
        """Open (or reuse) the connection. Returns ``False`` on failure."""

    @abstractmethod
    def disconnect(self) -> None:
        """Release one connection reference."""

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Whether the underlying connection is currently open."""

    @abstractmethod
    def declare_readable(self, entity_id: str, channel: str) -> None:
        """Register interest in ``channel`` of ``entity_id``."""

    @abstractmethod
    def read_raw_buffer(self, entity_id: str, channel: str) -> bytes | None:
        """Latest raw buffer for the channel, or ``None`` if nothing arrived."""


class Renderer(ABC):
    """Draws the scene from a camera view."""

    @abstractmethod
    def render(self, scene: SceneNode, view: ViewSpec) -> None:
        """Render the full frame."""

    @abstractmethod
    def render_inset(self, scene: SceneNode, view: ViewSpec, rect: PixelRect, clear_color: int) -> None:
        """Render into a pixel sub-viewport cleared to ``clear_color``."""

    @abstractmethod
    def size(self) -> tuple[int, int]:
        """Full canvas size in pixels."""


class AssetLoader(ABC):
    """Loads model files into opaque visual handles."""

    @abstractmethod
    def load(self, path: str) -> VisualMesh:
        """Load ``path`` or raise :class:`~viz_py.core.errors.AssetLoadError`."""


class PeriodicTask(ABC):
    """Cancellable handle for a repeating callback."""

    @property
    @abstractmethod
    def active(self) -> bool:
        """Whether the task will fire again."""

    @abstractmethod
    def stop(self) -> None:
        """Cancel further invocations. Safe to call more than once."""


class Scheduler(ABC):
    """Creates periodic tasks on the application's single logical thread."""

    @abstractmethod
    def every(self, interval_sec: float, callback: Callable[[], None]) -> PeriodicTask:
        """Call ``callback`` every ``interval_sec`` seconds until stopped."""
