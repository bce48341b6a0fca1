"""Core datatypes shared by the viewer components."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Sequence, Union

import numpy as np


def _vec3(values: Sequence[float] | np.ndarray | None) -> np.ndarray:
    if values is None:
        return np.zeros(3, dtype=float)
    return np.asarray(values, dtype=float).reshape(3).copy()


@dataclass
class Pose:
    """Absolute pose in the body frame.

    ``position`` is ``[forward, left, up]`` in meters and ``rpy_deg`` is
    ``[roll, pitch, yaw]`` in degrees. Renderer-native values are never stored
    here; they are derived through :mod:`viz_py.frame`.
    """

    position: np.ndarray = field(default_factory=lambda: np.zeros(3, dtype=float))
    rpy_deg: np.ndarray = field(default_factory=lambda: np.zeros(3, dtype=float))

    def __post_init__(self) -> None:
        self.position = _vec3(self.position)
        self.rpy_deg = _vec3(self.rpy_deg)

    @classmethod
    def from_values(
        cls,
        position: Sequence[float] | None = None,
        rpy_deg: Sequence[float] | None = None,
    ) -> "Pose":
        return cls(position=_vec3(position), rpy_deg=_vec3(rpy_deg))

    def copy(self) -> "Pose":
        return Pose(position=self.position.copy(), rpy_deg=self.rpy_deg.copy())


@dataclass
class TelemetrySample:
    """Single actuator rate sample stamped with wall-clock seconds."""

    timestamp: float
    rate: float


@dataclass
class VisualMesh:
    """Opaque handle to a loaded model asset."""

    asset_path: str
    scale: float = 1.0


@dataclass
class CameraPayload:
    """Perspective camera parameters attached to a scene node."""

    fov: float = 60.0
    near: float = 0.1
    far: float = 1000.0
    aspect: float = 1.0


@dataclass
class LightPayload:
    kind: Literal["hemisphere", "directional"] = "directional"
    color: int = 0xFFFFFF
    intensity: float = 1.0


# A scene node carries exactly one of these (or nothing).
Payload = Union[VisualMesh, CameraPayload, LightPayload, None]

CameraMode = Literal["follow", "free"]


@dataclass
class ViewSpec:
    """Camera plus eye/look-at points in the render frame."""

    camera: CameraPayload
    eye: np.ndarray
    look_at: np.ndarray
    up: np.ndarray = field(default_factory=lambda: np.array([0.0, 1.0, 0.0], dtype=float))


@dataclass
class PixelRect:
    """Sub-viewport in pixels, bottom-left origin."""

    x: int
    y: int
    width: int
    height: int
