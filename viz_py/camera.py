"""
Main viewer camera: a user-driven orbit controller wrapped by a follow
controller that tracks a scene entity.

All vectors are in the render frame (X right, Y up, Z back).
"""

from __future__ import annotations

import logging
import math
import weakref
from typing import Sequence

import numpy as np

from .core.types import CameraMode, CameraPayload, ViewSpec
from .entity import PoseEntity, SceneNode

logger = logging.getLogger(__name__)

_PHI_EPS = 1e-6
_MODES = ("follow", "free")


def smoothing_alpha(rate: float, dt: float) -> float:
    """Blend factor ``1 - exp(-rate * dt)``; independent of frame rate."""
    return 1.0 - math.exp(-float(rate) * float(dt))


class OrbitController:
    """
    Orbit/zoom/pan around a look-at target.

    Input calls only queue deltas; ``update()`` applies them. With damping
    enabled, rotation and pan deltas decay geometrically across updates while
    zoom is applied in full on the next update.
    """

    def __init__(
        self,
        position: Sequence[float] = (5.0, 5.0, 5.0),
        target: Sequence[float] = (0.0, 0.0, 0.0),
        enable_damping: bool = True,
        damping_factor: float = 0.1,
        rotate_speed: float = 0.8,
        zoom_speed: float = 1.0,
        pan_speed: float = 0.8,
        min_distance: float = 0.0,
        max_distance: float = math.inf,
    ) -> None:
        self.position = np.asarray(position, dtype=float).reshape(3).copy()
        self.target = np.asarray(target, dtype=float).reshape(3).copy()
        self.enable_damping = enable_damping
        self.damping_factor = float(damping_factor)
        self.rotate_speed = float(rotate_speed)
        self.zoom_speed = float(zoom_speed)
        self.pan_speed = float(pan_speed)
        self.min_distance = float(min_distance)
        self.max_distance = float(max_distance)

        self._d_theta = 0.0
        self._d_phi = 0.0
        self._scale = 1.0
        self._pan = np.zeros(3, dtype=float)

    def distance(self) -> float:
        return float(np.linalg.norm(self.position - self.target))

    # ---------- user input ----------

    def rotate_left(self, angle: float) -> None:
        self._d_theta -= float(angle)

    def rotate_up(self, angle: float) -> None:
        self._d_phi -= float(angle)

    def dolly(self, scale: float) -> None:
        """Multiply the orbit radius by ``scale`` on the next update."""
        if scale > 0.0:
            self._scale *= float(scale)

    def pan(self, right: float, up: float) -> None:
        """Queue a target shift along the camera's screen axes."""
        forward = self.target - self.position
        n = np.linalg.norm(forward)
        if n < 1e-9:
            return
        forward /= n
        world_up = np.array([0.0, 1.0, 0.0], dtype=float)
        right_axis = np.cross(forward, world_up)
        if np.linalg.norm(right_axis) < 1e-9:
            right_axis = np.array([1.0, 0.0, 0.0], dtype=float)
        right_axis /= np.linalg.norm(right_axis)
        up_axis = np.cross(right_axis, forward)
        self._pan += self.pan_speed * (float(right) * right_axis + float(up) * up_axis)

    def handle_drag(self, dx_px: float, dy_px: float, height_px: float) -> None:
        h = max(float(height_px), 1.0)
        self.rotate_left(2.0 * math.pi * float(dx_px) / h * self.rotate_speed)
        self.rotate_up(2.0 * math.pi * float(dy_px) / h * self.rotate_speed)

    def handle_scroll(self, steps: float) -> None:
        """Positive steps zoom in."""
        self.dolly(0.95 ** (self.zoom_speed * float(steps)))

    # ---------- per frame ----------

    def update(self) -> None:
        offset = self.position - self.target
        radius = float(np.linalg.norm(offset))
        if radius < 1e-12:
            theta, phi = 0.0, math.pi / 2.0
        else:
            theta = math.atan2(offset[0], offset[2])
            phi = math.acos(max(-1.0, min(1.0, offset[1] / radius)))

        k = self.damping_factor if self.enable_damping else 1.0
        theta += self._d_theta * k
        phi += self._d_phi * k
        phi = max(_PHI_EPS, min(math.pi - _PHI_EPS, phi))
        radius = max(self.min_distance, min(self.max_distance, radius * self._scale))

        self.target = self.target + self._pan * k
        sin_phi = math.sin(phi)
        self.position = self.target + radius * np.array(
            [sin_phi * math.sin(theta), math.cos(phi), sin_phi * math.cos(theta)],
            dtype=float,
        )

        if self.enable_damping:
            self._d_theta *= 1.0 - self.damping_factor
            self._d_phi *= 1.0 - self.damping_factor
            self._pan *= 1.0 - self.damping_factor
        else:
            self._d_theta = 0.0
            self._d_phi = 0.0
            self._pan[:] = 0.0
        self._scale = 1.0


class FollowCamera:
    """
    Wraps an :class:`OrbitController` and, in follow mode, eases its target
    toward a tracked entity while holding a standoff distance.

    The tracked entity is held by weak reference; the camera never keeps a
    vehicle alive.
    """

    def __init__(
        self,
        orbit: OrbitController,
        camera: CameraPayload | None = None,
        follow_target: PoseEntity | None = None,
        mode: CameraMode = "free",
        follow_distance: float | None = None,
        lerp_pos: float = 8.0,
        lerp_target: float = 10.0,
        toggle_key: str = "c",
        zoom_threshold: float = 0.01,
        min_follow_distance: float = 0.05,
    ) -> None:
        self.orbit = orbit
        self.camera = camera or CameraPayload()
        self.node = SceneNode("OrbitCamera", payload=self.camera)
        self.lerp_pos = float(lerp_pos)
        self.lerp_target = float(lerp_target)
        self.toggle_key = toggle_key
        self.zoom_threshold = float(zoom_threshold)
        self.min_follow_distance = float(min_follow_distance)
        self.mode: CameraMode = "free"
        self.set_mode(mode)

        self.follow_distance = float(follow_distance) if follow_distance is not None else orbit.distance()
        self._target_ref: weakref.ReferenceType[PoseEntity] | None = None
        self.set_follow_target(follow_target)
        self._sync_node()

    @property
    def follow_target(self) -> PoseEntity | None:
        return self._target_ref() if self._target_ref is not None else None

    def set_follow_target(self, entity: PoseEntity | None) -> None:
        self._target_ref = weakref.ref(entity) if entity is not None else None

    def set_mode(self, mode: str) -> None:
        if mode not in _MODES:
            raise ValueError(f"Unknown camera mode '{mode}'. Available: {', '.join(_MODES)}")
        self.mode = mode  # type: ignore[assignment]

    def toggle_mode(self) -> CameraMode:
        self.mode = "free" if self.mode == "follow" else "follow"
        logger.info("[FollowCamera] mode: %s", self.mode)
        return self.mode

    def handle_key(self, key: str) -> bool:
        if key == self.toggle_key:
            self.toggle_mode()
            return True
        return False

    def adjust_standoff_distance(self, delta: float) -> float:
        self.follow_distance = max(self.min_follow_distance, self.follow_distance + float(delta))
        logger.debug("[FollowCamera] follow distance: %.3f", self.follow_distance)
        return self.follow_distance

    def resize(self, width: int, height: int) -> None:
        if height > 0:
            self.camera.aspect = float(width) / float(height)

    def view(self) -> ViewSpec:
        return ViewSpec(camera=self.camera, eye=self.orbit.position.copy(), look_at=self.orbit.target.copy())

    def update(self, dt: float) -> None:
        target_entity = self.follow_target
        if self.mode != "follow" or target_entity is None:
            self.orbit.update()
            self._sync_node()
            return

        distance_before = self.orbit.distance()
        self.orbit.update()
        distance_after = self.orbit.distance()
        # Only a zoom gesture changes the orbit radius.
        if abs(distance_after - distance_before) > self.zoom_threshold:
            self.follow_distance = distance_after

        alpha_pos = smoothing_alpha(self.lerp_pos, dt)
        alpha_target = smoothing_alpha(self.lerp_target, dt)

        tracked = target_entity.world_position()
        target = self.orbit.target + (tracked - self.orbit.target) * alpha_target

        direction = self.orbit.position - target
        norm = float(np.linalg.norm(direction))
        if norm * norm < 1e-6:
            direction = np.array([0.0, 1.0, 0.0], dtype=float)
        else:
            direction = direction / norm
        desired = target + direction * self.follow_distance

        self.orbit.target = target
        self.orbit.position = self.orbit.position + (desired - self.orbit.position) * alpha_pos
        self._sync_node()

    def _sync_node(self) -> None:
        self.node.position = self.orbit.position.copy()
