"""Scene assembly and the per-frame loop."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Mapping

import numpy as np

from ..camera import FollowCamera, OrbitController
from ..core.config import MainCameraConfig, ViewerConfig
from ..core.errors import AssetLoadError
from ..core.interfaces import AssetLoader, Renderer, Scheduler, TelemetryTransport
from ..core.types import CameraPayload, LightPayload
from ..entity import PoseEntity, SceneNode
from ..environment import build_environments
from ..frame import to_render_position
from ..vehicle import VehicleController

logger = logging.getLogger(__name__)

# Near-zero frame deltas are treated as 0.1 ms; stalls are capped at 50 ms.
DT_MIN = 1e-4
DT_MAX = 0.05

STANDOFF_SHRINK_KEY = "1"
STANDOFF_GROW_KEY = "2"


def clamp_dt(dt: float, dt_min: float = DT_MIN, dt_max: float = DT_MAX) -> float:
    return float(min(max(float(dt), dt_min), dt_max))


@dataclass
class Scene:
    root: SceneNode
    camera: FollowCamera
    vehicles: list[VehicleController] = field(default_factory=list)
    environments: list[PoseEntity] = field(default_factory=list)
    lights: list[SceneNode] = field(default_factory=list)

    def teardown(self) -> None:
        for vehicle in self.vehicles:
            vehicle.teardown()
        self.vehicles.clear()
        for env in self.environments:
            env.detach()
        self.environments.clear()
        for light in self.lights:
            self.root.remove(light)
        self.lights.clear()


def _add_default_lights(root: SceneNode) -> list[SceneNode]:
    hemi = SceneNode("hemisphere_light", payload=LightPayload(kind="hemisphere", color=0xFFFFFF, intensity=0.5))
    hemi.position = np.array([0.0, 20.0, 0.0], dtype=float)
    directional = SceneNode("directional_light", payload=LightPayload(kind="directional", intensity=0.8))
    directional.position = np.array([5.0, 10.0, 5.0], dtype=float)
    root.add(hemi)
    root.add(directional)
    return [hemi, directional]


def build_follow_camera(cam_cfg: MainCameraConfig | None, vehicles: list[VehicleController]) -> FollowCamera:
    """Place the main camera relative to the first vehicle and follow it."""
    if cam_cfg is None:
        orbit = OrbitController(position=(5.0, 5.0, 5.0), target=(0.0, 0.0, 0.0))
        return FollowCamera(orbit, camera=CameraPayload(fov=60.0, near=0.1, far=2000.0), mode="free")

    target = vehicles[0].world_position() if vehicles else np.zeros(3, dtype=float)
    position = target + to_render_position(cam_cfg.position)
    orbit = OrbitController(position=position, target=target)
    return FollowCamera(
        orbit,
        camera=CameraPayload(fov=cam_cfg.fov, near=cam_cfg.near, far=cam_cfg.far),
        follow_target=vehicles[0].root if vehicles else None,
        mode=cam_cfg.initial_mode,  # type: ignore[arg-type]
        follow_distance=cam_cfg.follow_distance,
        lerp_pos=cam_cfg.follow_lerp_pos,
        lerp_target=cam_cfg.follow_lerp_target,
        toggle_key=cam_cfg.follow_toggle_key,
    )


def build_scene(
    viewer_cfg: ViewerConfig,
    loader: AssetLoader,
    transport: TelemetryTransport | None,
    scheduler: Scheduler | None,
    clock: Callable[[], float] = time.monotonic,
) -> Scene:
    """Build environments, vehicles, lights and the main camera.

    A vehicle or environment whose asset fails to load is logged and left out.
    """
    root = SceneNode("scene")
    lights = _add_default_lights(root)
    environments = build_environments(root, loader, viewer_cfg.environments)

    vehicles: list[VehicleController] = []
    for vcfg in viewer_cfg.vehicles:
        try:
            vehicle = VehicleController.create(
                root, loader, vcfg, transport=transport, scheduler=scheduler, clock=clock
            )
        except AssetLoadError as exc:
            logger.error("Vehicle '%s' not added: %s", vcfg.name, exc)
            continue
        mode = "telemetry" if vehicle.connected else "manual"
        logger.info("Vehicle '%s' ready (%s, %d rotors, %d cameras)", vcfg.name, mode, len(vehicle.rotors), len(vehicle.cameras))
        vehicles.append(vehicle)

    camera = build_follow_camera(viewer_cfg.main_camera, vehicles)
    root.add(camera.node)
    return Scene(root=root, camera=camera, vehicles=vehicles, environments=environments, lights=lights)


class FrameLoop:
    """Runs vehicle and camera updates once per display frame, then renders."""

    def __init__(
        self,
        scene: Scene,
        renderer: Renderer,
        keys: Mapping[str, bool] | None = None,
        clock: Callable[[], float] = time.monotonic,
        standoff_rate: float = 1.0,
    ) -> None:
        self.scene = scene
        self.renderer = renderer
        self.keys: Mapping[str, bool] = keys if keys is not None else {}
        self.clock = clock
        self.standoff_rate = float(standoff_rate)
        self.frame_count = 0
        self._last_time: float | None = None

    def tick(self) -> float:
        """Advance one frame using the wall clock."""
        now = self.clock()
        raw_dt = 0.0 if self._last_time is None else now - self._last_time
        self._last_time = now
        return self.step(raw_dt)

    def step(self, raw_dt: float) -> float:
        dt = clamp_dt(raw_dt)
        for vehicle in self.scene.vehicles:
            vehicle.update(dt, self.keys)

        camera = self.scene.camera
        if self.keys.get(STANDOFF_SHRINK_KEY):
            camera.adjust_standoff_distance(-dt * self.standoff_rate)
        if self.keys.get(STANDOFF_GROW_KEY):
            camera.adjust_standoff_distance(dt * self.standoff_rate)
        camera.update(dt)

        self.renderer.render(self.scene.root, camera.view())
        for vehicle in self.scene.vehicles:
            vehicle.render_attached_cameras(self.renderer, self.scene.root)
        self.frame_count += 1
        return dt

    def resize(self, width: int, height: int) -> None:
        self.scene.camera.resize(width, height)
