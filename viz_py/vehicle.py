"""
Per-vehicle controller: entity tree, telemetry polling and per-frame update.

Two operating modes, chosen by connection state:
- telemetry: the poll task decodes pose/actuator buffers; each frame applies
  the latest pose and spins rotors from the smoothed actuator rate
  (alternating direction for counter-rotating propellers)
- manual: held keys move/yaw the vehicle and integrate a rotor rate directly
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Mapping

import numpy as np

from .codec import decode_actuators, decode_game_buttons, decode_pose
from .core.config import ModelConfig, VehicleConfig, WindowConfig
from .core.interfaces import AssetLoader, PeriodicTask, Renderer, Scheduler, TelemetryTransport
from .core.types import CameraPayload, PixelRect, Pose, ViewSpec
from .entity import PoseEntity, SceneNode
from .smoothing import TelemetrySmoother

logger = logging.getLogger(__name__)

POSE_CHANNEL = "pos"
MOTOR_CHANNEL = "motor"
GAME_CHANNEL = "hako_cmd_game"
TELEMETRY_CHANNELS = (POSE_CHANNEL, MOTOR_CHANNEL, GAME_CHANNEL)

# Game controller buttons that tilt the inset cameras.
CAMERA_PITCH_UP_BUTTON = 11
CAMERA_PITCH_DOWN_BUTTON = 12

MANUAL_KEYS = {
    "forward": "w",
    "back": "s",
    "left": "a",
    "right": "d",
    "up": "r",
    "down": "f",
    "yaw_left": "q",
    "yaw_right": "e",
    "rotor_slower": "j",
    "rotor_faster": "k",
    "rotor_stop": "l",
}


@dataclass
class ViewCamera:
    """Inset camera riding on a vehicle camera mount."""

    mount: PoseEntity
    node: SceneNode
    camera: CameraPayload
    window: WindowConfig
    background_color: int = 0x000000

    def pixel_rect(self, full_width: int, full_height: int) -> PixelRect:
        return PixelRect(
            x=int(math.floor(full_width * self.window.x)),
            y=int(math.floor(full_height * self.window.y)),
            width=int(math.floor(full_width * self.window.width)),
            height=int(math.floor(full_height * self.window.height)),
        )

    def view(self) -> ViewSpec:
        eye = self.node.world_position()
        rot = self.node.world_rotation()
        forward = rot.apply([0.0, 0.0, -1.0])
        return ViewSpec(camera=self.camera, eye=eye, look_at=eye + forward, up=rot.apply([0.0, 1.0, 0.0]))


def _model_entity(loader: AssetLoader, name: str, model: ModelConfig) -> PoseEntity:
    ent = PoseEntity(f"{name}_model", payload=loader.load(model.model_path))
    ent.set_absolute_pose(Pose.from_values(model.pos, model.hpr))
    return ent


class VehicleController:
    """Owns one vehicle's entity tree, its telemetry poll task and smoother."""

    def __init__(
        self,
        cfg: VehicleConfig,
        transport: TelemetryTransport | None = None,
        scheduler: Scheduler | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.cfg = cfg
        self.vehicle_id = cfg.name
        self.transport = transport
        self.scheduler = scheduler
        self.clock = clock

        self.root: PoseEntity | None = None
        self.rotors: list[PoseEntity] = []
        self.cameras: list[PoseEntity] = []
        self.view_cameras: list[ViewCamera] = []

        self.connected = False
        self.latest_pose: Pose | None = None
        self.smoother = TelemetrySmoother(window_sec=cfg.rotor_window_sec)
        self.manual_rotor_speed = 0.0
        self._poll_task: PeriodicTask | None = None
        self._cam_pitch_input = 0

    # ---------- factory ----------

    @classmethod
    def create(
        cls,
        scene: SceneNode,
        loader: AssetLoader,
        cfg: VehicleConfig,
        transport: TelemetryTransport | None = None,
        scheduler: Scheduler | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> "VehicleController":
        """Build the entity tree, add it to ``scene`` and start telemetry.

        Asset load errors propagate before anything is added to the scene.
        """
        vehicle = cls(cfg, transport=transport, scheduler=scheduler, clock=clock)
        vehicle.build(loader)
        vehicle.root.attach_to(scene)
        vehicle.start_telemetry()
        return vehicle

    def build(self, loader: AssetLoader) -> PoseEntity:
        cfg = self.cfg
        root = PoseEntity(cfg.name)
        root.tag = "vehicle"
        root.set_model(_model_entity(loader, cfg.name, cfg.model))
        if cfg.pos is not None:
            root.set_position(cfg.pos)
        if cfg.hpr is not None:
            root.set_rpy(cfg.hpr)

        rotors: list[PoseEntity] = []
        for r in cfg.rotors:
            rotor = PoseEntity(r.name)
            rotor.tag = "rotor"
            rotor.set_model(_model_entity(loader, r.name, r.model))
            rotor.set_absolute_pose(Pose.from_values(r.pos, r.hpr))
            root.add_child(rotor)
            rotors.append(rotor)

        cameras: list[PoseEntity] = []
        view_cameras: list[ViewCamera] = []
        for c in cfg.cameras:
            mount = PoseEntity(c.name)
            mount.tag = "camera"
            if c.model is not None:
                mount.set_model(_model_entity(loader, c.name, c.model))
            mount.set_absolute_pose(Pose.from_values(c.pos, c.hpr))
            root.add_child(mount)
            cameras.append(mount)

            if c.window is not None:
                payload = CameraPayload(fov=c.fov, near=c.near, far=c.far, aspect=1.0)
                node = SceneNode(f"{c.name}_view", payload=payload)
                mount.node.add(node)
                view_cameras.append(ViewCamera(mount=mount, node=node, camera=payload, window=c.window))

        self.root = root
        self.rotors = rotors
        self.cameras = cameras
        self.view_cameras = view_cameras
        return root

    # ---------- telemetry ----------

    def start_telemetry(self) -> bool:
        """Connect and start polling; falls back to manual control on failure."""
        if self.transport is None:
            logger.info("[%s] no telemetry transport, manual control", self.vehicle_id)
            return False
        if not self.transport.connect():
            logger.warning("[%s] telemetry connect failed, manual control", self.vehicle_id)
            return False

        self.connected = True
        for channel in TELEMETRY_CHANNELS:
            self.transport.declare_readable(self.vehicle_id, channel)

        if self.scheduler is not None and self._poll_task is None:
            self._poll_task = self.scheduler.every(self.cfg.poll_interval_ms / 1000.0, self.poll)
        return True

    def poll(self) -> None:
        """One poll step. Missing or short buffers are skipped."""
        if not self.connected or self.transport is None:
            return
        if not self.transport.is_connected:
            self._on_connection_lost()
            return

        pose = decode_pose(self.transport.read_raw_buffer(self.vehicle_id, POSE_CHANNEL))
        if pose is not None:
            self.latest_pose = pose

        buttons = decode_game_buttons(self.transport.read_raw_buffer(self.vehicle_id, GAME_CHANNEL))
        if buttons is not None:
            pitch = 0
            if buttons[CAMERA_PITCH_UP_BUTTON]:
                pitch -= 1
            if buttons[CAMERA_PITCH_DOWN_BUTTON]:
                pitch += 1
            self._cam_pitch_input = pitch

        controls = decode_actuators(self.transport.read_raw_buffer(self.vehicle_id, MOTOR_CHANNEL))
        if not controls:
            return
        duties = [controls[i] for i in self.cfg.motor_channels if 0 <= i < len(controls)]
        if not duties:
            return
        avg_duty = sum(duties) / len(duties)
        self.smoother.add_sample(avg_duty * self.cfg.rotor_scale, self.clock())

    def _on_connection_lost(self) -> None:
        logger.warning("[%s] telemetry connection lost, manual control", self.vehicle_id)
        self._stop_polling()
        self.connected = False
        self._cam_pitch_input = 0

    def _stop_polling(self) -> None:
        if self._poll_task is not None:
            self._poll_task.stop()
            self._poll_task = None

    @property
    def rotor_rate(self) -> float:
        """Rotor rate [rad/s] currently driving the rendered spin."""
        return self.smoother.current_rate() if self.connected else self.manual_rotor_speed

    # ---------- per frame ----------

    def update(self, dt: float, keys: Mapping[str, bool] | None = None) -> None:
        if self.root is None:
            return
        if self.connected:
            self._update_from_telemetry(dt)
        else:
            self._update_manual(dt, keys or {})
        self._update_view_cameras(dt)

    def _update_from_telemetry(self, dt: float) -> None:
        if self.latest_pose is not None:
            self.root.set_absolute_pose(self.latest_pose)

        # Aged-out samples must not keep the rotors spinning.
        rate = self.smoother.purge(self.clock())
        if dt <= 0.0 or rate == 0.0:
            return
        d = rate * dt
        for index, rotor in enumerate(self.rotors):
            rotor.spin_local([0.0, -d if index % 2 == 0 else d, 0.0])

    def _update_manual(self, dt: float, keys: Mapping[str, bool]) -> None:
        cfg = self.cfg
        step = cfg.move_speed * dt
        rot_step = cfg.rot_speed_deg * dt

        def down(action: str) -> bool:
            return bool(keys.get(MANUAL_KEYS[action], False))

        d_pos = np.zeros(3, dtype=float)
        d_rpy = np.zeros(3, dtype=float)
        if down("forward"):
            d_pos[0] += step
        if down("back"):
            d_pos[0] -= step
        if down("left"):
            d_pos[1] += step
        if down("right"):
            d_pos[1] -= step
        if down("up"):
            d_pos[2] += step
        if down("down"):
            d_pos[2] -= step
        if down("yaw_left"):
            d_rpy[2] += rot_step
        if down("yaw_right"):
            d_rpy[2] -= rot_step

        if np.any(d_pos):
            self.root.translate(d_pos)
        if np.any(d_rpy):
            self.root.rotate(d_rpy)

        if down("rotor_slower"):
            self.manual_rotor_speed -= cfg.rotor_accel * dt
        if down("rotor_faster"):
            self.manual_rotor_speed += cfg.rotor_accel * dt
        if down("rotor_stop"):
            self.manual_rotor_speed = 0.0

        if self.manual_rotor_speed != 0.0:
            d = self.manual_rotor_speed * dt
            for rotor in self.rotors:
                rotor.spin_local([0.0, d, 0.0])

    def _update_view_cameras(self, dt: float) -> None:
        if not self.view_cameras or not self._cam_pitch_input:
            return
        d_pitch = self._cam_pitch_input * self.cfg.camera_pitch_speed_deg * dt
        for v in self.view_cameras:
            v.mount.rotate([0.0, d_pitch, 0.0])

    def render_attached_cameras(self, renderer: Renderer, scene: SceneNode) -> None:
        full_w, full_h = renderer.size()
        for v in self.view_cameras:
            rect = v.pixel_rect(full_w, full_h)
            if rect.width <= 0 or rect.height <= 0:
                continue
            v.camera.aspect = rect.width / rect.height
            renderer.render_inset(scene, v.view(), rect, v.background_color)

    def world_position(self) -> np.ndarray:
        if self.root is None:
            return np.zeros(3, dtype=float)
        return self.root.world_position()

    def teardown(self) -> None:
        """Stop polling, release the transport and remove the tree from the scene."""
        self._stop_polling()
        if self.connected and self.transport is not None:
            self.transport.disconnect()
        self.connected = False
        if self.root is not None:
            self.root.detach()
