"""
Scene hierarchy: render-frame transform nodes and body-frame pose entities.

``SceneNode`` is the renderer-side attachable node (local position/rotation,
parent/child composition, world queries). ``PoseEntity`` owns the
authoritative body-frame pose of one node and re-derives the node transform
from it on every mutation.
"""

from __future__ import annotations

from typing import Iterator, Sequence

import numpy as np
from scipy.spatial.transform import Rotation

from .core.types import CameraPayload, LightPayload, Payload, Pose, VisualMesh
from .frame import to_render_position, to_render_rotation

_PAYLOAD_TYPES = (VisualMesh, CameraPayload, LightPayload)


def _wrap_deg(angles: np.ndarray) -> np.ndarray:
    """Wrap angles into [-180, 180)."""
    return (np.asarray(angles, dtype=float) + 180.0) % 360.0 - 180.0


class SceneNode:
    """Render-frame transform node with an optional payload."""

    def __init__(self, name: str = "", payload: Payload = None) -> None:
        self.name = name
        self.position = np.zeros(3, dtype=float)
        self.rotation = Rotation.identity()
        self.scale = 1.0
        self.parent: SceneNode | None = None
        self.children: list[SceneNode] = []
        self.payload: Payload = payload

    def add(self, child: "SceneNode") -> None:
        if child.parent is not None:
            child.parent.remove(child)
        child.parent = self
        self.children.append(child)

    def remove(self, child: "SceneNode") -> None:
        if child in self.children:
            self.children.remove(child)
            child.parent = None

    def local_matrix(self) -> np.ndarray:
        m = np.eye(4, dtype=float)
        m[:3, :3] = self.rotation.as_matrix() * float(self.scale)
        m[:3, 3] = self.position
        return m

    def world_matrix(self) -> np.ndarray:
        if self.parent is None:
            return self.local_matrix()
        return self.parent.world_matrix() @ self.local_matrix()

    def world_position(self) -> np.ndarray:
        return self.world_matrix()[:3, 3].copy()

    def world_rotation(self) -> Rotation:
        rot = self.rotation
        node = self.parent
        while node is not None:
            rot = node.rotation * rot
            node = node.parent
        return rot

    def traverse(self) -> Iterator["SceneNode"]:
        yield self
        for child in self.children:
            yield from child.traverse()


class PoseEntity:
    """
    Scene entity driven by an absolute body-frame pose.

    Every pose mutation recomputes the node transform from the stored
    absolute pose. ``spin_local`` keeps a separate render-frame rotation
    offset (rotor spin) that pose writes never reset.
    """

    def __init__(self, name: str = "", payload: Payload = None) -> None:
        self.node = SceneNode(name)
        self.pose = Pose()
        self.parent: PoseEntity | None = None
        self.children: list[PoseEntity] = []
        self.model: PoseEntity | None = None
        self.tag: str | None = None
        self._spin = Rotation.identity()
        self.set_payload(payload)
        self._refresh()

    @property
    def name(self) -> str:
        return self.node.name

    @property
    def payload(self) -> Payload:
        return self.node.payload

    @property
    def spin(self) -> Rotation:
        return self._spin

    def set_payload(self, payload: Payload) -> None:
        if payload is not None and not isinstance(payload, _PAYLOAD_TYPES):
            raise TypeError(f"Unsupported payload for '{self.name}': {type(payload).__name__}")
        self.node.payload = payload

    def clear_payload(self) -> None:
        self.node.payload = None

    def add_child(self, entity: "PoseEntity") -> None:
        if entity.parent is not None:
            entity.parent.remove_child(entity)
        entity.parent = self
        self.children.append(entity)
        self.node.add(entity.node)

    def remove_child(self, entity: "PoseEntity") -> None:
        if entity in self.children:
            self.children.remove(entity)
            self.node.remove(entity.node)
            entity.parent = None
        if self.model is entity:
            self.model = None

    def set_model(self, entity: "PoseEntity") -> None:
        """Attach the model-offset child that aligns a visual asset to this pivot."""
        if self.model is not None:
            self.remove_child(self.model)
        self.add_child(entity)
        self.model = entity

    def attach_to(self, node: SceneNode) -> None:
        node.add(self.node)

    def detach(self) -> None:
        if self.parent is not None:
            self.parent.remove_child(self)
        elif self.node.parent is not None:
            self.node.parent.remove(self.node)

    # ---------- authoritative pose ----------

    def set_absolute_pose(self, pose: Pose) -> None:
        self.pose = pose.copy()
        self._refresh()

    def set_position(self, body_pos: Sequence[float]) -> None:
        self.pose.position = np.asarray(body_pos, dtype=float).reshape(3).copy()
        self._refresh()

    def set_rpy(self, rpy_deg: Sequence[float]) -> None:
        self.pose.rpy_deg = np.asarray(rpy_deg, dtype=float).reshape(3).copy()
        self._refresh()

    def translate(self, delta_body_pos: Sequence[float]) -> None:
        self.pose.position = self.pose.position + np.asarray(delta_body_pos, dtype=float).reshape(3)
        self._refresh()

    def rotate(self, delta_rpy_deg: Sequence[float]) -> None:
        # Wrapped so yaw does not grow without bound over long sessions.
        self.pose.rpy_deg = _wrap_deg(self.pose.rpy_deg + np.asarray(delta_rpy_deg, dtype=float).reshape(3))
        self._refresh()

    # ---------- render-only spin ----------

    def spin_local(self, delta_euler: Sequence[float]) -> None:
        """Rotate the rendered node about its own render axes [rad], outside the pose."""
        self._spin = self._spin * Rotation.from_euler("xyz", np.asarray(delta_euler, dtype=float).reshape(3))
        self._refresh()

    def reset_spin(self) -> None:
        self._spin = Rotation.identity()
        self._refresh()

    def world_position(self) -> np.ndarray:
        return self.node.world_position()

    def _refresh(self) -> None:
        self.node.position = to_render_position(self.pose.position)
        self.node.rotation = to_render_rotation(self.pose.rpy_deg) * self._spin
