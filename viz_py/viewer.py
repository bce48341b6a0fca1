"""
Renderer backends.

``MatplotlibRenderer`` draws the scene graph in a 3D axes (body-frame axes,
so X forward, Y left, Z up on screen) and inset views as extra axes.
``HeadlessRenderer`` only records what would have been drawn.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import matplotlib.pyplot as plt
import numpy as np
from mpl_toolkits.mplot3d import Axes3D  # noqa: F401

from .core.interfaces import PeriodicTask, Renderer, Scheduler
from .core.types import CameraPayload, LightPayload, PixelRect, ViewSpec, VisualMesh
from .entity import SceneNode
from .frame import to_body_position


@dataclass
class _InsetRecord:
    rect: PixelRect
    clear_color: int
    view: ViewSpec


@dataclass
class HeadlessRenderer(Renderer):
    """Records render calls; used for ``--headless`` runs and tests."""

    width: int = 1280
    height: int = 720
    frames: int = 0
    last_view: ViewSpec | None = None
    insets: list[_InsetRecord] = field(default_factory=list)

    def render(self, scene: SceneNode, view: ViewSpec) -> None:
        self.frames += 1
        self.last_view = view

    def render_inset(self, scene: SceneNode, view: ViewSpec, rect: PixelRect, clear_color: int) -> None:
        self.insets.append(_InsetRecord(rect=rect, clear_color=clear_color, view=view))

    def size(self) -> tuple[int, int]:
        return self.width, self.height


def _scene_geometry(scene: SceneNode) -> tuple[np.ndarray, np.ndarray, list[tuple[np.ndarray, np.ndarray]]]:
    """Body-frame points for meshes and cameras plus parent->child links."""
    meshes: list[np.ndarray] = []
    cameras: list[np.ndarray] = []
    links: list[tuple[np.ndarray, np.ndarray]] = []
    for node in scene.traverse():
        payload = node.payload
        if isinstance(payload, VisualMesh):
            meshes.append(to_body_position(node.world_position()))
        elif isinstance(payload, CameraPayload):
            cameras.append(to_body_position(node.world_position()))
        elif isinstance(payload, LightPayload):
            continue
        if node is not scene:
            for child in node.children:
                links.append((to_body_position(node.world_position()), to_body_position(child.world_position())))
    mesh_arr = np.vstack(meshes) if meshes else np.zeros((0, 3), dtype=float)
    cam_arr = np.vstack(cameras) if cameras else np.zeros((0, 3), dtype=float)
    return mesh_arr, cam_arr, links


def _draw(ax: Any, scene: SceneNode, view: ViewSpec, show_cameras: bool = True) -> None:
    ax.cla()
    meshes, cameras, links = _scene_geometry(scene)
    for a, b in links:
        ax.plot([a[0], b[0]], [a[1], b[1]], [a[2], b[2]], color="0.6", linewidth=1.0)
    if len(meshes):
        ax.scatter(meshes[:, 0], meshes[:, 1], meshes[:, 2], color="deepskyblue", s=20)
    if show_cameras and len(cameras):
        ax.scatter(cameras[:, 0], cameras[:, 1], cameras[:, 2], color="orange", marker="^", s=20)

    eye = to_body_position(view.eye)
    look_at = to_body_position(view.look_at)
    d = eye - look_at
    elev = math.degrees(math.atan2(d[2], math.hypot(d[0], d[1])))
    azim = math.degrees(math.atan2(d[1], d[0]))
    ax.view_init(elev=elev, azim=azim)

    # Span follows the camera distance so zooming changes the framing.
    span = max(float(np.linalg.norm(d)), 1.0)
    ax.set_xlim(look_at[0] - span, look_at[0] + span)
    ax.set_ylim(look_at[1] - span, look_at[1] + span)
    ax.set_zlim(look_at[2] - span, look_at[2] + span)
    ax.set_xlabel("forward [m]")
    ax.set_ylabel("left [m]")
    ax.set_zlabel("up [m]")


class MatplotlibRenderer(Renderer):
    """Interactive 3D view of the scene graph."""

    def __init__(self, figsize: tuple[float, float] = (9.0, 7.0), fig: plt.Figure | None = None) -> None:
        self.fig = fig if fig is not None else plt.figure(figsize=figsize)
        self.ax = self.fig.add_subplot(111, projection="3d")
        self._insets: dict[int, Any] = {}
        self.status_text = self.fig.text(0.02, 0.02, "", fontsize=9, family="monospace")

    def size(self) -> tuple[int, int]:
        w, h = self.fig.get_size_inches() * self.fig.dpi
        return int(w), int(h)

    def render(self, scene: SceneNode, view: ViewSpec) -> None:
        _draw(self.ax, scene, view)

    def render_inset(self, scene: SceneNode, view: ViewSpec, rect: PixelRect, clear_color: int) -> None:
        full_w, full_h = self.size()
        bounds = [rect.x / full_w, rect.y / full_h, rect.width / full_w, rect.height / full_h]
        # One axes per inset camera; a resize only moves it.
        key = id(view.camera)
        ax = self._insets.get(key)
        if ax is None:
            ax = self.fig.add_axes(bounds, projection="3d")
            self._insets[key] = ax
        else:
            ax.set_position(bounds)
        _draw(ax, scene, view, show_cameras=False)
        ax.set_facecolor(f"#{int(clear_color) & 0xFFFFFF:06x}")
        ax.set_axis_off()

    def set_status(self, text: str) -> None:
        self.status_text.set_text(text)

    def present(self) -> None:
        self.fig.canvas.draw_idle()


class _TimerTask(PeriodicTask):
    def __init__(self, timer: Any) -> None:
        self._timer = timer
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def stop(self) -> None:
        if self._active:
            self._timer.stop()
        self._active = False


class MatplotlibScheduler(Scheduler):
    """Periodic tasks backed by the figure canvas' GUI timers."""

    def __init__(self, fig: plt.Figure) -> None:
        self.fig = fig
        self._tasks: list[_TimerTask] = []

    def every(self, interval_sec: float, callback: Callable[[], None]) -> PeriodicTask:
        timer = self.fig.canvas.new_timer(interval=max(1, int(interval_sec * 1000.0)))
        timer.add_callback(callback)
        timer.start()
        task = _TimerTask(timer)
        self._tasks.append(task)
        return task

    def stop_all(self) -> None:
        for task in self._tasks:
            task.stop()
        self._tasks.clear()
