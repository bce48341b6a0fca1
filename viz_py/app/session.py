"""Interactive Matplotlib session and headless runner."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

import matplotlib as mpl
import matplotlib.pyplot as plt

from ..assets import FileAssetLoader
from ..core.config import NormalizedViewerConfig
from ..core.registry import create_transport, register_builtin_components
from ..core.runner import STANDOFF_GROW_KEY, STANDOFF_SHRINK_KEY, FrameLoop, Scene, build_scene
from ..core.scheduling import ManualScheduler
from ..vehicle import MANUAL_KEYS
from ..viewer import HeadlessRenderer, MatplotlibRenderer, MatplotlibScheduler

logger = logging.getLogger(__name__)

FRAME_INTERVAL_MS = 16


@dataclass
class KeyState(Mapping[str, bool]):
    """Held-key state sampled once per frame."""

    pressed: set[str] = field(default_factory=set)
    running: bool = True

    def _normalize(self, key: str | None) -> str:
        if key is None:
            return ""
        raw = str(key).lower().strip()
        # Matplotlib reports combos like "shift+w"; keep the base key.
        parts = [p.strip() for p in raw.split("+") if p.strip()]
        return parts[-1] if parts else ""

    def on_press(self, key: str | None) -> str:
        k = self._normalize(key)
        if not k:
            return ""
        if k == "escape":
            self.running = False
            return k
        self.pressed.add(k)
        return k

    def on_release(self, key: str | None) -> None:
        k = self._normalize(key)
        if k:
            self.pressed.discard(k)

    def __getitem__(self, key: str) -> bool:
        return key in self.pressed

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self.pressed))

    def __len__(self) -> int:
        return len(self.pressed)


def viewer_keys(scene: Scene) -> set[str]:
    """Every key the viewer reacts to."""
    return set(MANUAL_KEYS.values()) | {STANDOFF_SHRINK_KEY, STANDOFF_GROW_KEY, scene.camera.toggle_key, "escape"}


def _disable_mpl_keymaps(keys: set[str]) -> dict[str, list[str]]:
    """Unbind Matplotlib toolbar shortcuts that collide with ``keys``; returns what to restore."""
    saved: dict[str, list[str]] = {}
    for name in [n for n in mpl.rcParams if n.startswith("keymap.")]:
        bound = list(mpl.rcParams[name])
        kept = [k for k in bound if k.lower() not in keys]
        if kept != bound:
            saved[name] = bound
            mpl.rcParams[name] = kept
    return saved


def _restore_mpl_keymaps(saved: dict[str, list[str]]) -> None:
    for name, value in saved.items():
        mpl.rcParams[name] = value


def _status_line(scene: Scene, loop: FrameLoop) -> str:
    lines = [f"frame={loop.frame_count}  camera={scene.camera.mode}  standoff={scene.camera.follow_distance:5.2f} m"]
    for v in scene.vehicles:
        p = v.root.pose.position if v.root is not None else (0.0, 0.0, 0.0)
        mode = "telemetry" if v.connected else "manual"
        lines.append(
            f"{v.vehicle_id:>10s} [{mode:9s}] pos=[{p[0]:6.1f},{p[1]:6.1f},{p[2]:5.1f}]  rotor={v.rotor_rate:7.1f} rad/s"
        )
    lines.append("Keys: WASD/RF move, Q/E yaw, J/K/L rotor, 1/2 standoff, toggle camera, Esc close")
    return "\n".join(lines)


def run_headless_session(cfg_norm: NormalizedViewerConfig, fps: float = 60.0) -> Scene:
    """Run a fixed number of frames on simulated time without a window."""
    register_builtin_components()
    scheduler = ManualScheduler()
    transport = create_transport(cfg_norm.viewer.transport)
    scene = build_scene(
        cfg_norm.viewer,
        FileAssetLoader(cfg_norm.asset_root),
        transport,
        scheduler,
        clock=scheduler.clock,
    )
    renderer = HeadlessRenderer()
    loop = FrameLoop(scene, renderer, keys={}, clock=scheduler.clock)
    loop.resize(*renderer.size())

    frame_dt = 1.0 / fps
    try:
        for _ in range(max(0, cfg_norm.frames)):
            scheduler.advance(frame_dt)
            loop.step(frame_dt)
    finally:
        scene.teardown()
    logger.info("Headless run finished: %d frames, %d inset renders", renderer.frames, len(renderer.insets))
    return scene


def run_viewer_session(cfg_norm: NormalizedViewerConfig) -> None:
    """Open the interactive 3D view and run until the window closes."""
    register_builtin_components()

    renderer = MatplotlibRenderer()
    renderer.ax.disable_mouse_rotation()
    fig = renderer.fig
    scheduler = MatplotlibScheduler(fig)
    transport = create_transport(cfg_norm.viewer.transport)
    scene = build_scene(cfg_norm.viewer, FileAssetLoader(cfg_norm.asset_root), transport, scheduler)
    saved_keymaps = _disable_mpl_keymaps(viewer_keys(scene))

    keys = KeyState()
    loop = FrameLoop(scene, renderer, keys=keys)
    loop.resize(*renderer.size())
    drag: dict[str, Any] = {"xy": None}

    def _on_frame() -> None:
        if not plt.fignum_exists(fig.number):
            return
        if not keys.running:
            plt.close(fig)
            return
        loop.tick()
        renderer.set_status(_status_line(scene, loop))
        renderer.present()

    def _on_key_press(event: Any) -> None:
        k = keys.on_press(getattr(event, "key", None))
        if k:
            scene.camera.handle_key(k)

    def _on_key_release(event: Any) -> None:
        keys.on_release(getattr(event, "key", None))

    def _on_button_press(event: Any) -> None:
        drag["xy"] = (event.x, event.y)

    def _on_button_release(_event: Any) -> None:
        drag["xy"] = None

    def _on_motion(event: Any) -> None:
        if drag["xy"] is None or event.x is None or event.y is None:
            return
        x0, y0 = drag["xy"]
        drag["xy"] = (event.x, event.y)
        scene.camera.orbit.handle_drag(event.x - x0, y0 - event.y, renderer.size()[1])

    def _on_scroll(event: Any) -> None:
        scene.camera.orbit.handle_scroll(float(getattr(event, "step", 0.0)))

    def _on_resize(_event: Any) -> None:
        loop.resize(*renderer.size())

    def _on_close(_event: Any) -> None:
        keys.running = False
        scheduler.stop_all()
        scene.teardown()

    frame_task = scheduler.every(FRAME_INTERVAL_MS / 1000.0, _on_frame)
    fig.canvas.mpl_connect("key_press_event", _on_key_press)
    fig.canvas.mpl_connect("key_release_event", _on_key_release)
    fig.canvas.mpl_connect("button_press_event", _on_button_press)
    fig.canvas.mpl_connect("button_release_event", _on_button_release)
    fig.canvas.mpl_connect("motion_notify_event", _on_motion)
    fig.canvas.mpl_connect("scroll_event", _on_scroll)
    fig.canvas.mpl_connect("resize_event", _on_resize)
    fig.canvas.mpl_connect("close_event", _on_close)

    logger.info("Viewer running; camera mode toggles with '%s'", scene.camera.toggle_key)
    try:
        plt.show()
    finally:
        frame_task.stop()
        _restore_mpl_keymaps(saved_keymaps)
