"""Config schema, loading and CLI normalization for the viewer."""

from __future__ import annotations

import argparse
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

from .errors import ConfigError

Vec3 = tuple[float, float, float]

_MISSING = object()


def _require(raw: Mapping[str, Any], key: str, where: str) -> Any:
    value = raw.get(key, _MISSING)
    if value is _MISSING or value is None:
        raise ConfigError(f"{where}.{key}: missing required field")
    return value


def _mapping(raw: Any, where: str) -> Mapping[str, Any]:
    if not isinstance(raw, Mapping):
        raise ConfigError(f"{where}: expected a mapping, got {type(raw).__name__}")
    return raw


def _vec3(raw: Any, where: str) -> Vec3:
    try:
        values = [float(v) for v in raw]
    except (TypeError, ValueError):
        raise ConfigError(f"{where}: expected 3 numbers, got {raw!r}") from None
    if len(values) != 3:
        raise ConfigError(f"{where}: expected 3 numbers, got {len(values)}")
    return values[0], values[1], values[2]


def _opt_vec3(raw: Mapping[str, Any], key: str, where: str, default: Vec3 | None) -> Vec3 | None:
    value = raw.get(key)
    if value is None:
        return default
    return _vec3(value, f"{where}.{key}")


def _number(raw: Mapping[str, Any], key: str, where: str, default: float) -> float:
    value = raw.get(key)
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{where}.{key}: expected a number, got {value!r}") from None


# camelCase keys written by the original web viewer.
_MAIN_CAMERA_ALIASES = {
    "initialMode": "initial_mode",
    "followDistance": "follow_distance",
    "followLerpPos": "follow_lerp_pos",
    "followLerpTarget": "follow_lerp_target",
    "followToggleKey": "follow_toggle_key",
}

_TOP_LEVEL_KEYS = {"vehicles", "drones", "environments", "main_camera", "transport"}


def _known_fields(
    cls: type,
    raw: Any,
    where: str,
    aliases: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Rename aliases and reject keys that are not fields of ``cls``."""
    raw = _mapping(raw, where)
    aliases = aliases or {}
    names = {f.name for f in fields(cls)}
    out: dict[str, Any] = {}
    for key, value in raw.items():
        name = aliases.get(key, key)
        if name not in names:
            raise ConfigError(f"{where}.{key}: unknown field")
        if name in out:
            raise ConfigError(f"{where}.{key}: duplicates '{name}'")
        out[name] = value
    return out


@dataclass
class ModelConfig:
    """Visual asset plus its offset from the logical pivot (body frame)."""

    model_path: str
    pos: Vec3 = (0.0, 0.0, 0.0)
    hpr: Vec3 = (0.0, 0.0, 0.0)

    @classmethod
    def from_dict(cls, raw: Any, where: str) -> "ModelConfig":
        raw = _known_fields(cls, raw, where)
        return cls(
            model_path=str(_require(raw, "model_path", where)),
            pos=_opt_vec3(raw, "pos", where, (0.0, 0.0, 0.0)),
            hpr=_opt_vec3(raw, "hpr", where, (0.0, 0.0, 0.0)),
        )


@dataclass
class RotorConfig:
    name: str
    model: ModelConfig
    pos: Vec3 = (0.0, 0.0, 0.0)
    hpr: Vec3 = (0.0, 0.0, 0.0)

    @classmethod
    def from_dict(cls, raw: Any, where: str) -> "RotorConfig":
        raw = _known_fields(cls, raw, where)
        return cls(
            name=str(_require(raw, "name", where)),
            model=ModelConfig.from_dict(_require(raw, "model", where), f"{where}.model"),
            pos=_opt_vec3(raw, "pos", where, (0.0, 0.0, 0.0)),
            hpr=_opt_vec3(raw, "hpr", where, (0.0, 0.0, 0.0)),
        )


@dataclass
class WindowConfig:
    """Inset viewport, normalized 0..1 with bottom-left origin."""

    x: float = 0.7
    y: float = 0.7
    width: float = 0.25
    height: float = 0.25

    @classmethod
    def from_dict(cls, raw: Any, where: str) -> "WindowConfig":
        raw = _known_fields(cls, raw, where)
        d = cls()
        return cls(
            x=_number(raw, "x", where, d.x),
            y=_number(raw, "y", where, d.y),
            width=_number(raw, "width", where, d.width),
            height=_number(raw, "height", where, d.height),
        )


@dataclass
class CameraMountConfig:
    name: str
    pos: Vec3 = (0.0, 0.0, 0.0)
    hpr: Vec3 = (0.0, 0.0, 0.0)
    model: ModelConfig | None = None
    fov: float = 70.0
    near: float = 0.1
    far: float = 1000.0
    window: WindowConfig | None = None

    @classmethod
    def from_dict(cls, raw: Any, where: str) -> "CameraMountConfig":
        raw = _known_fields(cls, raw, where)
        d = cls(name="")
        model_raw = raw.get("model")
        window_raw = raw.get("window")
        return cls(
            name=str(_require(raw, "name", where)),
            pos=_opt_vec3(raw, "pos", where, d.pos),
            hpr=_opt_vec3(raw, "hpr", where, d.hpr),
            model=None if model_raw is None else ModelConfig.from_dict(model_raw, f"{where}.model"),
            fov=_number(raw, "fov", where, d.fov),
            near=_number(raw, "near", where, d.near),
            far=_number(raw, "far", where, d.far),
            window=None if window_raw is None else WindowConfig.from_dict(window_raw, f"{where}.window"),
        )


@dataclass
class VehicleConfig:
    name: str
    model: ModelConfig
    pos: Vec3 | None = None
    hpr: Vec3 | None = None
    rotors: list[RotorConfig] = field(default_factory=list)
    cameras: list[CameraMountConfig] = field(default_factory=list)
    motor_channels: list[int] = field(default_factory=lambda: [0, 1, 2, 3])
    rotor_scale: float = 200.0
    poll_interval_ms: float = 100.0
    rotor_window_sec: float = 1.0
    move_speed: float = 2.0
    rot_speed_deg: float = 60.0
    rotor_accel: float = 20.0
    camera_pitch_speed_deg: float = 45.0

    @classmethod
    def from_dict(cls, raw: Any, where: str) -> "VehicleConfig":
        raw = _known_fields(cls, raw, where)
        d = cls(name="", model=ModelConfig(model_path=""))
        rotors = raw.get("rotors") or []
        cameras = raw.get("cameras") or []
        channels = raw.get("motor_channels")
        try:
            motor_channels = list(d.motor_channels) if channels is None else [int(c) for c in channels]
        except (TypeError, ValueError):
            raise ConfigError(f"{where}.motor_channels: expected a list of integers, got {channels!r}") from None
        return cls(
            name=str(_require(raw, "name", where)),
            model=ModelConfig.from_dict(_require(raw, "model", where), f"{where}.model"),
            pos=_opt_vec3(raw, "pos", where, None),
            hpr=_opt_vec3(raw, "hpr", where, None),
            rotors=[RotorConfig.from_dict(r, f"{where}.rotors[{i}]") for i, r in enumerate(rotors)],
            cameras=[CameraMountConfig.from_dict(c, f"{where}.cameras[{i}]") for i, c in enumerate(cameras)],
            motor_channels=motor_channels,
            rotor_scale=_number(raw, "rotor_scale", where, d.rotor_scale),
            poll_interval_ms=_number(raw, "poll_interval_ms", where, d.poll_interval_ms),
            rotor_window_sec=_number(raw, "rotor_window_sec", where, d.rotor_window_sec),
            move_speed=_number(raw, "move_speed", where, d.move_speed),
            rot_speed_deg=_number(raw, "rot_speed_deg", where, d.rot_speed_deg),
            rotor_accel=_number(raw, "rotor_accel", where, d.rotor_accel),
            camera_pitch_speed_deg=_number(raw, "camera_pitch_speed_deg", where, d.camera_pitch_speed_deg),
        )


@dataclass
class EnvironmentConfig:
    name: str
    model: str
    pos: Vec3 | None = None
    hpr: Vec3 | None = None
    scale: float | None = None

    @classmethod
    def from_dict(cls, raw: Any, where: str) -> "EnvironmentConfig":
        raw = _known_fields(cls, raw, where)
        scale = raw.get("scale")
        return cls(
            name=str(_require(raw, "name", where)),
            model=str(_require(raw, "model", where)),
            pos=_opt_vec3(raw, "pos", where, None),
            hpr=_opt_vec3(raw, "hpr", where, None),
            scale=None if scale is None else _number(raw, "scale", where, 1.0),
        )


@dataclass
class MainCameraConfig:
    """Follow camera parameters; ``position`` is a body-frame offset from the first vehicle."""

    position: Vec3 = (0.0, 0.0, 0.0)
    fov: float = 60.0
    near: float = 0.1
    far: float = 1000.0
    initial_mode: str = "follow"
    follow_distance: float | None = None
    follow_lerp_pos: float = 8.0
    follow_lerp_target: float = 10.0
    follow_toggle_key: str = "c"

    @classmethod
    def from_dict(cls, raw: Any, where: str) -> "MainCameraConfig":
        raw = _known_fields(cls, raw, where, _MAIN_CAMERA_ALIASES)
        d = cls()
        mode = str(raw.get("initial_mode", d.initial_mode)).lower()
        # The original viewer called free mode "fixed".
        if mode == "fixed":
            mode = "free"
        if mode not in {"follow", "free"}:
            raise ConfigError(f"{where}.initial_mode: expected 'follow' or 'free', got {mode!r}")
        dist = raw.get("follow_distance")
        return cls(
            position=_opt_vec3(raw, "position", where, d.position),
            fov=_number(raw, "fov", where, d.fov),
            near=_number(raw, "near", where, d.near),
            far=_number(raw, "far", where, d.far),
            initial_mode=mode,
            follow_distance=None if dist is None else _number(raw, "follow_distance", where, 0.0),
            follow_lerp_pos=_number(raw, "follow_lerp_pos", where, d.follow_lerp_pos),
            follow_lerp_target=_number(raw, "follow_lerp_target", where, d.follow_lerp_target),
            follow_toggle_key=str(raw.get("follow_toggle_key", d.follow_toggle_key)),
        )


@dataclass
class TransportConfig:
    kind: str = "udp"
    host: str = "0.0.0.0"
    port: int = 54001

    @classmethod
    def from_dict(cls, raw: Any, where: str) -> "TransportConfig":
        raw = _known_fields(cls, raw, where)
        d = cls()
        return cls(
            kind=str(raw.get("kind", d.kind)).lower().strip(),
            host=str(raw.get("host", d.host)),
            port=int(_number(raw, "port", where, float(d.port))),
        )


@dataclass
class ViewerConfig:
    vehicles: list[VehicleConfig] = field(default_factory=list)
    environments: list[EnvironmentConfig] = field(default_factory=list)
    main_camera: MainCameraConfig | None = None
    transport: TransportConfig = field(default_factory=TransportConfig)


def parse_viewer_config(raw: Mapping[str, Any] | None) -> ViewerConfig:
    """Validate a loaded mapping into a :class:`ViewerConfig`.

    Raises ``ConfigError`` naming the first missing or malformed field.
    """
    raw = _mapping(raw or {}, "config")
    for key in raw:
        if key not in _TOP_LEVEL_KEYS:
            raise ConfigError(f"config.{key}: unknown field")
    # Legacy configs list vehicles under "drones".
    vehicles_raw = raw.get("vehicles")
    if vehicles_raw is None:
        vehicles_raw = raw.get("drones") or []
    envs_raw = raw.get("environments") or []
    camera_raw = raw.get("main_camera")
    transport_raw = raw.get("transport")

    vehicles = [VehicleConfig.from_dict(v, f"vehicles[{i}]") for i, v in enumerate(vehicles_raw)]
    names = [v.name for v in vehicles]
    if len(set(names)) != len(names):
        raise ConfigError(f"vehicles: duplicate vehicle names in {names}")

    return ViewerConfig(
        vehicles=vehicles,
        environments=[EnvironmentConfig.from_dict(e, f"environments[{i}]") for i, e in enumerate(envs_raw)],
        main_camera=None if camera_raw is None else MainCameraConfig.from_dict(camera_raw, "main_camera"),
        transport=TransportConfig() if transport_raw is None else TransportConfig.from_dict(transport_raw, "transport"),
    )


def load_viewer_config(path: Path) -> dict[str, Any]:
    """Load viewer YAML config from disk.

    Missing files are handled gracefully and return an empty config.
    """
    if not path.exists():
        return {}

    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


@dataclass
class NormalizedViewerConfig:
    """Validated config plus CLI overrides used by the app."""

    config_path: Path
    viewer: ViewerConfig
    asset_root: Path
    headless: bool = False
    frames: int = 0
    camera_mode: str | None = None


def normalize_viewer_config(args: argparse.Namespace) -> NormalizedViewerConfig:
    """Fold CLI overrides into the YAML config."""
    config_path = Path(args.config)
    viewer = parse_viewer_config(load_viewer_config(config_path))

    transport = viewer.transport
    if getattr(args, "transport", None) is not None:
        transport = replace(transport, kind=str(args.transport))
    if getattr(args, "host", None) is not None:
        transport = replace(transport, host=str(args.host))
    if getattr(args, "port", None) is not None:
        transport = replace(transport, port=int(args.port))
    viewer.transport = transport

    poll_ms = getattr(args, "poll_interval_ms", None)
    if poll_ms is not None:
        viewer.vehicles = [replace(v, poll_interval_ms=float(poll_ms)) for v in viewer.vehicles]

    camera_mode = getattr(args, "camera_mode", None)
    if camera_mode is not None:
        base = viewer.main_camera or MainCameraConfig()
        viewer.main_camera = replace(base, initial_mode=str(camera_mode))

    return NormalizedViewerConfig(
        config_path=config_path,
        viewer=viewer,
        asset_root=config_path.parent,
        headless=bool(getattr(args, "headless", False)),
        frames=int(getattr(args, "frames", 0) or 0),
        camera_mode=camera_mode,
    )
