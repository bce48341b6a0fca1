"""
Binary decoding of telemetry buffers and UDP datagram framing.

Payload layouts (little endian):
- pose: ``<6d`` linear x/y/z [m] then angular x/y/z [rad]
- actuators: ``<Q`` time_usec, then up to 16 ``<f`` duty values
- game controller: ``<6d`` axes, then 15 ``?`` buttons
"""

from __future__ import annotations

import math
import struct

from .core.types import Pose

POSE_FMT = struct.Struct("<6d")
ACTUATOR_HEADER = struct.Struct("<Q")
MAX_ACTUATOR_CHANNELS = 16
GAME_AXES = struct.Struct("<6d")
GAME_BUTTON_COUNT = 15

_LEN = struct.Struct("<H")


def decode_pose(buf: bytes | None) -> Pose | None:
    """Decode a pose buffer into a body-frame :class:`Pose` (angles in degrees)."""
    if not buf or len(buf) < POSE_FMT.size:
        return None
    x, y, z, roll, pitch, yaw = POSE_FMT.unpack_from(buf, 0)
    return Pose.from_values(
        position=[x, y, z],
        rpy_deg=[math.degrees(roll), math.degrees(pitch), math.degrees(yaw)],
    )


def encode_pose(position: tuple[float, float, float], rpy_rad: tuple[float, float, float]) -> bytes:
    return POSE_FMT.pack(*position, *rpy_rad)


def decode_actuators(buf: bytes | None) -> list[float] | None:
    """Decode duty-cycle values indexed by motor channel."""
    if not buf or len(buf) < ACTUATOR_HEADER.size + 4:
        return None
    count = min((len(buf) - ACTUATOR_HEADER.size) // 4, MAX_ACTUATOR_CHANNELS)
    return list(struct.unpack_from(f"<{count}f", buf, ACTUATOR_HEADER.size))


def encode_actuators(controls: list[float], time_usec: int = 0) -> bytes:
    controls = list(controls)[:MAX_ACTUATOR_CHANNELS]
    return ACTUATOR_HEADER.pack(int(time_usec)) + struct.pack(f"<{len(controls)}f", *controls)


def decode_game_buttons(buf: bytes | None) -> list[bool] | None:
    if not buf or len(buf) < GAME_AXES.size + GAME_BUTTON_COUNT:
        return None
    return list(struct.unpack_from(f"<{GAME_BUTTON_COUNT}?", buf, GAME_AXES.size))


def encode_game_buttons(buttons: list[bool], axes: list[float] | None = None) -> bytes:
    axes_vals = list(axes or [0.0] * 6)[:6]
    axes_vals += [0.0] * (6 - len(axes_vals))
    btn = (list(buttons) + [False] * GAME_BUTTON_COUNT)[:GAME_BUTTON_COUNT]
    return GAME_AXES.pack(*axes_vals) + struct.pack(f"<{GAME_BUTTON_COUNT}?", *btn)


def pack_frame(entity_id: str, channel: str, payload: bytes) -> bytes:
    eid = entity_id.encode("utf-8")
    ch = channel.encode("utf-8")
    return _LEN.pack(len(eid)) + eid + _LEN.pack(len(ch)) + ch + bytes(payload)


def unpack_frame(datagram: bytes) -> tuple[str, str, bytes] | None:
    """Split a datagram into ``(entity_id, channel, payload)``; ``None`` if truncated."""
    try:
        (n_eid,) = _LEN.unpack_from(datagram, 0)
        off = _LEN.size
        eid = datagram[off:off + n_eid]
        off += n_eid
        (n_ch,) = _LEN.unpack_from(datagram, off)
        off += _LEN.size
        ch = datagram[off:off + n_ch]
        off += n_ch
    except struct.error:
        return None
    if len(eid) != n_eid or len(ch) != n_ch:
        return None
    try:
        return eid.decode("utf-8"), ch.decode("utf-8"), bytes(datagram[off:])
    except UnicodeDecodeError:
        return None
