"""
Body frame <-> render frame conversion.

Body frame (vehicle native): X forward, Y left, Z up; attitude as
roll/pitch/yaw in degrees.

Render frame (renderer native): X right, Y up, Z back, so the renderer's
forward direction is -Z.

The mapping is the signed permutation

    render = [-left, up, -forward]

which is a proper rotation (det = +1), so attitudes are remapped by the same
rule applied to the quaternion vector part after composing the full body
rotation.
"""

from __future__ import annotations

from typing import Any, Sequence

import numpy as np
from scipy.spatial.transform import Rotation

from .core.types import Pose

# Rows map body axes into render axes: render = BODY_TO_RENDER @ body.
BODY_TO_RENDER = np.array(
    [
        [0.0, -1.0, 0.0],
        [0.0, 0.0, 1.0],
        [-1.0, 0.0, 0.0],
    ],
    dtype=float,
)


def to_render_position(body_pos: Sequence[float] | np.ndarray) -> np.ndarray:
    """Convert ``[forward, left, up]`` to ``[right, up, back]``."""
    x, y, z = np.asarray(body_pos, dtype=float).reshape(3)
    return np.array([-y, z, -x], dtype=float)


def to_body_position(render_pos: Sequence[float] | np.ndarray) -> np.ndarray:
    """Convert ``[right, up, back]`` to ``[forward, left, up]``."""
    x, y, z = np.asarray(render_pos, dtype=float).reshape(3)
    return np.array([-z, -x, y], dtype=float)


def body_rotation(rpy_deg: Sequence[float] | np.ndarray) -> Rotation:
    """Body attitude as one rotation, intrinsic yaw -> pitch -> roll."""
    roll, pitch, yaw = np.asarray(rpy_deg, dtype=float).reshape(3)
    return Rotation.from_euler("ZYX", [yaw, pitch, roll], degrees=True)


def to_render_rotation(rpy_deg: Sequence[float] | np.ndarray) -> Rotation:
    """
    Convert body roll/pitch/yaw [deg] into a render-frame rotation.

    The body rotation is composed first, then its axis is remapped:
    roll (body X) -> -render Z, pitch (body Y) -> -render X,
    yaw (body Z) -> +render Y.
    """
    qx, qy, qz, qw = body_rotation(rpy_deg).as_quat()
    return Rotation.from_quat([-qy, qz, -qx, qw])


def to_body_rpy(render_rot: Rotation) -> np.ndarray:
    """Inverse of :func:`to_render_rotation`, returns ``[roll, pitch, yaw]`` [deg]."""
    rx, ry, rz, rw = render_rot.as_quat()
    body = Rotation.from_quat([-rz, -rx, ry, rw])
    yaw, pitch, roll = body.as_euler("ZYX", degrees=True)
    return np.array([roll, pitch, yaw], dtype=float)


def apply_pose(target: Any, pose: Pose) -> None:
    """Set ``target.position`` / ``target.rotation`` from a body-frame pose."""
    target.position = to_render_position(pose.position)
    target.rotation = to_render_rotation(pose.rpy_deg)
