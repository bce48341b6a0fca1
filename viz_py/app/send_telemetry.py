"""
Synthetic telemetry sender for trying the viewer without a simulator.

Flies a vehicle around a circle and streams pose/actuator datagrams to the
viewer's UDP transport.

Usage:
    python -m viz_py.app.send_telemetry --vehicle Drone --port 54001
"""

from __future__ import annotations

import argparse
import logging
import socket
import time

import numpy as np

from ..codec import encode_actuators, encode_pose, pack_frame
from ..vehicle import MOTOR_CHANNEL, POSE_CHANNEL

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Send synthetic vehicle telemetry over UDP.")
    parser.add_argument("--vehicle", type=str, default="Drone", help="Vehicle name (entity id).")
    parser.add_argument("--host", type=str, default="127.0.0.1")
    parser.add_argument("--port", type=int, default=54001)
    parser.add_argument("--rate", type=float, default=20.0, help="Send rate [Hz].")
    parser.add_argument("--radius", type=float, default=3.0, help="Circle radius [m].")
    parser.add_argument("--period", type=float, default=20.0, help="Seconds per lap.")
    parser.add_argument("--altitude", type=float, default=1.5, help="Flight altitude [m].")
    parser.add_argument("--duration", type=float, default=0.0, help="Stop after N seconds (0 = forever).")
    return parser.parse_args(argv)


def circle_sample(t: float, radius: float, period: float, altitude: float) -> tuple[np.ndarray, np.ndarray, float]:
    """Body-frame position, roll/pitch/yaw [rad] and motor duty at time ``t``."""
    omega = 2.0 * np.pi / period
    angle = omega * t
    position = np.array([radius * np.cos(angle), radius * np.sin(angle), altitude], dtype=float)
    yaw = angle + np.pi / 2.0
    # Bank into the turn proportionally to centripetal acceleration.
    roll = float(np.arctan2(radius * omega * omega, 9.81))
    duty = 0.55 + 0.05 * np.sin(3.0 * angle)
    return position, np.array([roll, 0.0, yaw], dtype=float), float(duty)


def main() -> None:
    args = parse_args()
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    period = 1.0 / max(args.rate, 1e-3)
    logger.info(f"Sending telemetry for '{args.vehicle}' to {args.host}:{args.port} at {args.rate:.1f} Hz")

    t0 = time.monotonic()
    try:
        while True:
            t = time.monotonic() - t0
            if args.duration > 0.0 and t >= args.duration:
                break
            pos, rpy, duty = circle_sample(t, args.radius, args.period, args.altitude)
            sock.sendto(
                pack_frame(args.vehicle, POSE_CHANNEL, encode_pose(tuple(pos), tuple(rpy))),
                (args.host, args.port),
            )
            sock.sendto(
                pack_frame(args.vehicle, MOTOR_CHANNEL, encode_actuators([duty] * 4, time_usec=int(t * 1e6))),
                (args.host, args.port),
            )
            time.sleep(period)
    except KeyboardInterrupt:
        pass
    finally:
        sock.close()
        logger.info("Telemetry sender stopped")


if __name__ == "__main__":
    main()
