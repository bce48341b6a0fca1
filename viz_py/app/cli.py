"""CLI argument parsing for the viewer."""

from __future__ import annotations

import argparse


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Telemetry-driven 3D vehicle viewer.")
    parser.add_argument(
        "--config",
        type=str,
        default="viz_py/viewer_config.yaml",
        help="Path to viewer_config.yaml.",
    )
    parser.add_argument(
        "--transport",
        type=str,
        choices=["udp", "memory", "none"],
        default=None,
        help="Telemetry transport (overrides transport.kind from YAML).",
    )
    parser.add_argument("--host", type=str, default=None, help="UDP bind address.")
    parser.add_argument("--port", type=int, default=None, help="UDP bind port.")
    parser.add_argument(
        "--poll-interval-ms",
        type=float,
        default=None,
        help="Telemetry poll interval [ms] for every vehicle.",
    )
    parser.add_argument(
        "--camera-mode",
        type=str,
        choices=["follow", "free"],
        default=None,
        help="Initial main camera mode.",
    )
    parser.add_argument(
        "--headless",
        action="store_true",
        help="Run without a window using simulated time.",
    )
    parser.add_argument(
        "--frames",
        type=int,
        default=600,
        help="Number of frames to run in headless mode.",
    )
    return parser.parse_args(argv)
