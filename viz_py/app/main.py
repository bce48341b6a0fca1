"""Main entrypoint for the viewer app."""

from __future__ import annotations

import logging

from ..core.config import normalize_viewer_config
from ..core.errors import ConfigError
from .cli import parse_args
from .session import run_headless_session, run_viewer_session


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def main() -> None:
    args = parse_args()
    try:
        cfg_norm = normalize_viewer_config(args)
    except ConfigError as exc:
        logger.error(f"Invalid config {args.config}: {exc}")
        raise SystemExit(1)

    logger.info("=" * 60)
    logger.info("Starting vehicle viewer")
    logger.info("=" * 60)
    logger.info(f"Loading config from: {cfg_norm.config_path}")
    logger.info(
        f"{len(cfg_norm.viewer.vehicles)} vehicle(s), "
        f"{len(cfg_norm.viewer.environments)} environment(s), "
        f"transport={cfg_norm.viewer.transport.kind}"
    )

    if cfg_norm.headless:
        run_headless_session(cfg_norm)
        return
    run_viewer_session(cfg_norm)


if __name__ == "__main__":
    main()
