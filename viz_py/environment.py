"""Static environment pieces (terrain, buildings) placed in the scene."""

from __future__ import annotations

import logging
from typing import Iterable

from .core.config import EnvironmentConfig
from .core.errors import AssetLoadError
from .core.interfaces import AssetLoader
from .entity import PoseEntity, SceneNode

logger = logging.getLogger(__name__)


def build_environment(scene: SceneNode, loader: AssetLoader, env_cfg: EnvironmentConfig) -> PoseEntity:
    """
    Build one environment entity and add it to ``scene``.

    The asset is loaded first; if the loader raises, nothing is added.
    """
    mesh = loader.load(env_cfg.model)
    ent = PoseEntity(env_cfg.name, payload=mesh)
    ent.tag = "environment"

    if env_cfg.scale is not None:
        mesh.scale = float(env_cfg.scale)
        ent.node.scale = float(env_cfg.scale)
    if env_cfg.pos is not None:
        ent.set_position(env_cfg.pos)
    if env_cfg.hpr is not None:
        ent.set_rpy(env_cfg.hpr)

    ent.attach_to(scene)
    return ent


def build_environments(
    scene: SceneNode,
    loader: AssetLoader,
    env_cfgs: Iterable[EnvironmentConfig],
) -> list[PoseEntity]:
    """Build every environment, skipping (and logging) pieces whose asset fails to load."""
    results: list[PoseEntity] = []
    for cfg in env_cfgs:
        try:
            results.append(build_environment(scene, loader, cfg))
        except AssetLoadError as exc:
            logger.error("Environment '%s' not added: %s", cfg.name, exc)
            continue
        logger.info("Environment '%s' loaded from %s", cfg.name, cfg.model)
    return results
