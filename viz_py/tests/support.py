"""Shared test doubles."""

from __future__ import annotations

from viz_py.core.config import CameraMountConfig, ModelConfig, RotorConfig, VehicleConfig, WindowConfig
from viz_py.core.errors import AssetLoadError
from viz_py.core.interfaces import AssetLoader
from viz_py.core.types import VisualMesh


class StubLoader(AssetLoader):
    def __init__(self, failing: set[str] | None = None) -> None:
        self.failing = set(failing or ())
        self.loaded: list[str] = []

    def load(self, path: str) -> VisualMesh:
        if path in self.failing:
            raise AssetLoadError(f"Model file not found: {path}")
        self.loaded.append(path)
        return VisualMesh(asset_path=path)


def quad_config(name: str = "Drone", **overrides) -> VehicleConfig:
    rotor_pos = [(0.1, 0.1, 0.05), (0.1, -0.1, 0.05), (-0.1, -0.1, 0.05), (-0.1, 0.1, 0.05)]
    cfg = VehicleConfig(
        name=name,
        model=ModelConfig(model_path="body.glb"),
        rotors=[
            RotorConfig(name=f"{name}_rotor{i}", model=ModelConfig(model_path="rotor.glb"), pos=p)
            for i, p in enumerate(rotor_pos)
        ],
        cameras=[
            CameraMountConfig(
                name=f"{name}_cam",
                pos=(0.15, 0.0, 0.0),
                model=ModelConfig(model_path="camera.glb"),
                window=WindowConfig(x=0.7, y=0.7, width=0.25, height=0.25),
            )
        ],
    )
    for key, value in overrides.items():
        setattr(cfg, key, value)
    return cfg
