"""File-backed asset loader producing opaque visual handles."""

from __future__ import annotations

import logging
from pathlib import Path

from .core.errors import AssetLoadError
from .core.interfaces import AssetLoader
from .core.types import VisualMesh

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = {".glb", ".gltf", ".obj", ".stl", ".xml"}


class FileAssetLoader(AssetLoader):
    """Resolves model paths against ``root`` and checks they exist."""

    def __init__(self, root: Path | str = ".") -> None:
        self.root = Path(root)
        self._cache: dict[Path, VisualMesh] = {}

    def resolve(self, path: str) -> Path:
        p = Path(path)
        return p if p.is_absolute() else (self.root / p)

    def load(self, path: str) -> VisualMesh:
        resolved = self.resolve(path)
        if resolved in self._cache:
            return VisualMesh(asset_path=self._cache[resolved].asset_path)
        if resolved.suffix.lower() not in SUPPORTED_SUFFIXES:
            raise AssetLoadError(f"Unsupported model format '{resolved.suffix}': {path}")
        if not resolved.is_file():
            raise AssetLoadError(f"Model file not found: {resolved}")
        mesh = VisualMesh(asset_path=str(resolved))
        self._cache[resolved] = mesh
        logger.debug("Loaded model %s", resolved)
        return VisualMesh(asset_path=mesh.asset_path)
