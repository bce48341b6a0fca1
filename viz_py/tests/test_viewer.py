from __future__ import annotations

import unittest

from matplotlib.figure import Figure

from viz_py.entity import SceneNode
from viz_py.vehicle import VehicleController
from viz_py.viewer import MatplotlibRenderer

from .support import StubLoader, quad_config


class TestMatplotlibRenderer(unittest.TestCase):
    def test_inset_axes_reused_across_resizes(self) -> None:
        scene = SceneNode("scene")
        vehicle = VehicleController.create(scene, StubLoader(), quad_config())
        renderer = MatplotlibRenderer(fig=Figure(figsize=(9.0, 7.0), dpi=100))

        counts = []
        for size in [(9.0, 7.0), (10.0, 7.0), (11.0, 7.0), (12.0, 8.0)]:
            renderer.fig.set_size_inches(*size)
            vehicle.render_attached_cameras(renderer, scene)
            counts.append(len(renderer.fig.axes))

        self.assertEqual(counts, [2, 2, 2, 2])
        inset = renderer.fig.axes[1]
        x0, y0, width, height = inset.get_position(original=True).bounds
        self.assertAlmostEqual(x0, 840 / 1200, places=6)
        self.assertAlmostEqual(y0, 560 / 800, places=6)
        self.assertAlmostEqual(width, 300 / 1200, places=6)
        self.assertAlmostEqual(height, 200 / 800, places=6)


if __name__ == "__main__":
    unittest.main()
