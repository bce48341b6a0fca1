from __future__ import annotations

import math
import unittest

import numpy as np

from viz_py.codec import encode_actuators, encode_game_buttons, encode_pose
from viz_py.core.errors import AssetLoadError
from viz_py.core.scheduling import ManualScheduler
from viz_py.entity import SceneNode
from viz_py.transports import MemoryTransport
from viz_py.vehicle import GAME_CHANNEL, MOTOR_CHANNEL, POSE_CHANNEL, VehicleController
from viz_py.viewer import HeadlessRenderer

from .support import StubLoader, quad_config


class TestVehicleBuild(unittest.TestCase):
    def test_entity_tree(self) -> None:
        scene = SceneNode("scene")
        loader = StubLoader()
        v = VehicleController.create(scene, loader, quad_config())
        self.assertIn(v.root.node, scene.children)
        self.assertEqual(len(v.rotors), 4)
        self.assertEqual(len(v.cameras), 1)
        self.assertEqual(len(v.view_cameras), 1)
        self.assertEqual(v.root.model.payload.asset_path, "body.glb")
        self.assertTrue(all(r.parent is v.root for r in v.rotors))
        self.assertEqual(loader.loaded.count("rotor.glb"), 4)

    def test_asset_failure_adds_nothing(self) -> None:
        scene = SceneNode("scene")
        with self.assertRaises(AssetLoadError):
            VehicleController.create(scene, StubLoader(failing={"rotor.glb"}), quad_config())
        self.assertEqual(scene.children, [])


class TestManualMode(unittest.TestCase):
    def setUp(self) -> None:
        self.scene = SceneNode("scene")
        self.vehicle = VehicleController.create(self.scene, StubLoader(), quad_config())

    def test_forward_key_for_one_second(self) -> None:
        self.assertFalse(self.vehicle.connected)
        dt = 1.0 / 60.0
        for _ in range(60):
            self.vehicle.update(dt, {"w": True})
        self.assertAlmostEqual(self.vehicle.root.pose.position[0], 2.0, delta=0.01)
        self.assertAlmostEqual(self.vehicle.root.pose.position[1], 0.0)

    def test_yaw_keys(self) -> None:
        for _ in range(10):
            self.vehicle.update(0.05, {"q": True})
        self.assertAlmostEqual(self.vehicle.root.pose.rpy_deg[2], 30.0, places=6)

    def test_rotor_integrator(self) -> None:
        for _ in range(10):
            self.vehicle.update(0.05, {"k": True})
        self.assertAlmostEqual(self.vehicle.manual_rotor_speed, 10.0, places=9)
        spins = [r.spin.as_matrix() for r in self.vehicle.rotors]
        for m in spins[1:]:
            np.testing.assert_allclose(m, spins[0], atol=1e-12)
        self.vehicle.update(0.05, {"l": True})
        self.assertEqual(self.vehicle.manual_rotor_speed, 0.0)
        self.assertEqual(self.vehicle.rotor_rate, 0.0)

    def test_connect_failure_falls_back_to_manual(self) -> None:
        transport = MemoryTransport(available=False)
        with self.assertLogs("viz_py.vehicle", level="WARNING") as logs:
            v = VehicleController.create(SceneNode("scene"), StubLoader(), quad_config(), transport=transport)
        self.assertTrue(any("connect failed" in line for line in logs.output))
        self.assertFalse(v.connected)
        self.assertEqual(transport.references, 0)
        v.update(0.5, {"w": True})
        self.assertAlmostEqual(v.root.pose.position[0], 1.0)


class TestTelemetryMode(unittest.TestCase):
    def setUp(self) -> None:
        self.scheduler = ManualScheduler()
        self.transport = MemoryTransport()
        self.scene = SceneNode("scene")
        self.vehicle = VehicleController.create(
            self.scene,
            StubLoader(),
            quad_config(pos=(0.0, 0.0, 0.5)),
            transport=self.transport,
            scheduler=self.scheduler,
            clock=self.scheduler.clock,
        )

    def _publish(self, pos=(1.0, 2.0, 3.0), rpy=(0.0, 0.0, math.pi / 2.0), duty=0.5) -> None:
        self.transport.publish("Drone", POSE_CHANNEL, encode_pose(pos, rpy))
        self.transport.publish("Drone", MOTOR_CHANNEL, encode_actuators([duty] * 4))

    def test_no_polls_keeps_initial_pose(self) -> None:
        self.assertTrue(self.vehicle.connected)
        self.vehicle.update(0.016)
        np.testing.assert_allclose(self.vehicle.root.pose.position, [0.0, 0.0, 0.5])
        np.testing.assert_allclose(self.vehicle.rotors[0].spin.as_rotvec(), [0.0, 0.0, 0.0])

    def test_pose_and_counter_rotating_rotors(self) -> None:
        self._publish()
        self.scheduler.advance(0.1)
        np.testing.assert_allclose(self.vehicle.latest_pose.position, [1.0, 2.0, 3.0])
        np.testing.assert_allclose(self.vehicle.latest_pose.rpy_deg, [0.0, 0.0, 90.0], atol=1e-9)
        self.assertAlmostEqual(self.vehicle.smoother.current_rate(), 100.0, places=4)

        self.vehicle.update(0.01)

        np.testing.assert_allclose(self.vehicle.root.pose.position, [1.0, 2.0, 3.0])
        np.testing.assert_allclose(self.vehicle.rotors[0].spin.as_rotvec(), [0.0, -1.0, 0.0], atol=1e-5)
        np.testing.assert_allclose(self.vehicle.rotors[1].spin.as_rotvec(), [0.0, 1.0, 0.0], atol=1e-5)
        np.testing.assert_allclose(self.vehicle.rotors[2].spin.as_rotvec(), [0.0, -1.0, 0.0], atol=1e-5)

    def test_several_polls_between_frames(self) -> None:
        self._publish()
        self.scheduler.advance(0.35)
        self.assertEqual(len(self.vehicle.smoother), 3)

    def test_decode_miss_is_skipped(self) -> None:
        self.transport.publish("Drone", POSE_CHANNEL, b"\x00" * 10)
        self.transport.publish("Drone", MOTOR_CHANNEL, b"\x01\x02")
        self.scheduler.advance(0.1)
        self.assertIsNone(self.vehicle.latest_pose)
        self.assertEqual(len(self.vehicle.smoother), 0)
        self.assertTrue(self.vehicle.connected)

    def test_motor_channels_average(self) -> None:
        self.transport.publish("Drone", MOTOR_CHANNEL, encode_actuators([0.2, 0.4, 0.6, 0.8, 1.0]))
        self.scheduler.advance(0.1)
        self.assertAlmostEqual(self.vehicle.smoother.current_rate(), 100.0, places=4)

    def test_motor_channel_out_of_range_is_ignored(self) -> None:
        self.vehicle.cfg.motor_channels = [0, 7]
        self.transport.publish("Drone", MOTOR_CHANNEL, encode_actuators([0.25, 0.5, 0.5, 0.5]))
        self.scheduler.advance(0.1)
        self.assertAlmostEqual(self.vehicle.smoother.current_rate(), 50.0, places=4)

    def test_rotor_rate_decays_when_samples_stop(self) -> None:
        self._publish()
        self.scheduler.advance(0.1)
        self.transport.clear("Drone", MOTOR_CHANNEL)
        self.scheduler.advance(1.2)
        self.vehicle.update(0.016)
        self.assertEqual(self.vehicle.rotor_rate, 0.0)

    def test_connection_loss_switches_to_manual(self) -> None:
        self.transport.mark_lost()
        self.scheduler.advance(0.1)
        self.assertFalse(self.vehicle.connected)
        self.assertEqual(self.scheduler.pending, 0)
        self.vehicle.update(0.5, {"w": True})
        self.assertAlmostEqual(self.vehicle.root.pose.position[0], 1.0)

    def test_game_buttons_pitch_inset_camera(self) -> None:
        buttons = [False] * 15
        buttons[12] = True
        self.transport.publish("Drone", GAME_CHANNEL, encode_game_buttons(buttons))
        self.scheduler.advance(0.1)
        self.vehicle.update(0.1)
        self.assertAlmostEqual(self.vehicle.cameras[0].pose.rpy_deg[1], 4.5, places=6)

    def test_teardown_releases_everything(self) -> None:
        self.vehicle.teardown()
        self.assertEqual(self.scheduler.pending, 0)
        self.assertFalse(self.transport.is_connected)
        self.assertIsNone(self.vehicle.root.node.parent)
        self.scheduler.advance(1.0)

    def test_transport_is_shared_between_vehicles(self) -> None:
        other = VehicleController.create(
            self.scene, StubLoader(), quad_config(name="Drone2"), transport=self.transport, scheduler=self.scheduler
        )
        self.assertEqual(self.transport.open_count, 1)
        self.assertEqual(self.transport.references, 2)
        other.teardown()
        self.assertTrue(self.transport.is_connected)
        self.vehicle.teardown()
        self.assertFalse(self.transport.is_connected)


class TestAttachedCameras(unittest.TestCase):
    def test_inset_rect_and_aspect(self) -> None:
        scene = SceneNode("scene")
        v = VehicleController.create(scene, StubLoader(), quad_config())
        renderer = HeadlessRenderer(width=1000, height=800)
        v.render_attached_cameras(renderer, scene)

        self.assertEqual(len(renderer.insets), 1)
        rec = renderer.insets[0]
        self.assertEqual((rec.rect.x, rec.rect.y, rec.rect.width, rec.rect.height), (700, 560, 250, 200))
        self.assertEqual(rec.clear_color, 0x000000)
        self.assertAlmostEqual(v.view_cameras[0].camera.aspect, 1.25)

    def test_inset_view_looks_forward(self) -> None:
        scene = SceneNode("scene")
        v = VehicleController.create(scene, StubLoader(), quad_config())
        view = v.view_cameras[0].view()
        np.testing.assert_allclose(view.look_at - view.eye, [0.0, 0.0, -1.0], atol=1e-9)


if __name__ == "__main__":
    unittest.main()
