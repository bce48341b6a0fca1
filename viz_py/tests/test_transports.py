from __future__ import annotations

import math
import socket
import time
import unittest

import numpy as np

from viz_py.app.send_telemetry import circle_sample
from viz_py.codec import (
    decode_actuators,
    decode_game_buttons,
    decode_pose,
    encode_actuators,
    encode_game_buttons,
    encode_pose,
    pack_frame,
    unpack_frame,
)
from viz_py.transports import MemoryTransport, UdpTransport


class TestCodec(unittest.TestCase):
    def test_pose_angles_become_degrees(self) -> None:
        pose = decode_pose(encode_pose((1.0, 2.0, 3.0), (0.0, math.pi / 2, math.pi)))
        np.testing.assert_allclose(pose.position, [1.0, 2.0, 3.0])
        np.testing.assert_allclose(pose.rpy_deg, [0.0, 90.0, 180.0])

    def test_short_buffers_decode_to_none(self) -> None:
        self.assertIsNone(decode_pose(b""))
        self.assertIsNone(decode_pose(None))
        self.assertIsNone(decode_pose(b"\x00" * 47))
        self.assertIsNone(decode_actuators(b"\x00" * 8))
        self.assertIsNone(decode_game_buttons(b"\x00" * 50))

    def test_actuators_cap_at_sixteen_channels(self) -> None:
        buf = encode_actuators([0.5] * 20, time_usec=123)
        self.assertEqual(len(buf), 8 + 16 * 4)
        self.assertEqual(decode_actuators(buf), [0.5] * 16)

        partial = encode_actuators([0.25, 0.75])
        self.assertEqual(decode_actuators(partial), [0.25, 0.75])

    def test_game_buttons_padded(self) -> None:
        buttons = decode_game_buttons(encode_game_buttons([False] * 11 + [True]))
        self.assertEqual(len(buttons), 15)
        self.assertTrue(buttons[11])
        self.assertFalse(buttons[12])

    def test_frame_layout(self) -> None:
        datagram = pack_frame("Drone", "pos", b"\x01\x02")
        self.assertEqual(datagram[:2], b"\x05\x00")
        self.assertEqual(unpack_frame(datagram), ("Drone", "pos", b"\x01\x02"))

    def test_truncated_frames_rejected(self) -> None:
        datagram = pack_frame("Drone", "motor", b"")
        self.assertEqual(unpack_frame(datagram), ("Drone", "motor", b""))
        self.assertIsNone(unpack_frame(datagram[:4]))
        self.assertIsNone(unpack_frame(datagram[:8]))
        self.assertIsNone(unpack_frame(b"\x01"))


class TestMemoryTransport(unittest.TestCase):
    def test_reference_counted_connection(self) -> None:
        t = MemoryTransport()
        self.assertTrue(t.connect())
        self.assertTrue(t.connect())
        self.assertEqual(t.references, 2)
        self.assertEqual(t.open_count, 1)

        t.disconnect()
        self.assertTrue(t.is_connected)
        t.disconnect()
        self.assertFalse(t.is_connected)
        t.disconnect()
        self.assertEqual(t.references, 0)

    def test_reads_require_declared_channel(self) -> None:
        t = MemoryTransport()
        t.connect()
        t.publish("Drone", "pos", b"abc")
        self.assertIsNone(t.read_raw_buffer("Drone", "pos"))
        t.declare_readable("Drone", "pos")
        self.assertEqual(t.read_raw_buffer("Drone", "pos"), b"abc")
        self.assertIsNone(t.read_raw_buffer("Other", "pos"))

        t.clear("Drone", "pos")
        self.assertIsNone(t.read_raw_buffer("Drone", "pos"))

    def test_unavailable_and_lost(self) -> None:
        self.assertFalse(MemoryTransport(available=False).connect())

        t = MemoryTransport()
        t.connect()
        t.declare_readable("Drone", "pos")
        t.publish("Drone", "pos", b"abc")
        with self.assertLogs("viz_py.transports.base", level="WARNING"):
            t.mark_lost()
        self.assertFalse(t.is_connected)
        self.assertIsNone(t.read_raw_buffer("Drone", "pos"))

        # A reconnect after a loss starts from an empty buffer set.
        self.assertTrue(t.connect())
        t.declare_readable("Drone", "pos")
        self.assertIsNone(t.read_raw_buffer("Drone", "pos"))


class TestUdpTransport(unittest.TestCase):
    def test_loopback_keeps_latest_declared_buffer(self) -> None:
        t = UdpTransport(host="127.0.0.1", port=0)
        self.assertTrue(t.connect())
        try:
            t.declare_readable("Drone", "pos")
            port = t.bound_port
            self.assertIsNotNone(port)

            sender = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            try:
                sender.sendto(pack_frame("Drone", "pos", b"first"), ("127.0.0.1", port))
                sender.sendto(pack_frame("Drone", "motor", b"ignored"), ("127.0.0.1", port))
                sender.sendto(b"\x09", ("127.0.0.1", port))
                sender.sendto(pack_frame("Drone", "pos", b"second"), ("127.0.0.1", port))
            finally:
                sender.close()

            latest = None
            deadline = time.monotonic() + 2.0
            while time.monotonic() < deadline:
                latest = t.read_raw_buffer("Drone", "pos")
                if latest == b"second":
                    break
                time.sleep(0.01)

            self.assertEqual(latest, b"second")
            self.assertIsNone(t.read_raw_buffer("Drone", "motor"))
        finally:
            t.disconnect()

        self.assertFalse(t.is_connected)
        self.assertIsNone(t.bound_port)


class TestTelemetrySender(unittest.TestCase):
    def test_circle_sample_stays_on_circle(self) -> None:
        for t in (0.0, 2.5, 7.0):
            pos, rpy, duty = circle_sample(t, radius=3.0, period=20.0, altitude=1.5)
            self.assertAlmostEqual(float(np.hypot(pos[0], pos[1])), 3.0)
            self.assertAlmostEqual(pos[2], 1.5)
            self.assertGreater(rpy[0], 0.0)
            self.assertTrue(0.0 < duty < 1.0)

        pos, rpy, _ = circle_sample(0.0, radius=3.0, period=20.0, altitude=1.5)
        np.testing.assert_allclose(pos, [3.0, 0.0, 1.5])
        self.assertAlmostEqual(rpy[2], math.pi / 2)


if __name__ == "__main__":
    unittest.main()
