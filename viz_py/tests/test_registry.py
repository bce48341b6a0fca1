from __future__ import annotations

import unittest

from viz_py.core.config import TransportConfig
from viz_py.core.registry import create_renderer, create_transport, register_builtin_components
from viz_py.transports import MemoryTransport, UdpTransport
from viz_py.viewer import HeadlessRenderer


class TestRegistry(unittest.TestCase):
    def setUp(self) -> None:
        register_builtin_components()

    def test_builtin_components_resolve(self) -> None:
        self.assertIsInstance(create_transport(TransportConfig(kind="memory")), MemoryTransport)
        udp = create_transport(TransportConfig(kind="UDP", host="127.0.0.1", port=6001))
        self.assertIsInstance(udp, UdpTransport)
        self.assertEqual(udp.port, 6001)
        self.assertIsNone(create_transport(TransportConfig(kind="none")))
        self.assertIsInstance(create_renderer("headless"), HeadlessRenderer)

    def test_unknown_component_raises_helpful_error(self) -> None:
        with self.assertRaises(ValueError) as e1:
            create_transport(TransportConfig(kind="does-not-exist"))
        self.assertIn("Unknown transport", str(e1.exception))

        with self.assertRaises(ValueError) as e2:
            create_renderer("does-not-exist")
        self.assertIn("Unknown renderer", str(e2.exception))


if __name__ == "__main__":
    unittest.main()
