"""Telemetry-driven 3D vehicle viewer.

Architecture highlights:
- Body-frame (forward/left/up) poses rendered through a single frame converter
- Per-vehicle controllers fed by a shared, reference-counted telemetry transport
- Follow camera with frame-rate independent smoothing
- Pluggable transports and renderers via small registries
"""
