"""Core subsystems: codec, chunk store, sources, verification, display state."""
