"""Terminal rendering of preserver state."""

from stillframe.monitor.renderer import StateRenderer

__all__ = ["StateRenderer"]
