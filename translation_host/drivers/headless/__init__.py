"""Headless in-process surface host."""

from translation_host.drivers.headless.headless import HeadlessSurface, HeadlessSurfaceHost

__all__ = ["HeadlessSurface", "HeadlessSurfaceHost"]
