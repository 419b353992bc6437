"""Headless translation host: hidden surface pool and keep-alive timers."""

__version__ = "0.1.0"
