"""Hidden surface pool.

This module provides:
- SurfacePool: bounded LIFO pool of hidden rendering surfaces
- SurfacePoolStats: observable pool counters

Usage:
    from translation_host.services.surface_pool import SurfacePool

    pool = SurfacePool.from_config(host, settings.surface_pool)
    with pool.leased() as surface:
        ...
"""

from translation_host.services.surface_pool.pool import SurfacePool, SurfacePoolStats

__all__ = [
    "SurfacePool",
    "SurfacePoolStats",
]
