"""Simulated buddy, slab, pool and hybrid memory allocators, a factory and a demonstration command."""

__version__ = "0.1.0"
__all__ = ["base", "pool", "slab", "buddy", "hybrid", "factory", "cli"]