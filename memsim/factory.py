"""Creates allocators of each kind with their default settings."""

from __future__ import annotations

from enum import Enum

from .base import MemoryAllocator
from .buddy import BuddyAllocator
from .hybrid import HybridAllocator
from .pool import PoolAllocator, PoolConfig
from .slab import SlabAllocator


class AllocatorType(Enum):
    """The kinds of allocator the factory can build."""

    BUDDY_SYSTEM = "buddy"
    SLAB = "slab"
    MEMORY_POOL = "pool"
    HYBRID = "hybrid"


def create_allocator(
    allocator_type: AllocatorType | str,
    initial_size: int = 1024 * 1024,
    config: str = "",
) -> MemoryAllocator:
    """Build an allocator of ``allocator_type`` managing ``initial_size`` bytes.

    ``config`` is accepted for interface compatibility and currently unused.
    Raises ``ValueError`` for an unknown type.
    """
    try:
        kind = AllocatorType(allocator_type)
    except ValueError:
        raise ValueError("Unknown allocator type") from None

    if kind is AllocatorType.BUDDY_SYSTEM:
        return BuddyAllocator(initial_size)
    if kind is AllocatorType.SLAB:
        return SlabAllocator(64, 32, initial_size)
    if kind is AllocatorType.MEMORY_POOL:
        return PoolAllocator(
            PoolConfig(
                block_sizes=[32, 64, 128, 256],
                blocks_per_pool=[100, 80, 60, 40],
                total_memory=initial_size,
            )
        )
    return HybridAllocator(initial_size)