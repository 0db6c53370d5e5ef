"""Hybrid allocator: routes each request to a pool, slab or buddy allocator."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .base import MemoryAllocator, MemoryBlock
from .buddy import BuddyAllocator
from .pool import PoolAllocator, PoolConfig
from .slab import SlabAllocator

DEFAULT_BASE_ADDRESS = 0x10000
MIN_BUDDY_MEMORY = 1024

POOL_BLOCK_SIZES = (8, 16, 32, 64, 128, 256)
SLAB_LAYOUTS = ((64, 32), (128, 24), (256, 16), (512, 8))
"""``(object_size, objects_per_slab)`` for each slab allocator."""


@dataclass
class HybridConfig:
    """How memory is shared out and which sizes go to which strategy."""

    pool_memory_ratio: float = 0.3
    slab_memory_ratio: float = 0.3
    pool_max_size: int = 256
    slab_max_size: int = 1024


class Strategy(Enum):
    """The allocator family that served a request."""

    POOL = "pool"
    SLAB = "slab"
    BUDDY = "buddy"


@dataclass
class StrategyStats:
    """Counters kept for one strategy."""

    allocations: int = 0
    deallocations: int = 0
    total_allocated: int = 0


class HybridAllocator(MemoryAllocator):
    """Small requests go to pools, medium ones to slabs, the rest to a buddy system."""

    def __init__(self, total_memory: int, config: HybridConfig | None = None) -> None:
        if total_memory < MIN_BUDDY_MEMORY:
            raise ValueError(f"total_memory must be at least {MIN_BUDDY_MEMORY} bytes")
        super().__init__(total_memory)
        self.config = config if config is not None else HybridConfig()

        pool_memory = int(total_memory * self.config.pool_memory_ratio)
        slab_memory = int(total_memory * self.config.slab_memory_ratio)
        buddy_memory = total_memory - pool_memory - slab_memory
        if buddy_memory < MIN_BUDDY_MEMORY:
            buddy_memory = MIN_BUDDY_MEMORY
            slab_memory = (total_memory - buddy_memory) // 2
            pool_memory = total_memory - buddy_memory - slab_memory

        address = DEFAULT_BASE_ADDRESS
        self._buddy = BuddyAllocator(buddy_memory, address)
        address += self._buddy.total_memory

        self._pools: list[PoolAllocator] = []
        memory_per_pool = pool_memory // len(POOL_BLOCK_SIZES)
        for block_size in POOL_BLOCK_SIZES:
            num_blocks = memory_per_pool // block_size
            if num_blocks <= 0:
                continue
            pool = PoolAllocator(
                PoolConfig(
                    block_sizes=[block_size],
                    blocks_per_pool=[num_blocks],
                    total_memory=memory_per_pool,
                ),
                address,
            )
            self._pools.append(pool)
            end = max((p.end_address for p in pool.pools), default=address)
            address = max(end, address + memory_per_pool)

        self._slabs: list[SlabAllocator] = []
        memory_per_slab = slab_memory // len(SLAB_LAYOUTS)
        for object_size, objects_per_slab in SLAB_LAYOUTS:
            slab = SlabAllocator(object_size, objects_per_slab, memory_per_slab, address)
            self._slabs.append(slab)
            address += max(memory_per_slab, slab.max_slabs * slab.slab_size)

        self._allocations: dict[int, tuple[Strategy, int]] = {}
        self._stats = {strategy: StrategyStats() for strategy in Strategy}

    @property
    def buddy_allocator(self) -> BuddyAllocator:
        return self._buddy

    @property
    def pool_allocators(self) -> tuple[PoolAllocator, ...]:
        return tuple(self._pools)

    @property
    def slab_allocators(self) -> tuple[SlabAllocator, ...]:
        return tuple(self._slabs)

    @property
    def strategy_stats(self) -> dict[Strategy, StrategyStats]:
        """A copy of the per-strategy counters."""
        with self._lock:
            return {
                strategy: StrategyStats(s.allocations, s.deallocations, s.total_allocated)
                for strategy, s in self._stats.items()
            }

    def _select(self, size: int) -> Strategy:
        if size <= self.config.pool_max_size and any(
            pool.can_allocate(size) for pool in self._pools
        ):
            return Strategy.POOL
        if size <= self.config.slab_max_size and any(
            size <= slab.object_size for slab in self._slabs
        ):
            return Strategy.SLAB
        return Strategy.BUDDY

    def _allocate_from_pool(self, size: int) -> int | None:
        pool = next((p for p in self._pools if p.can_allocate(size)), None)
        return pool.allocate(size) if pool is not None else None

    def _allocate_from_slab(self, size: int) -> int | None:
        fitting = [slab for slab in self._slabs if slab.object_size >= size]
        if not fitting:
            return None
        return min(fitting, key=lambda slab: slab.object_size).allocate(size)

    def _deallocate_from_pool(self, address: int) -> None:
        pool = next((p for p in self._pools if p.is_valid_pointer(address)), None)
        if pool is not None:
            pool.deallocate(address)

    def _deallocate_from_slab(self, address: int) -> None:
        for slab in self._slabs:
            before = slab.deallocation_count
            slab.deallocate(address)
            if slab.deallocation_count > before:
                return

    def allocate(self, size: int) -> int | None:
        with self._lock:
            strategy = self._select(size)
            if strategy is Strategy.POOL:
                address = self._allocate_from_pool(size)
            elif strategy is Strategy.SLAB:
                address = self._allocate_from_slab(size)
            else:
                address = self._buddy.allocate(size)
            if address is None:
                return None
            self._allocations[address] = (strategy, size)
            self.allocated_size += size
            self.allocation_count += 1
            stats = self._stats[strategy]
            stats.allocations += 1
            stats.total_allocated += size
            return address

    def deallocate(self, address: int | None) -> None:
        """Release ``address``; addresses not handed out here are ignored."""
        if address is None:
            return
        with self._lock:
            entry = self._allocations.pop(address, None)
            if entry is None:
                return
            strategy, size = entry
            if strategy is Strategy.POOL:
                self._deallocate_from_pool(address)
            elif strategy is Strategy.SLAB:
                self._deallocate_from_slab(address)
            else:
                self._buddy.deallocate(address)
            self.allocated_size -= size
            self.deallocation_count += 1
            self._stats[strategy].deallocations += 1

    def fragmentation(self) -> int:
        """Sub-allocator fragmentation weighted by each one's memory, as a percentage."""
        with self._lock:
            total = 0
            fragmented = 0
            for allocator in (self._buddy, *self._pools, *self._slabs):
                size = allocator.total_memory
                total += size
                fragmented += allocator.fragmentation() * size // 100
            return fragmented * 100 // total if total > 0 else 0

    def stats(self) -> str:
        with self._lock:
            pool = self._stats[Strategy.POOL]
            slab = self._stats[Strategy.SLAB]
            buddy = self._stats[Strategy.BUDDY]
            text = super().stats() + (
                "Hybrid Allocator Stats:\n"
                f"  Pool Allocations: {pool.allocations}\n"
                f"  Slab Allocations: {slab.allocations}\n"
                f"  Buddy Allocations: {buddy.allocations}\n"
                f"  Pool Memory: {pool.total_allocated} bytes\n"
                f"  Slab Memory: {slab.total_allocated} bytes\n"
                f"  Buddy Memory: {buddy.total_allocated} bytes\n"
            )
            text += f"\nBuddy Allocator:\n{self._buddy.stats()}\n"
            for i, allocator in enumerate(self._pools):
                text += f"\nPool Allocator {i}:\n{allocator.stats()}\n"
            for i, allocator in enumerate(self._slabs):
                text += f"\nSlab Allocator {i}:\n{allocator.stats()}\n"
            return text

    def memory_layout(self) -> list[MemoryBlock]:
        """Layouts of every sub-allocator, each block's type tagged with its origin."""
        with self._lock:
            layout = [
                MemoryBlock(b.address, b.size, b.is_free, f"Buddy: {b.type}")
                for b in self._buddy.memory_layout()
            ]
            for i, pool in enumerate(self._pools):
                layout.extend(
                    MemoryBlock(b.address, b.size, b.is_free, f"Pool{i}: {b.type}")
                    for b in pool.memory_layout()
                )
            for i, slab in enumerate(self._slabs):
                layout.extend(
                    MemoryBlock(b.address, b.size, b.is_free, f"Slab{i}: {b.type}")
                    for b in slab.memory_layout()
                )
            return layout

    def reset(self) -> None:
        """Clear counters and reset the buddy and pool allocators; slabs keep their state."""
        with self._lock:
            self.allocated_size = 0
            self.allocation_count = 0
            self.deallocation_count = 0
            self._allocations.clear()
            self._stats = {strategy: StrategyStats() for strategy in Strategy}
            self._buddy.reset()
            for pool in self._pools:
                pool.reset()

    def efficiency_score(self) -> float:
        """Utilization scaled down by fragmentation: high is good."""
        with self._lock:
            fragmentation = self.fragmentation() / 100.0
            utilization = self.allocated_size / self.total_memory
            return utilization * (1.0 - fragmentation)