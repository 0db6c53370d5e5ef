"""Pool allocator: pre-carved pools of fixed-size blocks, one free list per size."""

from __future__ import annotations

from dataclasses import dataclass, field

from .base import MemoryAllocator, MemoryBlock

DEFAULT_BASE_ADDRESS = 0x10000


@dataclass
class PoolConfig:
    """Block sizes, how many blocks of each, and the nominal total memory."""

    block_sizes: list[int] = field(default_factory=list)
    blocks_per_pool: list[int] = field(default_factory=list)
    total_memory: int = 0


class MemoryPool:
    """A contiguous region split into equal blocks handed out last-in first-out."""

    def __init__(
        self, block_size: int, num_blocks: int, base_address: int = DEFAULT_BASE_ADDRESS
    ) -> None:
        if block_size <= 0:
            raise ValueError("block_size must be positive")
        if num_blocks < 0:
            raise ValueError("num_blocks must not be negative")
        self.block_size = block_size
        self.total_blocks = num_blocks
        self.base_address = base_address
        self._free: list[int] = []
        self._initialized = False

    @property
    def free_blocks(self) -> int:
        """Number of blocks currently available."""
        return len(self._free)

    @property
    def end_address(self) -> int:
        """First address past the pool's region."""
        return self.base_address + self.block_size * self.total_blocks

    @property
    def initialized(self) -> bool:
        return self._initialized

    def block_addresses(self) -> range:
        """Addresses of every block in the pool, in ascending order."""
        return range(self.base_address, self.end_address, self.block_size)

    def initialize(self) -> None:
        """Mark every block free; the highest address is handed out first."""
        self._free = list(self.block_addresses())
        self._initialized = True

    def allocate_block(self) -> int | None:
        """Take a block off the free list, or return ``None`` if none is left."""
        return self._free.pop() if self._free else None

    def deallocate_block(self, address: int | None) -> None:
        """Put a block back on the free list; foreign addresses are ignored."""
        if address is None or not self.contains_address(address):
            return
        self._free.append(address)

    def contains_address(self, address: int | None) -> bool:
        """Whether ``address`` is the start of one of this pool's blocks."""
        if not self._initialized or address is None:
            return False
        return (
            self.base_address <= address < self.end_address
            and (address - self.base_address) % self.block_size == 0
        )

    @property
    def utilization(self) -> float:
        """Fraction of blocks in use, from 0.0 to 1.0."""
        if self.total_blocks == 0:
            return 0.0
        return (self.total_blocks - self.free_blocks) / self.total_blocks


class PoolAllocator(MemoryAllocator):
    """Serves each request from the smallest pool whose blocks fit it."""

    def __init__(self, config: PoolConfig, base_address: int = DEFAULT_BASE_ADDRESS) -> None:
        if len(config.block_sizes) != len(config.blocks_per_pool):
            raise ValueError("block_sizes and blocks_per_pool must have same size")
        super().__init__(config.total_memory)
        self.base_address = base_address
        self.failed_allocations = 0
        self.peak_allocated = 0
        self._pools: list[MemoryPool] = []
        self._allocations: dict[int, MemoryPool] = {}

        address = base_address
        specs = sorted(zip(config.block_sizes, config.blocks_per_pool), key=lambda s: s[0])
        for block_size, num_blocks in specs:
            pool = MemoryPool(block_size, num_blocks, address)
            pool.initialize()
            self._pools.append(pool)
            address = pool.end_address

    @property
    def pools(self) -> tuple[MemoryPool, ...]:
        """The pools, ordered by block size."""
        return tuple(self._pools)

    @property
    def pool_count(self) -> int:
        return len(self._pools)

    @property
    def available_blocks(self) -> int:
        """Free blocks across all pools."""
        with self._lock:
            return sum(pool.free_blocks for pool in self._pools)

    @property
    def average_utilization(self) -> float:
        """Mean of the pools' utilization ratios."""
        if not self._pools:
            return 0.0
        return sum(pool.utilization for pool in self._pools) / len(self._pools)

    def _pool_for_size(self, size: int) -> MemoryPool | None:
        return next(
            (p for p in self._pools if p.block_size >= size and p.free_blocks > 0),
            None,
        )

    def allocate(self, size: int) -> int | None:
        with self._lock:
            pool = self._pool_for_size(size)
            address = pool.allocate_block() if pool is not None else None
            if pool is None or address is None:
                self.failed_allocations += 1
                return None
            self._allocations[address] = pool
            self.allocation_count += 1
            self.allocated_size += pool.block_size
            self.peak_allocated = max(self.peak_allocated, self.allocated_size)
            return address

    def deallocate(self, address: int | None) -> None:
        if address is None:
            return
        with self._lock:
            pool = self._allocations.pop(address, None)
            if pool is None:
                return
            pool.deallocate_block(address)
            self.deallocation_count += 1
            self.allocated_size -= pool.block_size

    def fragmentation(self) -> int:
        """Fixed-size pools have no fragmentation of their own."""
        return 0

    def stats(self) -> str:
        with self._lock:
            lines = [
                "Pool Allocator Statistics:",
                f"  Total Allocations: {self.allocation_count}",
                f"  Total Deallocations: {self.deallocation_count}",
                f"  Failed Allocations: {self.failed_allocations}",
                f"  Current Allocated: {self.allocated_size} bytes",
                f"  Peak Allocated: {self.peak_allocated} bytes",
                f"  Active Allocations: {self.allocation_count - self.deallocation_count}",
                f"  Number of Pools: {len(self._pools)}",
                f"  Average Utilization: {self.average_utilization * 100:.2f}%",
                "",
                "Pool Details:",
            ]
            for i, pool in enumerate(self._pools):
                used = pool.total_blocks - pool.free_blocks
                lines.append(
                    f"  Pool {i} (size {pool.block_size}): {used}/{pool.total_blocks}"
                    f" blocks used ({pool.utilization * 100:.2f}%)"
                )
            return "\n".join(lines) + "\n"

    def memory_layout(self) -> list[MemoryBlock]:
        with self._lock:
            return [
                MemoryBlock(
                    address=address,
                    size=pool.block_size,
                    is_free=self._allocations.get(address) is not pool,
                    type="Pool",
                )
                for pool in self._pools
                if pool.initialized
                for address in pool.block_addresses()
            ]

    def reset(self) -> None:
        with self._lock:
            for pool in self._pools:
                pool.initialize()
            self._allocations.clear()
            self.allocation_count = 0
            self.deallocation_count = 0
            self.allocated_size = 0
            self.failed_allocations = 0
            self.peak_allocated = 0

    def can_allocate(self, size: int) -> bool:
        """Whether some pool has a free block of at least ``size`` bytes."""
        with self._lock:
            return self._pool_for_size(size) is not None

    def is_valid_pointer(self, address: int | None) -> bool:
        """Whether ``address`` is the start of a block in one of the pools."""
        return any(pool.contains_address(address) for pool in self._pools)