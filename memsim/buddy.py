"""Buddy-system allocator: power-of-two blocks split on demand and merged on release."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field

from .base import MemoryAllocator, MemoryBlock

DEFAULT_BASE_ADDRESS = 0x10000
MIN_BLOCK_SIZE = 32


def _next_power_of_2(size: int) -> int:
    if size <= 1:
        return 1
    return 1 << (size - 1).bit_length()


@dataclass(eq=False)
class _BuddyBlock:
    size: int
    address: int
    level: int
    is_free: bool = True
    parent: _BuddyBlock | None = field(default=None, repr=False)
    left: _BuddyBlock | None = None
    right: _BuddyBlock | None = None

    @property
    def is_leaf(self) -> bool:
        return self.left is None

    @property
    def buddy(self) -> _BuddyBlock | None:
        if self.parent is None:
            return None
        return self.parent.right if self is self.parent.left else self.parent.left

    def walk(self, depth: int = 0):
        """Yield ``(node, depth)`` for this subtree in pre-order."""
        yield self, depth
        if self.left is not None:
            yield from self.left.walk(depth + 1)
        if self.right is not None:
            yield from self.right.walk(depth + 1)


class BuddyAllocator(MemoryAllocator):
    """Manages one power-of-two region as a binary tree of buddy blocks.

    The requested size is rounded up to a power of two; requests are rounded
    to at least ``min_block_size`` bytes. Level 0 is the whole region, each
    deeper level halves the block size.
    """

    def __init__(
        self, initial_size: int = 1024 * 1024, base_address: int = DEFAULT_BASE_ADDRESS
    ) -> None:
        if initial_size < 0:
            raise ValueError("initial_size must not be negative")
        self._max_block_size = _next_power_of_2(initial_size)
        super().__init__(self._max_block_size)
        self._min_block_size = MIN_BLOCK_SIZE
        self.base_address = base_address
        self.total_splits = 0
        self.total_coalesces = 0
        self.failed_coalesces = 0
        self._init_tree()

        print("Buddy Allocator initialized:")
        print(f"  Total size: {self._max_block_size} bytes")
        print(f"  Min block size: {self._min_block_size} bytes")
        print("  Tree grows dynamically based on allocations")

    def _init_tree(self) -> None:
        self._root = _BuddyBlock(self._max_block_size, self.base_address, 0)
        self._free_lists: dict[int, deque[_BuddyBlock]] = {0: deque([self._root])}
        self._allocated: dict[int, _BuddyBlock] = {}

    @property
    def min_block_size(self) -> int:
        return self._min_block_size

    @property
    def max_block_size(self) -> int:
        return self._max_block_size

    @property
    def current_max_level(self) -> int:
        """Deepest level holding a free or allocated block."""
        with self._lock:
            levels = [level for level, blocks in self._free_lists.items() if blocks]
            levels.extend(block.level for block in self._allocated.values())
            return max(levels, default=0)

    def _free_list(self, level: int) -> deque[_BuddyBlock]:
        return self._free_lists.setdefault(level, deque())

    def _level_for_size(self, size: int) -> int | None:
        if size > self._max_block_size:
            return None
        return (self._max_block_size // size).bit_length() - 1

    def _find_free_block(self, size: int) -> _BuddyBlock | None:
        target = self._level_for_size(size)
        if target is None:
            return None
        for level in range(target, -1, -1):
            blocks = self._free_lists.get(level)
            if blocks:
                return blocks.popleft()
        return None

    def _split(self, block: _BuddyBlock, target_size: int) -> _BuddyBlock:
        while block.size > target_size:
            self.total_splits += 1
            half = block.size // 2
            level = block.level + 1
            block.left = _BuddyBlock(half, block.address, level, parent=block)
            block.right = _BuddyBlock(half, block.address + half, level, parent=block)
            block.is_free = False
            self._free_list(level).append(block.right)
            block = block.left
        return block

    def _coalesce(self, block: _BuddyBlock) -> None:
        while block.parent is not None:
            buddy = block.buddy
            if buddy is None or not buddy.is_free:
                self.failed_coalesces += 1
                return
            self.total_coalesces += 1
            blocks = self._free_list(block.level)
            for node in (buddy, block):
                if node in blocks:
                    blocks.remove(node)
            parent = block.parent
            parent.is_free = True
            parent.left = parent.right = None
            self._free_list(parent.level).append(parent)
            block = parent

    def allocate(self, size: int) -> int | None:
        with self._lock:
            if size <= 0:
                return None
            block_size = max(_next_power_of_2(size), self._min_block_size)
            block = self._find_free_block(block_size)
            if block is None:
                return None
            if block.size > block_size:
                block = self._split(block, block_size)
            block.is_free = False
            self._allocated[block.address] = block
            self.allocated_size += block.size
            self.allocation_count += 1
            return block.address

    def deallocate(self, address: int | None) -> None:
        """Release a block; raises ``ValueError`` for an address not allocated here."""
        if address is None:
            return
        with self._lock:
            block = self._allocated.pop(address, None)
            if block is None:
                raise ValueError(f"address {address:#x} is not allocated")
            size = block.size
            block.is_free = True
            self._free_list(block.level).append(block)
            self._coalesce(block)
            self.allocated_size -= size
            self.deallocation_count += 1

    def fragmentation(self) -> int:
        """Share of allocations still live, as a percentage, while memory is free."""
        with self._lock:
            if self.total_memory == 0:
                return 0
            free_memory = self.total_memory - self.allocated_size
            if free_memory == 0:
                return 0
            if self.allocation_count > self.deallocation_count:
                live = self.allocation_count - self.deallocation_count
                return int(100.0 * live / self.allocation_count)
            return 0

    def stats(self) -> str:
        with self._lock:
            return (
                "Buddy System Allocator Statistics:\n"
                f"  Total Memory: {self.total_memory} bytes\n"
                f"  Allocated: {self.allocated_size} bytes\n"
                f"  Free: {self.total_memory - self.allocated_size} bytes\n"
                f"  Allocations: {self.allocation_count}\n"
                f"  Deallocations: {self.deallocation_count}\n"
                f"  Fragmentation: {self.fragmentation()}%\n"
            )

    def memory_layout(self) -> list[MemoryBlock]:
        """The whole region as one block, free only when nothing is allocated."""
        with self._lock:
            return [
                MemoryBlock(
                    address=self.base_address,
                    size=self.total_memory,
                    is_free=self.allocated_size == 0,
                    type="buddy",
                )
            ]

    def reset(self) -> None:
        """Drop every allocation and rebuild the tree as one free block."""
        with self._lock:
            self.allocated_size = 0
            self.allocation_count = 0
            self.deallocation_count = 0
            self._init_tree()

    def buddy_tree(self) -> str:
        """Text rendering of the buddy tree, one node per line."""
        with self._lock:
            lines = ["Buddy Tree Structure:"]
            for node, depth in self._root.walk():
                state = "[FREE]" if node.is_free else "[ALLOCATED]"
                lines.append(
                    f"{'  ' * depth}Level {node.level}: {node.size} bytes"
                    f" {state} @{node.address:#x}"
                )
            return "\n".join(lines) + "\n"

    def _leaves(self, free: bool) -> list[tuple[int, int]]:
        with self._lock:
            return [
                (node.address, node.size)
                for node, _ in self._root.walk()
                if node.is_leaf and node.is_free == free
            ]

    def free_blocks(self) -> list[tuple[int, int]]:
        """``(address, size)`` of every free leaf block, in address order."""
        return self._leaves(True)

    def allocated_blocks(self) -> list[tuple[int, int]]:
        """``(address, size)`` of every allocated block, in address order."""
        return self._leaves(False)