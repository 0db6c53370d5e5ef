"""Common interface and shared behaviour for the simulated memory allocators."""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class MemoryBlock:
    """One region of an allocator's memory as reported by ``memory_layout``."""

    address: int
    size: int
    is_free: bool
    type: str


class MemoryAllocator(ABC):
    """Base class for allocators handing out integer addresses in a simulated heap.

    ``allocate`` returns an address, or ``None`` when the request cannot be met.
    Subclasses keep ``allocated_size``, ``allocation_count`` and
    ``deallocation_count`` up to date.
    """

    def __init__(self, total_memory: int) -> None:
        self.total_memory = total_memory
        self.allocated_size = 0
        self.allocation_count = 0
        self.deallocation_count = 0
        self._lock = threading.RLock()

    @abstractmethod
    def allocate(self, size: int) -> int | None:
        """Reserve ``size`` bytes and return the address, or ``None`` on failure."""

    @abstractmethod
    def deallocate(self, address: int | None) -> None:
        """Release the block starting at ``address``."""

    def reset(self) -> None:
        """Return the allocator to its initial state; does nothing by default."""

    @abstractmethod
    def fragmentation(self) -> int:
        """Return the allocator's fragmentation figure."""

    @abstractmethod
    def memory_layout(self) -> list[MemoryBlock]:
        """Return the blocks making up the allocator's memory."""

    def stats(self) -> str:
        """Return a multi-line summary of the allocator's counters."""
        if self.total_memory:
            utilization = 100.0 * self.allocated_size / self.total_memory
        else:
            utilization = float("nan")
        return (
            "Memory Allocator Statistics:\n"
            f"  Total Memory: {self.total_memory} bytes\n"
            f"  Total Allocations: {self.allocation_count}\n"
            f"  Total Deallocations: {self.deallocation_count}\n"
            f"  Current Allocated: {self.allocated_size} bytes\n"
            f"  Utilization: {utilization:.2f}%\n"
            f"  Current Fragmentation: {self.fragmentation()} bytes\n"
        )

    def benchmark_allocation(self, num_iterations: int, alloc_size: int) -> int:
        """Time a burst of allocations followed by their release.

        Prints the timings and returns the number of successful allocations.
        """
        print("Benchmarking allocation performance:")
        print(f"  Iterations: {num_iterations}")
        print(f"  Allocation size: {alloc_size} bytes")

        start = time.perf_counter_ns()
        addresses = [
            address
            for address in (self.allocate(alloc_size) for _ in range(num_iterations))
            if address is not None
        ]
        mid = time.perf_counter_ns()
        for address in addresses:
            self.deallocate(address)
        end = time.perf_counter_ns()

        alloc_us = (mid - start) // 1000
        dealloc_us = (end - mid) // 1000
        print(f"  Allocation time: {alloc_us} μs")
        print(f"  Deallocation time: {dealloc_us} μs")
        print(f"  Total time: {alloc_us + dealloc_us} μs")
        print(f"  Successful allocations: {len(addresses)}/{num_iterations}")
        return len(addresses)

    def stress_test(self, duration_seconds: float) -> int:
        """Mix allocations and releases for ``duration_seconds``.

        Every third operation (or any operation with nothing live) allocates
        32 to 543 bytes; the others release a live block. All blocks still
        live at the end are released. Returns the number of operations.
        """
        print(f"Running stress test for {duration_seconds} seconds...")

        deadline = time.monotonic() + duration_seconds
        active: list[int] = []
        operations = 0

        while time.monotonic() < deadline:
            operations += 1
            if not active or operations % 3 == 0:
                address = self.allocate(32 + operations % 512)
                if address is not None:
                    active.append(address)
            else:
                self.deallocate(active.pop(operations % len(active)))

        for address in active:
            self.deallocate(address)

        print("Stress test completed:")
        print(f"  Total operations: {operations}")
        print(
            f"  Final state: {self.allocation_count} allocations, "
            f"{self.deallocation_count} deallocations"
        )
        return operations

    def is_valid_pointer(self, address: int | None) -> bool:
        """Basic check that ``address`` is not null."""
        return address is not None