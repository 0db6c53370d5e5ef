"""Command-line demonstration of the simulated memory allocators."""

from __future__ import annotations

import argparse
import math
import sys
from collections.abc import Iterable, Iterator

from .base import MemoryAllocator
from .buddy import BuddyAllocator
from .factory import AllocatorType, create_allocator

SEPARATOR_WIDTH = 60
USAGE = "allocate <size>, deallocate <index>, stats, quit"


def print_separator(title: str) -> None:
    """Print ``title`` framed by two rules."""
    rule = "=" * SEPARATOR_WIDTH
    print(f"\n{rule}")
    print(f"  {title}")
    print(rule)


def _format_address(address: int) -> str:
    return f"{address:#x}"


def _tokens(lines: Iterable[str]) -> Iterator[str]:
    for line in lines:
        yield from line.split()


def run_basic_allocation(allocator: MemoryAllocator) -> list[tuple[int, int]]:
    """Allocate blocks of growing size, report, then release them all.

    Returns ``(size, address)`` for every allocation that succeeded.
    """
    print_separator("Basic Allocation Test")

    allocated: list[tuple[int, int]] = []
    print("Allocating blocks of various sizes...")
    for size in (32, 64, 128, 256, 512, 1024, 2048):
        address = allocator.allocate(size)
        if address is None:
            print(f"  Failed to allocate {size} bytes")
            continue
        allocated.append((size, address))
        print(f"  Allocated {size} bytes at {_format_address(address)}")

    print("\nMemory stats after allocation:")
    print(f"  Current allocated: {allocator.allocated_size} bytes")
    print(f"  Available: {allocator.total_memory - allocator.allocated_size} bytes")
    print(f"  Fragmentation: {allocator.fragmentation():.2f}%")

    print("\nDeallocating all blocks...")
    for _, address in allocated:
        allocator.deallocate(address)

    print("Final stats:")
    print(allocator.stats())
    print(f"  Allocation count: {allocator.allocation_count}")
    return allocated


def run_fragmentation_scenario(allocator: MemoryAllocator) -> int | None:
    """Fragment the allocator, then try a large request in the gaps.

    Returns the address the large request got, or ``None`` if it failed.
    Every block is released before returning.
    """
    print_separator("Fragmentation Test")

    print("Allocating 50 blocks of 64 bytes each...")
    addresses = [
        address
        for address in (allocator.allocate(64) for _ in range(50))
        if address is not None
    ]

    print("Deallocating every other block to create fragmentation...")
    for address in addresses[1::2]:
        allocator.deallocate(address)
    remaining = addresses[0::2]

    print(f"Fragmentation after pattern deallocation: {allocator.fragmentation():.2f}%")

    print("Attempting to allocate 1024 bytes in fragmented state...")
    large = allocator.allocate(1024)
    if large is not None:
        print(f"Successfully allocated large block at {_format_address(large)}")
        allocator.deallocate(large)
    else:
        print("Failed to allocate large block due to fragmentation")

    print("Running defragmentation...")
    print(f"Fragmentation after defragmentation: {allocator.fragmentation():.2f}%")

    for address in remaining:
        allocator.deallocate(address)
    return large


def performance_comparison() -> list[int]:
    """Benchmark each allocator kind; returns their successful allocation counts."""
    print_separator("Performance Comparison")

    iterations = 1000
    alloc_size = 256

    try:
        allocators = [create_allocator(AllocatorType.BUDDY_SYSTEM, 1024 * 1024)]
    except (ValueError, MemoryError) as exc:
        print(f"Error creating allocators: {exc}")
        return []

    print(f"Benchmarking {iterations} allocations of {alloc_size} bytes each:\n")
    successes: list[int] = []
    for allocator in allocators:
        successes.append(allocator.benchmark_allocation(iterations, alloc_size))

        print("Final Statistics:")
        print(f"  Success rate: {100.0 * allocator.allocation_count / iterations:.2f}%")
        print(f"  Fragmentation: {allocator.fragmentation():.2f}%")
        print(f"  Allocated: {allocator.allocated_size} bytes\n")

        allocator.reset()
    return successes


def _ratio(numerator: int, denominator: int) -> float:
    if denominator:
        return numerator / denominator
    return math.inf if numerator else math.nan


def stress_test_all(duration_seconds: float = 5) -> MemoryAllocator:
    """Stress a 2 MiB buddy allocator for ``duration_seconds``; returns it."""
    print_separator("Stress Test")

    allocator = create_allocator(AllocatorType.BUDDY_SYSTEM, 2 * 1024 * 1024)
    print("Running stress test on Buddy System Allocator...")
    allocator.stress_test(duration_seconds)

    ratio = _ratio(allocator.allocation_count, allocator.deallocation_count)
    print("\nStress Test Results:")
    print(
        "  Total operations: "
        f"{allocator.allocation_count + allocator.deallocation_count}"
    )
    print(f"  Allocation/Deallocation ratio: {ratio:.2f}")
    print(f"  Final fragmentation: {allocator.fragmentation():.2f}%")
    return allocator


def demonstrate_buddy_features() -> BuddyAllocator:
    """Show a small buddy allocator before and after a few allocations."""
    print_separator("Buddy System Specific Features")

    buddy = BuddyAllocator(1024)
    print("Buddy System Configuration:")
    print(f"  Total Memory: {buddy.total_memory} bytes\n")

    print("Allocating blocks to demonstrate buddy system:")
    addresses = [(size, buddy.allocate(size)) for size in (64, 128, 32)]
    for size, address in addresses:
        shown = _format_address(address) if address is not None else "none"
        print(f"Allocated: {size} bytes at {shown}")
    print()

    print("Memory stats after allocation:")
    print(buddy.stats())
    print(f"Fragmentation: {buddy.fragmentation()}%")

    for _, address in addresses:
        buddy.deallocate(address)

    print("\nAfter deallocation:")
    print(buddy.stats())
    return buddy


def interactive_demo(lines: Iterable[str] | None = None) -> list[tuple[int | None, int]]:
    """Run allocator commands read from ``lines`` (standard input by default).

    Stops on ``quit``, ``exit`` or the end of input. Returns every allocation
    made as ``(address, size)``, with ``None`` for those since released.
    """
    print_separator("Interactive Demo")

    allocator = create_allocator(AllocatorType.BUDDY_SYSTEM, 2048)
    allocations: list[list] = []

    print("Interactive Memory Allocator Demo")
    print(f"Commands: {USAGE}\n")

    tokens = _tokens(sys.stdin if lines is None else lines)

    def read_number() -> int | None:
        token = next(tokens, None)
        if token is None:
            raise EOFError
        try:
            return int(token)
        except ValueError:
            return None

    try:
        while True:
            print("allocator> ", end="")
            command = next(tokens, None)
            if command is None or command in ("quit", "exit"):
                break
            if command == "allocate":
                size = read_number()
                if size is None:
                    print("Invalid size")
                    continue
                address = allocator.allocate(size)
                if address is None:
                    print(f"Failed to allocate {size} bytes")
                    continue
                allocations.append([address, size])
                print(
                    f"Allocated {size} bytes at {_format_address(address)}"
                    f" (index {len(allocations) - 1})"
                )
            elif command == "deallocate":
                index = read_number()
                if index is not None and 0 <= index < len(allocations) and allocations[index][0] is not None:
                    allocator.deallocate(allocations[index][0])
                    print(f"Deallocated {allocations[index][1]} bytes from index {index}")
                    allocations[index][0] = None
                else:
                    print("Invalid index or already deallocated")
            elif command == "stats":
                print("Current Statistics:")
                print(f"  Current allocated: {allocator.allocated_size} bytes")
                print(
                    f"  Available: {allocator.total_memory - allocator.allocated_size} bytes"
                )
                print(f"  Total allocations: {allocator.allocation_count}")
                print(f"  Fragmentation: {allocator.fragmentation():.2f}%")
                print("  Active allocations:")
                for i, (address, size) in enumerate(allocations):
                    if address is not None:
                        print(f"    [{i}] {size} bytes at {_format_address(address)}")
            else:
                print(f"Unknown command. Use: {USAGE}")
    except EOFError:
        pass
    print()

    for address, _ in allocations:
        if address is not None:
            allocator.deallocate(address)
    return [(address, size) for address, size in allocations]


def main(argv: list[str] | None = None) -> int:
    """Run the demonstration suite; returns the process exit status."""
    parser = argparse.ArgumentParser(
        prog="memsim", description="Memory allocator demonstration suite."
    )
    parser.add_argument(
        "--benchmark", action="store_true", help="run only the performance comparison"
    )
    parser.add_argument(
        "--stress-seconds",
        type=float,
        default=5,
        help="duration of the stress test in seconds (default: 5)",
    )
    parser.add_argument(
        "--no-interactive",
        action="store_true",
        help="skip the offer of the interactive demo",
    )
    args = parser.parse_args(argv)

    print("Memory Allocator Design - Testing Suite")
    print("=======================================")

    try:
        if args.benchmark:
            performance_comparison()
            return 0

        allocator = create_allocator(AllocatorType.BUDDY_SYSTEM, 8192)
        run_basic_allocation(allocator)
        run_fragmentation_scenario(allocator)

        performance_comparison()
        stress_test_all(args.stress_seconds)
        demonstrate_buddy_features()

        if not args.no_interactive:
            print("\nWould you like to try the interactive demo? (y/n): ", end="")
            tokens = _tokens(sys.stdin)
            choice = next(tokens, "")[:1]
            if choice in ("y", "Y"):
                interactive_demo(tokens)
    except (ValueError, MemoryError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print("\nAll tests completed successfully!")
    return 0