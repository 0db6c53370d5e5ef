import pytest

from memsim.base import MemoryBlock
from memsim.slab import HEADER_SIZE, SlabAllocator

BASE = 0x2000


def test_unit_test_scenario():
    allocator = SlabAllocator(64, 16, 2048)
    ptr1 = allocator.allocate(64)
    assert ptr1 is not None
    ptr2 = allocator.allocate(32)
    assert ptr2 is not None
    assert allocator.allocate(128) is None

    ptrs = [p for p in (allocator.allocate(64) for _ in range(10)) if p is not None]
    assert len(ptrs) >= 8
    assert len(ptrs) == 10

    for ptr in ptrs:
        allocator.deallocate(ptr)
    allocator.deallocate(ptr1)
    allocator.deallocate(ptr2)
    assert allocator.deallocation_count == 12
    assert allocator.allocated_size == 0
    assert allocator.free_objects == 16


def test_geometry():
    allocator = SlabAllocator(64, 16, 2048)
    assert allocator.object_size == 64
    assert allocator.slab_size == 64 * 16 + HEADER_SIZE
    assert allocator.max_slabs == 1
    assert allocator.slab_count == 1


def test_at_least_one_slab_even_when_memory_is_small():
    allocator = SlabAllocator(64, 16, 10)
    assert allocator.max_slabs == 1
    assert allocator.allocate(64) is not None


def test_addresses_follow_object_order():
    allocator = SlabAllocator(64, 4, 1000, BASE)
    assert allocator.allocate(1) == BASE + HEADER_SIZE
    assert allocator.allocate(1) == BASE + HEADER_SIZE + 64


def test_new_slab_created_when_full_and_limit_respected():
    slab_size = 64 * 2 + HEADER_SIZE
    allocator = SlabAllocator(64, 2, slab_size * 2, BASE)
    addresses = [allocator.allocate(64) for _ in range(4)]
    assert addresses[2] == BASE + slab_size + HEADER_SIZE
    assert allocator.slab_count == 2
    assert allocator.allocate(64) is None
    assert allocator.allocation_count == 4


def test_released_object_reused_first():
    allocator = SlabAllocator(32, 4, 1000, BASE)
    first = allocator.allocate(32)
    allocator.allocate(32)
    allocator.deallocate(first)
    assert allocator.allocate(32) == first


def test_double_and_foreign_release_ignored():
    allocator = SlabAllocator(32, 4, 1000, BASE)
    address = allocator.allocate(32)
    allocator.deallocate(address)
    allocator.deallocate(address)
    allocator.deallocate(address + 3)
    allocator.deallocate(BASE + 100000)
    allocator.deallocate(None)
    assert allocator.deallocation_count == 1
    assert allocator.allocated_size == 0


def test_fragmentation_percentage():
    allocator = SlabAllocator(64, 16, 2048)
    assert allocator.fragmentation() == 100
    for _ in range(4):
        allocator.allocate(64)
    assert allocator.fragmentation() == 75


def test_memory_layout():
    allocator = SlabAllocator(32, 3, 1000, BASE)
    address = allocator.allocate(32)
    layout = allocator.memory_layout()
    assert layout[0] == MemoryBlock(BASE, HEADER_SIZE, False, "Slab Header")
    assert layout[1] == MemoryBlock(address, 32, False, "Allocated Object")
    assert layout[2] == MemoryBlock(address + 32, 32, True, "Free Object")
    assert len(layout) == 4


def test_stats_text():
    allocator = SlabAllocator(64, 16, 2048)
    allocator.allocate(10)
    text = allocator.stats()
    assert text.startswith("Memory Allocator Statistics:\n")
    assert "  Current Allocated: 64 bytes\n" in text
    assert "Slab Allocator Stats:\n" in text
    assert "  Object Size: 64 bytes\n" in text
    assert "  Objects per Slab: 16\n" in text
    assert "  Total Slabs: 1\n" in text
    assert "  Slab Size: 1040 bytes\n" in text
    assert "  Free Objects: 15\n" in text


@pytest.mark.parametrize("object_size, per_slab", [(0, 4), (8, 0), (-1, 2)])
def test_bad_geometry_raises(object_size, per_slab):
    with pytest.raises(ValueError):
        SlabAllocator(object_size, per_slab, 1024)