import pytest

from memsim.hybrid import HybridAllocator, HybridConfig, Strategy


@pytest.fixture
def hybrid():
    return HybridAllocator(4096)


def test_unit_allocations_use_each_strategy(hybrid):
    small = hybrid.allocate(64)
    medium = hybrid.allocate(512)
    large = hybrid.allocate(2048)
    assert small is not None
    assert medium is not None
    assert large is not None
    stats = hybrid.strategy_stats
    assert stats[Strategy.POOL].allocations == 1
    assert stats[Strategy.SLAB].allocations == 1
    assert stats[Strategy.BUDDY].allocations == 1

    hybrid.deallocate(small)
    hybrid.deallocate(medium)
    hybrid.deallocate(large)
    assert hybrid.deallocation_count == 3
    assert hybrid.stats() != ""
    assert "Hybrid Allocator Stats:" in hybrid.stats()

    efficiency = hybrid.efficiency_score()
    assert 0.0 <= efficiency <= 1.0


def test_addresses_are_distinct(hybrid):
    addresses = [hybrid.allocate(size) for size in (8, 64, 128, 512, 1024)]
    assert None not in addresses
    assert len(set(addresses)) == len(addresses)


def test_stats_counts_strategy_allocations(hybrid):
    hybrid.allocate(64)
    text = hybrid.stats()
    assert "  Pool Allocations: 1\n" in text
    assert "  Slab Allocations: 0\n" in text
    assert "  Pool Memory: 64 bytes\n" in text


def test_deallocate_returns_pool_block(hybrid):
    address = hybrid.allocate(64)
    owner = next(p for p in hybrid.pool_allocators if p.is_valid_pointer(address))
    before = owner.available_blocks
    hybrid.deallocate(address)
    assert owner.available_blocks == before + 1
    assert hybrid.strategy_stats[Strategy.POOL].deallocations == 1


def test_deallocate_unknown_address_is_ignored(hybrid):
    hybrid.deallocate(0xDEAD)
    hybrid.deallocate(None)
    assert hybrid.deallocation_count == 0


def test_config_routes_to_slab_when_pools_disabled():
    allocator = HybridAllocator(4096, HybridConfig(pool_max_size=0))
    assert allocator.allocate(64) is not None
    assert allocator.strategy_stats[Strategy.SLAB].allocations == 1
    assert allocator.strategy_stats[Strategy.POOL].allocations == 0


def test_config_routes_to_buddy_when_others_disabled():
    allocator = HybridAllocator(4096, HybridConfig(pool_max_size=0, slab_max_size=0))
    assert allocator.allocate(64) is not None
    assert allocator.strategy_stats[Strategy.BUDDY].allocations == 1


def test_request_too_large_for_slabs_goes_to_buddy(hybrid):
    assert hybrid.allocate(1024) is not None
    assert hybrid.strategy_stats[Strategy.BUDDY].allocations == 1


def test_efficiency_is_zero_when_nothing_live(hybrid):
    address = hybrid.allocate(256)
    hybrid.deallocate(address)
    assert hybrid.allocated_size == 0
    assert hybrid.efficiency_score() == 0.0


def test_fragmentation_is_a_percentage(hybrid):
    addresses = [hybrid.allocate(64) for _ in range(10)]
    assert 0 <= hybrid.fragmentation() <= 100
    for address in addresses:
        hybrid.deallocate(address)
    assert 0 <= hybrid.fragmentation() <= 100


def test_reset_clears_counters(hybrid):
    hybrid.allocate(64)
    hybrid.allocate(2048)
    hybrid.reset()
    assert hybrid.allocation_count == 0
    assert hybrid.allocated_size == 0
    assert hybrid.strategy_stats[Strategy.BUDDY].allocations == 0
    assert hybrid.buddy_allocator.allocated_size == 0
    assert hybrid.allocate(2048) is not None


def test_memory_layout_tags_origins(hybrid):
    layout = hybrid.memory_layout()
    types = {block.type.split(":")[0] for block in layout}
    assert "Buddy" in types
    assert "Pool0" in types
    assert "Slab0" in types


def test_too_small_total_memory_rejected():
    with pytest.raises(ValueError):
        HybridAllocator(512)


def test_fragmentation_scenario_from_benchmarks():
    allocator = HybridAllocator(1024 * 1024)
    addresses = [allocator.allocate(64) for _ in range(100)]
    assert None not in addresses
    for address in addresses[1::2]:
        allocator.deallocate(address)
    large = [allocator.allocate(256) for _ in range(10)]
    assert None not in large
    assert 0 <= allocator.fragmentation() <= 100
    for address in addresses[::2] + large:
        allocator.deallocate(address)
    assert allocator.allocation_count == allocator.deallocation_count


def test_web_server_workload():
    allocator = HybridAllocator(8 * 1024 * 1024)
    for _ in range(1000):
        request = [allocator.allocate(size) for size in (256, 1024, 512, 128)]
        assert None not in request
        for address in request:
            allocator.deallocate(address)
    assert allocator.allocation_count == 4000
    assert allocator.deallocation_count == 4000
    assert allocator.allocated_size == 0


def test_game_engine_workload():
    allocator = HybridAllocator(16 * 1024 * 1024)
    for _ in range(60):
        frame = [allocator.allocate(size) for size in (4096, 2048, 1024, 512)]
        frame += [allocator.allocate(64) for _ in range(50)]
        assert None not in frame
        for address in frame:
            allocator.deallocate(address)
    assert allocator.allocation_count == 60 * 54
    assert allocator.allocated_size == 0