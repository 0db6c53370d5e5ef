# memsim

memsim simulates four memory allocation strategies over a virtual address space. Allocations
return integer addresses in that space. No real memory is handed out, and nothing can be
stored at those addresses.

- **Buddy system** (`memsim.buddy.BuddyAllocator`): power-of-two blocks that are split on demand and coalesced with their buddies when freed. Requests are rounded up to a power of two, with a minimum of 32 bytes.
- **Slab** (`memsim.slab.SlabAllocator`): objects of one fixed size, packed into slabs. A new slab is added when the existing ones are full.
- **Pool** (`memsim.pool.PoolAllocator`): several pools, each holding blocks of one size and configured with a `memsim.pool.PoolConfig`. Each request is served from the smallest pool with a free block that fits.
- **Hybrid** (`memsim.hybrid.HybridAllocator`): routes small requests to pool allocators, medium requests to slab allocators and everything else to a buddy allocator. Its `memsim.hybrid.HybridConfig` sets how memory is shared out and the size limits for each route.

Every allocator derives from `memsim.base.MemoryAllocator` and provides the following:

- the counters `allocated_size`, `allocation_count` and `deallocation_count`;
- `fragmentation()`;
- a text summary from `stats()`;
- a list of `memsim.base.MemoryBlock` entries from `memory_layout()`;
- `benchmark_allocation(num_iterations, alloc_size)`;
- `stress_test(duration_seconds)`.

## Installation

```
pip install .
```

The tests need the `test` extra:

```
pip install .[test]
pytest
```

## Using the library

```python
from memsim.buddy import BuddyAllocator

buddy = BuddyAllocator(1024)
a = buddy.allocate(64)
b = buddy.allocate(128)
print(buddy.current_max_level)   # deepest level currently in use
print(buddy.buddy_tree())        # text rendering of the block tree
print(buddy.stats())
buddy.deallocate(a)
buddy.deallocate(b)
```

Use the factory to create an allocator by kind. The kind is given as an `AllocatorType` member or as one of its values: `"buddy"`, `"slab"`, `"pool"` or `"hybrid"`.

```python
from memsim.factory import AllocatorType, create_allocator

allocator = create_allocator(AllocatorType.HYBRID, 4096)
address = allocator.allocate(512)
print(allocator.fragmentation())
allocator.deallocate(address)
```

The allocators behave as follows:

- If a request cannot be met, `allocate` returns `None`.
- Freeing an address that was not handed out is handled differently by each allocator:
  - `BuddyAllocator.deallocate` raises `ValueError`.
  - The pool, slab and hybrid allocators ignore it.
- `HybridAllocator` needs at least 1024 bytes of total memory and raises `ValueError` for less.
- An unknown kind passed to `create_allocator` raises `ValueError`.

`BuddyAllocator` prints a short summary of its configuration when it is created.

## Command line

```
memsim
```

This runs the demonstration suite:

1. Basic allocation.
2. A fragmentation scenario.
3. A performance comparison.
4. A timed stress test.
5. A tour of the buddy system.

At the end it asks whether to start an interactive session, which reads commands from standard input:

- `allocate <size>`
- `deallocate <index>`
- `stats`
- `quit` (or `exit`)

Options:

- `--benchmark`: run only the performance comparison.
- `--stress-seconds N`: set the length of the stress test. The default is 5 seconds.
- `--no-interactive`: skip the offer of the interactive session.