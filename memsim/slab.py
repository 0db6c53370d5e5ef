"""Slab allocator: fixed-size objects carved from slabs created on demand."""

from __future__ import annotations

from dataclasses import dataclass, field

from .base import MemoryAllocator, MemoryBlock

DEFAULT_BASE_ADDRESS = 0x10000

HEADER_SIZE = 16
"""Bytes reserved at the start of each slab for its header."""


@dataclass
class _Slab:
    offset: int
    free: list[int] = field(default_factory=list)


class SlabAllocator(MemoryAllocator):
    """Hands out objects of one size; a new slab is added when all are full."""

    def __init__(
        self,
        object_size: int,
        objects_per_slab: int,
        total_memory: int,
        base_address: int = DEFAULT_BASE_ADDRESS,
    ) -> None:
        if object_size <= 0:
            raise ValueError("object_size must be positive")
        if objects_per_slab <= 0:
            raise ValueError("objects_per_slab must be positive")
        super().__init__(total_memory)
        self._object_size = object_size
        self.objects_per_slab = objects_per_slab
        self.base_address = base_address
        self.slab_size = object_size * objects_per_slab + HEADER_SIZE
        self.max_slabs = max(total_memory // self.slab_size, 1)
        self._slabs: list[_Slab] = []
        self._create_slab()

    @property
    def object_size(self) -> int:
        return self._object_size

    @property
    def slab_count(self) -> int:
        return len(self._slabs)

    @property
    def free_objects(self) -> int:
        """Free objects across all slabs."""
        return sum(len(slab.free) for slab in self._slabs)

    def _create_slab(self) -> _Slab | None:
        if len(self._slabs) >= self.max_slabs:
            return None
        # Free list is a stack: object 0 is handed out first.
        slab = _Slab(
            offset=len(self._slabs) * self.slab_size,
            free=list(range(self.objects_per_slab - 1, -1, -1)),
        )
        self._slabs.append(slab)
        return slab

    def _objects_start(self, slab: _Slab) -> int:
        return self.base_address + slab.offset + HEADER_SIZE

    def allocate(self, size: int) -> int | None:
        with self._lock:
            if size > self._object_size:
                return None
            slab = next((s for s in self._slabs if s.free), None)
            if slab is None:
                slab = self._create_slab()
                if slab is None:
                    return None
            index = slab.free.pop()
            self.allocated_size += self._object_size
            self.allocation_count += 1
            return self._objects_start(slab) + index * self._object_size

    def deallocate(self, address: int | None) -> None:
        if address is None:
            return
        with self._lock:
            span = self._object_size * self.objects_per_slab
            for slab in self._slabs:
                start = self._objects_start(slab)
                if not start <= address < start + span:
                    continue
                index, remainder = divmod(address - start, self._object_size)
                if remainder or index in slab.free:
                    return
                slab.free.append(index)
                self.allocated_size -= self._object_size
                self.deallocation_count += 1
                return

    def fragmentation(self) -> int:
        """Percentage of objects in existing slabs that are free."""
        with self._lock:
            total = len(self._slabs) * self.objects_per_slab
            if total == 0:
                return 0
            return self.free_objects * 100 // total

    def stats(self) -> str:
        with self._lock:
            return super().stats() + (
                "Slab Allocator Stats:\n"
                f"  Object Size: {self._object_size} bytes\n"
                f"  Objects per Slab: {self.objects_per_slab}\n"
                f"  Total Slabs: {len(self._slabs)}\n"
                f"  Max Slabs: {self.max_slabs}\n"
                f"  Slab Size: {self.slab_size} bytes\n"
                f"  Free Objects: {self.free_objects}\n"
            )

    def memory_layout(self) -> list[MemoryBlock]:
        with self._lock:
            layout: list[MemoryBlock] = []
            for slab in self._slabs:
                layout.append(
                    MemoryBlock(
                        address=self.base_address + slab.offset,
                        size=HEADER_SIZE,
                        is_free=False,
                        type="Slab Header",
                    )
                )
                free = set(slab.free)
                start = self._objects_start(slab)
                for index in range(self.objects_per_slab):
                    is_free = index in free
                    layout.append(
                        MemoryBlock(
                            address=start + index * self._object_size,
                            size=self._object_size,
                            is_free=is_free,
                            type="Free Object" if is_free else "Allocated Object",
                        )
                    )
            return layout