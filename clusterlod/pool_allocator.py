"""A thread-safe suballocator over a fixed range of remote (device) addresses."""

from __future__ import annotations

import bisect
import threading
from types import TracebackType


def bit_ceil(value: int) -> int:
    """Return the smallest power of two not less than ``value`` (1 for 0 and 1)."""
    if value < 0:
        raise ValueError("value must be non-negative")
    if value <= 1:
        return 1
    return 1 << (value - 1).bit_length()


def _align_up(address: int, align: int) -> int:
    return (address + align - 1) // align * align


class PoolAllocator:
    """Suballocates a given address range using a size-sorted free list.

    Allocation sizes are rounded up to the next power of two to reduce
    fragmentation. Freed blocks are not merged with their neighbours.
    """

    def __init__(self, address: int, size: int) -> None:
        self._base = address
        self._bytes_total = size
        self._bytes_allocated = 0
        self._fragmentation_internal = 0
        self._fragmentation_external = 0
        self._initial_block_size = size
        # Entries are (size, address) so that ordering matches best-fit search.
        self._free_list: list[tuple[int, int]] = [(size, address)]
        self._lock = threading.Lock()

    def allocate(self, user_size: int, align: int) -> int:
        """Allocate ``user_size`` bytes aligned to ``align`` and return the address.

        Raises MemoryError when no free block can hold the allocation.
        """
        if user_size < align:
            raise ValueError("allocation size must be at least the alignment")
        if align <= 0 or align & (align - 1):
            raise ValueError("alignment must be a positive power of two")
        with self._lock:
            alloc_size = bit_ceil(user_size)
            start = bisect.bisect_left(self._free_list, (alloc_size, 0))
            for index in range(start, len(self._free_list)):
                free_size, free_address = self._free_list[index]
                result = _align_up(free_address, align)
                padding = result - free_address
                if free_size < padding + alloc_size:
                    continue  # does not fit due to alignment
                remaining = free_size - padding
                del self._free_list[index]
                if remaining > alloc_size:
                    bisect.insort(self._free_list, (remaining - alloc_size, result + alloc_size))

                self._bytes_allocated += user_size
                self._fragmentation_internal += alloc_size - user_size
                if free_size == self._initial_block_size:
                    self._initial_block_size = remaining - alloc_size
                else:
                    self._fragmentation_external -= free_size
                return result
        raise MemoryError(f"pool cannot satisfy an allocation of {user_size} bytes")

    def deallocate(self, address: int, user_size: int) -> None:
        """Return a block previously obtained from :meth:`allocate`."""
        with self._lock:
            alloc_size = bit_ceil(user_size)
            entry = (alloc_size, address)
            position = bisect.bisect_left(self._free_list, entry)
            if position < len(self._free_list) and self._free_list[position] == entry:
                raise ValueError(f"address {address:#x} is already free")
            self._free_list.insert(position, entry)
            self._bytes_allocated -= user_size
            self._fragmentation_internal -= alloc_size - user_size
            self._fragmentation_external += alloc_size

    def offset_of(self, address: int) -> int:
        """Return the offset of ``address`` from the start of the pool."""
        return address - self._base

    def bytes_allocated(self) -> int:
        """Bytes requested by live allocations, excluding overheads."""
        with self._lock:
            return self._bytes_allocated

    def size(self) -> int:
        """Total size of the pool in bytes."""
        return self._bytes_total

    def internal_fragmentation(self) -> int:
        """Bytes lost to power-of-two rounding of live allocations."""
        return self._fragmentation_internal

    def external_fragmentation(self) -> int:
        """Bytes sitting in freed blocks that have not been reused."""
        return self._fragmentation_external

    def fragmentation(self) -> int:
        """Sum of internal and external fragmentation."""
        return self.internal_fragmentation() + self.external_fragmentation()


class PoolMemory:
    """An allocation from a :class:`PoolAllocator` that frees itself on release."""

    def __init__(self, allocator: PoolAllocator, size: int, align: int) -> None:
        self._allocator: PoolAllocator | None = None
        self._address = allocator.allocate(max(size, align), align)
        self._allocator = allocator
        self._size = size

    def address(self) -> int:
        """The allocated address."""
        return self._address

    def release(self) -> None:
        """Return the memory to the pool. Further calls do nothing."""
        if self._allocator is not None:
            allocator, self._allocator = self._allocator, None
            allocator.deallocate(self._address, self._size)

    def __int__(self) -> int:
        return self._address

    def __enter__(self) -> PoolMemory:
        return self

    def __exit__(
        self,
        *args: type[BaseException] | BaseException | TracebackType | None,
    ) -> None:
        self.release()